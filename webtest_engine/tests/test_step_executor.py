from __future__ import annotations

from pathlib import Path

import pytest

from webtest_engine.core.errors import InterruptResolutionError, StepError
from webtest_engine.interrupts.types import NO_POPUP, InterruptResult, PopupKind
from webtest_engine.runner.step_executor import StepExecutor
from webtest_engine.tasks.loader import parse_step
from webtest_engine.tests.fakes import FakeContext, FakePage
from webtest_engine.utils.logging_utils import RunArtifacts


class StubInterruptHandler:
    def __init__(self, result: InterruptResult = NO_POPUP) -> None:
        self.result = result
        self.calls = []

    async def handle(self, context, policy="approve", wait_timeout_ms=None):
        self.calls.append(policy)
        return self.result


def _executor(tmp_path: Path, handler: StubInterruptHandler | None = None, **overrides) -> StepExecutor:
    settings = {
        "timeouts": {"navigate_ms": 1500, "action_ms": 900, "wait_for_selector_ms": 700, "type_delay_ms": 5},
        "output": {"screenshots": True},
    }
    settings.update(overrides)
    return StepExecutor(
        settings=settings,
        interrupt_handler=handler or StubInterruptHandler(),
        artifacts=RunArtifacts(base_dir=tmp_path / "run"),
    )


@pytest.mark.asyncio
async def test_actions_map_to_driver_calls_with_default_timeouts(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage()

    await executor.execute(page, parse_step({"action": "navigate", "url": "http://localhost:3000"}))
    await executor.execute(page, parse_step({"action": "click", "selector": "#go", "timeout": 250}))
    await executor.execute(page, parse_step({"action": "fill", "selector": "#name", "value": "ada"}))
    await executor.execute(page, parse_step({"action": "select", "selector": "#plan", "value": "pro"}))
    await executor.execute(page, parse_step({"action": "check", "selector": "#tos"}))
    await executor.execute(page, parse_step({"action": "uncheck", "selector": "#news"}))
    await executor.execute(page, parse_step({"action": "waitForSelector", "selector": "#done"}))
    await executor.execute(page, parse_step({"action": "type", "selector": "#q", "text": "hi"}))
    await executor.execute(page, parse_step({"action": "hover", "selector": "#menu"}))
    await executor.execute(page, parse_step({"action": "press", "key": "Enter"}))

    calls = {name: (args, kwargs) for name, args, kwargs in page.calls}
    assert calls["goto"] == (("http://localhost:3000",), {"wait_until": "load", "timeout": 1500})
    assert calls["click"] == (("#go",), {"timeout": 250})
    assert calls["fill"] == (("#name", "ada"), {"timeout": 900})
    assert calls["select_option"] == (("#plan", "pro"), {"timeout": 900})
    assert calls["check"][1] == {"timeout": 900}
    assert calls["uncheck"][0] == ("#news",)
    assert calls["wait_for_selector"] == (("#done",), {"timeout": 700})
    assert calls["type"] == (("#q", "hi"), {"delay": 5})
    assert calls["hover"][0] == ("#menu",)
    assert calls["press"][0] == ("body", "Enter")


@pytest.mark.asyncio
async def test_evaluate_result_is_recorded(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage(evaluate_result={"title": "Dashboard"})

    result = await executor.execute(page, parse_step({"action": "evaluate", "script": "() => ({title: document.title})"}))

    assert result.success is True
    assert result.result == {"title": "Dashboard"}


@pytest.mark.asyncio
async def test_driver_error_becomes_step_error(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage(fail_selectors={"#missing"})

    with pytest.raises(StepError) as excinfo:
        await executor.execute(page, parse_step({"action": "click", "selector": "#missing"}))

    assert excinfo.value.action == "click"
    assert str(excinfo.value).startswith("click failed:")


@pytest.mark.asyncio
async def test_screenshot_step_saves_into_run_folder(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage()

    result = await executor.execute(page, parse_step({"action": "screenshot", "name": "home", "fullPage": True}))

    assert result.success is True
    assert result.screenshot.endswith("home.png")
    assert Path(result.screenshot).exists()
    assert page.calls[-1][2]["full_page"] is True


@pytest.mark.asyncio
async def test_screenshot_failure_does_not_fail_the_step(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage(screenshot_error=RuntimeError("target closed"))

    result = await executor.execute(page, parse_step({"action": "screenshot", "name": "broken"}))

    assert result.success is True
    assert result.screenshot is None


@pytest.mark.asyncio
async def test_post_step_screenshot(tmp_path):
    executor = _executor(tmp_path)
    page = FakePage()

    result = await executor.execute(page, parse_step({"action": "click", "selector": "#go", "screenshot": "after-click"}))

    assert result.screenshot.endswith("after-click.png")


@pytest.mark.asyncio
async def test_interrupt_handler_only_runs_after_click_with_context(tmp_path):
    handler = StubInterruptHandler()
    executor = _executor(tmp_path, handler)
    page = FakePage()
    context = FakeContext()

    await executor.execute(page, parse_step({"action": "fill", "selector": "#a", "value": "x"}), context=context)
    await executor.execute(page, parse_step({"action": "click", "selector": "#a"}))
    await executor.execute(page, parse_step({"action": "click", "selector": "#a", "interruptPolicy": "ignore"}), context=context)
    await executor.execute(page, parse_step({"action": "click", "selector": "#a", "walletAction": "reject"}), context=context)

    assert handler.calls == ["reject"]


@pytest.mark.asyncio
async def test_resolved_popup_is_attached_to_step_result(tmp_path):
    handler = StubInterruptHandler(
        InterruptResult(has_popup=True, kind=PopupKind.SIGNATURE, subtype="personal_sign", action="approved", success=True)
    )
    executor = _executor(tmp_path, handler)

    result = await executor.execute(FakePage(), parse_step({"action": "click", "selector": "#sign"}), context=FakeContext())

    assert result.success is True
    assert result.interrupt == {
        "hasPopup": True,
        "kind": "signature",
        "subtype": "personal_sign",
        "action": "approved",
        "success": True,
        "testFailed": False,
    }


@pytest.mark.asyncio
async def test_failed_transaction_raises_interrupt_error(tmp_path):
    handler = StubInterruptHandler(
        InterruptResult(
            has_popup=True,
            kind=PopupKind.TRANSACTION,
            action="rejected",
            success=False,
            test_failed=True,
            error="Insufficient funds",
            error_kind="insufficient_funds",
        )
    )
    executor = _executor(tmp_path, handler)

    with pytest.raises(InterruptResolutionError) as excinfo:
        await executor.execute(FakePage(), parse_step({"action": "click", "selector": "#pay"}), context=FakeContext())

    assert "Insufficient funds" in str(excinfo.value)
    assert excinfo.value.interrupt.error_kind == "insufficient_funds"


@pytest.mark.asyncio
async def test_unresolved_popup_fails_the_step(tmp_path):
    handler = StubInterruptHandler(
        InterruptResult(has_popup=True, kind=PopupKind.CONNECT, action="approved", success=False)
    )
    executor = _executor(tmp_path, handler)

    with pytest.raises(InterruptResolutionError) as excinfo:
        await executor.execute(FakePage(), parse_step({"action": "click", "selector": "#connect"}), context=FakeContext())

    assert "no clickable approve control" in str(excinfo.value)
