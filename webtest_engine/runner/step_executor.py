"""Executes one typed step against a Playwright page."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from webtest_engine.core.errors import InterruptResolutionError, StepError
from webtest_engine.core.types import ContextLike, PageLike
from webtest_engine.interrupts.handler import InterruptHandler
from webtest_engine.interrupts.types import InterruptResult
from webtest_engine.core.report import StepResult
from webtest_engine.tasks.schema import Step
from webtest_engine.utils.logging_utils import RunArtifacts

logger = logging.getLogger(__name__)


class StepExecutor:
    """Dispatches steps to the driver and resolves any popup they trigger."""

    def __init__(
        self,
        *,
        settings: Dict[str, Any] | None = None,
        interrupt_handler: InterruptHandler | None = None,
        artifacts: RunArtifacts | None = None,
    ) -> None:
        resolved = settings or {}
        timeouts = resolved.get("timeouts", {})
        self.navigate_timeout = int(timeouts.get("navigate_ms", 15000))
        self.action_timeout = int(timeouts.get("action_ms", 10000))
        self.selector_timeout = int(timeouts.get("wait_for_selector_ms", 30000))
        self.default_wait_ms = int(timeouts.get("wait_ms", 1000))
        self.type_delay = int(timeouts.get("type_delay_ms", 50))
        self.wait_until = str(resolved.get("navigation", {}).get("wait_until", "load"))
        interrupt_cfg = resolved.get("interrupts", {})
        self.trigger_actions = frozenset(interrupt_cfg.get("trigger_actions") or ("click",))
        self.screenshots_enabled = bool(resolved.get("output", {}).get("screenshots", True))
        self.interrupt_handler = interrupt_handler if interrupt_handler is not None else InterruptHandler(settings=resolved)
        self.artifacts = artifacts

    async def execute(
        self,
        page: PageLike,
        step: Step,
        *,
        context: ContextLike | None = None,
        task_id: str = "task",
        index: int = 1,
    ) -> StepResult:
        """Run ``step`` on ``page``; raise :class:`StepError` when it fails."""

        kind = step.action
        value: Any = None
        screenshot: Optional[str] = None
        try:
            if kind == "screenshot":
                screenshot = await self.capture_screenshot(
                    page,
                    step.name or f"{task_id}-step-{index:03d}.png",
                    full_page=step.full_page,
                )
            else:
                value = await self._dispatch(page, step)
        except StepError:
            raise
        except Exception as exc:  # noqa: BLE001 - driver errors become step failures
            raise StepError(f"{kind} failed: {exc}", action=kind) from exc

        interrupt = await self._maybe_handle_interrupt(step, context)

        if step.screenshot:
            screenshot = await self.capture_screenshot(page, step.screenshot, full_page=step.full_page)

        logger.debug("task %s step %d (%s) ok", task_id, index, kind)
        return StepResult(
            step=step.summary(),
            success=True,
            result=value,
            interrupt=interrupt.as_payload() if interrupt and interrupt.has_popup else None,
            screenshot=screenshot,
        )

    async def _dispatch(self, page: PageLike, step: Step) -> Any:
        kind = step.action
        if kind == "navigate":
            await page.goto(
                step.url,
                wait_until=step.wait_until or self.wait_until,
                timeout=step.timeout or self.navigate_timeout,
            )
        elif kind == "click":
            await page.click(step.selector, timeout=step.timeout or self.action_timeout)
        elif kind == "fill":
            await page.fill(step.selector, step.value, timeout=step.timeout or self.action_timeout)
        elif kind == "select":
            await page.select_option(step.selector, step.value, timeout=step.timeout or self.action_timeout)
        elif kind == "check":
            await page.check(step.selector, timeout=step.timeout or self.action_timeout)
        elif kind == "uncheck":
            await page.uncheck(step.selector, timeout=step.timeout or self.action_timeout)
        elif kind == "wait":
            await page.wait_for_timeout(step.ms if step.ms is not None else self.default_wait_ms)
        elif kind == "waitForSelector":
            await page.wait_for_selector(step.selector, timeout=step.timeout or self.selector_timeout)
        elif kind == "evaluate":
            return await page.evaluate(step.script)
        elif kind == "type":
            await page.type(step.selector, step.text, delay=step.delay if step.delay is not None else self.type_delay)
        elif kind == "hover":
            await page.hover(step.selector, timeout=step.timeout or self.action_timeout)
        elif kind == "press":
            await page.press(step.selector, step.key, timeout=self.action_timeout)
        else:
            raise StepError(f"Unknown action: {kind}", action=kind)
        return None

    async def _maybe_handle_interrupt(self, step: Step, context: ContextLike | None) -> Optional[InterruptResult]:
        if context is None or step.action not in self.trigger_actions:
            return None
        if step.interrupt_policy == "ignore":
            return None
        result = await self.interrupt_handler.handle(context, step.interrupt_policy)
        if result.test_failed:
            raise InterruptResolutionError(
                f"Wallet transaction failed: {result.error}",
                action=step.action,
                interrupt=result,
            )
        if result.unresolved:
            raise InterruptResolutionError(
                f"Wallet popup ({result.kind.value if result.kind else 'unknown'}) had no clickable "
                f"{'reject' if result.action == 'rejected' else 'approve'} control",
                action=step.action,
                interrupt=result,
            )
        return result

    async def capture_screenshot(self, page: PageLike, name: str, *, full_page: bool = False) -> Optional[str]:
        """Save a screenshot; never raises."""

        if not self.screenshots_enabled:
            return None
        try:
            path = self._screenshot_path(name)
            await page.screenshot(path=str(path), full_page=bool(full_page))
            return str(path)
        except Exception:  # noqa: BLE001 - evidence is advisory, not pass/fail
            logger.warning("screenshot %s could not be saved", name, exc_info=True)
            return None

    def _screenshot_path(self, name: str) -> Path:
        if self.artifacts is not None:
            return self.artifacts.screenshot_path(name)
        fallback = Path("test-output") / "screenshots"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback / Path(name).name


__all__ = ["StepExecutor"]
