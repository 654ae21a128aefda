from __future__ import annotations

import asyncio
import json

import pytest

from webtest_engine.core.errors import CyclicDependencyError
from webtest_engine.core.report import NOT_RUN_ABORTED, SKIPPED_DUE_TO_DEPENDENCY
from webtest_engine.scheduler.scheduler import ParallelScheduler, run_tasks
from webtest_engine.tasks.loader import parse_tasks
from webtest_engine.tests.fakes import FakeContext
from webtest_engine.utils.logging_utils import RunArtifacts

SETTINGS = {"interrupts": {"enabled": False}, "output": {"screenshots": False}}


def _wait(ms: int = 10):
    return {"action": "wait", "ms": ms}


def _click(selector: str):
    return {"action": "click", "selector": selector}


@pytest.mark.asyncio
async def test_dependents_run_after_their_dependency():
    context = FakeContext()
    tasks = parse_tasks(
        [
            {"id": "a", "steps": [_wait()]},
            {"id": "b", "depends": ["a"], "steps": [_wait()]},
            {"id": "c", "depends": ["a"], "steps": [_wait()]},
        ]
    )

    report = await run_tasks(context, tasks, settings=SETTINGS)

    assert report.success is True
    assert (report.completed, report.failed, report.total) == (3, 0, 3)
    assert [result.task_id for result in report.results] == ["a", "b", "c"]
    assert all(result.status == "completed" for result in report.results)
    assert context.new_page_calls == 3
    assert context.open_count == 0


@pytest.mark.asyncio
async def test_failed_dependency_skips_dependents_without_opening_pages():
    context = FakeContext(fail_selectors={"#broken"})
    tasks = parse_tasks(
        [
            {"id": "a", "steps": [_click("#broken")]},
            {"id": "b", "depends": ["a"], "steps": [_wait()]},
            {"id": "c", "depends": ["a"], "steps": [_wait()]},
            {"id": "d", "depends": ["b"], "steps": [_wait()]},
        ]
    )

    report = await run_tasks(context, tasks, settings=SETTINGS)

    assert report.success is False
    assert report.failed == 4
    assert context.new_page_calls == 1
    a_result = report.result_for("a")
    assert a_result.status == "failed"
    assert a_result.skipped is False
    assert "click failed" in a_result.error
    for task_id in ("b", "c", "d"):
        skipped = report.result_for(task_id)
        assert skipped.status == "skipped"
        assert skipped.skipped is True
        assert skipped.error == SKIPPED_DUE_TO_DEPENDENCY
        assert skipped.steps == []
    assert report.result_for("b").failed_dependencies == ["a"]
    assert report.result_for("d").failed_dependencies == ["b"]


@pytest.mark.asyncio
async def test_skip_reaches_dependents_listed_before_their_dependency():
    context = FakeContext(fail_selectors={"#broken"})
    tasks = parse_tasks(
        [
            {"id": "c", "depends": ["b"], "steps": [_wait()]},
            {"id": "b", "depends": ["a"], "steps": [_wait()]},
            {"id": "a", "steps": [_click("#broken")]},
        ]
    )

    report = await run_tasks(context, tasks, settings=SETTINGS)

    assert [result.task_id for result in report.results] == ["c", "b", "a"]
    assert report.result_for("c").status == "skipped"
    assert report.result_for("b").status == "skipped"
    assert report.total == 3


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_max_parallel():
    context = FakeContext()
    tasks = parse_tasks([{"id": f"t{i}", "steps": [_wait(30)]} for i in range(5)])

    scheduler = ParallelScheduler(context, tasks, max_parallel=2, settings=SETTINGS)
    report = await scheduler.run()

    assert report.success is True
    assert report.completed == 5
    assert context.peak_open == 2
    assert scheduler.state.peak_running == 2


@pytest.mark.asyncio
async def test_independent_tasks_overlap():
    context = FakeContext()
    tasks = parse_tasks([{"id": "left", "steps": [_wait(40)]}, {"id": "right", "steps": [_wait(40)]}])

    scheduler = ParallelScheduler(context, tasks, max_parallel=5, settings=SETTINGS)
    report = await scheduler.run()

    assert report.success is True
    assert context.peak_open == 2


@pytest.mark.asyncio
async def test_max_parallel_is_read_from_settings():
    context = FakeContext()
    tasks = parse_tasks([{"id": f"t{i}", "steps": [_wait(20)]} for i in range(4)])
    settings = {**SETTINGS, "scheduler": {"max_parallel": 1}}

    scheduler = ParallelScheduler(context, tasks, settings=settings)
    await scheduler.run()

    assert scheduler.max_parallel == 1
    assert context.peak_open == 1


@pytest.mark.asyncio
async def test_explicit_zero_max_parallel_is_clamped_not_replaced_by_settings():
    context = FakeContext()
    tasks = parse_tasks([{"id": f"t{i}", "steps": [_wait(20)]} for i in range(3)])
    settings = {**SETTINGS, "scheduler": {"max_parallel": 5}}

    scheduler = ParallelScheduler(context, tasks, max_parallel=0, settings=settings)
    await scheduler.run()

    assert scheduler.max_parallel == 1
    assert context.peak_open == 1


@pytest.mark.asyncio
async def test_fail_fast_lets_running_tasks_finish_and_stops_dispatch():
    context = FakeContext(fail_selectors={"#broken"})
    tasks = parse_tasks(
        [
            {"id": "a", "steps": [_click("#broken")]},
            {"id": "b", "steps": [_wait(50), _click("#ok")]},
            {"id": "c", "depends": ["b"], "steps": [_wait()]},
            {"id": "d", "steps": [_wait()]},
        ]
    )

    report = await run_tasks(context, tasks, max_parallel=2, fail_fast=True, settings=SETTINGS)

    assert report.aborted is True
    assert report.success is False
    assert [result.task_id for result in report.results] == ["a", "b", "c", "d"]
    assert report.result_for("a").status == "failed"
    b_result = report.result_for("b")
    assert b_result.status == "completed"
    assert len(b_result.steps) == 2
    for task_id in ("c", "d"):
        not_run = report.result_for(task_id)
        assert not_run.status == "not_run"
        assert not_run.error == NOT_RUN_ABORTED
    assert report.failed == 3
    assert context.new_page_calls == 2


@pytest.mark.asyncio
async def test_stop_on_error_aborts_remaining_steps():
    context = FakeContext(fail_selectors={"#broken"})
    tasks = parse_tasks([{"id": "t", "steps": [_click("#broken"), _click("#after")]}])

    report = await run_tasks(context, tasks, settings=SETTINGS)

    result = report.result_for("t")
    assert result.status == "failed"
    assert len(result.steps) == 1
    assert result.steps[0].success is False
    page = context.created[0]
    assert [call[1][0] for call in page.calls if call[0] == "click"] == ["#broken"]


@pytest.mark.asyncio
async def test_continue_on_error_runs_every_step_but_fails_task():
    context = FakeContext(fail_selectors={"#broken"})
    tasks = parse_tasks([{"id": "t", "stopOnError": False, "steps": [_click("#broken"), _click("#after")]}])

    report = await run_tasks(context, tasks, settings=SETTINGS)

    result = report.result_for("t")
    assert result.status == "failed"
    assert [step.success for step in result.steps] == [False, True]
    assert result.error == result.steps[0].error


@pytest.mark.asyncio
async def test_page_setup_failure_fails_the_task():
    context = FakeContext(new_page_error=RuntimeError("browser crashed"))
    tasks = parse_tasks([{"id": "t", "steps": [_wait()]}])

    report = await run_tasks(context, tasks, settings=SETTINGS)

    result = report.result_for("t")
    assert result.status == "failed"
    assert result.error == "Task setup failed: browser crashed"


@pytest.mark.asyncio
async def test_cancel_stops_new_dispatch():
    context = FakeContext()
    tasks = parse_tasks([{"id": "a", "steps": [_wait(50)]}, {"id": "b", "depends": ["a"], "steps": [_wait()]}])
    scheduler = ParallelScheduler(context, tasks, settings=SETTINGS)

    running = asyncio.create_task(scheduler.run())
    await asyncio.sleep(0.01)
    scheduler.cancel("operator stop")
    report = await running

    assert report.aborted is True
    assert report.result_for("a").status == "completed"
    assert report.result_for("b").status == "not_run"
    assert context.new_page_calls == 1


@pytest.mark.asyncio
async def test_cycle_is_rejected_before_any_page_opens():
    context = FakeContext()
    tasks = parse_tasks([{"id": "a", "depends": ["b"]}, {"id": "b", "depends": ["a"]}])

    with pytest.raises(CyclicDependencyError):
        ParallelScheduler(context, tasks, settings=SETTINGS)
    assert context.new_page_calls == 0


@pytest.mark.asyncio
async def test_empty_task_list_succeeds():
    report = await run_tasks(FakeContext(), [], settings=SETTINGS)
    assert report.success is True
    assert report.total == 0
    assert report.results == []


@pytest.mark.asyncio
async def test_step_log_and_report_payload(tmp_path):
    artifacts = RunArtifacts(base_dir=tmp_path / "run")
    context = FakeContext()
    tasks = parse_tasks(
        [
            {"id": "a", "steps": [_wait(), {"action": "evaluate", "script": "() => 1"}]},
            {"id": "b", "depends": ["a"], "steps": [_wait()]},
        ]
    )

    report = await run_tasks(context, tasks, settings=SETTINGS, artifacts=artifacts)

    lines = artifacts.steps_file.read_text(encoding="utf-8").splitlines()
    entries = [json.loads(line) for line in lines]
    assert [(entry["task"], entry["idx"]) for entry in entries] == [("a", 1), ("a", 2), ("b", 1)]
    payload = report.to_payload()
    assert [item["taskId"] for item in payload["results"]] == ["a", "b"]
    assert payload["results"][0]["steps"][0]["step"]["action"] == "wait"
