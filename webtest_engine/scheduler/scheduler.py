"""Dependency-aware parallel task scheduler."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from webtest_engine.core.errors import InterruptResolutionError, StepError
from webtest_engine.core.report import NOT_RUN_ABORTED, SKIPPED_DUE_TO_DEPENDENCY, SchedulerReport, StepResult, TaskResult
from webtest_engine.core.types import ContextLike, PageLike
from webtest_engine.runner.step_executor import StepExecutor
from webtest_engine.tasks.schema import Task
from webtest_engine.utils.logging_utils import RunArtifacts

from .graph import DependencyGraph, build_dependency_graph
from .state import CancellationToken, ExecutionState

logger = logging.getLogger(__name__)


class ParallelScheduler:
    """Runs a task DAG with bounded concurrency, one page per task.

    The graph is validated at construction, so a ``ConfigError`` surfaces
    before anything touches the browser. All state transitions happen in the
    :meth:`run` loop; task coroutines only return a :class:`TaskResult`.
    """

    def __init__(
        self,
        context: ContextLike,
        tasks: Iterable[Task],
        *,
        max_parallel: Optional[int] = None,
        fail_fast: Optional[bool] = None,
        settings: Dict[str, Any] | None = None,
        step_executor: StepExecutor | None = None,
        artifacts: RunArtifacts | None = None,
    ) -> None:
        resolved = settings or {}
        scheduler_cfg = resolved.get("scheduler", {})
        self.context = context
        self.graph: DependencyGraph = build_dependency_graph(tasks)
        requested = max_parallel if max_parallel is not None else scheduler_cfg.get("max_parallel")
        if requested is None:
            requested = 5
        self.max_parallel = max(1, int(requested))
        self.fail_fast = bool(scheduler_cfg.get("fail_fast", False) if fail_fast is None else fail_fast)
        self.artifacts = artifacts
        self.step_executor = step_executor or StepExecutor(settings=resolved, artifacts=artifacts)
        self.state: ExecutionState | None = None
        self._token: CancellationToken | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Stop dispatching new tasks; running tasks finish normally."""

        if self._token is not None:
            self._token.cancel(reason)

    async def run(self) -> SchedulerReport:
        state = ExecutionState()
        token = CancellationToken()
        self.state = state
        self._token = token
        logger.info(
            "Running %d tasks (max %d concurrent, fail_fast=%s)",
            len(self.graph),
            self.max_parallel,
            self.fail_fast,
        )
        try:
            while True:
                if not token.cancelled:
                    self._dispatch(state)
                if not state.running:
                    break
                owners = {handle: task_id for task_id, handle in state.running.items()}
                done, _ = await asyncio.wait(set(owners), return_when=asyncio.FIRST_COMPLETED)
                for handle in done:
                    result = self._collect(owners[handle], handle)
                    state.mark_finished(result)
                    self._log_outcome(result)
                    if not result.success and self.fail_fast and not token.cancelled:
                        logger.warning("fail_fast: task %s failed, no further tasks will start", result.task_id)
                        token.cancel("fail_fast")
        except asyncio.CancelledError:
            token.cancel("run cancelled")
            await self._drain(state)
            raise

        self._apply_skips(state)
        for task_id in self.graph.order:
            if state.is_pending(task_id):
                state.mark_finished(
                    TaskResult(task_id=task_id, status="not_run", success=False, error=NOT_RUN_ABORTED)
                )

        report = SchedulerReport(
            success=not state.failed,
            completed=len(state.completed),
            failed=len(state.failed),
            total=len(self.graph),
            aborted=token.cancelled,
            results=[state.results[task_id] for task_id in self.graph.order],
        )
        logger.info(
            "Run finished: %d completed, %d failed, %d total%s",
            report.completed,
            report.failed,
            report.total,
            " (aborted)" if report.aborted else "",
        )
        return report

    def _dispatch(self, state: ExecutionState) -> None:
        ready = self._ready(state)
        free_slots = self.max_parallel - len(state.running)
        for task_id in ready[:max(0, free_slots)]:
            handle = asyncio.create_task(self._run_task(self.graph.tasks[task_id]), name=f"webtest:{task_id}")
            state.mark_running(task_id, handle)
            logger.info("Task %s started", task_id)

    def _ready(self, state: ExecutionState) -> List[str]:
        self._apply_skips(state)
        ready: List[str] = []
        for task_id in self.graph.order:
            if not state.is_pending(task_id):
                continue
            if all(dep in state.completed for dep in self.graph.dependencies(task_id)):
                ready.append(task_id)
        return ready

    def _apply_skips(self, state: ExecutionState) -> None:
        # Repeat until stable so a whole failed chain is skipped in one iteration.
        changed = True
        while changed:
            changed = False
            for task_id in self.graph.order:
                if not state.is_pending(task_id):
                    continue
                failed_deps = [dep for dep in self.graph.tasks[task_id].depends if dep in state.failed]
                if not failed_deps:
                    continue
                state.mark_finished(
                    TaskResult(
                        task_id=task_id,
                        status="skipped",
                        success=False,
                        skipped=True,
                        error=SKIPPED_DUE_TO_DEPENDENCY,
                        failed_dependencies=failed_deps,
                    )
                )
                logger.info("Task %s skipped: dependency failed (%s)", task_id, ", ".join(failed_deps))
                changed = True

    async def _run_task(self, task: Task) -> TaskResult:
        step_results: List[StepResult] = []
        error: Optional[str] = None
        page: PageLike | None = None
        try:
            page = await self.context.new_page()
            for index, step in enumerate(task.steps, start=1):
                try:
                    result = await self.step_executor.execute(
                        page,
                        step,
                        context=self.context,
                        task_id=task.id,
                        index=index,
                    )
                except StepError as exc:
                    interrupt = exc.interrupt if isinstance(exc, InterruptResolutionError) else None
                    result = StepResult(
                        step=step.summary(),
                        success=False,
                        error=str(exc),
                        interrupt=interrupt.as_payload() if interrupt is not None else None,
                    )
                    logger.warning("Task %s step %d (%s) failed: %s", task.id, index, step.action, exc)
                step_results.append(result)
                self._record_step(task.id, index, result)
                if not result.success and task.stop_on_error:
                    error = result.error
                    break
        except Exception as exc:  # noqa: BLE001 - a broken task must not crash the loop
            error = f"Task setup failed: {exc}"
            logger.exception("Task %s could not run", task.id)
        finally:
            if page is not None:
                await _close_page(page)

        success = error is None and all(item.success for item in step_results)
        if not success and error is None:
            error = next(item.error for item in step_results if not item.success)
        return TaskResult(
            task_id=task.id,
            status="completed" if success else "failed",
            success=success,
            steps=step_results,
            error=error,
        )

    def _collect(self, task_id: str, handle: asyncio.Task) -> TaskResult:
        try:
            return handle.result()
        except Exception as exc:  # noqa: BLE001 - a crashed task still gets a result
            logger.exception("Task %s crashed", task_id)
            return TaskResult(task_id=task_id, status="failed", success=False, error=str(exc))

    def _record_step(self, task_id: str, index: int, result: StepResult) -> None:
        if self.artifacts is None:
            return
        try:
            self.artifacts.log_step(task_id, index, result.model_dump(mode="json", exclude_none=True))
        except Exception:  # noqa: BLE001 - step logs are evidence only
            logger.debug("step log write failed", exc_info=True)

    @staticmethod
    def _log_outcome(result: TaskResult) -> None:
        if result.success:
            logger.info("Task %s completed (%d steps)", result.task_id, len(result.steps))
        else:
            logger.warning("Task %s failed: %s", result.task_id, result.error)

    @staticmethod
    async def _drain(state: ExecutionState) -> None:
        handles = list(state.running.values())
        for handle in handles:
            handle.cancel()
        if handles:
            await asyncio.gather(*handles, return_exceptions=True)


async def _close_page(page: PageLike) -> None:
    try:
        await page.close()
    except Exception:  # noqa: BLE001
        logger.debug("page close failed", exc_info=True)


async def run_tasks(
    context: ContextLike,
    tasks: Iterable[Task],
    *,
    max_parallel: Optional[int] = None,
    fail_fast: Optional[bool] = None,
    settings: Dict[str, Any] | None = None,
    artifacts: RunArtifacts | None = None,
) -> SchedulerReport:
    """Validate ``tasks`` and run them against ``context``."""

    scheduler = ParallelScheduler(
        context,
        tasks,
        max_parallel=max_parallel,
        fail_fast=fail_fast,
        settings=settings,
        artifacts=artifacts,
    )
    return await scheduler.run()


__all__ = ["ParallelScheduler", "run_tasks"]
