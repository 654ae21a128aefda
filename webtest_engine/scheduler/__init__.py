"""Dependency graph validation and the parallel task scheduler."""

from webtest_engine.core.report import NOT_RUN_ABORTED, SKIPPED_DUE_TO_DEPENDENCY, SchedulerReport, StepResult, TaskResult
from .graph import DependencyGraph, build_dependency_graph
from .state import CancellationToken, ExecutionState
from .scheduler import ParallelScheduler, run_tasks

__all__ = [
    "CancellationToken",
    "DependencyGraph",
    "ExecutionState",
    "NOT_RUN_ABORTED",
    "ParallelScheduler",
    "SKIPPED_DUE_TO_DEPENDENCY",
    "SchedulerReport",
    "StepResult",
    "TaskResult",
    "build_dependency_graph",
    "run_tasks",
]
