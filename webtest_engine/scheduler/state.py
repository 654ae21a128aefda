"""Mutable bookkeeping owned by a single scheduler run."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from webtest_engine.core.report import TaskResult


class CancellationToken:
    """One-way latch consulted before every dispatch."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()


@dataclass
class ExecutionState:
    """Disjoint task-id sets plus results for one ``run()`` call.

    Only the scheduler control loop calls the ``mark_*`` methods. A task id
    sits in at most one of ``completed``, ``failed`` and ``running``, and never
    leaves ``completed`` or ``failed`` once it gets there.
    """

    completed: Set[str] = field(default_factory=set)
    failed: Set[str] = field(default_factory=set)
    running: Dict[str, asyncio.Task] = field(default_factory=dict)
    results: Dict[str, TaskResult] = field(default_factory=dict)
    peak_running: int = 0

    def is_settled(self, task_id: str) -> bool:
        return task_id in self.completed or task_id in self.failed

    def is_pending(self, task_id: str) -> bool:
        return not self.is_settled(task_id) and task_id not in self.running

    def mark_running(self, task_id: str, handle: asyncio.Task) -> None:
        if not self.is_pending(task_id):
            raise RuntimeError(f"Task {task_id!r} cannot start twice")
        self.running[task_id] = handle
        self.peak_running = max(self.peak_running, len(self.running))

    def mark_finished(self, result: TaskResult) -> None:
        task_id = result.task_id
        if self.is_settled(task_id):
            raise RuntimeError(f"Task {task_id!r} already has a terminal state")
        self.running.pop(task_id, None)
        if result.success:
            self.completed.add(task_id)
        else:
            self.failed.add(task_id)
        self.results[task_id] = result


__all__ = ["CancellationToken", "ExecutionState"]
