"""Custom exception hierarchy for the test engine."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class WebTestError(RuntimeError):
    """Base exception for engine-specific failures."""


class ConfigError(WebTestError):
    """Raised when a task list cannot be scheduled. Nothing runs after this."""


class DuplicateTaskError(ConfigError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Duplicate task id: {task_id}")
        self.task_id = task_id


class UnknownDependencyError(ConfigError):
    def __init__(self, task_id: str, dependency: str) -> None:
        super().__init__(f'Task "{task_id}" depends on unknown task "{dependency}"')
        self.task_id = task_id
        self.dependency = dependency


class CyclicDependencyError(ConfigError):
    def __init__(self, task_id: str, cycle: Optional[Sequence[str]] = None) -> None:
        message = f'Circular dependency detected involving task "{task_id}"'
        if cycle:
            message = f"{message}: {' -> '.join(cycle)}"
        super().__init__(message)
        self.task_id = task_id
        self.cycle = list(cycle or [])


class PlanValidationError(ConfigError):
    """Raised when a plan file does not match the task/step schema."""


class StepError(WebTestError):
    """Raised when a single step fails. Local to the owning task."""

    def __init__(self, message: str, *, action: Optional[str] = None) -> None:
        super().__init__(message)
        self.action = action


class InterruptResolutionError(StepError):
    """Raised when a side-channel popup could not be resolved safely."""

    def __init__(self, message: str, *, action: Optional[str] = None, interrupt: Any = None) -> None:
        super().__init__(message, action=action)
        self.interrupt = interrupt


__all__ = [
    "ConfigError",
    "CyclicDependencyError",
    "DuplicateTaskError",
    "InterruptResolutionError",
    "PlanValidationError",
    "StepError",
    "UnknownDependencyError",
    "WebTestError",
]
