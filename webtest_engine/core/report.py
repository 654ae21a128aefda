"""Result payloads produced by a scheduler run."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

TaskStatus = Literal["completed", "failed", "skipped", "not_run"]

SKIPPED_DUE_TO_DEPENDENCY = "Skipped due to failed dependency"
NOT_RUN_ABORTED = "Not run: scheduler aborted"


class StepResult(BaseModel):
    """Outcome of a single executed step."""

    model_config = ConfigDict(populate_by_name=True)

    step: Dict[str, Any]
    success: bool
    error: Optional[str] = None
    result: Any = None
    interrupt: Optional[Dict[str, Any]] = None
    screenshot: Optional[str] = None


class TaskResult(BaseModel):
    """Outcome of one task. Every input task gets exactly one of these."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(serialization_alias="taskId")
    status: TaskStatus
    success: bool
    steps: List[StepResult] = Field(default_factory=list)
    error: Optional[str] = None
    skipped: bool = False
    failed_dependencies: List[str] = Field(default_factory=list, serialization_alias="failedDependencies")


class SchedulerReport(BaseModel):
    """Run-level summary consumed by the CLI and reporting layers."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    completed: int
    failed: int
    total: int
    aborted: bool
    results: List[TaskResult] = Field(default_factory=list)

    def result_for(self, task_id: str) -> Optional[TaskResult]:
        for result in self.results:
            if result.task_id == task_id:
                return result
        return None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "NOT_RUN_ABORTED",
    "SKIPPED_DUE_TO_DEPENDENCY",
    "SchedulerReport",
    "StepResult",
    "TaskResult",
    "TaskStatus",
]
