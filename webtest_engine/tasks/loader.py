"""Read test plans from JSON or YAML files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml
from pydantic import TypeAdapter, ValidationError

from webtest_engine.core.errors import PlanValidationError

from .schema import Step, Task, TestPlan

logger = logging.getLogger(__name__)

SEQUENTIAL_TASK_ID = "main"

_STEP_ADAPTER: TypeAdapter[Step] = TypeAdapter(Step)


def parse_step(payload: Mapping[str, Any]) -> Step:
    """Validate one raw step mapping into its typed step model."""

    try:
        return _STEP_ADAPTER.validate_python(dict(payload))
    except ValidationError as exc:
        raise PlanValidationError(f"Invalid step {dict(payload)!r}: {exc}") from exc


def parse_tasks(payload: Iterable[Mapping[str, Any]]) -> List[Task]:
    """Validate raw task mappings, preserving input order."""

    tasks: List[Task] = []
    for index, raw in enumerate(payload):
        try:
            tasks.append(Task.model_validate(dict(raw)))
        except ValidationError as exc:
            raise PlanValidationError(f"Invalid task at index {index}: {exc}") from exc
    return tasks


def parse_plan(payload: Mapping[str, Any]) -> TestPlan:
    try:
        return TestPlan.model_validate(dict(payload))
    except ValidationError as exc:
        raise PlanValidationError(f"Invalid test plan: {exc}") from exc


def plan_tasks(plan: TestPlan) -> List[Task]:
    """Return the tasks a plan should run.

    Plans without ``tasks`` run their flat ``steps`` as a single task that keeps
    going after a failing step.
    """

    if plan.tasks:
        return list(plan.tasks)
    if plan.steps:
        return [Task(id=SEQUENTIAL_TASK_ID, stop_on_error=False, steps=tuple(plan.steps))]
    return []


def plan_mode(plan: TestPlan) -> str:
    """``parallel`` unless the plan is a flat step list or opts out with ``parallel: false``."""

    if plan.tasks and plan.parallel is not False:
        return "parallel"
    return "sequential"


def plan_max_parallel(plan: TestPlan) -> Optional[int]:
    """Concurrency cap the plan itself imposes, or ``None`` to use settings."""

    return None if plan_mode(plan) == "parallel" else 1


def load_plan(path: Path | str) -> TestPlan:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Missing test plan at {file_path}")
    text = file_path.read_text(encoding="utf-8")
    data: Dict[str, Any]
    try:
        if file_path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PlanValidationError(f"Unreadable test plan {file_path}: {exc}") from exc
    if isinstance(data, list):
        data = {"parallel": True, "tasks": data}
    if not isinstance(data, dict):
        raise PlanValidationError(f"Test plan {file_path} must be a mapping or a task list")
    plan = parse_plan(data)
    logger.debug("Loaded plan %s with %d tasks and %d flat steps", file_path, len(plan.tasks), len(plan.steps))
    return plan


__all__ = [
    "SEQUENTIAL_TASK_ID",
    "load_plan",
    "parse_plan",
    "parse_step",
    "parse_tasks",
    "plan_max_parallel",
    "plan_mode",
    "plan_tasks",
]
