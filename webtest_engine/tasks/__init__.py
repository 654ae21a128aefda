"""Task and step definitions for test plans."""

from .loader import (
    SEQUENTIAL_TASK_ID,
    load_plan,
    parse_plan,
    parse_step,
    parse_tasks,
    plan_max_parallel,
    plan_mode,
    plan_tasks,
)
from .schema import InterruptPolicy, Step, Task, TestPlan

__all__ = [
    "InterruptPolicy",
    "SEQUENTIAL_TASK_ID",
    "Step",
    "Task",
    "TestPlan",
    "load_plan",
    "parse_plan",
    "parse_step",
    "parse_tasks",
    "plan_max_parallel",
    "plan_mode",
    "plan_tasks",
]
