"""Data models for test plans: tasks and their steps."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

InterruptPolicy = Literal["approve", "reject", "ignore"]
WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]


class _StepBase(BaseModel):
    """Fields shared by every step kind."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    screenshot: Optional[str] = None
    full_page: bool = Field(
        default=False,
        validation_alias=AliasChoices("fullPage", "full_page"),
        serialization_alias="fullPage",
    )
    interrupt_policy: InterruptPolicy = Field(
        default="approve",
        validation_alias=AliasChoices("interruptPolicy", "walletAction", "interrupt_policy"),
        serialization_alias="interruptPolicy",
    )

    def summary(self) -> Dict[str, Any]:
        """Plain-dict view used in reports and step logs."""

        return self.model_dump(by_alias=True, exclude_none=True)


class NavigateStep(_StepBase):
    action: Literal["navigate"]
    url: str = Field(min_length=1)
    wait_until: Optional[WaitUntil] = Field(
        default=None,
        validation_alias=AliasChoices("waitUntil", "wait_until"),
        serialization_alias="waitUntil",
    )
    timeout: Optional[int] = Field(default=None, gt=0)


class ClickStep(_StepBase):
    action: Literal["click"]
    selector: str = Field(min_length=1)
    timeout: Optional[int] = Field(default=None, gt=0)


class FillStep(_StepBase):
    action: Literal["fill"]
    selector: str = Field(min_length=1)
    value: str = ""
    timeout: Optional[int] = Field(default=None, gt=0)


class SelectStep(_StepBase):
    action: Literal["select"]
    selector: str = Field(min_length=1)
    value: Union[str, List[str]]
    timeout: Optional[int] = Field(default=None, gt=0)


class CheckStep(_StepBase):
    action: Literal["check"]
    selector: str = Field(min_length=1)
    timeout: Optional[int] = Field(default=None, gt=0)


class UncheckStep(_StepBase):
    action: Literal["uncheck"]
    selector: str = Field(min_length=1)
    timeout: Optional[int] = Field(default=None, gt=0)


class WaitStep(_StepBase):
    action: Literal["wait"]
    ms: Optional[int] = Field(default=None, ge=0)


class WaitForSelectorStep(_StepBase):
    action: Literal["waitForSelector"]
    selector: str = Field(min_length=1)
    timeout: Optional[int] = Field(default=None, gt=0)


class ScreenshotStep(_StepBase):
    action: Literal["screenshot"]
    name: Optional[str] = None


class EvaluateStep(_StepBase):
    action: Literal["evaluate"]
    script: str = Field(min_length=1)


class TypeStep(_StepBase):
    action: Literal["type"]
    selector: str = Field(min_length=1)
    text: str = ""
    delay: Optional[int] = Field(default=None, ge=0)


class HoverStep(_StepBase):
    action: Literal["hover"]
    selector: str = Field(min_length=1)
    timeout: Optional[int] = Field(default=None, gt=0)


class PressStep(_StepBase):
    action: Literal["press"]
    selector: str = "body"
    key: str = Field(min_length=1)


Step = Annotated[
    Union[
        NavigateStep,
        ClickStep,
        FillStep,
        SelectStep,
        CheckStep,
        UncheckStep,
        WaitStep,
        WaitForSelectorStep,
        ScreenshotStep,
        EvaluateStep,
        TypeStep,
        HoverStep,
        PressStep,
    ],
    Field(discriminator="action"),
]


class Task(BaseModel):
    """A named unit of work: an ordered list of steps plus its dependencies."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    depends: Tuple[str, ...] = ()
    stop_on_error: bool = Field(
        default=True,
        validation_alias=AliasChoices("stopOnError", "stop_on_error"),
        serialization_alias="stopOnError",
    )
    steps: Tuple[Step, ...] = ()

    @field_validator("id")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("task id cannot be blank")
        return value.strip()

    @field_validator("depends", mode="before")
    @classmethod
    def _dedupe_depends(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        ordered: List[str] = []
        for dep in value:
            if isinstance(dep, str):
                dep = dep.strip()
            if dep not in ordered:
                ordered.append(dep)
        return tuple(ordered)


class TestPlan(BaseModel):
    """Top-level plan file: either ``tasks`` or a flat ``steps`` list.

    ``parallel`` only matters for ``tasks``; an explicit ``false`` runs them one
    at a time in dependency order.
    """

    __test__ = False

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    parallel: Optional[bool] = None
    tasks: List[Task] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)


__all__ = [
    "CheckStep",
    "ClickStep",
    "EvaluateStep",
    "FillStep",
    "HoverStep",
    "InterruptPolicy",
    "NavigateStep",
    "PressStep",
    "ScreenshotStep",
    "SelectStep",
    "Step",
    "Task",
    "TestPlan",
    "TypeStep",
    "UncheckStep",
    "WaitForSelectorStep",
    "WaitStep",
]
