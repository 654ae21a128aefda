"""Core error and type primitives."""

from .errors import (
    ConfigError,
    CyclicDependencyError,
    DuplicateTaskError,
    InterruptResolutionError,
    PlanValidationError,
    StepError,
    UnknownDependencyError,
    WebTestError,
)

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
