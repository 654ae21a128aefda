"""Per-step execution against a browser page."""

from .step_executor import StepExecutor

__all__ = ["StepExecutor"]
