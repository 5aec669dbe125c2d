"""Selectors for the production kernel (read side)."""

from production_kernel.selectors.completed_job_selector import (
    ActivityLogEntry,
    ActivityLogSelector,
    CompletedJobInfo,
    CompletedJobSelector,
)
from production_kernel.selectors.step_repository import StepRepository

__all__ = [
    "ActivityLogEntry",
    "ActivityLogSelector",
    "CompletedJobInfo",
    "CompletedJobSelector",
    "StepRepository",
]
