"""Services for the production kernel (write side and orchestration)."""

from production_kernel.services.activity_log_service import ActivityLogService
from production_kernel.services.completion_coordinator import CompletionCoordinator
from production_kernel.services.job_completion_service import JobCompletionService
from production_kernel.services.job_planning_service import (
    JobPlanningService,
    StepPlan,
)
from production_kernel.services.step_detail_service import (
    StepDetailCreateResult,
    StepDetailCreateStatus,
    StepDetailService,
)
from production_kernel.services.workflow_validator import (
    WorkflowStatus,
    WorkflowValidator,
)

__all__ = [
    "ActivityLogService",
    "CompletionCoordinator",
    "JobCompletionService",
    "JobPlanningService",
    "StepPlan",
    "StepDetailCreateResult",
    "StepDetailCreateStatus",
    "StepDetailService",
    "WorkflowStatus",
    "WorkflowValidator",
]
