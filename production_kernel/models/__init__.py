"""ORM models for the production kernel."""

from production_kernel.models.activity_log import ActionType, ActivityLog
from production_kernel.models.completed_job import CompletedJob
from production_kernel.models.job import Job, PurchaseOrder
from production_kernel.models.step_detail import (
    DETAIL_MODELS,
    Corrugation,
    DispatchProcess,
    FluteLaminateBoardConversion,
    PaperStore,
    PrintingDetails,
    Punching,
    QualityDept,
    SideFlapPasting,
    StepDetail,
)
from production_kernel.models.job_plan import JobPlan, JobStep

__all__ = [
    "ActionType",
    "ActivityLog",
    "CompletedJob",
    "Job",
    "PurchaseOrder",
    "JobPlan",
    "JobStep",
    "StepDetail",
    "DETAIL_MODELS",
    "PaperStore",
    "PrintingDetails",
    "Corrugation",
    "FluteLaminateBoardConversion",
    "Punching",
    "SideFlapPasting",
    "QualityDept",
    "DispatchProcess",
]
