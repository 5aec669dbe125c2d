"""
Module: production_kernel.selectors.completed_job_selector
Responsibility: Read access to archived (completed) jobs and to the
    activity trail.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from production_kernel.exceptions import CompletedJobNotFoundError
from production_kernel.models.activity_log import ActivityLog
from production_kernel.models.completed_job import CompletedJob
from production_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class CompletedJobInfo:
    """Immutable view of a CompletedJob archive row."""

    id: UUID
    nrc_job_no: str
    job_plan_id: UUID
    job_demand: str | None
    job_details: dict[str, Any]
    purchase_order_details: dict[str, Any] | None
    all_steps: list[dict[str, Any]]
    all_step_details: dict[str, list[dict[str, Any]]]
    total_duration: int | None
    remarks: str | None
    completed_by: str | None
    completed_at: datetime
    final_status: str


@dataclass(frozen=True)
class ActivityLogEntry:
    """Immutable view of one activity trail row."""

    id: UUID
    user_id: str
    action: str
    details: str | None
    resource_type: str | None
    resource_id: str | None
    nrc_job_no: str | None
    occurred_at: datetime


def completed_job_to_info(row: CompletedJob) -> CompletedJobInfo:
    return CompletedJobInfo(
        id=row.id,
        nrc_job_no=row.nrc_job_no,
        job_plan_id=row.job_plan_id,
        job_demand=row.job_demand,
        job_details=row.job_details,
        purchase_order_details=row.purchase_order_details,
        all_steps=row.all_steps,
        all_step_details=row.all_step_details,
        total_duration=row.total_duration,
        remarks=row.remarks,
        completed_by=row.completed_by,
        completed_at=row.completed_at,
        final_status=row.final_status,
    )


class CompletedJobSelector(BaseSelector[CompletedJob]):
    """Queries over the completion archive."""

    def list_completed_jobs(self) -> list[CompletedJobInfo]:
        """All archives, newest first."""
        rows = self.session.execute(
            select(CompletedJob).order_by(CompletedJob.completed_at.desc())
        ).scalars().all()
        return [completed_job_to_info(r) for r in rows]

    def get_completed_job(self, completed_job_id: UUID) -> CompletedJobInfo:
        """
        Raises:
            CompletedJobNotFoundError: If no archive has this id.
        """
        row = self.session.get(CompletedJob, completed_job_id)
        if row is None:
            raise CompletedJobNotFoundError(str(completed_job_id))
        return completed_job_to_info(row)

    def find_by_job_number(self, nrc_job_no: str) -> list[CompletedJobInfo]:
        """Archives for one job, newest first (a job may be re-planned)."""
        rows = self.session.execute(
            select(CompletedJob)
            .where(CompletedJob.nrc_job_no == nrc_job_no)
            .order_by(CompletedJob.completed_at.desc())
        ).scalars().all()
        return [completed_job_to_info(r) for r in rows]


class ActivityLogSelector(BaseSelector[ActivityLog]):
    """Queries over the activity trail."""

    def _to_entry(self, row: ActivityLog) -> ActivityLogEntry:
        return ActivityLogEntry(
            id=row.id,
            user_id=row.user_id,
            action=row.action,
            details=row.details,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            nrc_job_no=row.nrc_job_no,
            occurred_at=row.occurred_at,
        )

    def list_for_job(self, nrc_job_no: str) -> list[ActivityLogEntry]:
        rows = self.session.execute(
            select(ActivityLog)
            .where(ActivityLog.nrc_job_no == nrc_job_no)
            .order_by(ActivityLog.occurred_at, ActivityLog.id)
        ).scalars().all()
        return [self._to_entry(r) for r in rows]

    def list_for_user(self, user_id: str) -> list[ActivityLogEntry]:
        rows = self.session.execute(
            select(ActivityLog)
            .where(ActivityLog.user_id == user_id)
            .order_by(ActivityLog.occurred_at.desc())
        ).scalars().all()
        return [self._to_entry(r) for r in rows]
