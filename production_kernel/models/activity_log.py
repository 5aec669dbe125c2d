"""
Module: production_kernel.models.activity_log
Responsibility: ORM persistence for the user activity trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: ActivityLogService only inserts.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import Base


class ActionType(str, Enum):
    """Kinds of user action recorded in the activity trail."""

    JOB_CREATED = "Job Created"
    JOB_UPDATED = "Job Updated"
    JOB_COMPLETED = "Job Completed"

    JOBPLANNING_CREATED = "JobPlanning Created"
    JOBPLANNING_DELETED = "JobPlanning Deleted"

    JOBSTEP_CREATED = "JobStep Created"
    JOBSTEP_UPDATED = "JobStep Updated"

    PRODUCTION_STEP_STARTED = "Production Step Started"
    PRODUCTION_STEP_COMPLETED = "Production Step Completed"


class ActivityLog(Base):
    """One user action."""

    __tablename__ = "activity_logs"

    __table_args__ = (
        Index("idx_activity_user", "user_id"),
        Index("idx_activity_job", "nrc_job_no"),
        Index("idx_activity_occurred", "occurred_at"),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    action: Mapped[str] = mapped_column(String(100), nullable=False)

    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    nrc_job_no: Mapped[str | None] = mapped_column(String(50), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} by {self.user_id}>"
