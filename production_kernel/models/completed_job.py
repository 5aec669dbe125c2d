"""
Module: production_kernel.models.completed_job
Responsibility: ORM persistence for the archive snapshot written when a job
    is completed.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Written exactly once per completion, in the same transaction that
      deletes the live plan and deactivates the job.  No service updates
      or deletes a CompletedJob afterwards.

Audit relevance:
    After completion the snapshot is the only copy of the plan, its steps
    and every step detail.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import Base, UUIDString


class CompletedJob(Base):
    """
    Immutable archive of a finished job.

    Guarantees:
        - all_step_details has one list per step type (possibly empty).
        - total_duration is whole days, or None when start/end were unknown.
    """

    __tablename__ = "completed_jobs"

    __table_args__ = (
        Index("idx_completed_job_nrc", "nrc_job_no"),
        Index("idx_completed_job_at", "completed_at"),
    )

    nrc_job_no: Mapped[str] = mapped_column(String(50), nullable=False)

    # Id of the JobPlan that was archived (the row itself is gone)
    job_plan_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    job_demand: Mapped[str | None] = mapped_column(String(20), nullable=True)

    job_details: Mapped[dict] = mapped_column(JSON, nullable=False)

    purchase_order_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    all_steps: Mapped[list] = mapped_column(JSON, nullable=False)

    all_step_details: Mapped[dict] = mapped_column(JSON, nullable=False)

    total_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    completed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    final_status: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<CompletedJob {self.nrc_job_no} at {self.completed_at}>"
