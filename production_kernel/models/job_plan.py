"""
Module: production_kernel.models.job_plan
Responsibility: ORM persistence for a job's production plan and its ordered
    steps.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/step_types.py and sibling models.

Invariants enforced:
    - One live plan per job (uq_job_plan_nrc_job_no).
    - step_no is unique within a plan (uq_job_step_plan_step_no), giving the
      steps a total order.
    - A step owns at most one detail (the UNIQUE job_step_id on
      step_details); deleting a step deletes its detail.

Audit relevance:
    Plans and steps are deleted when a job is archived; the CompletedJob
    snapshot is the only record that survives.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from production_kernel.db.base import TrackedBase, UUIDString
from production_kernel.domain.step_types import StepStatus
from production_kernel.models.step_detail import StepDetail


class JobPlan(TrackedBase):
    """
    Production plan for one job.

    Guarantees:
        - ``steps`` loads in step_no order.
        - Deleting the plan deletes its steps (and their details).
    """

    __tablename__ = "job_plans"

    __table_args__ = (
        UniqueConstraint("nrc_job_no", name="uq_job_plan_nrc_job_no"),
    )

    nrc_job_no: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("jobs.nrc_job_no"),
        nullable=False,
    )

    job_demand: Mapped[str | None] = mapped_column(String(20), nullable=True)

    steps: Mapped[list["JobStep"]] = relationship(
        back_populates="job_plan",
        order_by="JobStep.step_no",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<JobPlan {self.nrc_job_no}: {len(self.steps)} steps>"


class JobStep(TrackedBase):
    """
    One production step within a plan.

    Contract: status moves planned -> start -> stop; start_date is set on
    entering start and end_date on entering stop (by JobPlanningService).
    """

    __tablename__ = "job_steps"

    __table_args__ = (
        UniqueConstraint("job_plan_id", "step_no", name="uq_job_step_plan_step_no"),
        Index("idx_job_step_plan", "job_plan_id"),
    )

    job_plan_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("job_plans.id"),
        nullable=False,
    )

    step_no: Mapped[int] = mapped_column(Integer, nullable=False)

    # One of the StepType wire tags
    step_name: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=StepStatus.PLANNED.value,
        nullable=False,
    )

    start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    assigned_user: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # [{"machine_id": ..., "unit": ..., "machine_code": ..., "machine_type": ...}]
    machine_details: Mapped[list | None] = mapped_column(JSON, nullable=True)

    job_plan: Mapped[JobPlan] = relationship(back_populates="steps")

    detail: Mapped[StepDetail | None] = relationship(
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<JobStep {self.step_no} {self.step_name}: {self.status}>"
