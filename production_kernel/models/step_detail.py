"""
Module: production_kernel.models.step_detail
Responsibility: ORM persistence for the per-step process records (paper
    store, printing, corrugation, ...).  The eight variants share one table
    and are told apart by the ``step_type`` discriminator.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/step_types.py only.

Invariants enforced:
    - At most one detail per step: job_step_id is UNIQUE
      (uq_step_detail_job_step).  Two racing creators cannot both attach a
      detail; the loser's INSERT fails with IntegrityError, which the
      service reports as StepDetailAlreadyExistsError.
    - ``step_type`` is fixed by the ORM subclass (single-table
      inheritance), so a detail's type cannot drift from its class.

Failure modes:
    - IntegrityError on a second detail for the same step.
"""

from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase, UUIDString
from production_kernel.domain.step_types import DetailStatus, StepType


class StepDetail(TrackedBase):
    """
    Process record attached to one job step.

    Contract:
        Instantiate one of the subclasses below (or look one up in
        ``DETAIL_MODELS``); the base class is never stored directly.

    Guarantees:
        - job_step_id is unique across all step types.
        - nrc_job_no is copied from the owning plan so job-scoped lookups
          need no join.
    """

    __tablename__ = "step_details"

    __table_args__ = (
        UniqueConstraint("job_step_id", name="uq_step_detail_job_step"),
        Index("idx_step_detail_job_type", "nrc_job_no", "step_type"),
    )

    step_type: Mapped[str] = mapped_column(String(50), nullable=False)

    job_step_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("job_steps.id"),
        nullable=False,
    )

    nrc_job_no: Mapped[str] = mapped_column(String(50), nullable=False)

    # Acceptance status; only "accept" unlocks downstream steps
    status: Mapped[str] = mapped_column(
        String(20),
        default=DetailStatus.PENDING.value,
        nullable=False,
    )

    # Process-specific fields (GSM, colours, flute type, quantities, ...)
    process_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __mapper_args__ = {
        "polymorphic_on": "step_type",
    }

    def __repr__(self) -> str:
        return f"<{self.step_type} for step {self.job_step_id}: {self.status}>"


class PaperStore(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.PAPER_STORE.value}


class PrintingDetails(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.PRINTING_DETAILS.value}


class Corrugation(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.CORRUGATION.value}


class FluteLaminateBoardConversion(StepDetail):
    __mapper_args__ = {
        "polymorphic_identity": StepType.FLUTE_LAMINATE_BOARD_CONVERSION.value,
    }


class Punching(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.PUNCHING.value}


class SideFlapPasting(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.SIDE_FLAP_PASTING.value}


class QualityDept(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.QUALITY_DEPT.value}


class DispatchProcess(StepDetail):
    __mapper_args__ = {"polymorphic_identity": StepType.DISPATCH_PROCESS.value}


DETAIL_MODELS: dict[StepType, type[StepDetail]] = {
    StepType.PAPER_STORE: PaperStore,
    StepType.PRINTING_DETAILS: PrintingDetails,
    StepType.CORRUGATION: Corrugation,
    StepType.FLUTE_LAMINATE_BOARD_CONVERSION: FluteLaminateBoardConversion,
    StepType.PUNCHING: Punching,
    StepType.SIDE_FLAP_PASTING: SideFlapPasting,
    StepType.QUALITY_DEPT: QualityDept,
    StepType.DISPATCH_PROCESS: DispatchProcess,
}
