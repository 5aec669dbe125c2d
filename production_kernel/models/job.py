"""
Module: production_kernel.models.job
Responsibility: ORM persistence for the job master record and the purchase
    orders raised against it.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/step_types.py only.

Invariants enforced:
    - nrc_job_no is unique (uq_job_nrc_job_no); it is the business key every
      plan, step detail and archive refers to.
    - Completion moves status to INACTIVE and clears the artwork/shade-card
      fields (done by JobCompletionService, inside the completion
      transaction).
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase
from production_kernel.domain.step_types import JobStatus


class Job(TrackedBase):
    """
    Job master record.

    Guarantees:
        - nrc_job_no is unique.
        - status is one of JobStatus (stored as its string value).
    """

    __tablename__ = "jobs"

    __table_args__ = (
        UniqueConstraint("nrc_job_no", name="uq_job_nrc_job_no"),
        Index("idx_job_status", "status"),
    )

    nrc_job_no: Mapped[str] = mapped_column(String(50), nullable=False)

    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    style_item_sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    board_size: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=JobStatus.ACTIVE.value,
        nullable=False,
    )

    shade_card_approval_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    artwork_approved_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    artwork_received_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Job {self.nrc_job_no}: {self.status}>"

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.ACTIVE.value


class PurchaseOrder(TrackedBase):
    """Customer purchase order linked to a job."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        Index("idx_po_job", "job_nrc_job_no"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)

    job_nrc_job_no: Mapped[str | None] = mapped_column(
        String(50),
        ForeignKey("jobs.nrc_job_no"),
        nullable=True,
    )

    customer: Mapped[str | None] = mapped_column(String(200), nullable=True)

    quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    po_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(String(20), default="created", nullable=False)

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} for {self.job_nrc_job_no}>"
