"""
JobCompletionService -- archive a finished job.

Responsibility:
    Checks whether a job's plan has reached its terminal condition (a
    stopped step carrying an accepted DispatchProcess detail) and, when it
    has, replaces the live plan with a CompletedJob snapshot:

    1. Lock the plan row and re-run the readiness check.
    2. Lock the job master and read its first purchase order.
    3. Compute total_duration from the earliest step start and the latest
       step end.
    4. Write the CompletedJob snapshot (job, purchase order, steps and the
       per-type detail bundle).
    5. Delete the plan, its steps and their details.
    6. Deactivate the job and clear its artwork/shade-card fields.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes only; the
    CompletionCoordinator owns the SERIALIZABLE transaction around
    complete_job() and the audit write after it.

Invariants enforced:
    - Snapshot insert, live-record deletes and job update happen in the
      caller's single transaction: all or nothing.
    - The plan row is locked (SELECT ... FOR UPDATE) before readiness is
      evaluated, so two completions of one job serialize.  The second one
      finds no plan and raises JobPlanNotFoundError; no duplicate archive
      is written.

Failure modes:
    - JobPlanNotFoundError: no live plan (never planned, or already
      completed).
    - JobNotReadyForCompletionError: readiness not met; nothing written.
    - JobNotFoundError: plan exists but the job master is missing.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.completion import (
    DEFAULT_COMPLETION_POLICY,
    CompletionPolicy,
    CompletionReadiness,
    build_detail_bundle,
    compute_total_duration,
    evaluate_completion_readiness,
)
from production_kernel.exceptions import (
    JobNotFoundError,
    JobNotReadyForCompletionError,
    JobPlanNotFoundError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.completed_job import CompletedJob
from production_kernel.models.job import Job, PurchaseOrder
from production_kernel.models.job_plan import JobPlan, JobStep
from production_kernel.selectors.completed_job_selector import (
    CompletedJobInfo,
    completed_job_to_info,
)
from production_kernel.selectors.step_repository import StepRepository, plan_to_graph
from production_kernel.services.base import BaseService

logger = get_logger("services.job_completion")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _job_snapshot(job: Job) -> dict[str, Any]:
    return {
        "id": str(job.id),
        "nrc_job_no": job.nrc_job_no,
        "customer_name": job.customer_name,
        "style_item_sku": job.style_item_sku,
        "board_size": job.board_size,
        "status": job.status,
        "shade_card_approval_date": _iso(job.shade_card_approval_date),
        "artwork_approved_date": _iso(job.artwork_approved_date),
        "artwork_received_date": _iso(job.artwork_received_date),
        "image_url": job.image_url,
    }


def _purchase_order_snapshot(po: PurchaseOrder | None) -> dict[str, Any] | None:
    if po is None:
        return None
    return {
        "id": str(po.id),
        "po_number": po.po_number,
        "customer": po.customer,
        "quantity": po.quantity,
        "po_date": _iso(po.po_date),
        "status": po.status,
    }


class JobCompletionService(BaseService[CompletedJob]):
    """
    Readiness check and archive for finished jobs.

    Contract:
        ``complete_job()`` must run inside a transaction owned by the caller
        (normally CompletionCoordinator).  It flushes and never commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: CompletionPolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._policy = policy or DEFAULT_COMPLETION_POLICY
        self._repository = StepRepository(session)

    def check_completion_readiness(self, nrc_job_no: str) -> CompletionReadiness:
        """
        Is the job ready to be archived?

        Raises:
            JobPlanNotFoundError: If the job has no live plan.
        """
        graph = self._repository.get_plan_with_all_steps(nrc_job_no)
        if graph is None:
            raise JobPlanNotFoundError(nrc_job_no)
        readiness = evaluate_completion_readiness(graph, self._policy)
        logger.info(
            "completion_readiness_checked",
            extra={
                "nrc_job_no": nrc_job_no,
                "is_ready": readiness.is_ready,
                "matched_step_no": (
                    readiness.matched_step.step_no if readiness.matched_step else None
                ),
            },
        )
        return readiness

    def _lock_plan(self, nrc_job_no: str) -> JobPlan | None:
        return self.session.execute(
            select(JobPlan)
            .where(JobPlan.nrc_job_no == nrc_job_no)
            .options(selectinload(JobPlan.steps).selectinload(JobStep.detail))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def complete_job(
        self,
        nrc_job_no: str,
        remarks: str | None = None,
        actor_id: str | None = None,
    ) -> CompletedJobInfo:
        """
        Archive the job and remove its live plan.

        Returns:
            The CompletedJob snapshot that was written.

        Raises:
            JobPlanNotFoundError, JobNotReadyForCompletionError,
            JobNotFoundError.
        """
        plan = self._lock_plan(nrc_job_no)
        if plan is None:
            raise JobPlanNotFoundError(nrc_job_no)

        graph = plan_to_graph(plan)
        readiness = evaluate_completion_readiness(graph, self._policy)
        if not readiness.is_ready:
            logger.warning(
                "job_not_ready_for_completion",
                extra={"nrc_job_no": nrc_job_no, "reason": readiness.reason},
            )
            raise JobNotReadyForCompletionError(nrc_job_no, readiness.reason)

        job = self.session.execute(
            select(Job).where(Job.nrc_job_no == nrc_job_no).with_for_update()
        ).scalar_one_or_none()
        if job is None:
            raise JobNotFoundError(nrc_job_no)

        purchase_order = self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.job_nrc_job_no == nrc_job_no)
            .order_by(PurchaseOrder.created_at, PurchaseOrder.id)
            .limit(1)
        ).scalar_one_or_none()

        start_date, end_date = graph.date_bounds()
        total_duration = compute_total_duration(start_date, end_date)

        archive = CompletedJob(
            nrc_job_no=nrc_job_no,
            job_plan_id=graph.job_plan_id,
            job_demand=graph.job_demand,
            job_details=_job_snapshot(job),
            purchase_order_details=_purchase_order_snapshot(purchase_order),
            all_steps=[node.to_dict() for node in graph.steps],
            all_step_details=build_detail_bundle(graph),
            total_duration=total_duration,
            remarks=remarks,
            completed_by=actor_id,
            completed_at=self._clock.now(),
            final_status=self._policy.final_status,
        )
        self.session.add(archive)

        # Cascades to every step and its detail
        self.session.delete(plan)

        job.status = self._policy.job_status_on_completion.value
        for field_name in self._policy.cleared_job_fields:
            setattr(job, field_name, None)

        self.session.flush()

        logger.info(
            "job_completed",
            extra={
                "nrc_job_no": nrc_job_no,
                "completed_job_id": str(archive.id),
                "job_plan_id": str(graph.job_plan_id),
                "matched_step_no": readiness.matched_step.step_no,
                "step_count": len(graph),
                "total_duration": total_duration,
            },
        )
        return completed_job_to_info(archive)
