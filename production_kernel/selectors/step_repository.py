"""
Module: production_kernel.selectors.step_repository
Responsibility: Read access to job plans, their steps and the step details
    attached to them, returned as immutable plan-graph snapshots.
Architecture position: Kernel > Selectors.  Consumed by WorkflowValidator,
    JobCompletionService and StepDetailService.

Invariants enforced:
    - Every load uses populate_existing so a graph reflects rows flushed
      earlier in the same session, not stale relationship caches.
    - Detail lookups go through DETAIL_MODELS, so the discriminator filter
      is applied by the ORM rather than by string comparisons here.

Failure modes:
    - JobStepNotFoundError from get_step_with_plan_and_siblings() when the
      step id is unknown, and from any lookup given an id that is not a
      UUID.  Other lookups return None for "absent".
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from production_kernel.domain.plan_graph import (
    JobPlanGraph,
    PlanStepNode,
    StepDetailSnapshot,
)
from production_kernel.domain.step_types import StepStatus, StepType
from production_kernel.exceptions import JobStepNotFoundError
from production_kernel.models.job_plan import JobPlan, JobStep
from production_kernel.models.step_detail import DETAIL_MODELS, StepDetail
from production_kernel.selectors.base import BaseSelector


def as_step_id(job_step_id: UUID | str) -> UUID:
    """
    Normalise a job step id to UUID.

    Route parameters carry the string form.  A string that is not a UUID
    names no step, so it raises JobStepNotFoundError.
    """
    if isinstance(job_step_id, UUID):
        return job_step_id
    try:
        return UUID(str(job_step_id))
    except ValueError as exc:
        raise JobStepNotFoundError(str(job_step_id)) from exc


def detail_to_snapshot(detail: StepDetail) -> StepDetailSnapshot:
    """Convert an ORM StepDetail to its snapshot."""
    return StepDetailSnapshot(
        id=detail.id,
        step_type=StepType(detail.step_type),
        job_step_id=detail.job_step_id,
        nrc_job_no=detail.nrc_job_no,
        status=detail.status,
        process_data=dict(detail.process_data or {}),
        created_by=detail.created_by,
        created_at=detail.created_at,
    )


def step_to_node(step: JobStep) -> PlanStepNode:
    """Convert an ORM JobStep (with its detail loaded) to a plan node."""
    return PlanStepNode(
        id=step.id,
        step_no=step.step_no,
        step_name=StepType(step.step_name),
        status=StepStatus(step.status),
        start_date=step.start_date,
        end_date=step.end_date,
        assigned_user=step.assigned_user,
        machine_details=tuple(step.machine_details or ()),
        detail=detail_to_snapshot(step.detail) if step.detail is not None else None,
    )


def plan_to_graph(plan: JobPlan) -> JobPlanGraph:
    """Convert an ORM JobPlan (steps and details loaded) to a graph."""
    return JobPlanGraph(
        job_plan_id=plan.id,
        nrc_job_no=plan.nrc_job_no,
        job_demand=plan.job_demand,
        steps=tuple(step_to_node(s) for s in plan.steps),
    )


class StepRepository(BaseSelector[JobStep]):
    """
    Read side of the step workflow.

    Contract:
        Returns ``JobPlanGraph`` / ``PlanStepNode`` / ``StepDetailSnapshot``
        values; never ORM instances.
    """

    def _plan_query(self):
        return (
            select(JobPlan)
            .options(selectinload(JobPlan.steps).selectinload(JobStep.detail))
            .execution_options(populate_existing=True)
        )

    def get_step_with_plan_and_siblings(
        self, job_step_id: UUID | str
    ) -> tuple[PlanStepNode, JobPlanGraph]:
        """
        Load a step together with every step of its plan.

        Raises:
            JobStepNotFoundError: If no step has this id.
        """
        job_step_id = as_step_id(job_step_id)
        step = self.session.execute(
            select(JobStep).where(JobStep.id == job_step_id)
        ).scalar_one_or_none()
        if step is None:
            raise JobStepNotFoundError(str(job_step_id))

        plan = self.session.execute(
            self._plan_query().where(JobPlan.id == step.job_plan_id)
        ).scalar_one()
        graph = plan_to_graph(plan)
        node = graph.get(job_step_id)
        return node, graph

    def get_detail_by_step_id(
        self, step_type: StepType, job_step_id: UUID | str
    ) -> StepDetailSnapshot | None:
        """The detail of the given type attached to one step, if any."""
        model = DETAIL_MODELS[step_type]
        job_step_id = as_step_id(job_step_id)
        detail = self.session.execute(
            select(model).where(model.job_step_id == job_step_id)
        ).scalar_one_or_none()
        return detail_to_snapshot(detail) if detail is not None else None

    def get_any_detail_for_step(
        self, job_step_id: UUID | str
    ) -> StepDetailSnapshot | None:
        """The detail attached to a step regardless of its type."""
        job_step_id = as_step_id(job_step_id)
        detail = self.session.execute(
            select(StepDetail).where(StepDetail.job_step_id == job_step_id)
        ).scalar_one_or_none()
        return detail_to_snapshot(detail) if detail is not None else None

    def get_detail_by_job_number(
        self, step_type: StepType, nrc_job_no: str
    ) -> StepDetailSnapshot | None:
        """First detail of the given type recorded for a job (oldest first)."""
        model = DETAIL_MODELS[step_type]
        detail = self.session.execute(
            select(model)
            .where(model.nrc_job_no == nrc_job_no)
            .order_by(model.created_at, model.id)
            .limit(1)
        ).scalar_one_or_none()
        return detail_to_snapshot(detail) if detail is not None else None

    def get_plan_with_all_steps(self, nrc_job_no: str) -> JobPlanGraph | None:
        """The live plan for a job with every step and detail, or None."""
        plan = self.session.execute(
            self._plan_query().where(JobPlan.nrc_job_no == nrc_job_no)
        ).scalar_one_or_none()
        return plan_to_graph(plan) if plan is not None else None
