"""
JobPlanningService -- create a job's production plan and move its steps
through their lifecycle.

Responsibility:
    Turns a planning submission (job demand plus an ordered list of steps)
    into a JobPlan with JobStep rows, and applies step lifecycle changes
    (planned -> start -> stop) stamping start/end dates from the clock.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - One live plan per job; step numbers unique within the plan.
    - Step names are known StepType tags.
    - Lifecycle transitions follow VALID_STEP_TRANSITIONS (no skipping,
      no going back).
    - start_date is set on entering ``start``, end_date on entering
      ``stop``; both come from the injected Clock.

Failure modes:
    - JobNotFoundError, JobPlanAlreadyExistsError, EmptyJobPlanError,
      DuplicateStepNumberError, UnknownStepTypeError on create.
    - JobPlanNotFoundError, JobStepNotFoundError, InvalidStepStatusError,
      InvalidStepTransitionError on status updates.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.plan_graph import JobPlanGraph, PlanStepNode
from production_kernel.domain.step_types import (
    VALID_STEP_TRANSITIONS,
    StepStatus,
    StepType,
)
from production_kernel.exceptions import (
    DuplicateStepNumberError,
    EmptyJobPlanError,
    InvalidStepTransitionError,
    JobNotFoundError,
    JobPlanAlreadyExistsError,
    JobPlanNotFoundError,
    JobStepNotFoundError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.activity_log import ActionType
from production_kernel.models.job import Job
from production_kernel.models.job_plan import JobPlan, JobStep
from production_kernel.selectors.step_repository import StepRepository, step_to_node
from production_kernel.services.activity_log_service import ActivityLogService
from production_kernel.services.base import BaseService

logger = get_logger("services.job_planning")


@dataclass(frozen=True)
class StepPlan:
    """One step of a planning submission."""

    step_no: int
    step_name: StepType | str
    machine_details: Sequence[dict[str, Any]] = field(default_factory=tuple)


class JobPlanningService(BaseService[JobPlan]):
    """
    Writes job plans and step lifecycle changes.

    Contract:
        Flushes only; the caller commits.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._activity = ActivityLogService(session, self._clock)
        self._repository = StepRepository(session)

    def create_job_plan(
        self,
        nrc_job_no: str,
        steps: Sequence[StepPlan],
        job_demand: str | None = None,
        actor_id: str | None = None,
    ) -> JobPlanGraph:
        """
        Create the plan and its steps, all in status ``planned``.

        Returns:
            The new plan as a JobPlanGraph.
        """
        job_exists = self.session.execute(
            select(Job.id).where(Job.nrc_job_no == nrc_job_no)
        ).scalar_one_or_none()
        if job_exists is None:
            raise JobNotFoundError(nrc_job_no)

        existing_plan = self.session.execute(
            select(JobPlan.id).where(JobPlan.nrc_job_no == nrc_job_no)
        ).scalar_one_or_none()
        if existing_plan is not None:
            raise JobPlanAlreadyExistsError(nrc_job_no)

        if not steps:
            raise EmptyJobPlanError(nrc_job_no)

        seen: set[int] = set()
        parsed: list[tuple[StepPlan, StepType]] = []
        for step in steps:
            if step.step_no in seen:
                raise DuplicateStepNumberError(nrc_job_no, step.step_no)
            seen.add(step.step_no)
            parsed.append((step, StepType.parse(step.step_name)))

        plan = JobPlan(
            nrc_job_no=nrc_job_no,
            job_demand=job_demand,
            created_by=actor_id,
        )
        for step, step_type in parsed:
            plan.steps.append(
                JobStep(
                    step_no=step.step_no,
                    step_name=step_type.value,
                    status=StepStatus.PLANNED.value,
                    machine_details=[dict(m) for m in step.machine_details],
                    created_by=actor_id,
                )
            )
        self.session.add(plan)
        self.session.flush()

        if actor_id is not None:
            self._activity.record(
                user_id=actor_id,
                action=ActionType.JOBPLANNING_CREATED,
                details=f"Created job planning for job {nrc_job_no} with {len(parsed)} steps",
                resource_type="JobPlanning",
                resource_id=str(plan.id),
                nrc_job_no=nrc_job_no,
            )

        logger.info(
            "job_plan_created",
            extra={
                "nrc_job_no": nrc_job_no,
                "job_plan_id": str(plan.id),
                "step_count": len(parsed),
            },
        )
        return self._repository.get_plan_with_all_steps(nrc_job_no)

    def update_step_status(
        self,
        nrc_job_no: str,
        step_no: int,
        status: StepStatus | str,
        actor_id: str | None = None,
    ) -> PlanStepNode:
        """
        Move one step to its next lifecycle status.

        Raises:
            InvalidStepStatusError: ``status`` is not planned/start/stop.
            JobPlanNotFoundError: No live plan for the job.
            JobStepNotFoundError: No step with ``step_no`` in the plan.
            InvalidStepTransitionError: Transition not allowed.
        """
        new_status = StepStatus.parse(status)

        plan_id = self.session.execute(
            select(JobPlan.id).where(JobPlan.nrc_job_no == nrc_job_no)
        ).scalar_one_or_none()
        if plan_id is None:
            raise JobPlanNotFoundError(nrc_job_no)

        step = self.session.execute(
            select(JobStep).where(
                JobStep.job_plan_id == plan_id,
                JobStep.step_no == step_no,
            )
        ).scalar_one_or_none()
        if step is None:
            raise JobStepNotFoundError(f"stepNo {step_no}", nrc_job_no)

        current = StepStatus(step.status)
        if new_status not in VALID_STEP_TRANSITIONS[current]:
            raise InvalidStepTransitionError(
                str(step.id), current.value, new_status.value
            )

        now = self._clock.now()
        step.status = new_status.value
        if new_status == StepStatus.START:
            step.start_date = now
            if actor_id is not None:
                step.assigned_user = actor_id
        elif new_status == StepStatus.STOP:
            step.end_date = now
        self.session.flush()

        if actor_id is not None:
            self._activity.record(
                user_id=actor_id,
                action=ActionType.JOBSTEP_UPDATED,
                details=(
                    f"Step {step_no} ({step.step_name}) of job {nrc_job_no} "
                    f"moved from {current.value} to {new_status.value}"
                ),
                resource_type="JobStep",
                resource_id=str(step.id),
                nrc_job_no=nrc_job_no,
            )

        logger.info(
            "job_step_status_changed",
            extra={
                "nrc_job_no": nrc_job_no,
                "job_step_id": str(step.id),
                "step_no": step_no,
                "from_status": current.value,
                "to_status": new_status.value,
            },
        )
        return step_to_node(step)

    def get_plan(self, nrc_job_no: str) -> JobPlanGraph:
        """
        Raises:
            JobPlanNotFoundError: If the job has no live plan.
        """
        graph = self._repository.get_plan_with_all_steps(nrc_job_no)
        if graph is None:
            raise JobPlanNotFoundError(nrc_job_no)
        return graph

    def get_step_id(self, nrc_job_no: str, step_no: int) -> UUID:
        """Id of the step with ``step_no`` in the job's live plan."""
        node = self.get_plan(nrc_job_no).by_step_no(step_no)
        if node is None:
            raise JobStepNotFoundError(f"stepNo {step_no}", nrc_job_no)
        return node.id
