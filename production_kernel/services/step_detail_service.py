"""
StepDetailService -- attach a process record to a job step.

Responsibility:
    Creates the step detail (PaperStore, Corrugation, ...) for a job step
    once the workflow gates allow it, and moves its acceptance status
    (pending -> accept / reject / hold ...).

Architecture position:
    Kernel > Services -- imperative shell.
    Uses WorkflowValidator for the gate decision and ActivityLogService for
    the user trail.

Invariants enforced:
    - A detail's step type always equals the owning step's step_name.
    - At most one detail per step.  Checked up front, and backed by the
      UNIQUE(job_step_id) constraint for the race between the check and
      the INSERT.
    - A blocked gate returns BLOCKED; nothing is written.

Failure modes:
    - JobStepNotFoundError: step id unknown.
    - StepTypeMismatchError: detail type differs from the step's name.
    - StepDetailAlreadyExistsError: detail already attached, or a racing
      creator won.  The session must be rolled back by the caller after a
      constraint failure.
    - StepDetailNotFoundError: update_detail_status() on a bare step.

Audit relevance:
    Creation and status changes append ActivityLog rows when an actor is
    given.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.plan_graph import StepDetailSnapshot
from production_kernel.domain.step_types import DetailStatus, StepType
from production_kernel.domain.workflow_rules import (
    WorkflowRules,
    WorkflowValidationResult,
)
from production_kernel.exceptions import (
    JobStepNotFoundError,
    StepDetailAlreadyExistsError,
    StepDetailNotFoundError,
    StepTypeMismatchError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.activity_log import ActionType
from production_kernel.models.job_plan import JobPlan, JobStep
from production_kernel.models.step_detail import DETAIL_MODELS, StepDetail
from production_kernel.selectors.step_repository import (
    StepRepository,
    as_step_id,
    detail_to_snapshot,
)
from production_kernel.services.activity_log_service import ActivityLogService
from production_kernel.services.base import BaseService
from production_kernel.services.workflow_validator import WorkflowValidator

logger = get_logger("services.step_detail")


class StepDetailCreateStatus(str, Enum):
    CREATED = "created"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class StepDetailCreateResult:
    """Outcome of create_step_detail().  ``detail`` is set iff CREATED."""

    status: StepDetailCreateStatus
    validation: WorkflowValidationResult
    detail: StepDetailSnapshot | None = None

    @property
    def is_success(self) -> bool:
        return self.status == StepDetailCreateStatus.CREATED


class StepDetailService(BaseService[StepDetail]):
    """
    Creates and updates step details.

    Contract:
        Flushes only.  The caller commits, or rolls back after a raised
        StepDetailAlreadyExistsError.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: WorkflowRules | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._validator = WorkflowValidator(session, rules)
        self._repository = StepRepository(session)
        self._activity = ActivityLogService(session, self._clock)

    def _load_step(self, job_step_id: UUID) -> JobStep:
        step = self.session.execute(
            select(JobStep).where(JobStep.id == job_step_id)
        ).scalar_one_or_none()
        if step is None:
            raise JobStepNotFoundError(str(job_step_id))
        return step

    def create_step_detail(
        self,
        job_step_id: UUID | str,
        step_type: StepType | str,
        actor_id: str | None = None,
        status: DetailStatus | str = DetailStatus.PENDING,
        process_data: dict[str, Any] | None = None,
    ) -> StepDetailCreateResult:
        """
        Validate the workflow gates and attach a new detail to the step.

        Returns:
            CREATED with the new detail, or BLOCKED with the validator's
            reasons.

        Raises:
            JobStepNotFoundError, UnknownStepTypeError,
            StepTypeMismatchError, StepDetailAlreadyExistsError.
        """
        step_type = StepType.parse(step_type)
        job_step_id = as_step_id(job_step_id)
        step = self._load_step(job_step_id)

        if step.step_name != step_type.value:
            raise StepTypeMismatchError(str(job_step_id), step.step_name, step_type.value)

        if self._repository.get_any_detail_for_step(job_step_id) is not None:
            raise StepDetailAlreadyExistsError(str(job_step_id), step_type.value)

        validation = self._validator.validate_step_creation(job_step_id, step_type)
        if not validation.can_proceed:
            logger.info(
                "step_detail_blocked",
                extra={
                    "job_step_id": str(job_step_id),
                    "step_type": step_type.value,
                    "required_steps": list(validation.required_steps or ()),
                },
            )
            return StepDetailCreateResult(
                status=StepDetailCreateStatus.BLOCKED,
                validation=validation,
            )

        nrc_job_no = self.session.execute(
            select(JobPlan.nrc_job_no).where(JobPlan.id == step.job_plan_id)
        ).scalar_one()

        status_value = status.value if isinstance(status, DetailStatus) else status
        model = DETAIL_MODELS[step_type]
        detail = model(
            job_step_id=job_step_id,
            nrc_job_no=nrc_job_no,
            status=status_value,
            process_data=dict(process_data or {}),
            created_by=actor_id,
        )
        self.session.add(detail)
        try:
            self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "step_detail_create_conflict",
                extra={
                    "job_step_id": str(job_step_id),
                    "step_type": step_type.value,
                },
            )
            raise StepDetailAlreadyExistsError(
                str(job_step_id), step_type.value
            ) from exc

        if actor_id is not None:
            self._activity.record(
                user_id=actor_id,
                action=ActionType.JOBSTEP_CREATED,
                details=f"Created {step_type.value} for job {nrc_job_no}",
                resource_type=step_type.value,
                resource_id=str(detail.id),
                nrc_job_no=nrc_job_no,
            )

        logger.info(
            "step_detail_created",
            extra={
                "nrc_job_no": nrc_job_no,
                "job_step_id": str(job_step_id),
                "step_type": step_type.value,
                "detail_status": status_value,
            },
        )
        return StepDetailCreateResult(
            status=StepDetailCreateStatus.CREATED,
            validation=validation,
            detail=detail_to_snapshot(detail),
        )

    def update_detail_status(
        self,
        job_step_id: UUID | str,
        status: DetailStatus | str,
        actor_id: str | None = None,
    ) -> StepDetailSnapshot:
        """
        Change the acceptance status of the detail attached to a step.

        Raises:
            JobStepNotFoundError: If the step does not exist.
            StepDetailNotFoundError: If the step has no detail yet.
            ValueError: If ``status`` is not a DetailStatus value.
        """
        new_status = DetailStatus(status)
        job_step_id = as_step_id(job_step_id)
        self._load_step(job_step_id)

        detail = self.session.execute(
            select(StepDetail).where(StepDetail.job_step_id == job_step_id)
        ).scalar_one_or_none()
        if detail is None:
            raise StepDetailNotFoundError(str(job_step_id))

        old_status = detail.status
        detail.status = new_status.value
        self.session.flush()

        if actor_id is not None:
            self._activity.record(
                user_id=actor_id,
                action=ActionType.JOBSTEP_UPDATED,
                details=(
                    f"{detail.step_type} status changed from "
                    f"{old_status} to {new_status.value}"
                ),
                resource_type=detail.step_type,
                resource_id=str(detail.id),
                nrc_job_no=detail.nrc_job_no,
            )

        logger.info(
            "step_detail_status_changed",
            extra={
                "nrc_job_no": detail.nrc_job_no,
                "job_step_id": str(job_step_id),
                "from_status": old_status,
                "to_status": new_status.value,
            },
        )
        return detail_to_snapshot(detail)
