"""
WorkflowValidator -- may a detail of this step type be created now?

Responsibility:
    Loads the plan graph for a job step and applies the gating rules from
    ``production_kernel.domain.workflow_rules``:

    1. The first step of a plan (lowest step_no) is always allowed.
    2. Gated-pair step types need Corrugation and PrintingDetails details
       for the job, both accepted.  Every unmet prerequisite is reported.
    3. Parallel-entry step types need a PaperStore detail for the job
       (existence only).
    4. Anything else needs the preceding step's detail to be accepted.

Architecture position:
    Kernel > Services -- read-only orchestration over StepRepository.
    Called by StepDetailService before a detail is inserted, and directly
    by route handlers that want to pre-check a step.

Invariants enforced:
    - Never mutates state.
    - A blocked step is a normal result (``can_proceed=False``), not an
      exception.  Only lookup failures raise.

Failure modes:
    - JobStepNotFoundError: step id unknown (404-class).
    - UnknownStepTypeError: tag is not a production step.
    - JobPlanNotFoundError: from get_workflow_status() when no plan exists.

Concurrency:
    The validator takes no locks.  Two requests for the same step can both
    pass validation; the UNIQUE(job_step_id) constraint on step_details
    decides which insert wins.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from production_kernel.domain.plan_graph import JobPlanGraph
from production_kernel.domain.step_types import StepType
from production_kernel.domain.workflow_rules import (
    DEFAULT_WORKFLOW_RULES,
    GateKind,
    WorkflowRules,
    WorkflowValidationResult,
    evaluate_gated_pair,
    evaluate_parallel_entry,
    evaluate_previous_step,
)
from production_kernel.exceptions import JobPlanNotFoundError, JobStepNotFoundError
from production_kernel.logging_config import get_logger
from production_kernel.selectors.step_repository import StepRepository, as_step_id

logger = get_logger("services.workflow_validator")


@dataclass(frozen=True)
class WorkflowStatus:
    """Ordered steps of a job with their lifecycle status and detail."""

    graph: JobPlanGraph

    @property
    def nrc_job_no(self) -> str:
        return self.graph.nrc_job_no

    def to_dict(self) -> dict[str, Any]:
        return {
            "nrc_job_no": self.graph.nrc_job_no,
            "steps": [
                {
                    "step_no": node.step_no,
                    "step_name": node.step_name.value,
                    "status": node.status.value,
                    "details": node.detail.to_dict() if node.detail else None,
                }
                for node in self.graph.steps
            ],
        }


class WorkflowValidator:
    """
    Decides whether a step detail may be created.

    Contract:
        ``validate_step_creation(job_step_id, step_type)`` returns a
        ``WorkflowValidationResult``; ``required_steps`` is None whenever
        ``can_proceed`` is True.

    Non-goals:
        - Does NOT create the detail (StepDetailService does).
        - Does NOT lock rows.
    """

    def __init__(
        self,
        session: Session,
        rules: WorkflowRules | None = None,
    ):
        self._session = session
        self._rules = rules or DEFAULT_WORKFLOW_RULES
        self._repository = StepRepository(session)

    @property
    def rules(self) -> WorkflowRules:
        return self._rules

    def validate_step_creation(
        self,
        job_step_id: UUID | str,
        step_type: StepType | str,
    ) -> WorkflowValidationResult:
        """
        Check the prerequisites for creating a ``step_type`` detail on a step.

        Raises:
            JobStepNotFoundError: If the step does not exist.
            UnknownStepTypeError: If ``step_type`` is not a known tag.
        """
        step_type = StepType.parse(step_type)
        job_step_id = as_step_id(job_step_id)
        node, graph = self._repository.get_step_with_plan_and_siblings(job_step_id)

        if graph.is_first(job_step_id):
            result = WorkflowValidationResult.approve()
            gate = None
        else:
            gate = self._rules.gate_for(step_type)
            if gate == GateKind.GATED_PAIR:
                result = self._check_gated_pair(graph.nrc_job_no)
            elif gate == GateKind.PARALLEL_ENTRY:
                result = self._check_parallel_entry(graph.nrc_job_no)
            else:
                result = self._check_previous_step(graph, job_step_id)

        log = logger.info if result.can_proceed else logger.warning
        log(
            "workflow_step_validated",
            extra={
                "nrc_job_no": graph.nrc_job_no,
                "job_step_id": str(job_step_id),
                "step_no": node.step_no,
                "step_type": step_type.value,
                "gate": gate.value if gate else "first_step",
                "can_proceed": result.can_proceed,
                "required_steps": list(result.required_steps or ()),
            },
        )
        return result

    def _check_gated_pair(self, nrc_job_no: str) -> WorkflowValidationResult:
        prerequisites = {
            step_type: self._repository.get_detail_by_job_number(step_type, nrc_job_no)
            for step_type in self._rules.gated_prerequisites
        }
        return evaluate_gated_pair(prerequisites, self._rules.accept_status)

    def _check_parallel_entry(self, nrc_job_no: str) -> WorkflowValidationResult:
        prerequisite = self._rules.parallel_prerequisite
        detail = self._repository.get_detail_by_job_number(prerequisite, nrc_job_no)
        return evaluate_parallel_entry(prerequisite, detail)

    def _check_previous_step(
        self, graph: JobPlanGraph, job_step_id: UUID
    ) -> WorkflowValidationResult:
        previous = graph.predecessor_of(job_step_id)
        if previous is None:
            raise JobStepNotFoundError(str(job_step_id), graph.nrc_job_no)
        detail = self._repository.get_detail_by_step_id(previous.step_name, previous.id)
        return evaluate_previous_step(
            previous.step_name, detail, self._rules.accept_status
        )

    def get_workflow_status(self, nrc_job_no: str) -> WorkflowStatus:
        """
        Ordered steps of a job with their attached details.

        Raises:
            JobPlanNotFoundError: If the job has no live plan.
        """
        graph = self._repository.get_plan_with_all_steps(nrc_job_no)
        if graph is None:
            raise JobPlanNotFoundError(nrc_job_no)
        return WorkflowStatus(graph=graph)
