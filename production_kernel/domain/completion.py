"""
Job completion rules -- readiness predicate, duration and archive bundle.

Responsibility:
    Pure computations behind job completion: deciding whether a plan has
    reached its terminal condition, computing the total production
    duration, and assembling the per-step-type detail bundle stored in
    the archive.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``JobCompletionService`` loads the plan graph and persists results.

Invariants enforced:
    - Readiness scans steps in ``step_no`` order; the first stopped step
      with an accepted terminal detail is the match.
    - ``total_duration`` is None unless both bounds are known.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from production_kernel.domain.plan_graph import JobPlanGraph, PlanStepNode
from production_kernel.domain.step_types import JobStatus, StepStatus, StepType

NOT_READY_REASON = 'No step with status "stop" and dispatch process accepted'

SECONDS_PER_DAY = 60 * 60 * 24

# Job master fields a completion policy may reset
CLEARABLE_JOB_FIELDS: tuple[str, ...] = (
    "shade_card_approval_date",
    "artwork_approved_date",
    "artwork_received_date",
    "image_url",
)


@dataclass(frozen=True)
class CompletionPolicy:
    """What completing a job means for the live records.

    Contract: frozen.  ``cleared_job_fields`` name Job master attributes
    that are reset to None once the job is archived.
    """

    terminal_step_type: StepType = StepType.DISPATCH_PROCESS
    accept_status: str = "accept"
    job_status_on_completion: JobStatus = JobStatus.INACTIVE
    cleared_job_fields: tuple[str, ...] = CLEARABLE_JOB_FIELDS
    final_status: str = "completed"


DEFAULT_COMPLETION_POLICY = CompletionPolicy()


@dataclass(frozen=True)
class CompletionReadiness:
    """Result of the readiness check.  ``matched_step`` is set iff ready."""

    nrc_job_no: str
    is_ready: bool
    matched_step: PlanStepNode | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nrc_job_no": self.nrc_job_no,
            "is_ready_for_completion": self.is_ready,
        }
        if self.matched_step is not None:
            data["job_step"] = self.matched_step.to_dict()
            if self.matched_step.detail is not None:
                data["dispatch_process"] = self.matched_step.detail.to_dict()
        if self.reason is not None:
            data["reason"] = self.reason
        return data


def evaluate_completion_readiness(
    graph: JobPlanGraph,
    policy: CompletionPolicy = DEFAULT_COMPLETION_POLICY,
) -> CompletionReadiness:
    """
    Find the first stopped step whose terminal detail is accepted.

    Postconditions: ``is_ready`` is True iff such a step exists.
    """
    for node in graph.steps:
        if node.status != StepStatus.STOP:
            continue
        detail = node.detail
        if detail is None or detail.step_type != policy.terminal_step_type:
            continue
        if detail.is_accepted(policy.accept_status):
            return CompletionReadiness(
                nrc_job_no=graph.nrc_job_no,
                is_ready=True,
                matched_step=node,
            )
    return CompletionReadiness(
        nrc_job_no=graph.nrc_job_no,
        is_ready=False,
        reason=NOT_READY_REASON,
    )


def compute_total_duration(
    start_date: datetime | None,
    end_date: datetime | None,
) -> int | None:
    """Whole days between the bounds, rounded up.  None if either is missing."""
    if start_date is None or end_date is None:
        return None
    seconds = (end_date - start_date).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def build_detail_bundle(graph: JobPlanGraph) -> dict[str, list[dict[str, Any]]]:
    """
    Every attached detail grouped by step type.

    All eight collections are present; types that were never populated
    map to an empty list.
    """
    return {
        step_type.bundle_key: [d.to_dict() for d in graph.details_of_type(step_type)]
        for step_type in StepType
    }
