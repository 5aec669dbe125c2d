"""
JobPlanGraph -- immutable view of a job's ordered production steps.

Responsibility:
    Holds one job plan's steps sorted by ``step_no`` together with the
    detail (if any) attached to each step.  Built by the step repository
    on every validation or completion call; never cached.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The selector layer
    converts ORM rows into these snapshots at the boundary.

Invariants enforced:
    - ``steps`` is sorted by ``step_no`` ascending and step numbers are
      unique within the plan (a total order).
    - At most one detail per step; a detail's ``step_type`` matches the
      owning step's ``step_name``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any
from uuid import UUID

from production_kernel.domain.step_types import StepStatus, StepType


@dataclass(frozen=True)
class StepDetailSnapshot:
    """Read-only copy of one step detail row."""

    id: UUID
    step_type: StepType
    job_step_id: UUID
    nrc_job_no: str
    status: str
    process_data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    created_by: str | None = None
    created_at: datetime | None = None

    def is_accepted(self, accept_status: str = "accept") -> bool:
        return self.status == accept_status

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form used in completion archives."""
        return {
            "id": str(self.id),
            "step_type": self.step_type.value,
            "job_step_id": str(self.job_step_id),
            "nrc_job_no": self.nrc_job_no,
            "status": self.status,
            "process_data": dict(self.process_data),
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class PlanStepNode:
    """One step of a plan and the detail attached to it."""

    id: UUID
    step_no: int
    step_name: StepType
    status: StepStatus
    start_date: datetime | None = None
    end_date: datetime | None = None
    assigned_user: str | None = None
    machine_details: tuple[Mapping[str, Any], ...] = ()
    detail: StepDetailSnapshot | None = None

    @property
    def has_detail(self) -> bool:
        return self.detail is not None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form used in completion archives (detail excluded)."""
        return {
            "id": str(self.id),
            "step_no": self.step_no,
            "step_name": self.step_name.value,
            "status": self.status.value,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "assigned_user": self.assigned_user,
            "machine_details": [dict(m) for m in self.machine_details],
        }


@dataclass(frozen=True)
class JobPlanGraph:
    """
    Ordered steps of one job plan.

    Contract:
        Constructed from any iteration order; ``steps`` is normalised to
        ``step_no`` ascending so rule evaluation and completion scanning
        are deterministic.

    Raises:
        ValueError: If two steps share a ``step_no``.
    """

    job_plan_id: UUID
    nrc_job_no: str
    steps: tuple[PlanStepNode, ...]
    job_demand: str | None = None

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.steps, key=lambda s: s.step_no))
        seen: set[int] = set()
        for node in ordered:
            if node.step_no in seen:
                raise ValueError(
                    f"Plan {self.nrc_job_no} has duplicate step_no {node.step_no}"
                )
            seen.add(node.step_no)
        object.__setattr__(self, "steps", ordered)

    def __len__(self) -> int:
        return len(self.steps)

    def index_of(self, job_step_id: UUID) -> int | None:
        """Position of a step in ``step_no`` order, or None if not in plan."""
        for i, node in enumerate(self.steps):
            if node.id == job_step_id:
                return i
        return None

    def get(self, job_step_id: UUID) -> PlanStepNode | None:
        idx = self.index_of(job_step_id)
        return None if idx is None else self.steps[idx]

    def by_step_no(self, step_no: int) -> PlanStepNode | None:
        for node in self.steps:
            if node.step_no == step_no:
                return node
        return None

    def is_first(self, job_step_id: UUID) -> bool:
        return self.index_of(job_step_id) == 0

    def predecessor_of(self, job_step_id: UUID) -> PlanStepNode | None:
        """The step immediately before ``job_step_id``, None for the first step."""
        idx = self.index_of(job_step_id)
        if not idx:
            return None
        return self.steps[idx - 1]

    def details_of_type(self, step_type: StepType) -> tuple[StepDetailSnapshot, ...]:
        """Every attached detail of one type, in step order."""
        return tuple(
            node.detail
            for node in self.steps
            if node.detail is not None and node.detail.step_type == step_type
        )

    def first_detail_of_type(self, step_type: StepType) -> StepDetailSnapshot | None:
        details = self.details_of_type(step_type)
        return details[0] if details else None

    def date_bounds(self) -> tuple[datetime | None, datetime | None]:
        """Earliest non-null start_date and latest non-null end_date."""
        starts = [n.start_date for n in self.steps if n.start_date is not None]
        ends = [n.end_date for n in self.steps if n.end_date is not None]
        return (min(starts) if starts else None, max(ends) if ends else None)
