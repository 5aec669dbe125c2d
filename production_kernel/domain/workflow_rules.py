"""
Workflow gating rules (``production_kernel.domain.workflow_rules``).

Responsibility
--------------
Pure decision functions for "may a detail of this step type be created
now?".  Every function takes already-loaded detail snapshots and returns a
``WorkflowValidationResult``; none of them touches the database.

Three gates exist:

* **gated pair** -- Punching, SideFlapPasting, QualityDept and
  DispatchProcess need Corrugation AND PrintingDetails to exist with status
  ``accept``.  Both prerequisites are checked and every miss is reported.
* **parallel entry** -- PrintingDetails and Corrugation run side by side
  once paper stock is pulled; they only need a PaperStore detail to exist.
* **previous step** -- everything else needs the immediately preceding
  step (by ``step_no``) to carry an accepted detail.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ``WorkflowValidator`` in the
service layer loads the inputs and calls in here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from production_kernel.domain.plan_graph import StepDetailSnapshot
from production_kernel.domain.step_types import StepType


class GateKind(str, Enum):
    """Which prerequisite rule applies to a step type."""

    GATED_PAIR = "gated_pair"
    PARALLEL_ENTRY = "parallel_entry"
    PREVIOUS_STEP = "previous_step"


@dataclass(frozen=True)
class WorkflowRules:
    """
    Gate assignment for each step type.

    Contract: frozen.  ``gated_steps`` and ``parallel_entry_steps`` are
    disjoint, and gated steps always have prerequisites.  Any step type in
    neither set falls back to the previous-step gate.
    """

    gated_steps: frozenset[StepType]
    gated_prerequisites: tuple[StepType, ...]
    parallel_entry_steps: frozenset[StepType]
    parallel_prerequisite: StepType
    accept_status: str = "accept"

    def __post_init__(self) -> None:
        overlap = self.gated_steps & self.parallel_entry_steps
        if overlap:
            names = ", ".join(sorted(s.value for s in overlap))
            raise ValueError(f"Step types cannot be both gated and parallel-entry: {names}")
        if self.gated_steps and not self.gated_prerequisites:
            raise ValueError("Gated steps need at least one prerequisite step type")

    def gate_for(self, step_type: StepType) -> GateKind:
        if step_type in self.gated_steps:
            return GateKind.GATED_PAIR
        if step_type in self.parallel_entry_steps:
            return GateKind.PARALLEL_ENTRY
        return GateKind.PREVIOUS_STEP


DEFAULT_WORKFLOW_RULES = WorkflowRules(
    gated_steps=frozenset({
        StepType.PUNCHING,
        StepType.SIDE_FLAP_PASTING,
        StepType.QUALITY_DEPT,
        StepType.DISPATCH_PROCESS,
    }),
    gated_prerequisites=(StepType.CORRUGATION, StepType.PRINTING_DETAILS),
    parallel_entry_steps=frozenset({
        StepType.PRINTING_DETAILS,
        StepType.CORRUGATION,
    }),
    parallel_prerequisite=StepType.PAPER_STORE,
)


@dataclass(frozen=True)
class WorkflowValidationResult:
    """
    Outcome of a step-creation check.

    ``required_steps`` is None (not empty) whenever ``can_proceed`` is True.
    A negative result is ordinary control flow, not an error.
    """

    can_proceed: bool
    message: str | None = None
    required_steps: tuple[str, ...] | None = None

    @classmethod
    def approve(cls, message: str | None = None) -> WorkflowValidationResult:
        return cls(can_proceed=True, message=message)

    @classmethod
    def block(cls, message: str, required_steps: list[str]) -> WorkflowValidationResult:
        return cls(
            can_proceed=False,
            message=message,
            required_steps=tuple(required_steps),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"can_proceed": self.can_proceed}
        if self.message is not None:
            data["message"] = self.message
        if self.required_steps is not None:
            data["required_steps"] = list(self.required_steps)
        return data


def evaluate_gated_pair(
    prerequisites: Mapping[StepType, StepDetailSnapshot | None],
    accept_status: str = "accept",
) -> WorkflowValidationResult:
    """
    Require every prerequisite detail to exist and be accepted.

    Each prerequisite is checked independently; the result lists all of
    the unmet ones and the message holds one sentence per miss, in the
    order the prerequisites were given.
    """
    required: list[str] = []
    sentences: list[str] = []

    for step_type, detail in prerequisites.items():
        if detail is None:
            required.append(step_type.value)
            sentences.append(f"{step_type.label} step must be completed.")
        elif not detail.is_accepted(accept_status):
            required.append(f"{step_type.value} (must be accepted)")
            sentences.append(f"{step_type.label} step must be accepted.")

    if required:
        return WorkflowValidationResult.block(" ".join(sentences), required)

    labels = [step_type.label for step_type in prerequisites]
    if len(labels) == 2:
        message = f"Both {labels[0]} and {labels[1]} steps are accepted."
    else:
        message = f"{', '.join(labels)} steps are accepted."
    return WorkflowValidationResult.approve(message)


def evaluate_parallel_entry(
    prerequisite: StepType,
    detail: StepDetailSnapshot | None,
) -> WorkflowValidationResult:
    """Require the prerequisite detail to exist; its status is ignored."""
    if detail is None:
        return WorkflowValidationResult.block(
            f"{prerequisite.value} step must be completed first.",
            [prerequisite.value],
        )
    return WorkflowValidationResult.approve(f"{prerequisite.value} step is completed.")


def evaluate_previous_step(
    previous_step_name: StepType,
    detail: StepDetailSnapshot | None,
    accept_status: str = "accept",
) -> WorkflowValidationResult:
    """
    Require the preceding step's detail to exist and be accepted.

    A missing detail and an unaccepted detail produce different messages.
    """
    name = previous_step_name.value
    if detail is None:
        return WorkflowValidationResult.block(
            f"Previous step ({name}) must be completed first.",
            [name],
        )
    if not detail.is_accepted(accept_status):
        return WorkflowValidationResult.block(
            f"Previous step ({name}) must be accepted before proceeding.",
            [f"{name} (must be accepted)"],
        )
    return WorkflowValidationResult.approve(f"Previous step ({name}) is accepted.")
