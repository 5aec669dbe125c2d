"""
Step types and lifecycle statuses (``production_kernel.domain.step_types``).

Responsibility
--------------
The closed vocabularies shared by every layer: the eight production step
types, the step lifecycle (planned -> start -> stop), and the acceptance
status carried by every step detail.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Models,
selectors and services import from here; this module imports nothing
from the kernel.
"""

from __future__ import annotations

from enum import Enum

from production_kernel.exceptions import InvalidStepStatusError, UnknownStepTypeError


class StepType(str, Enum):
    """The production steps a job can be planned through.

    Values are the wire tags used by planning clients and stored in
    ``job_steps.step_name`` and ``step_details.step_type``.
    """

    PAPER_STORE = "PaperStore"
    PRINTING_DETAILS = "PrintingDetails"
    CORRUGATION = "Corrugation"
    FLUTE_LAMINATE_BOARD_CONVERSION = "FluteLaminateBoardConversion"
    PUNCHING = "Punching"
    SIDE_FLAP_PASTING = "SideFlapPasting"
    QUALITY_DEPT = "QualityDept"
    DISPATCH_PROCESS = "DispatchProcess"

    @property
    def label(self) -> str:
        """Short name used in operator-facing workflow messages."""
        return _LABELS.get(self, self.value)

    @property
    def bundle_key(self) -> str:
        """Key of this step type's collection in a completion archive."""
        return _BUNDLE_KEYS[self]

    @classmethod
    def parse(cls, value: str | StepType) -> StepType:
        """Resolve a wire tag to a StepType.

        Raises:
            UnknownStepTypeError: If the tag is not a known step type.
        """
        if isinstance(value, StepType):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownStepTypeError(str(value)) from None


_LABELS = {
    StepType.PRINTING_DETAILS: "Printing",
}

_BUNDLE_KEYS = {
    StepType.PAPER_STORE: "paper_store",
    StepType.PRINTING_DETAILS: "printing_details",
    StepType.CORRUGATION: "corrugation",
    StepType.FLUTE_LAMINATE_BOARD_CONVERSION: "flute_lam",
    StepType.PUNCHING: "punching",
    StepType.SIDE_FLAP_PASTING: "side_flap_pasting",
    StepType.QUALITY_DEPT: "quality_dept",
    StepType.DISPATCH_PROCESS: "dispatch_process",
}


class StepStatus(str, Enum):
    """Lifecycle status of a planned step.

    Contract: Transitions are PLANNED -> START -> STOP.  There is no
    transition backward.
    """

    PLANNED = "planned"
    START = "start"
    STOP = "stop"

    @classmethod
    def parse(cls, value: str | StepStatus) -> StepStatus:
        if isinstance(value, StepStatus):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStepStatusError(str(value)) from None


VALID_STEP_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PLANNED: frozenset({StepStatus.START}),
    StepStatus.START: frozenset({StepStatus.STOP}),
    StepStatus.STOP: frozenset(),
}


class DetailStatus(str, Enum):
    """Acceptance status of a step detail.

    Only ACCEPT unlocks downstream steps; every other value means the
    step's output is still pending or was turned away.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    HOLD = "hold"
    REJECT = "reject"
    ACCEPT = "accept"


class JobStatus(str, Enum):
    """Status of the job master record."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    HOLD = "HOLD"
