"""
Workflow definition validator (``production_config.validator``).

Responsibility
--------------
Checks a ``WorkflowDefinition`` before it is turned into kernel rule
objects: every step type named anywhere must be a known production step,
gating rules must be well formed and must not claim the same step type
twice, and the completion policy must name a real terminal step, job
status and clearable job fields.

Failure modes
-------------
* Errors (``ConfigValidationResult.errors``)  -> the definition MUST NOT
  be used; ``get_active_config`` raises ``ValueError``.
* Warnings  -> usable, but worth a review.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from production_config.schema import GATED_PAIR, PARALLEL_ENTRY, WorkflowDefinition
from production_kernel.domain.completion import CLEARABLE_JOB_FIELDS
from production_kernel.domain.step_types import DetailStatus, JobStatus, StepType

_KNOWN_STEP_TYPES = frozenset(s.value for s in StepType)


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_workflow_definition(definition: WorkflowDefinition) -> ConfigValidationResult:
    """Validate a parsed workflow definition."""
    result = ConfigValidationResult()

    if definition.version < 1:
        result.add_error(f"version must be >= 1, got {definition.version}")

    _validate_step_types(definition, result)
    _validate_gating(definition, result)
    _validate_completion(definition, result)

    if definition.accept_status not in {s.value for s in DetailStatus}:
        result.add_error(f"Unknown accept_status: {definition.accept_status!r}")

    return result


def _validate_step_types(
    definition: WorkflowDefinition, result: ConfigValidationResult
) -> None:
    if not definition.step_types:
        result.add_error("step_types must list at least one step type")
        return

    seen: set[str] = set()
    for name in definition.step_types:
        if name not in _KNOWN_STEP_TYPES:
            result.add_error(f"Unknown step type in step_types: {name!r}")
        if name in seen:
            result.add_error(f"Step type listed twice in step_types: {name!r}")
        seen.add(name)


def _validate_gating(
    definition: WorkflowDefinition, result: ConfigValidationResult
) -> None:
    declared = set(definition.step_types)
    claimed: dict[str, str] = {}
    kinds_seen: set[str] = set()

    for rule in definition.gating_rules:
        if rule.kind in kinds_seen:
            result.add_error(f"Gating rule {rule.kind!r} defined more than once")
        kinds_seen.add(rule.kind)

        if not rule.steps:
            result.add_error(f"Gating rule {rule.kind!r} covers no steps")

        for name in rule.steps + rule.prerequisites:
            if name not in declared:
                result.add_error(
                    f"Gating rule {rule.kind!r} references undeclared step type {name!r}"
                )

        if rule.kind == GATED_PAIR and not rule.prerequisites:
            result.add_error("gated_pair needs at least one prerequisite")
        if rule.kind == PARALLEL_ENTRY and len(rule.prerequisites) != 1:
            result.add_error(
                f"parallel_entry needs exactly one prerequisite, "
                f"got {len(rule.prerequisites)}"
            )

        for name in rule.steps:
            if name in claimed:
                result.add_error(
                    f"Step type {name!r} is gated by both "
                    f"{claimed[name]!r} and {rule.kind!r}"
                )
            else:
                claimed[name] = rule.kind
            if name in rule.prerequisites:
                result.add_error(
                    f"Step type {name!r} cannot be its own prerequisite "
                    f"in {rule.kind!r}"
                )

        # A gated step planned ahead of its prerequisites can never unlock
        order = {name: i for i, name in enumerate(definition.step_types)}
        for name in rule.steps:
            for prerequisite in rule.prerequisites:
                if name in order and prerequisite in order and order[name] < order[prerequisite]:
                    result.add_warning(
                        f"{name!r} is listed before its prerequisite {prerequisite!r}"
                    )


def _validate_completion(
    definition: WorkflowDefinition, result: ConfigValidationResult
) -> None:
    completion = definition.completion

    if completion.terminal_step_type not in _KNOWN_STEP_TYPES:
        result.add_error(
            f"Unknown completion.terminal_step_type: {completion.terminal_step_type!r}"
        )
    elif completion.terminal_step_type not in definition.step_types:
        result.add_error(
            f"completion.terminal_step_type {completion.terminal_step_type!r} "
            "is not listed in step_types"
        )

    if completion.job_status_on_completion not in {s.value for s in JobStatus}:
        result.add_error(
            "Unknown completion.job_status_on_completion: "
            f"{completion.job_status_on_completion!r}"
        )

    for name in completion.cleared_job_fields:
        if name not in CLEARABLE_JOB_FIELDS:
            result.add_error(f"Job field {name!r} cannot be cleared on completion")

    if not completion.final_status:
        result.add_error("completion.final_status must not be empty")
