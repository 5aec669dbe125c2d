"""
Workflow definition schema.

Defines the human-authored, reviewable source artifact for the production
workflow.  YAML files are parsed into these types by the loader, checked by
the validator, and turned into kernel rule objects by the bridges.

Key distinction:
  WorkflowDefinition = source artifact (human-authored, versioned)
  WorkflowRules / CompletionPolicy (kernel) = runtime rule objects
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Gating
# ---------------------------------------------------------------------------

GATED_PAIR = "gated_pair"
PARALLEL_ENTRY = "parallel_entry"


@dataclass(frozen=True)
class GatingRule:
    """
    One prerequisite rule.

    ``kind`` is ``gated_pair`` (every prerequisite must exist and be
    accepted) or ``parallel_entry`` (the single prerequisite must exist).
    Step types covered by no rule fall back to the previous-step gate.
    """

    kind: str
    steps: tuple[str, ...]
    prerequisites: tuple[str, ...]


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompletionPolicyDef:
    """What marks a job as finished and what completion does to the job."""

    terminal_step_type: str = "DispatchProcess"
    job_status_on_completion: str = "INACTIVE"
    final_status: str = "completed"
    cleared_job_fields: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowDefinition:
    """Complete production workflow definition."""

    workflow_id: str
    version: int
    step_types: tuple[str, ...]
    gating_rules: tuple[GatingRule, ...] = ()
    completion: CompletionPolicyDef = field(default_factory=CompletionPolicyDef)
    accept_status: str = "accept"

    # Populated by the loader
    checksum: str = ""

    def rule(self, kind: str) -> GatingRule | None:
        for gating_rule in self.gating_rules:
            if gating_rule.kind == kind:
                return gating_rule
        return None
