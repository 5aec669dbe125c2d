"""
Config -> Kernel Bridges.

Functions that convert a validated WorkflowDefinition into the kernel's
rule objects.  They live in production_config (the producer) because the
kernel must NEVER import production_config.

Usage:
    from production_config import get_active_config
    from production_config.bridges import build_completion_policy, build_workflow_rules

    definition = get_active_config()
    validator = WorkflowValidator(session, build_workflow_rules(definition))
"""

from __future__ import annotations

from production_config.schema import GATED_PAIR, PARALLEL_ENTRY, WorkflowDefinition
from production_kernel.domain.completion import CompletionPolicy
from production_kernel.domain.step_types import JobStatus, StepType
from production_kernel.domain.workflow_rules import WorkflowRules


def build_workflow_rules(definition: WorkflowDefinition) -> WorkflowRules:
    """Build the kernel's WorkflowRules from the gating section.

    A missing rule kind yields an empty step set, so every step type falls
    back to the previous-step gate.
    """
    gated = definition.rule(GATED_PAIR)
    parallel = definition.rule(PARALLEL_ENTRY)

    return WorkflowRules(
        gated_steps=frozenset(StepType(s) for s in gated.steps) if gated else frozenset(),
        gated_prerequisites=(
            tuple(StepType(s) for s in gated.prerequisites) if gated else ()
        ),
        parallel_entry_steps=(
            frozenset(StepType(s) for s in parallel.steps) if parallel else frozenset()
        ),
        parallel_prerequisite=(
            StepType(parallel.prerequisites[0]) if parallel else StepType.PAPER_STORE
        ),
        accept_status=definition.accept_status,
    )


def build_completion_policy(definition: WorkflowDefinition) -> CompletionPolicy:
    """Build the kernel's CompletionPolicy from the completion section."""
    completion = definition.completion
    return CompletionPolicy(
        terminal_step_type=StepType(completion.terminal_step_type),
        accept_status=definition.accept_status,
        job_status_on_completion=JobStatus(completion.job_status_on_completion),
        cleared_job_fields=completion.cleared_job_fields,
        final_status=completion.final_status,
    )
