"""Pure domain layer: step vocabularies, plan graph and workflow rules."""

from production_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from production_kernel.domain.completion import (
    DEFAULT_COMPLETION_POLICY,
    CompletionPolicy,
    CompletionReadiness,
    build_detail_bundle,
    compute_total_duration,
    evaluate_completion_readiness,
)
from production_kernel.domain.plan_graph import (
    JobPlanGraph,
    PlanStepNode,
    StepDetailSnapshot,
)
from production_kernel.domain.step_types import (
    VALID_STEP_TRANSITIONS,
    DetailStatus,
    JobStatus,
    StepStatus,
    StepType,
)
from production_kernel.domain.workflow_rules import (
    DEFAULT_WORKFLOW_RULES,
    GateKind,
    WorkflowRules,
    WorkflowValidationResult,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CompletionPolicy",
    "CompletionReadiness",
    "DEFAULT_COMPLETION_POLICY",
    "build_detail_bundle",
    "compute_total_duration",
    "evaluate_completion_readiness",
    "JobPlanGraph",
    "PlanStepNode",
    "StepDetailSnapshot",
    "DetailStatus",
    "JobStatus",
    "StepStatus",
    "StepType",
    "VALID_STEP_TRANSITIONS",
    "DEFAULT_WORKFLOW_RULES",
    "GateKind",
    "WorkflowRules",
    "WorkflowValidationResult",
]
