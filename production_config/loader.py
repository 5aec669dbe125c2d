"""
Workflow definition loader (``production_config.loader``).

Responsibility
--------------
Loads the workflow YAML file and parses it into the frozen dataclasses of
``production_config.schema``.  Runtime callers go through
``production_config.get_active_config()``, not through this module.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; wrong shapes raise
  ``ValueError``.  Nothing is silently defaulted except the optional
  sections documented on the schema types.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed YAML, so
  the same file always yields the same checksum.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from production_config.schema import (
    GATED_PAIR,
    PARALLEL_ENTRY,
    CompletionPolicyDef,
    GatingRule,
    WorkflowDefinition,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_tuple(value: Any, context: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise ValueError(f"{context}: expected a list of step types, got {value!r}")


def parse_gating(data: dict[str, Any]) -> tuple[GatingRule, ...]:
    """Parse the ``gating`` section into GatingRule entries."""
    rules: list[GatingRule] = []

    gated = data.get(GATED_PAIR)
    if gated is not None:
        rules.append(
            GatingRule(
                kind=GATED_PAIR,
                steps=_as_tuple(gated["steps"], "gating.gated_pair.steps"),
                prerequisites=_as_tuple(
                    gated["prerequisites"], "gating.gated_pair.prerequisites"
                ),
            )
        )

    parallel = data.get(PARALLEL_ENTRY)
    if parallel is not None:
        rules.append(
            GatingRule(
                kind=PARALLEL_ENTRY,
                steps=_as_tuple(parallel["steps"], "gating.parallel_entry.steps"),
                prerequisites=_as_tuple(
                    parallel["prerequisite"], "gating.parallel_entry.prerequisite"
                ),
            )
        )

    unknown = set(data) - {GATED_PAIR, PARALLEL_ENTRY}
    if unknown:
        raise ValueError(f"Unknown gating rule kinds: {sorted(unknown)}")

    return tuple(rules)


def parse_completion(data: dict[str, Any]) -> CompletionPolicyDef:
    """Parse the ``completion`` section."""
    defaults = CompletionPolicyDef()
    return CompletionPolicyDef(
        terminal_step_type=data.get("terminal_step_type", defaults.terminal_step_type),
        job_status_on_completion=data.get(
            "job_status_on_completion", defaults.job_status_on_completion
        ),
        final_status=data.get("final_status", defaults.final_status),
        cleared_job_fields=_as_tuple(
            data.get("cleared_job_fields"), "completion.cleared_job_fields"
        ),
    )


def parse_workflow_definition(data: dict[str, Any]) -> WorkflowDefinition:
    """
    Parse a complete workflow definition from a YAML dict.

    Raises:
        KeyError: if ``workflow_id``, ``version`` or ``step_types`` is
            missing.
    """
    return WorkflowDefinition(
        workflow_id=data["workflow_id"],
        version=int(data["version"]),
        step_types=_as_tuple(data["step_types"], "step_types"),
        gating_rules=parse_gating(data.get("gating") or {}),
        completion=parse_completion(data.get("completion") or {}),
        accept_status=data.get("accept_status", "accept"),
        checksum=compute_checksum(data),
    )


def load_workflow_definition(path: Path) -> WorkflowDefinition:
    """Load and parse a workflow YAML file."""
    return parse_workflow_definition(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
