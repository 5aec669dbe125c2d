"""
production_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain the production workflow definition at
    runtime through ``get_active_config()``.  Returns a frozen
    ``WorkflowDefinition``; ``production_config.bridges`` turns it into the
    kernel's ``WorkflowRules`` and ``CompletionPolicy``.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``production_kernel``.  The kernel MUST NEVER import from
    ``production_config``; the kernel's built-in defaults equal the
    packaged ``defaults/workflow.yaml``.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``production_config_loaded`` log entry with the workflow id, version
    and SHA-256 checksum, tying each run to the exact definition in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from production_config.loader import load_workflow_definition
from production_config.schema import CompletionPolicyDef, GatingRule, WorkflowDefinition
from production_config.validator import validate_workflow_definition

_logger = logging.getLogger("production_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "workflow.yaml"


def get_active_config(config_path: Path | None = None) -> WorkflowDefinition:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a workflow YAML file.  Defaults to
            production_config/defaults/workflow.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the definition fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    definition = load_workflow_definition(path)

    validation = validate_workflow_definition(definition)
    if not validation.is_valid:
        raise ValueError(
            "Workflow configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("production_config_warning", extra={"warning": warning})

    _logger.info(
        "production_config_loaded",
        extra={
            "workflow_id": definition.workflow_id,
            "workflow_version": definition.version,
            "checksum": definition.checksum,
            "config_path": str(path),
            "gating_rule_count": len(definition.gating_rules),
        },
    )
    return definition


__all__ = [
    "CompletionPolicyDef",
    "DEFAULT_CONFIG_PATH",
    "GatingRule",
    "WorkflowDefinition",
    "get_active_config",
]
