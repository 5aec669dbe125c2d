"""
Tests for the workflow configuration layer.

Covers loading the packaged workflow.yaml, the config -> kernel bridges,
and rejection of malformed definitions.
"""

import copy

import pytest
import yaml

from production_config import DEFAULT_CONFIG_PATH, get_active_config
from production_config.bridges import build_completion_policy, build_workflow_rules
from production_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_workflow_definition,
)
from production_config.schema import GATED_PAIR, PARALLEL_ENTRY
from production_config.validator import validate_workflow_definition
from production_kernel.domain.completion import DEFAULT_COMPLETION_POLICY
from production_kernel.domain.step_types import StepType
from production_kernel.domain.workflow_rules import DEFAULT_WORKFLOW_RULES, GateKind


@pytest.fixture
def default_data():
    return load_yaml_file(DEFAULT_CONFIG_PATH)


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="workflow.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


class TestDefaultConfig:

    def test_loads_and_validates(self):
        definition = get_active_config()
        assert definition.workflow_id == "corrugated_box_production"
        assert definition.version == 1
        assert definition.step_types == tuple(s.value for s in StepType)
        assert len(definition.checksum) == 64

    def test_rules_present(self):
        definition = get_active_config()
        gated = definition.rule(GATED_PAIR)
        parallel = definition.rule(PARALLEL_ENTRY)
        assert gated.prerequisites == ("Corrugation", "PrintingDetails")
        assert parallel.prerequisites == ("PaperStore",)
        assert "DispatchProcess" in gated.steps

    def test_load_logged_with_checksum(self, captured_logs):
        definition = get_active_config()
        records = [r for r in captured_logs() if r["message"] == "production_config_loaded"]
        assert len(records) == 1
        assert records[0]["workflow_id"] == definition.workflow_id
        assert records[0]["checksum"] == definition.checksum
        assert records[0]["gating_rule_count"] == 2

    def test_bridges_match_kernel_defaults(self):
        definition = get_active_config()
        assert build_workflow_rules(definition) == DEFAULT_WORKFLOW_RULES
        assert build_completion_policy(definition) == DEFAULT_COMPLETION_POLICY


class TestChecksum:

    def test_deterministic(self, default_data):
        assert compute_checksum(default_data) == compute_checksum(copy.deepcopy(default_data))

    def test_key_order_irrelevant(self, default_data):
        reordered = dict(reversed(list(default_data.items())))
        assert compute_checksum(reordered) == compute_checksum(default_data)

    def test_changes_with_content(self, default_data):
        changed = copy.deepcopy(default_data)
        changed["version"] = 2
        assert compute_checksum(changed) != compute_checksum(default_data)


class TestBridges:

    def test_missing_parallel_entry_falls_back_to_previous_step(self, default_data):
        data = copy.deepcopy(default_data)
        del data["gating"]["parallel_entry"]
        rules = build_workflow_rules(parse_workflow_definition(data))
        assert rules.gate_for(StepType.CORRUGATION) == GateKind.PREVIOUS_STEP
        assert rules.gate_for(StepType.PUNCHING) == GateKind.GATED_PAIR

    def test_cleared_fields_subset(self, default_data):
        data = copy.deepcopy(default_data)
        data["completion"]["cleared_job_fields"] = ["image_url"]
        policy = build_completion_policy(parse_workflow_definition(data))
        assert policy.cleared_job_fields == ("image_url",)


class TestInvalidConfig:

    @pytest.mark.parametrize("mutate", [
        pytest.param(lambda d: d["step_types"].append("Varnishing"), id="unknown-step-type"),
        pytest.param(lambda d: d.update(step_types=[]), id="empty-step-types"),
        pytest.param(lambda d: d["step_types"].append("PaperStore"), id="duplicate-step-type"),
        pytest.param(lambda d: d.update(version=0), id="version-zero"),
        pytest.param(
            lambda d: d["gating"]["parallel_entry"]["steps"].append("Punching"),
            id="step-in-two-rules",
        ),
        pytest.param(
            lambda d: d["gating"]["parallel_entry"].update(
                prerequisite=["PaperStore", "Corrugation"]
            ),
            id="parallel-entry-two-prerequisites",
        ),
        pytest.param(
            lambda d: d["gating"]["gated_pair"].update(prerequisites=[]),
            id="gated-pair-without-prerequisites",
        ),
        pytest.param(
            lambda d: d["completion"]["cleared_job_fields"].append("customer_name"),
            id="uncleared-field",
        ),
        pytest.param(
            lambda d: d["completion"].update(job_status_on_completion="ARCHIVED"),
            id="unknown-job-status",
        ),
        pytest.param(lambda d: d.update(accept_status="approved"), id="unknown-accept-status"),
    ])
    def test_rejected(self, default_data, write_config, mutate):
        data = copy.deepcopy(default_data)
        mutate(data)
        path = write_config(data)
        with pytest.raises(ValueError, match="validation failed"):
            get_active_config(path)

    def test_unknown_gating_kind(self, default_data, write_config):
        data = copy.deepcopy(default_data)
        data["gating"]["fan_out"] = {"steps": ["Punching"]}
        with pytest.raises(ValueError, match="Unknown gating rule kinds"):
            get_active_config(write_config(data))

    @pytest.mark.parametrize("key", ["workflow_id", "version", "step_types"])
    def test_missing_required_key(self, default_data, write_config, key):
        data = copy.deepcopy(default_data)
        del data[key]
        with pytest.raises(KeyError):
            get_active_config(write_config(data))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestWarnings:

    def test_gated_step_listed_before_prerequisite(self, default_data, write_config, captured_logs):
        data = copy.deepcopy(default_data)
        data["step_types"] = [
            "PaperStore",
            "Punching",
            "PrintingDetails",
            "Corrugation",
            "FluteLaminateBoardConversion",
            "SideFlapPasting",
            "QualityDept",
            "DispatchProcess",
        ]

        result = validate_workflow_definition(parse_workflow_definition(data))
        assert result.is_valid
        assert any("'Punching' is listed before" in w for w in result.warnings)

        get_active_config(write_config(data))
        warnings = [r for r in captured_logs() if r["message"] == "production_config_warning"]
        assert len(warnings) == 2
        assert all(r["level"] == "WARNING" for r in warnings)
