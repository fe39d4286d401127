"""Tests for JSON configuration integrity.

Tests cover:
1. JSON file syntax and presence
2. Typed loading of every rule table
3. Cross-file consistency (metric names agree across rule tables)
4. Loader error handling and mapping persistence
"""

from __future__ import annotations

import json
import re

import pytest

from report_ledger.config import (
    BoundsRule,
    CaseRules,
    CellMapping,
    MetricDefinition,
    MetricRules,
    get_carry_over_rules,
    get_case_field_map,
    get_case_rules,
    get_cross_checks,
    get_metric_cell_map,
    get_metric_dictionary,
    get_metric_rules,
    get_required_metrics,
    load_pipeline_config,
    parse_mapping_override,
    save_metric_cell_map,
)
from report_ledger.validation.runner import is_valid_mapping

CONFIG_FILES = [
    "metric_dictionary.json",
    "required_metrics.json",
    "metric_cell_map.json",
    "metric_rules.json",
    "cross_checks.json",
    "case_field_map.json",
    "case_rules.json",
    "carry_over_rules.json",
]

# =============================================================================
# JSON Syntax and Loading Tests
# =============================================================================


class TestJsonSyntax:
    """All shipped rule tables exist and are valid JSON."""

    @pytest.mark.parametrize("filename", CONFIG_FILES)
    def test_file_loads(self, config_dir, filename: str) -> None:
        filepath = config_dir / filename
        assert filepath.exists(), f"Missing config file: {filename}"
        with filepath.open(encoding="utf-8") as f:
            json.load(f)

    def test_pipeline_config_loads(self, config_dir) -> None:
        config = load_pipeline_config(config_dir)

        assert len(config.metric_dictionary) > 0
        assert len(config.required_metrics) > 0


class TestRuleTables:
    """Shipped tables are internally consistent."""

    def test_patterns_compile_with_one_group(self, config_dir) -> None:
        for name, definition in get_metric_dictionary(config_dir).items():
            for pattern in definition.patterns:
                assert re.compile(pattern).groups >= 1, f"{name}: {pattern} has no capture group"

    def test_required_metrics_are_in_dictionary(self, config_dir) -> None:
        dictionary = get_metric_dictionary(config_dir)
        for name in get_required_metrics(config_dir):
            assert name in dictionary, f"Required metric {name} has no patterns"

    def test_required_metrics_are_mapped(self, config_dir) -> None:
        cell_map = get_metric_cell_map(config_dir)
        for name in get_required_metrics(config_dir):
            mapping = cell_map.get(name)
            assert mapping is not None, f"Required metric {name} is not mapped"
            assert is_valid_mapping(mapping), f"{name} maps to an unwritable cell {mapping.address}"

    def test_cross_checks_reference_known_metrics(self, config_dir) -> None:
        dictionary = get_metric_dictionary(config_dir)
        for check in get_cross_checks(config_dir):
            for name in (check.total, *check.components):
                assert name in dictionary
            assert check.reason

    def test_carry_over_rules_reference_known_metrics(self, config_dir) -> None:
        dictionary = get_metric_dictionary(config_dir)
        for rule in get_carry_over_rules(config_dir):
            assert rule.source_metric in dictionary
            assert rule.target_metric in dictionary
            assert rule.operation in ("add", "replace")

    def test_case_configuration(self, config_dir) -> None:
        field_map = get_case_field_map(config_dir)
        rules = get_case_rules(config_dir)

        assert field_map.section
        assert rules.case_id_field in field_map.header_map.values()
        assert rules.case_count_metric in get_metric_dictionary(config_dir)

    def test_default_bounds_are_complete(self, config_dir) -> None:
        defaults = get_metric_rules(config_dir).defaults

        assert defaults.min is not None
        assert defaults.max is not None
        assert defaults.allow_negative is not None


# =============================================================================
# Loader behaviour
# =============================================================================


class TestLoaders:
    """Typed constructors and loader error handling."""

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            get_required_metrics(tmp_path)

    def test_bom_is_tolerated(self, tmp_path) -> None:
        (tmp_path / "required_metrics.json").write_bytes('\ufeff["A", "B"]'.encode())
        assert get_required_metrics(tmp_path) == ("A", "B")

    def test_metric_definition_accepts_plain_strings(self) -> None:
        definition = MetricDefinition.from_dict("A", {"patterns": [r"a: (\d+)", {"regex": r"b: (\d+)"}]})
        assert definition.patterns == (r"a: (\d+)", r"b: (\d+)")

    def test_metric_definition_requires_patterns(self) -> None:
        with pytest.raises(ValueError, match="patterns"):
            MetricDefinition.from_dict("A", {})

    def test_metric_rules_require_complete_defaults(self) -> None:
        with pytest.raises(ValueError, match="defaults"):
            MetricRules.from_dict({"defaults": {"min": 0}})

    def test_bounds_overlay(self) -> None:
        rules = MetricRules.from_dict(
            {
                "defaults": {"min": 0, "max": 100, "allowNegative": False},
                "overrides": {"Delta": {"min": -10, "allowNegative": True}},
            },
        )

        assert rules.bounds_for("Delta") == BoundsRule(min=-10, max=100, allow_negative=True)
        assert rules.bounds_for("Other") == BoundsRule(min=0, max=100, allow_negative=False)

    def test_unknown_duplicate_policy(self) -> None:
        with pytest.raises(ValueError, match="duplicatePolicy"):
            CaseRules.from_dict({"caseIdField": "caseId", "duplicatePolicy": "ignore"})

    def test_mapping_override_merges(self, config_dir) -> None:
        override = parse_mapping_override({"Total Cases": {"sheet": "Other", "cell": "C3"}})

        config = load_pipeline_config(config_dir, mapping_override=override)

        assert config.metric_cell_map["Total Cases"] == CellMapping("Other", "C3")
        assert config.metric_cell_map["Closed Cases"] == CellMapping("Template", "B4")

    def test_mapping_override_rejects_non_objects(self) -> None:
        with pytest.raises(ValueError, match="Mapping override"):
            parse_mapping_override({"Total Cases": "B2"})

    def test_save_metric_cell_map(self, tmp_path) -> None:
        mapping = {"Total Cases": CellMapping("Template", "B2")}

        path = save_metric_cell_map(mapping, tmp_path)

        assert json.loads(path.read_text(encoding="utf-8")) == {"Total Cases": {"sheet": "Template", "cell": "B2"}}
        assert get_metric_cell_map(tmp_path) == mapping
