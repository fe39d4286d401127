"""Tests for carry-over rule resolution."""

from __future__ import annotations

from decimal import Decimal

import pytest

from report_ledger.config import CarryOverRule
from report_ledger.extractor.metrics import ParsedMetric
from report_ledger.transformer.carry_over import apply_carry_over_rules
from report_ledger.transformer.source_tracker import ParagraphSource


def _metrics(**values: object) -> list[ParsedMetric]:
    return [ParsedMetric(name, value, ParagraphSource(f"{name}: {value}")) for name, value in values.items()]


class TestApplyCarryOverRules:
    """Effective values and transitions."""

    def test_rules_chain_in_order(self) -> None:
        """A later rule reads the target already updated by an earlier one."""
        rules = [
            CarryOverRule("A", "B", "add", "A into B"),
            CarryOverRule("B", "C", "replace", "B replaces C"),
        ]

        result = apply_carry_over_rules(_metrics(A=5, B=2, C=0), rules)

        assert result.effective_metrics == {"A": 5, "B": 7, "C": 7}
        assert [(t.target_metric, t.previous, t.next) for t in result.applied] == [("B", 2, 7), ("C", 0, 7)]
        assert [t.rule for t in result.applied] == ["A into B", "B replaces C"]

    def test_delta(self) -> None:
        result = apply_carry_over_rules(_metrics(A=5, B=2), [CarryOverRule("A", "B", "add", "add")])
        assert result.applied[0].delta == 5

    def test_missing_metric_is_skipped(self) -> None:
        rules = [
            CarryOverRule("Missing", "B", "add", "skipped"),
            CarryOverRule("A", "B", "replace", "applied"),
        ]

        result = apply_carry_over_rules(_metrics(A=5, B=2), rules)

        assert result.effective_metrics["B"] == 5
        assert [t.rule for t in result.applied] == ["applied"]

    def test_raw_values_are_untouched(self) -> None:
        metrics = _metrics(A=5, B=2)

        apply_carry_over_rules(metrics, [CarryOverRule("A", "B", "add", "add")])

        assert [m.value for m in metrics] == [5, 2]

    def test_no_rules(self) -> None:
        result = apply_carry_over_rules(_metrics(A=1), [])

        assert result.effective_metrics == {"A": 1}
        assert result.applied == []

    def test_exact_decimal_addition(self) -> None:
        rules = [CarryOverRule("A", "B", "add", "add")]

        result = apply_carry_over_rules(_metrics(A=Decimal("0.1"), B=Decimal("0.2")), rules)

        assert result.effective_metrics["B"] == Decimal("0.3")

    def test_unknown_operation_is_rejected_at_load(self) -> None:
        raw = {"sourceMetric": "A", "targetMetric": "B", "operation": "multiply", "description": "x"}
        with pytest.raises(ValueError, match="Unknown carry-over operation"):
            CarryOverRule.from_dict(raw)
