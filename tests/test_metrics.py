"""Tests for dictionary-driven metric extraction and number parsing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from report_ledger.config import MetricDefinition
from report_ledger.extractor.docx_parser import Paragraph, Table, parse_docx
from report_ledger.extractor.metrics import compile_patterns, extract_metrics
from report_ledger.transformer.source_tracker import ParagraphSource, TableSource
from report_ledger.utils.parsing import format_number, parse_report_number, to_cell_number

NUMBER = r"([-+]?\d+(?:[.,]\d+)?)"

TOTAL_CASES = MetricDefinition(
    patterns=(rf"total cases\s*:\s*{NUMBER}", rf"{NUMBER}\s+cases total"),
)


def _paragraphs(*texts: str) -> list[Paragraph]:
    return [Paragraph(text=t, index=i) for i, t in enumerate(texts)]


class TestParseReportNumber:
    """Strict numeric literal parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("3", 3),
            ("-12", -12),
            ("+7", 7),
            ("1,5", Decimal("1.5")),
            ("2.25", Decimal("2.25")),
            ("1 000", 1000),
        ],
    )
    def test_valid_literals(self, raw: str, expected: object) -> None:
        assert parse_report_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "3 cases", "1.2.3", "abc", "1,000.5", "."])
    def test_invalid_literals(self, raw: str | None) -> None:
        assert parse_report_number(raw) is None

    def test_integers_stay_integers(self) -> None:
        """Integer literals are not converted to floating point."""
        assert isinstance(parse_report_number("42"), int)

    def test_cell_and_message_formatting(self) -> None:
        """Exact values convert at the cell boundary and print without noise."""
        assert to_cell_number(Decimal("3.0")) == 3
        assert isinstance(to_cell_number(Decimal("3.0")), int)
        assert to_cell_number(Decimal("1.5")) == 1.5
        assert format_number(Decimal("3.0")) == "3"
        assert format_number(Decimal("1.50")) == "1.5"
        assert format_number(9) == "9"


class TestExtractMetrics:
    """First-match resolution and duplicate flagging."""

    def test_first_match_wins_and_duplicate_is_flagged(self) -> None:
        """Paragraph match beats a later table match; both count as candidates."""
        paragraphs = _paragraphs("Total cases: 3")
        tables = [Table(rows=[["Summary", "3 cases total"]])]

        result = extract_metrics(paragraphs, tables, {"Total Cases": TOTAL_CASES})

        assert len(result.metrics) == 1
        metric = result.metrics[0]
        assert metric.value == 3
        assert metric.source == ParagraphSource(text_snippet="Total cases: 3")
        assert result.duplicates == ["Total Cases"]

    def test_table_match_records_cell_location(self) -> None:
        """A table-only match carries table, row and column indexes."""
        tables = [Table(rows=[["Header"]]), Table(rows=[["x", "y"], ["z", "Total cases: 12"]])]

        result = extract_metrics([], tables, {"Total Cases": TOTAL_CASES})

        assert result.metrics[0].source == TableSource(1, 1, 1, "Total cases: 12")
        assert result.duplicates == []

    def test_matching_is_case_insensitive(self) -> None:
        result = extract_metrics(_paragraphs("TOTAL CASES: 5"), [], {"Total Cases": TOTAL_CASES})
        assert result.as_map()["Total Cases"].value == 5

    def test_unparseable_candidates_are_discarded(self) -> None:
        """A capture that is not a strict literal is not a candidate."""
        loose = MetricDefinition(patterns=(r"total cases\s*:\s*(\S+)",))
        paragraphs = _paragraphs("Total cases: n/a", "Total cases: 4")

        result = extract_metrics(paragraphs, [], {"Total Cases": loose})

        assert result.metrics[0].value == 4
        assert result.duplicates == []

    def test_metric_without_candidates_is_absent(self) -> None:
        result = extract_metrics(_paragraphs("Nothing here"), [], {"Total Cases": TOTAL_CASES})
        assert result.metrics == []
        assert result.duplicates == []

    def test_comma_decimal_is_exact(self) -> None:
        """Comma decimals resolve to exact Decimal values."""
        rate = MetricDefinition(patterns=(rf"rate\s*:\s*{NUMBER}",))
        result = extract_metrics(_paragraphs("Rate: 0,1"), [], {"Rate": rate})
        assert result.metrics[0].value == Decimal("0.1")

    def test_metrics_follow_dictionary_order(self) -> None:
        dictionary = {
            "Closed Cases": MetricDefinition(patterns=(rf"closed cases\s*:\s*{NUMBER}",)),
            "Total Cases": TOTAL_CASES,
        }
        paragraphs = _paragraphs("Total cases: 3", "Closed cases: 2")

        result = extract_metrics(paragraphs, [], dictionary)

        assert [m.name for m in result.metrics] == ["Closed Cases", "Total Cases"]

    def test_long_sources_are_snipped(self) -> None:
        text = "Total cases: 3 " + "x" * 300
        result = extract_metrics(_paragraphs(text), [], {"Total Cases": TOTAL_CASES})
        assert len(result.metrics[0].source.text_snippet) == 160

    def test_invalid_pattern_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid pattern"):
            compile_patterns("Broken", MetricDefinition(patterns=("([unclosed",)))

    def test_sample_report_with_shipped_dictionary(self, sample_docx: bytes, pipeline_config) -> None:
        """The sample report resolves every shipped metric exactly once."""
        parsed = parse_docx(sample_docx)

        result = extract_metrics(parsed.paragraphs, parsed.tables, pipeline_config.metric_dictionary)
        values = {m.name: m.value for m in result.metrics}

        assert values == {
            "Total Cases": 3,
            "In Production": 1,
            "Closed Cases": 2,
            "New Cases": 3,
            "Previous Month Leftover": 0,
        }
        assert result.duplicates == []
