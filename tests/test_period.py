"""Tests for reporting period detection and override handling."""

from __future__ import annotations

import pytest

from report_ledger.extractor.docx_parser import Paragraph
from report_ledger.extractor.period import (
    PeriodDetection,
    detect_period,
    find_period_tokens,
    is_valid_period_override,
    normalize_override,
    resolve_period,
)


def _paragraphs(*texts: str) -> list[Paragraph]:
    return [Paragraph(text=t, index=i) for i, t in enumerate(texts)]


class TestFindPeriodTokens:
    """Token grammar: year 2000 or later, separator, month 01-12."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Report 2026-01", ["2026-01"]),
            ("Period 2025/12 closed", ["2025-12"]),
            ("As of 2024.03", ["2024-03"]),
            ("Month 2026-13 is invalid", []),
            ("Code 12026-01", []),
            ("Range 2026-01 to 2026-02", ["2026-01", "2026-02"]),
            ("Invoice 1234-05", []),
            ("Archived 1999-12", []),
        ],
    )
    def test_tokens(self, text: str, expected: list[str]) -> None:
        assert find_period_tokens(text) == expected


class TestDetectPeriod:
    """Auto-detection over paragraphs and filename."""

    def test_single_candidate_resolves(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01", "Total cases: 3"))

        assert detection.period == "2026-01"
        assert detection.candidates == ["2026-01"]

    def test_repeated_token_is_one_candidate(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01", "Closing 2026/01"))
        assert detection.period == "2026-01"

    def test_multiple_candidates_do_not_resolve(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01", "Compared with 2025-12"))

        assert detection.period is None
        assert detection.candidates == ["2026-01", "2025-12"]

    def test_no_candidate(self) -> None:
        detection = detect_period(_paragraphs("No dates here"))

        assert detection.period is None
        assert detection.candidates == []

    def test_filename_is_scanned(self) -> None:
        detection = detect_period(_paragraphs("No dates here"), filename="report_2026-02.docx")
        assert detection.period == "2026-02"

    def test_filename_conflict_is_ambiguous(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01"), filename="report_2026-02.docx")

        assert detection.period is None
        assert detection.candidates == ["2026-01", "2026-02"]

    def test_pre_2000_number_does_not_cause_ambiguity(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01", "Invoice 1234-05 attached"))
        assert detection.period == "2026-01"

    def test_from_candidates_deduplicates(self) -> None:
        detection = PeriodDetection.from_candidates(["2026-01", "2026-01"])

        assert detection.period == "2026-01"
        assert detection.candidates == ["2026-01"]


class TestOverride:
    """Manual period override."""

    @pytest.mark.parametrize("value", ["2026-01", "2000-12"])
    def test_valid(self, value: str) -> None:
        assert is_valid_period_override(value)

    @pytest.mark.parametrize("value", ["1999-12", "2026-13", "2026-00", "2026/01", "26-01", "2026-1"])
    def test_invalid(self, value: str) -> None:
        assert not is_valid_period_override(value)

    def test_blank_override_is_none(self) -> None:
        assert normalize_override("   ") is None
        assert normalize_override(None) is None
        assert normalize_override(" 2026-01 ") == "2026-01"

    def test_valid_override_takes_precedence(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01"))
        assert resolve_period(detection, "2025-06") == "2025-06"

    def test_invalid_override_falls_back_to_detection(self) -> None:
        detection = detect_period(_paragraphs("Report 2026-01"))
        assert resolve_period(detection, "June") == "2026-01"
