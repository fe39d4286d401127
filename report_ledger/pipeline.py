"""Analysis and generation pipeline.

Orchestrates one run over a report and a prior-period workbook:

1. Parse the .docx into paragraphs and tables.
2. Extract metrics, case rows and period candidates.
3. Run the ordered validation checks.
4. Only when every finding passed: apply carry-over rules and write the
   workbook with its audit trail.

Each run builds its own data structures; configuration is read-only input.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from report_ledger.config import setup_logging
from report_ledger.extractor.cases import extract_case_rows
from report_ledger.extractor.docx_parser import parse_docx
from report_ledger.extractor.metrics import extract_metrics
from report_ledger.extractor.period import detect_period
from report_ledger.transformer.carry_over import apply_carry_over_rules
from report_ledger.utils.parsing import to_cell_number
from report_ledger.validation.runner import run_validations
from report_ledger.validation.types import ValidationInputs
from report_ledger.writer.workbook_risks import detect_workbook_risks
from report_ledger.writer.workbook_writer import update_workbook

if TYPE_CHECKING:
    from datetime import datetime

    from report_ledger.config import PipelineConfig
    from report_ledger.extractor.cases import ParsedCaseRow
    from report_ledger.extractor.docx_parser import ParsedDocument
    from report_ledger.extractor.metrics import MetricExtraction, ParsedMetric
    from report_ledger.extractor.period import PeriodDetection
    from report_ledger.validation.types import Finding, ValidationReport

logger = setup_logging(__name__)

__all__ = [
    "CASE_PREVIEW_LIMIT",
    "AnalysisResult",
    "GenerationBlockedError",
    "PipelineResult",
    "analyze_report",
    "generate_workbook",
    "run_pipeline",
    "sha256_hex",
]

CASE_PREVIEW_LIMIT = 50


class GenerationBlockedError(RuntimeError):
    """Raised when generation is requested for an analysis that did not pass."""

    def __init__(self, report: ValidationReport) -> None:
        self.report = report
        failing = ", ".join(f.id for f in report.failures) or "unresolved period"
        super().__init__(f"Workbook generation blocked by validation: {failing}")


def sha256_hex(data: bytes) -> str:
    """Return the hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


@dataclass
class AnalysisResult:
    """Everything one analysis run produced, plus the validation decision."""

    document: ParsedDocument
    extraction: MetricExtraction
    cases: list[ParsedCaseRow]
    period_detection: PeriodDetection
    report: ValidationReport

    @property
    def metrics(self) -> list[ParsedMetric]:
        return self.extraction.metrics

    @property
    def duplicates(self) -> list[str]:
        return self.extraction.duplicates

    @property
    def findings(self) -> list[Finding]:
        return self.report.findings

    @property
    def resolved_period(self) -> str | None:
        return self.report.resolved_period

    @property
    def can_generate(self) -> bool:
        return self.report.can_generate

    def cases_preview(self, limit: int = CASE_PREVIEW_LIMIT) -> list[dict[str, str]]:
        """Return the first ``limit`` normalized case records."""
        return [row.normalized for row in self.cases[:limit]]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output (metrics, case preview, findings)."""
        return {
            "period": self.resolved_period,
            "period_candidates": list(self.period_detection.candidates),
            "can_generate": self.can_generate,
            "metrics": [
                {
                    "name": m.name,
                    "value": to_cell_number(m.value),
                    "source": m.source.to_dict(),
                }
                for m in self.metrics
            ],
            "duplicates": list(self.duplicates),
            "case_count": len(self.cases),
            "cases": self.cases_preview(),
            "findings": self.report.to_list(),
        }


@dataclass
class PipelineResult:
    """Analysis plus the generated workbook (``None`` when blocked)."""

    analysis: AnalysisResult
    workbook: bytes | None = None

    @property
    def generated(self) -> bool:
        return self.workbook is not None


def analyze_report(
    document_bytes: bytes,
    config: PipelineConfig,
    *,
    filename: str | None = None,
    period_override: str | None = None,
) -> AnalysisResult:
    """Parse, extract and validate a report.

    Parameters
    ----------
    document_bytes
        Raw .docx bytes.
    config
        Rule tables for this run.
    filename
        Optional upload name, also scanned for a period token.
    period_override
        Optional ``YYYY-MM`` override; blank means none.

    Returns
    -------
    AnalysisResult
        Extraction output and the ordered validation report.

    Raises
    ------
    MalformedDocumentError
        If the document package or its main part cannot be read.
    """
    document = parse_docx(document_bytes)
    logger.info(
        "Parsed report: %d paragraphs, %d tables",
        len(document.paragraphs),
        len(document.tables),
    )

    extraction = extract_metrics(document.paragraphs, document.tables, config.metric_dictionary)
    cases = extract_case_rows(document.tables, config.case_field_map)
    detection = detect_period(document.paragraphs, filename)

    report = run_validations(
        ValidationInputs(
            metrics=extraction.metrics,
            cases=cases,
            duplicate_metrics=extraction.duplicates,
            period_candidates=detection.candidates,
            period_override=period_override,
            required_metrics=config.required_metrics,
            metric_cell_map=config.metric_cell_map,
            metric_rules=config.metric_rules,
            cross_checks=config.cross_checks,
            case_rules=config.case_rules,
            carry_over_rules=config.carry_over_rules,
        ),
    )

    return AnalysisResult(
        document=document,
        extraction=extraction,
        cases=cases,
        period_detection=detection,
        report=report,
    )


def generate_workbook(
    analysis: AnalysisResult,
    workbook_bytes: bytes,
    document_bytes: bytes,
    config: PipelineConfig,
    *,
    timestamp: datetime | None = None,
) -> bytes:
    """Apply carry-over rules and write the audited workbook.

    Raises
    ------
    GenerationBlockedError
        If the analysis did not pass every check.
    UnreadableWorkbookError
        If the workbook bytes cannot be loaded.
    WorkbookWriteError
        If a mapped destination cannot be written.
    """
    period = analysis.resolved_period
    if not analysis.can_generate or period is None:
        raise GenerationBlockedError(analysis.report)

    carry_over = apply_carry_over_rules(analysis.metrics, config.carry_over_rules)
    return update_workbook(
        workbook_bytes,
        analysis.metrics,
        analysis.cases,
        config.metric_cell_map,
        period,
        document_hash=sha256_hex(document_bytes),
        workbook_hash=sha256_hex(workbook_bytes),
        carry_over=carry_over,
        timestamp=timestamp,
    )


def run_pipeline(
    document_bytes: bytes,
    workbook_bytes: bytes,
    config: PipelineConfig,
    *,
    document_filename: str | None = None,
    workbook_filename: str | None = None,
    period_override: str | None = None,
    timestamp: datetime | None = None,
) -> PipelineResult:
    """Analyze the report, screen the workbook and generate when permitted.

    A risky workbook (macros, pivot tables) adds an ``excel-risk`` failure
    after the validation findings, which blocks generation.

    Returns
    -------
    PipelineResult
        The analysis and, only when every finding passed, the workbook bytes.
    """
    analysis = analyze_report(
        document_bytes,
        config,
        filename=document_filename,
        period_override=period_override,
    )

    risks = detect_workbook_risks(workbook_bytes, workbook_filename)
    if risks:
        analysis.report.add(
            "excel-risk",
            "fail",
            "Excel workbook cannot be safely updated.",
            details=" ".join(risks),
        )

    if not analysis.can_generate:
        logger.warning("✗ Generation blocked: %d failing check(s)", len(analysis.report.failures))
        return PipelineResult(analysis=analysis)

    workbook = generate_workbook(
        analysis,
        workbook_bytes,
        document_bytes,
        config,
        timestamp=timestamp,
    )
    logger.info("✓ Workbook generated for %s", analysis.resolved_period)
    return PipelineResult(analysis=analysis, workbook=workbook)
