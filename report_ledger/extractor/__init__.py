"""Extractor module for parsing .docx reports into metrics, cases and a period.

Key exports:
    parse_docx: Structural parser (paragraphs and tables)
    extract_metrics: Dictionary-driven metric extraction with duplicate detection
    extract_case_rows: Case table detection and row normalization
    detect_period: Reporting period auto-detection
    resolve_period: Override-aware period resolution
"""

from report_ledger.extractor.cases import ParsedCaseRow, extract_case_rows
from report_ledger.extractor.docx_parser import (
    MalformedDocumentError,
    Paragraph,
    ParsedDocument,
    Table,
    parse_docx,
    parse_docx_file,
)
from report_ledger.extractor.metrics import MetricExtraction, ParsedMetric, extract_metrics
from report_ledger.extractor.period import (
    PeriodDetection,
    detect_period,
    is_valid_period_override,
    resolve_period,
)

__all__ = [
    "MalformedDocumentError",
    "MetricExtraction",
    # Dataclasses
    "Paragraph",
    "ParsedCaseRow",
    "ParsedDocument",
    "ParsedMetric",
    "PeriodDetection",
    "Table",
    # Extraction
    "detect_period",
    "extract_case_rows",
    "extract_metrics",
    "is_valid_period_override",
    # Parsing
    "parse_docx",
    "parse_docx_file",
    "resolve_period",
]
