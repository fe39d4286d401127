"""Validation package for the report_ledger pipeline.

This package provides validation types, formatting, and the ordered
validation runner that decides whether workbook generation is permitted.
"""

from report_ledger.validation.format import (
    findings_to_frame,
    format_finding,
    format_validation_report,
    log_validation_report,
)
from report_ledger.validation.runner import (
    CELL_REFERENCE_RE,
    VALIDATION_CHECKS,
    is_valid_mapping,
    run_validations,
)
from report_ledger.validation.types import (
    Finding,
    FindingStatus,
    ValidationInputs,
    ValidationReport,
)

__all__ = [
    "CELL_REFERENCE_RE",
    "VALIDATION_CHECKS",
    # Types
    "Finding",
    "FindingStatus",
    "ValidationInputs",
    "ValidationReport",
    # Formatting
    "findings_to_frame",
    "format_finding",
    "format_validation_report",
    "log_validation_report",
    # Runners
    "is_valid_mapping",
    "run_validations",
]
