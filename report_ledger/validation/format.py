"""Validation report formatting utilities.

This module provides functions to format validation results for display
and logging. All functions are pure formatters with no side effects
beyond logging.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from report_ledger.validation.types import Finding, ValidationReport

logger = logging.getLogger(__name__)

__all__ = [
    "FINDING_COLUMNS",
    "findings_to_frame",
    "format_finding",
    "format_validation_report",
    "log_validation_report",
]

FINDING_COLUMNS = ["id", "status", "message", "location", "details"]


def format_finding(finding: Finding) -> str:
    """Format a single finding with a pass/fail marker and optional context."""
    symbol = "✓" if finding.passed else "✗"
    line = f"  {symbol} [{finding.id}] {finding.message}"
    if finding.location:
        line += f" @ {finding.location}"
    if finding.details:
        line += f" ({finding.details})"
    return line


def format_validation_report(report: ValidationReport) -> str:
    """Format validation report for display.

    Parameters
    ----------
    report
        Ordered findings and resolved period.

    Returns
    -------
    str
        Formatted multi-line report string.
    """
    separator = "═" * 60
    lines = [separator, "                    VALIDATION REPORT", separator, ""]

    lines.append(f"Period: {report.resolved_period or '(unresolved)'}")
    lines.append("")

    if report.findings:
        lines.extend(format_finding(f) for f in report.findings)
    else:
        lines.append("  (no checks run)")

    failures = len(report.failures)
    lines.append("")
    if report.can_generate:
        lines.append(f"Result: ✓ All {len(report.findings)} checks passed - generation allowed")
    else:
        lines.append(f"Result: ✗ {failures} failing check(s) - generation blocked")
    lines.extend(["", separator])

    return "\n".join(lines)


def log_validation_report(report: ValidationReport) -> None:
    """Log validation results with appropriate log levels.

    Parameters
    ----------
    report
        Findings to log; passes at INFO, failures at WARNING.
    """
    for finding in report.findings:
        if finding.passed:
            logger.info("✓ %s: %s", finding.id, finding.message)
        else:
            logger.warning("✗ %s: %s", finding.id, finding.message)

    if not report.can_generate:
        logger.warning("=" * 60)
        logger.warning("⚠️  GENERATION BLOCKED - %d failing check(s)", len(report.failures))
        logger.warning("=" * 60)


def findings_to_frame(report: ValidationReport) -> pd.DataFrame:
    """Tabulate findings in report order (one row per finding)."""
    records = [
        {
            "id": f.id,
            "status": f.status,
            "message": f.message,
            "location": f.location,
            "details": f.details,
        }
        for f in report.findings
    ]
    return pd.DataFrame(records, columns=FINDING_COLUMNS)
