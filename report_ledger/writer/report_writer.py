"""Output files for an analysis run.

Naming convention (``YYYY-MM`` is the resolved period):
- analysis_2026-01.json: metrics, case preview and findings
- findings_2026-01.csv: one row per finding
- updated-2026-01.xlsx: the generated workbook

Runs without a resolved period use ``unresolved`` in place of the period.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from report_ledger.config import OUTPUT_DIR, setup_logging
from report_ledger.validation.format import findings_to_frame

if TYPE_CHECKING:
    from pathlib import Path

    from report_ledger.pipeline import AnalysisResult
    from report_ledger.validation.types import ValidationReport

logger = setup_logging(__name__)

UNRESOLVED_PERIOD = "unresolved"


def _period_label(period: str | None) -> str:
    return period or UNRESOLVED_PERIOD


def save_analysis(analysis: AnalysisResult, output_dir: Path | None = None) -> Path:
    """Save the analysis as JSON.

    Parameters
    ----------
    analysis
        Completed analysis run.
    output_dir
        Optional output directory; defaults to ``OUTPUT_DIR``.

    Returns
    -------
    Path
        Location of the written JSON file.
    """
    save_dir = output_dir if output_dir is not None else OUTPUT_DIR
    save_dir.mkdir(parents=True, exist_ok=True)

    filepath = save_dir / f"analysis_{_period_label(analysis.resolved_period)}.json"
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(analysis.to_dict(), f, indent=2, ensure_ascii=False, default=str)

    logger.info("Saved analysis: %s", filepath)
    return filepath


def write_findings_csv(
    report: ValidationReport,
    output_dir: Path | None = None,
    period: str | None = None,
) -> Path:
    """Write findings to a CSV file.

    Parameters
    ----------
    report
        Validation report to tabulate.
    output_dir
        Optional output directory; defaults to ``OUTPUT_DIR``.
    period
        Period used in the filename; defaults to the report's resolved period.

    Returns
    -------
    Path
        Location of the written CSV file.
    """
    save_dir = output_dir if output_dir is not None else OUTPUT_DIR
    save_dir.mkdir(parents=True, exist_ok=True)

    label = _period_label(period or report.resolved_period)
    filepath = save_dir / f"findings_{label}.csv"

    findings_to_frame(report).to_csv(filepath, index=False, encoding="utf-8")

    logger.info("Saved findings CSV: %s", filepath)
    return filepath


def save_workbook(workbook: bytes, period: str, output_dir: Path | None = None) -> Path:
    """Write generated workbook bytes to ``updated-{period}.xlsx``."""
    save_dir = output_dir if output_dir is not None else OUTPUT_DIR
    save_dir.mkdir(parents=True, exist_ok=True)

    filepath = save_dir / f"updated-{period}.xlsx"
    filepath.write_bytes(workbook)

    logger.info("Saved workbook: %s", filepath)
    return filepath
