#!/usr/bin/env python3
"""Report orchestrator - analyze a monthly report and update the workbook.

This module runs the complete workflow for one report:
1. Load rule tables from ``config/`` (optionally with a mapping override)
2. Parse the .docx and extract metrics, case rows and the period
3. Run validation (period, required metrics, mappings, bounds, cross-checks,
   case checks, carry-over readiness) and screen the workbook
4. Save the analysis JSON and findings CSV
5. Write ``updated-YYYY-MM.xlsx`` only when every check passed

Usage (from project root):
    python -m report_ledger.main --word report.docx --excel prior.xlsx
    python -m report_ledger.main -w report.docx -e prior.xlsx --period 2026-01
    python -m report_ledger.main -w report.docx -e prior.xlsx --no-save --quiet

CLI Flags:
    --word, -w          Monthly report (.docx, required)
    --excel, -e         Prior-period workbook (.xlsx, required)
    --period, -p        Manual period override (YYYY-MM)
    --mapping           JSON file with metric -> {sheet, cell} overrides
    --save-mapping      Persist the merged mapping to config/metric_cell_map.json
    --config-dir        Directory holding the rule tables
    --output-dir        Directory for generated files
    --no-save           Don't save analysis JSON / findings CSV
    --quiet             Suppress report output

Exit codes: 0 generated, 1 blocked by validation, 2 unreadable input or
unwritable destination cell.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from report_ledger.config import (
    load_pipeline_config,
    parse_mapping_override,
    save_metric_cell_map,
    setup_logging,
)
from report_ledger.extractor.docx_parser import MalformedDocumentError
from report_ledger.pipeline import PipelineResult, run_pipeline
from report_ledger.validation.format import format_validation_report, log_validation_report
from report_ledger.writer import (
    UnreadableWorkbookError,
    WorkbookWriteError,
    save_analysis,
    save_workbook,
    write_findings_csv,
)

logger = setup_logging(__name__)

EXIT_GENERATED = 0
EXIT_BLOCKED = 1
EXIT_INPUT_ERROR = 2


def _existing(path: Path, label: str) -> Path:
    if not path.exists():
        msg = f"{label} not found: {path}"
        raise FileNotFoundError(msg)
    return path


def _read_input(path: Path, label: str) -> bytes:
    return _existing(path, label).read_bytes()


def _load_mapping_file(path: Path | None) -> dict | None:
    """Read a raw mapping override JSON file, if given."""
    if path is None:
        return None
    with _existing(path, "Mapping file").open(encoding="utf-8-sig") as f:
        return json.load(f)


# =============================================================================
# Main Processing
# =============================================================================


def process_report(
    word_path: Path,
    excel_path: Path,
    period: str | None = None,
    mapping_path: Path | None = None,
    config_dir: Path | None = None,
    output_dir: Path | None = None,
    save: bool = True,
    verbose: bool = True,
    persist_mapping: bool = False,
) -> PipelineResult:
    """Run analysis and, when permitted, workbook generation for one report.

    Parameters
    ----------
    word_path : Path
        Monthly report (.docx).
    excel_path : Path
        Prior-period workbook.
    period : str | None, optional
        Manual ``YYYY-MM`` override.
    mapping_path : Path | None, optional
        JSON file with cell mapping overrides.
    config_dir : Path | None, optional
        Rule table directory; defaults to ``CONFIG_DIR``.
    output_dir : Path | None, optional
        Output directory; defaults to ``OUTPUT_DIR``.
    save : bool, optional
        Persist analysis JSON and findings CSV when ``True``.
    verbose : bool, optional
        Print the validation report when ``True``.
    persist_mapping : bool, optional
        Store the merged mapping back into the config directory.

    Returns
    -------
    PipelineResult
        Analysis and generated workbook bytes (``None`` when blocked).

    Raises
    ------
    FileNotFoundError
        If an input or configuration file is missing.
    MalformedDocumentError, UnreadableWorkbookError
        If an input package cannot be read.
    """
    logger.info("Processing %s against %s", word_path.name, excel_path.name)

    override = parse_mapping_override(_load_mapping_file(mapping_path))
    config = load_pipeline_config(config_dir, mapping_override=override)
    if persist_mapping:
        saved = save_metric_cell_map(config.metric_cell_map, config_dir)
        logger.info("Saved mapping to: %s", saved)

    document_bytes = _read_input(word_path, "Word report")
    workbook_bytes = _read_input(excel_path, "Excel workbook")

    result = run_pipeline(
        document_bytes,
        workbook_bytes,
        config,
        document_filename=word_path.name,
        workbook_filename=excel_path.name,
        period_override=period,
    )
    analysis = result.analysis
    log_validation_report(analysis.report)

    if save:
        save_analysis(analysis, output_dir)
        write_findings_csv(analysis.report, output_dir)

    if result.workbook is not None and analysis.resolved_period is not None:
        output_path = save_workbook(result.workbook, analysis.resolved_period, output_dir)
        logger.info("Saved to: %s", output_path)

    if verbose:
        print(format_validation_report(analysis.report))

    return result


# =============================================================================
# CLI
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Parse CLI flags and process the report.

    Returns
    -------
    int
        ``0`` when the workbook was generated, ``1`` when validation blocked
        generation, ``2`` when an input could not be read.
    """
    parser = argparse.ArgumentParser(
        description="Validate a monthly report and write its metrics into the workbook.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m report_ledger.main -w report.docx -e prior.xlsx
  python -m report_ledger.main -w report.docx -e prior.xlsx --period 2026-01
  python -m report_ledger.main -w report.docx -e prior.xlsx --mapping cells.json --save-mapping
        """,
    )
    parser.add_argument("--word", "-w", type=Path, required=True, help="Monthly report (.docx)")
    parser.add_argument("--excel", "-e", type=Path, required=True, help="Prior-period workbook (.xlsx)")
    parser.add_argument("--period", "-p", help="Manual period override (YYYY-MM)")
    parser.add_argument("--mapping", type=Path, help="JSON file of metric -> {sheet, cell} overrides")
    parser.add_argument("--save-mapping", action="store_true", help="Persist the merged cell mapping")
    parser.add_argument("--config-dir", type=Path, help="Directory holding the rule tables")
    parser.add_argument("--output-dir", type=Path, help="Directory for generated files")
    parser.add_argument("--no-save", action="store_true", help="Don't save analysis JSON / findings CSV")
    parser.add_argument("--quiet", action="store_true", help="Don't print report")

    args = parser.parse_args(argv)

    try:
        result = process_report(
            word_path=args.word,
            excel_path=args.excel,
            period=args.period,
            mapping_path=args.mapping,
            config_dir=args.config_dir,
            output_dir=args.output_dir,
            save=not args.no_save,
            verbose=not args.quiet,
            persist_mapping=args.save_mapping,
        )
    except (
        FileNotFoundError,
        MalformedDocumentError,
        UnreadableWorkbookError,
        WorkbookWriteError,
    ) as err:
        logger.error("✗ %s", err)
        return EXIT_INPUT_ERROR

    return EXIT_GENERATED if result.generated else EXIT_BLOCKED


if __name__ == "__main__":
    sys.exit(main())
