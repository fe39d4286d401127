"""Audited workbook mutation.

Writes validated metric values into their mapped cells of the prior-period
workbook and appends audit, summary, case-fact and import-log rows. Existing
sheets and rows are never deleted or reordered; the bookkeeping sheets are
created with a header row on first use.

Sheets written
--------------
* ``Audit``: one row per written cell, then one per applied carry-over rule
* ``SummaryMetrics``: one row per extracted metric
* ``CaseFacts``: one row per case row
* ``ImportsLog``: exactly one row per generation
"""

from __future__ import annotations

import io
import json
import zipfile
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from openpyxl import load_workbook
from openpyxl.utils.cell import coordinate_to_tuple
from openpyxl.utils.exceptions import CellCoordinatesException, InvalidFileException

from report_ledger.config import setup_logging
from report_ledger.transformer.source_tracker import format_location
from report_ledger.utils.parsing import is_finite_number, to_cell_number

if TYPE_CHECKING:
    from collections.abc import Sequence

    from openpyxl.workbook.workbook import Workbook
    from openpyxl.worksheet.worksheet import Worksheet

    from report_ledger.config import CellMapping
    from report_ledger.extractor.cases import ParsedCaseRow
    from report_ledger.extractor.metrics import ParsedMetric
    from report_ledger.transformer.carry_over import CarryOverResult

logger = setup_logging(__name__)

__all__ = [
    "AUDIT_HEADERS",
    "AUDIT_SHEET",
    "CASE_FACTS_HEADERS",
    "CASE_FACTS_SHEET",
    "IMPORTS_LOG_HEADERS",
    "IMPORTS_LOG_SHEET",
    "SUMMARY_HEADERS",
    "SUMMARY_SHEET",
    "UnreadableWorkbookError",
    "WorkbookWriteError",
    "load_workbook_bytes",
    "update_workbook",
]

AUDIT_SHEET = "Audit"
AUDIT_HEADERS = [
    "metric_name",
    "prev_value",
    "new_value",
    "delta",
    "source_snippet",
    "source_location",
    "cell_written",
]
SUMMARY_SHEET = "SummaryMetrics"
SUMMARY_HEADERS = ["period", "metric_name", "value", "source_info_json"]
CASE_FACTS_SHEET = "CaseFacts"
CASE_FACTS_HEADERS = ["period", "section", "normalized_json", "source_info_json"]
IMPORTS_LOG_SHEET = "ImportsLog"
IMPORTS_LOG_HEADERS = ["timestamp", "period", "word_hash", "excel_hash", "status"]

CARRY_OVER_LOCATION = "Carry-over rule"
GENERATED_STATUS = "generated"


class UnreadableWorkbookError(ValueError):
    """The spreadsheet package cannot be loaded."""


class WorkbookWriteError(ValueError):
    """A mapped destination cannot be written in the loaded workbook."""


def _to_json(payload: Any) -> str:
    """Serialize deterministically for JSON audit columns."""
    return json.dumps(payload, ensure_ascii=False, sort_keys=True)


def load_workbook_bytes(data: bytes) -> Workbook:
    """Load an .xlsx workbook from raw bytes.

    Raises
    ------
    UnreadableWorkbookError
        If the bytes are not a loadable spreadsheet package.
    """
    try:
        return load_workbook(io.BytesIO(data))
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as err:
        msg = f"Workbook could not be loaded: {err}"
        raise UnreadableWorkbookError(msg) from err


def _is_blank(sheet: Worksheet) -> bool:
    """Return whether a sheet has no content at all."""
    return sheet.max_row == 1 and sheet.max_column == 1 and sheet.cell(row=1, column=1).value is None


def ensure_sheet(workbook: Workbook, name: str, headers: Sequence[str]) -> Worksheet:
    """Return sheet ``name``, creating it (with a header row) when absent or blank."""
    if name in workbook.sheetnames:
        sheet = workbook[name]
    else:
        sheet = workbook.create_sheet(name)
        logger.debug("Created sheet: %s", name)

    if _is_blank(sheet):
        for column, header in enumerate(headers, start=1):
            sheet.cell(row=1, column=column, value=header)
    return sheet


def _get_or_create_sheet(workbook: Workbook, name: str) -> Worksheet:
    """Return an existing destination sheet or add a new empty one."""
    if name in workbook.sheetnames:
        return workbook[name]
    logger.info("Destination sheet %s not found; creating it", name)
    return workbook.create_sheet(name)


def _write_cell(workbook: Workbook, location: CellMapping, value: int | float) -> int | float | None:
    """Write ``value`` at ``location`` and return the prior numeric value, if any.

    Raises
    ------
    WorkbookWriteError
        If the sheet title or cell reference is rejected, or the cell is part
        of a merged range.
    """
    try:
        sheet = _get_or_create_sheet(workbook, location.sheet)
        row, column = coordinate_to_tuple(location.cell)
        cell = sheet.cell(row=row, column=column)
        previous = cell.value if is_finite_number(cell.value) else None
        cell.value = value
    except (AttributeError, CellCoordinatesException, TypeError, ValueError) as err:
        msg = f"Cannot write {location.address}: {err}"
        raise WorkbookWriteError(msg) from err
    return previous


def _write_mapped_metrics(
    workbook: Workbook,
    audit: Worksheet,
    metrics: Sequence[ParsedMetric],
    mapping: dict[str, CellMapping],
    carry_over: CarryOverResult | None,
) -> int:
    """Write effective values into mapped cells and record one audit row each."""
    by_name = {m.name: m for m in metrics}
    effective = carry_over.effective_metrics if carry_over is not None else {}
    written = 0

    for metric_name, location in mapping.items():
        metric = by_name.get(metric_name)
        if metric is None:
            continue

        new_value = to_cell_number(effective.get(metric_name, metric.value))
        previous = _write_cell(workbook, location, new_value)
        delta = new_value - previous if previous is not None else None

        audit.append(
            [
                metric_name,
                previous,
                new_value,
                delta,
                metric.source.text_snippet,
                format_location(metric.source),
                location.address,
            ],
        )
        written += 1
        logger.debug("Wrote %s = %s to %s (was %s)", metric_name, new_value, location.address, previous)

    return written


def update_workbook(
    data: bytes,
    metrics: Sequence[ParsedMetric],
    cases: Sequence[ParsedCaseRow],
    mapping: dict[str, CellMapping],
    period: str,
    document_hash: str,
    workbook_hash: str,
    carry_over: CarryOverResult | None = None,
    timestamp: datetime | None = None,
) -> bytes:
    """Write validated values into the workbook and append the audit trail.

    Parameters
    ----------
    data
        Raw bytes of the prior-period workbook.
    metrics
        Extracted metrics (raw values and provenance).
    cases
        Extracted case rows.
    mapping
        Metric name -> destination sheet/cell.
    period
        Resolved ``YYYY-MM`` period.
    document_hash, workbook_hash
        SHA-256 hex digests of the source report and workbook.
    carry_over
        Effective values and applied transitions; raw values are written
        when omitted.
    timestamp
        Import time recorded in ``ImportsLog``; defaults to now (UTC).

    Returns
    -------
    bytes
        Serialized mutated workbook.

    Raises
    ------
    UnreadableWorkbookError
        If the workbook bytes cannot be loaded.
    WorkbookWriteError
        If a mapped destination cannot be written.
    """
    workbook = load_workbook_bytes(data)

    audit = ensure_sheet(workbook, AUDIT_SHEET, AUDIT_HEADERS)
    written = _write_mapped_metrics(workbook, audit, metrics, mapping, carry_over)

    transitions = carry_over.applied if carry_over is not None else []
    for transition in transitions:
        audit.append(
            [
                f"{transition.target_metric} (carry-over)",
                to_cell_number(transition.previous),
                to_cell_number(transition.next),
                to_cell_number(transition.delta),
                transition.rule,
                CARRY_OVER_LOCATION,
                "n/a",
            ],
        )

    summary = ensure_sheet(workbook, SUMMARY_SHEET, SUMMARY_HEADERS)
    for metric in metrics:
        summary.append([period, metric.name, to_cell_number(metric.value), _to_json(metric.source.to_dict())])

    case_facts = ensure_sheet(workbook, CASE_FACTS_SHEET, CASE_FACTS_HEADERS)
    for row in cases:
        case_facts.append([period, row.section, _to_json(row.normalized), _to_json(row.source.to_dict())])

    imports_log = ensure_sheet(workbook, IMPORTS_LOG_SHEET, IMPORTS_LOG_HEADERS)
    imported_at = (timestamp or datetime.now(UTC)).isoformat()
    imports_log.append([imported_at, period, document_hash, workbook_hash, GENERATED_STATUS])

    buffer = io.BytesIO()
    workbook.save(buffer)

    logger.info(
        "Workbook updated for %s: %d cells, %d carry-over rows, %d metrics, %d cases",
        period,
        written,
        len(transitions),
        len(metrics),
        len(cases),
    )
    return buffer.getvalue()
