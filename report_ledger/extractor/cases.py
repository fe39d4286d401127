"""Case table detection and row normalization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from report_ledger.config import setup_logging
from report_ledger.transformer.source_tracker import CaseSource
from report_ledger.utils.parsing import collapse_whitespace

if TYPE_CHECKING:
    from collections.abc import Sequence

    from report_ledger.config import CaseFieldMap
    from report_ledger.extractor.docx_parser import Table

logger = setup_logging(__name__)

# A table needs at least this many recognized header columns to count as a case table.
MIN_MAPPED_COLUMNS = 2


@dataclass(frozen=True)
class ParsedCaseRow:
    """One data row of a recognized case table.

    Attributes
    ----------
    section : str
        Configured section label.
    normalized : dict[str, str]
        Canonical field name -> trimmed cell text, mapped columns only.
    raw_cells : list[str]
        Cell texts as parsed.
    header : list[str]
        Normalized header texts of the table.
    source : CaseSource
        Table index and 1-based data row offset.
    """

    section: str
    normalized: dict[str, str]
    raw_cells: list[str]
    header: list[str]
    source: CaseSource


def map_headers(header_row: Sequence[str], header_map: dict[str, str]) -> list[str | None]:
    """Map normalized header texts to canonical field names (``None`` if unknown)."""
    return [header_map.get(collapse_whitespace(header)) for header in header_row]


def extract_case_rows(tables: Sequence[Table], case_map: CaseFieldMap) -> list[ParsedCaseRow]:
    """Extract normalized case records from tables whose header is recognized.

    Parameters
    ----------
    tables
        Parsed document tables.
    case_map
        Section label and header text -> field name mapping.

    Returns
    -------
    list[ParsedCaseRow]
        Rows in table order then row order. Tables with fewer than two rows or
        fewer than two mapped header columns contribute nothing.
    """
    results: list[ParsedCaseRow] = []

    for table_index, table in enumerate(tables):
        if len(table.rows) < 2:
            continue

        header = [collapse_whitespace(cell) for cell in table.rows[0]]
        fields = map_headers(header, case_map.header_map)
        mapped_count = sum(1 for f in fields if f)
        if mapped_count < MIN_MAPPED_COLUMNS:
            logger.debug("Table %d skipped: %d mapped header(s)", table_index, mapped_count)
            continue

        for offset, row in enumerate(table.rows[1:], start=1):
            if all(not cell.strip() for cell in row):
                continue
            normalized = {
                fields[idx]: cell.strip()
                for idx, cell in enumerate(row)
                if idx < len(fields) and fields[idx]
            }
            results.append(
                ParsedCaseRow(
                    section=case_map.section,
                    normalized=normalized,
                    raw_cells=list(row),
                    header=header,
                    source=CaseSource(table_index=table_index, row=offset),
                ),
            )

    logger.debug("Extracted %d case rows", len(results))
    return results
