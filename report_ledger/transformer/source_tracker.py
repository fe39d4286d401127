"""Source tracking for audit and provenance.

Every extracted value can be traced back to where it was read in the report:
a paragraph, or a specific table cell. Provenance travels with the value into
validation findings and the workbook audit sheets.

Classes
-------
ParagraphSource
    Value read from a body paragraph.
TableSource
    Value read from a table cell (table, row and column indices, 0-based).
CaseSource
    Location of a case row (table index, 1-based data row).

Notes
-----
``SourceInfo`` is the union of the first two; use :func:`format_location` to
render it for humans and ``to_dict()`` for the JSON audit columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, assert_never

SNIPPET_LENGTH = 160


def make_snippet(text: str) -> str:
    """Trim source text to the snippet length kept for audit."""
    return text[:SNIPPET_LENGTH]


@dataclass(frozen=True)
class ParagraphSource:
    """Value found in a body paragraph."""

    text_snippet: str
    kind: Literal["paragraph"] = "paragraph"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON audit columns."""
        return {"type": self.kind, "text_snippet": self.text_snippet}


@dataclass(frozen=True)
class TableSource:
    """Value found in a table cell.

    Attributes
    ----------
    table_index : int
        0-based index among the parsed tables.
    row, col : int
        0-based row (header included) and column of the cell.
    text_snippet : str
        Leading text of the cell.
    """

    table_index: int
    row: int
    col: int
    text_snippet: str
    kind: Literal["table"] = "table"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON audit columns."""
        return {
            "type": self.kind,
            "table_index": self.table_index,
            "row": self.row,
            "col": self.col,
            "text_snippet": self.text_snippet,
        }


SourceInfo = ParagraphSource | TableSource


@dataclass(frozen=True)
class CaseSource:
    """Location of a case row: table index and 1-based data row offset."""

    table_index: int
    row: int

    def to_dict(self) -> dict[str, int]:
        """Serialize for JSON audit columns."""
        return {"table_index": self.table_index, "row": self.row}

    def describe(self) -> str:
        """Render as ``Table t Row r``."""
        return f"Table {self.table_index} Row {self.row}"


def format_location(source: SourceInfo) -> str:
    """Render a human-readable location for a metric source.

    Parameters
    ----------
    source : SourceInfo
        Paragraph or table provenance.

    Returns
    -------
    str
        ``"Paragraph"`` or ``"Table t Row r Col c"``.
    """
    match source:
        case ParagraphSource():
            return "Paragraph"
        case TableSource(table_index=table_index, row=row, col=col):
            return f"Table {table_index} Row {row} Col {col}"
        case _:
            assert_never(source)
