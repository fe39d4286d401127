"""Structural parser for word-processing (.docx) reports.

Reads the main document part of an OOXML package with lxml and flattens the
body into two independent, ordered lists: paragraph texts and tables of cell
texts. No knowledge of metrics or cases lives here.
"""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lxml import etree

from report_ledger.config import setup_logging
from report_ledger.utils.parsing import collapse_whitespace

if TYPE_CHECKING:
    from pathlib import Path

logger = setup_logging(__name__)

__all__ = [
    "MAIN_DOCUMENT_PART",
    "MalformedDocumentError",
    "Paragraph",
    "ParsedDocument",
    "Table",
    "parse_docx",
    "parse_docx_file",
]

MAIN_DOCUMENT_PART = "word/document.xml"
CELL_SEPARATOR = " | "

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
_W = f"{{{W_NS}}}"

# Run children that contribute text; breaks and tabs read as whitespace.
_TEXT_TAG = f"{_W}t"
_SPACE_TAGS = frozenset({f"{_W}tab", f"{_W}br", f"{_W}cr"})


class MalformedDocumentError(ValueError):
    """The document package or its main XML part cannot be interpreted."""


@dataclass(frozen=True)
class Paragraph:
    """Non-empty body paragraph with its 0-based position among paragraphs."""

    text: str
    index: int


@dataclass(frozen=True)
class Table:
    """Body table as a grid of cell texts; all-empty rows are already dropped."""

    rows: list[list[str]]


@dataclass
class ParsedDocument:
    """Paragraphs and tables in encounter order (independent index spaces)."""

    paragraphs: list[Paragraph] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)


def _paragraph_text(paragraph: etree._Element) -> str:
    """Concatenate a paragraph's run texts in order and normalize whitespace."""
    parts: list[str] = []
    for node in paragraph.iter(_TEXT_TAG, *_SPACE_TAGS):
        if node.tag == _TEXT_TAG:
            parts.append(node.text or "")
        else:
            parts.append(" ")
    return collapse_whitespace("".join(parts))


def _cell_text(cell: etree._Element) -> str:
    """Join the non-empty paragraph texts of a table cell with ``" | "``."""
    texts = [_paragraph_text(p) for p in cell.iterfind(f"{_W}p")]
    return collapse_whitespace(CELL_SEPARATOR.join(t for t in texts if t))


def _table_rows(table: etree._Element) -> list[list[str]]:
    """Return cell texts per row, skipping rows whose cells are all empty."""
    rows: list[list[str]] = []
    for row in table.iterfind(f"{_W}tr"):
        cells = [_cell_text(cell) for cell in row.iterfind(f"{_W}tc")]
        if any(cells):
            rows.append(cells)
    return rows


def _read_main_part(data: bytes) -> bytes:
    """Extract the main document XML from the zip package."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            try:
                return archive.read(MAIN_DOCUMENT_PART)
            except KeyError as err:
                msg = f"Document package is missing {MAIN_DOCUMENT_PART}"
                raise MalformedDocumentError(msg) from err
    except zipfile.BadZipFile as err:
        msg = "Document is not a valid zip package"
        raise MalformedDocumentError(msg) from err


def parse_docx(data: bytes) -> ParsedDocument:
    """Parse raw .docx bytes into ordered paragraphs and tables.

    Only top-level body children are visited. Paragraphs are indexed from 0 in
    the order they are kept; tables are indexed from 0 separately.

    Parameters
    ----------
    data : bytes
        Raw bytes of the zipped document package.

    Returns
    -------
    ParsedDocument
        Paragraph and table lists.

    Raises
    ------
    MalformedDocumentError
        If the package, its main part, or the document body is missing or the
        XML is not well-formed.
    """
    xml_bytes = _read_main_part(data)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(xml_bytes, parser=parser)
    except etree.XMLSyntaxError as err:
        msg = f"{MAIN_DOCUMENT_PART} is not well-formed XML: {err}"
        raise MalformedDocumentError(msg) from err

    body = root.find(f"{_W}body")
    if body is None:
        msg = f"{MAIN_DOCUMENT_PART} has no w:body element"
        raise MalformedDocumentError(msg)

    document = ParsedDocument()
    for child in body:
        if child.tag == f"{_W}p":
            text = _paragraph_text(child)
            if text:
                document.paragraphs.append(Paragraph(text=text, index=len(document.paragraphs)))
        elif child.tag == f"{_W}tbl":
            rows = _table_rows(child)
            if rows:
                document.tables.append(Table(rows=rows))

    logger.debug(
        "Parsed document: %d paragraphs, %d tables",
        len(document.paragraphs),
        len(document.tables),
    )
    return document


def parse_docx_file(file_path: Path) -> ParsedDocument:
    """Parse a .docx file from disk.

    Raises
    ------
    FileNotFoundError
        If the file is missing.
    MalformedDocumentError
        See :func:`parse_docx`.
    """
    logger.info("Parsing document: %s", file_path)

    if not file_path.exists():
        msg = f"Document not found: {file_path}"
        raise FileNotFoundError(msg)

    return parse_docx(file_path.read_bytes())
