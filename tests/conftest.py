"""Pytest configuration for report_ledger tests.

This module provides:
- Builders for in-memory .docx packages (zipfile) and workbooks (openpyxl)
- The sample monthly report and prior-period workbook used across suites
- The shipped rule tables loaded as a PipelineConfig
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable, Sequence
from pathlib import Path
from xml.sax.saxutils import escape

import pytest
from openpyxl import Workbook

from report_ledger.config import PipelineConfig, load_pipeline_config

PROJECT_ROOT = Path(__file__).parent.parent
SHIPPED_CONFIG_DIR = PROJECT_ROOT / "config"

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

ROOT_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>"""

SAMPLE_PARAGRAPHS = [
    "Report 2026-01",
    "Total cases: 3",
    "In production: 1",
    "Closed cases: 2",
    "New cases: 3",
    "Previous month leftover: 0",
]

SAMPLE_CASE_TABLE = [
    ["KЖБР", "Applicant", "Status"],
    ["A-001", "Alpha LLC", "Open"],
    ["A-002", "Beta LLC", "Closed"],
    ["A-003", "Gamma LLC", "Closed"],
]


# =============================================================================
# XML / package builders
# =============================================================================


def paragraph_xml(text: str) -> str:
    """Single-run paragraph."""
    return f"<w:p><w:r><w:t>{escape(text)}</w:t></w:r></w:p>"


def table_xml(rows: Sequence[Sequence[str]]) -> str:
    """Table whose cells each hold one single-run paragraph."""
    body = "".join(
        "<w:tr>" + "".join(f"<w:tc>{paragraph_xml(cell)}</w:tc>" for cell in row) + "</w:tr>"
        for row in rows
    )
    return f"<w:tbl>{body}</w:tbl>"


def document_xml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>{body}</w:body></w:document>'
    )


def build_docx(body: str) -> bytes:
    """Zip a minimal .docx package around the given body XML."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", CONTENT_TYPES)
        archive.writestr("_rels/.rels", ROOT_RELS)
        archive.writestr("word/document.xml", document_xml(body))
    return buffer.getvalue()


def build_workbook(cells: dict[str, object] | None = None, sheet: str = "Template") -> bytes:
    """Serialize a one-sheet workbook with the given cell values."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet
    for ref, value in (cells or {}).items():
        worksheet[ref] = value
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def docx_factory() -> Callable[[Sequence[str], Sequence[Sequence[Sequence[str]]]], bytes]:
    """Build .docx bytes from paragraph texts followed by tables."""

    def _build(
        paragraphs: Sequence[str] = (),
        tables: Sequence[Sequence[Sequence[str]]] = (),
    ) -> bytes:
        body = "".join(paragraph_xml(p) for p in paragraphs)
        body += "".join(table_xml(t) for t in tables)
        return build_docx(body)

    return _build


@pytest.fixture
def raw_docx_factory() -> Callable[[str], bytes]:
    """Build .docx bytes from raw body XML."""
    return build_docx


@pytest.fixture
def workbook_factory() -> Callable[..., bytes]:
    """Build .xlsx bytes from a cell -> value mapping."""
    return build_workbook


@pytest.fixture
def sample_docx() -> bytes:
    """Monthly report for 2026-01 with five metrics and a three-row case table."""
    body = "".join(paragraph_xml(p) for p in SAMPLE_PARAGRAPHS) + table_xml(SAMPLE_CASE_TABLE)
    return build_docx(body)


@pytest.fixture
def sample_workbook() -> bytes:
    """Prior-period workbook: Template!B2:B5 hold zeros."""
    return build_workbook({"B2": 0, "B3": 0, "B4": 0, "B5": 0})


@pytest.fixture
def config_dir() -> Path:
    return SHIPPED_CONFIG_DIR


@pytest.fixture
def pipeline_config(config_dir: Path) -> PipelineConfig:
    """Shipped rule tables."""
    return load_pipeline_config(config_dir)
