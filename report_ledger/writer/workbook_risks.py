"""Container screening for workbook features that do not survive a rewrite.

openpyxl drops VBA projects and pivot caches when it saves a workbook, so a
workbook carrying them must not be regenerated.
"""

from __future__ import annotations

import io
import zipfile

from report_ledger.config import setup_logging
from report_ledger.writer.workbook_writer import UnreadableWorkbookError

logger = setup_logging(__name__)

MACRO_EXTENSION = ".xlsm"
MACRO_PART = "vbaproject.bin"
PIVOT_PARTS = ("pivotcache", "pivottable")


def detect_workbook_risks(data: bytes, filename: str | None = None) -> list[str]:
    """Return human-readable reasons the workbook cannot be safely rewritten.

    Parameters
    ----------
    data
        Raw workbook bytes.
    filename
        Optional upload name; a macro-enabled extension is itself a risk.

    Returns
    -------
    list[str]
        Risk messages, empty when the workbook is safe to rewrite.

    Raises
    ------
    UnreadableWorkbookError
        If the bytes are not a zip package.
    """
    risks: list[str] = []

    if filename and filename.lower().endswith(MACRO_EXTENSION):
        risks.append("Excel workbook is .xlsm with macros. Macros cannot be preserved on save.")

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entries = [name.lower() for name in archive.namelist()]
    except zipfile.BadZipFile as err:
        msg = f"Workbook is not a valid spreadsheet package: {err}"
        raise UnreadableWorkbookError(msg) from err

    if any(MACRO_PART in name for name in entries):
        risks.append("Excel workbook contains macros (vbaProject.bin).")
    if any(part in name for name in entries for part in PIVOT_PARTS):
        risks.append("Excel workbook contains pivot caches/tables that may break on save.")

    for risk in risks:
        logger.warning("✗ %s", risk)
    return risks
