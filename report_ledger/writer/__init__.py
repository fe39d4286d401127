"""Writer module for workbook mutation and run outputs.

Workbook output: updated-2026-01.xlsx with Audit, SummaryMetrics, CaseFacts
and ImportsLog sheets appended to.
"""

from report_ledger.writer.report_writer import (
    save_analysis,
    save_workbook,
    write_findings_csv,
)
from report_ledger.writer.workbook_risks import detect_workbook_risks
from report_ledger.writer.workbook_writer import (
    AUDIT_SHEET,
    CASE_FACTS_SHEET,
    IMPORTS_LOG_SHEET,
    SUMMARY_SHEET,
    UnreadableWorkbookError,
    WorkbookWriteError,
    load_workbook_bytes,
    update_workbook,
)

__all__ = [
    # Sheet names
    "AUDIT_SHEET",
    "CASE_FACTS_SHEET",
    "IMPORTS_LOG_SHEET",
    "SUMMARY_SHEET",
    "UnreadableWorkbookError",
    "WorkbookWriteError",
    # Risk screen
    "detect_workbook_risks",
    "load_workbook_bytes",
    # Run outputs
    "save_analysis",
    "save_workbook",
    "update_workbook",
    "write_findings_csv",
]
