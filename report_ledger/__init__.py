"""report-ledger: audited transfer of monthly report metrics into a workbook.

The package reads a .docx report and a prior-period .xlsx workbook, extracts
metrics and case rows by configured patterns, validates them, and writes the
values into the workbook together with an audit trail. Any ambiguity blocks
generation.

Architecture
------------
* ``extractor``: .docx structure parsing (lxml), metric and case extraction, period detection.
* ``validation``: Ordered pass/fail checks that gate generation, plus report formatting.
* ``transformer``: Source provenance and carry-over rule resolution.
* ``writer``: Workbook mutation and audit sheets (openpyxl), JSON/CSV run outputs.
* ``pipeline``: Analyze -> validate -> generate orchestration.

Configuration
-------------
Rule tables are JSON files under ``config/``. Paths respect ``CONFIG_DIR``,
``DATA_DIR``, ``LOGS_DIR`` and ``OUTPUT_DIR`` overrides (``.env`` supported).

Examples
--------
Analyze a report and update the workbook:

    >>> python -m report_ledger.main --word report.docx --excel prior.xlsx
"""

__version__ = "0.1.0"
__all__ = ["__version__"]


def get_version() -> str:
    """Return the current package version string.

    Returns
    -------
    str
        Semantic version identifier (e.g., ``"0.1.0"``).
    """
    return __version__


__all__.append("get_version")
