"""Shared utility functions for report_ledger package."""

from report_ledger.utils.parsing import (
    Number,
    collapse_whitespace,
    format_number,
    is_finite_number,
    parse_report_number,
    to_cell_number,
)

__all__ = [
    "Number",
    "collapse_whitespace",
    "format_number",
    "is_finite_number",
    "parse_report_number",
    "to_cell_number",
]
