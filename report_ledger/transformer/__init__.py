"""Transformer module for provenance tracking and carry-over derivation.

This module provides:
- Source provenance as a tagged union (paragraph vs. table cell)
- Carry-over rule resolution into effective metric values
"""

from report_ledger.transformer.carry_over import (
    CarryOverResult,
    CarryOverTransition,
    apply_carry_over_rules,
)
from report_ledger.transformer.source_tracker import (
    SNIPPET_LENGTH,
    CaseSource,
    ParagraphSource,
    SourceInfo,
    TableSource,
    format_location,
    make_snippet,
)

__all__ = [
    "SNIPPET_LENGTH",
    # Carry-over
    "CarryOverResult",
    "CarryOverTransition",
    # Source tracking
    "CaseSource",
    "ParagraphSource",
    "SourceInfo",
    "TableSource",
    "apply_carry_over_rules",
    "format_location",
    "make_snippet",
]
