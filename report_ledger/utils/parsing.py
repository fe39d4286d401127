"""Shared parsing utilities for report text and numbers.

Report numbers use a single locale convention: a comma is read as the decimal
separator, exactly like a dot. Integral literals parse to ``int`` and
fractional ones to :class:`decimal.Decimal`, so sums stay exact.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

Number = int | Decimal

_WHITESPACE_RE = re.compile(r"\s+")
_NUMBER_RE = re.compile(r"^[-+]?\d+(?:\.\d+)?$")


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim.

    Examples
    --------
    - ``"  Total   cases:\\t3 "`` -> ``"Total cases: 3"``
    """
    return _WHITESPACE_RE.sub(" ", text).strip()


def parse_report_number(value_str: str | None) -> Number | None:
    """Parse a numeric literal captured from report text.

    Examples
    --------
    - ``"3"`` -> ``3``
    - ``"-12"`` -> ``-12``
    - ``"1,5"`` -> ``Decimal("1.5")``
    - ``"1 000"`` -> ``1000``
    - ``"3 cases"`` -> ``None``

    Parameters
    ----------
    value_str
        Captured text; all whitespace is removed before matching.

    Returns
    -------
    int | Decimal | None
        Parsed value, or ``None`` when the cleaned text is not a plain
        optionally signed decimal literal.
    """
    if not value_str:
        return None

    cleaned = _WHITESPACE_RE.sub("", value_str).replace(",", ".")
    if not _NUMBER_RE.match(cleaned):
        return None

    if "." not in cleaned:
        return int(cleaned)

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.warning("Could not parse number: %s", value_str)
        return None


def is_finite_number(value: object) -> bool:
    """Return whether ``value`` is a finite real number (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def to_cell_number(value: Number | float) -> int | float:
    """Convert an exact value into the ``int``/``float`` stored in a sheet cell."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    return value


def format_number(value: object) -> str:
    """Format a metric value for messages without spurious trailing zeros.

    Examples
    --------
    - ``3`` -> ``"3"``
    - ``Decimal("3.0")`` -> ``"3"``
    - ``Decimal("1.50")`` -> ``"1.5"``
    """
    if isinstance(value, Decimal) and value.is_finite():
        if value == value.to_integral_value():
            return str(int(value))
        return format(value.normalize(), "f")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
