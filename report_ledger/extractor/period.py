"""Reporting period detection and override handling.

A period is a ``YYYY-MM`` token. Detection collects every distinct token found
in the report paragraphs and the filename; only a single distinct token is
accepted. A valid manual override always wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from report_ledger.config import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from report_ledger.extractor.docx_parser import Paragraph

logger = setup_logging(__name__)

# Year 2000 or later, separator, month 01-12; not part of a longer digit run.
PERIOD_TOKEN_RE = re.compile(r"(?<!\d)([2-9]\d{3})[-/.](0[1-9]|1[0-2])(?!\d)")
PERIOD_OVERRIDE_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
MIN_OVERRIDE_YEAR = 2000


@dataclass(frozen=True)
class PeriodDetection:
    """Auto-detection outcome: the unique period (if any) and all candidates."""

    period: str | None
    candidates: list[str] = field(default_factory=list)

    @classmethod
    def from_candidates(cls, candidates: Sequence[str]) -> PeriodDetection:
        """Resolve only when exactly one distinct candidate exists."""
        distinct = list(dict.fromkeys(candidates))
        return cls(period=distinct[0] if len(distinct) == 1 else None, candidates=distinct)


def find_period_tokens(text: str) -> list[str]:
    """Return normalized ``YYYY-MM`` tokens found in ``text``, in order."""
    return [f"{year}-{month}" for year, month in PERIOD_TOKEN_RE.findall(text)]


def detect_period(paragraphs: Sequence[Paragraph], filename: str | None = None) -> PeriodDetection:
    """Scan paragraphs (then the filename) for an unambiguous period.

    Parameters
    ----------
    paragraphs
        Parsed body paragraphs.
    filename
        Optional uploaded filename, scanned after the paragraphs.

    Returns
    -------
    PeriodDetection
        ``period`` is set only when exactly one distinct token was found;
        ``candidates`` lists distinct tokens in first-seen order.
    """
    texts = [p.text for p in paragraphs]
    if filename:
        texts.append(filename)

    detection = PeriodDetection.from_candidates(
        [token for text in texts for token in find_period_tokens(text)],
    )
    if detection.period is not None:
        logger.debug("Detected period %s", detection.period)
    else:
        logger.debug("Period not auto-resolved; candidates: %s", detection.candidates)
    return detection


def is_valid_period_override(value: str) -> bool:
    """Return whether ``value`` is ``YYYY-MM`` with year >= 2000 and month 01-12."""
    match = PERIOD_OVERRIDE_RE.match(value)
    return match is not None and int(match.group(1)) >= MIN_OVERRIDE_YEAR


def normalize_override(override: str | None) -> str | None:
    """Strip an override string; blank input means no override."""
    if override is None:
        return None
    stripped = override.strip()
    return stripped or None


def resolve_period(detection: PeriodDetection, override: str | None = None) -> str | None:
    """Pick the effective period: valid override, else the detected period."""
    normalized = normalize_override(override)
    if normalized is not None and is_valid_period_override(normalized):
        return normalized
    return detection.period
