"""Dictionary-driven metric extraction.

Each metric in the dictionary lists one or more case-insensitive patterns whose
first capture group holds a numeric literal. Every paragraph and table cell is
scanned; the first valid candidate in scan order wins and metrics seen more
than once are reported as duplicates so validation can block ambiguous input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from report_ledger.config import setup_logging
from report_ledger.transformer.source_tracker import (
    ParagraphSource,
    SourceInfo,
    TableSource,
    make_snippet,
)
from report_ledger.utils.parsing import Number, parse_report_number

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from report_ledger.config import MetricDefinition
    from report_ledger.extractor.docx_parser import Paragraph, Table

logger = setup_logging(__name__)

__all__ = [
    "MetricExtraction",
    "ParsedMetric",
    "compile_patterns",
    "extract_metrics",
]


@dataclass(frozen=True)
class ParsedMetric:
    """A resolved metric value with its provenance."""

    name: str
    value: Number
    source: SourceInfo


@dataclass
class MetricExtraction:
    """Extraction output: resolved metrics (dictionary order) and duplicates."""

    metrics: list[ParsedMetric] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    def as_map(self) -> dict[str, ParsedMetric]:
        """Return metrics keyed by name."""
        return {m.name: m for m in self.metrics}


def compile_patterns(name: str, definition: MetricDefinition) -> list[re.Pattern[str]]:
    """Compile a metric's patterns case-insensitively.

    Raises
    ------
    ValueError
        If a pattern is not a valid regular expression.
    """
    compiled = []
    for pattern in definition.patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as err:
            msg = f"Invalid pattern for metric '{name}': {pattern!r} ({err})"
            raise ValueError(msg) from err
    return compiled


def _match_value(pattern: re.Pattern[str], text: str) -> Number | None:
    """Return the parsed first capture group of ``pattern`` in ``text``."""
    match = pattern.search(text)
    if match is None or match.re.groups < 1:
        return None
    captured = match.group(1)
    if not captured:
        return None
    return parse_report_number(captured)


def _scan_candidates(
    name: str,
    patterns: Sequence[re.Pattern[str]],
    paragraphs: Sequence[Paragraph],
    tables: Sequence[Table],
) -> Iterator[ParsedMetric]:
    """Yield every valid candidate for one metric in deterministic scan order."""
    for paragraph in paragraphs:
        for pattern in patterns:
            value = _match_value(pattern, paragraph.text)
            if value is not None:
                yield ParsedMetric(name, value, ParagraphSource(make_snippet(paragraph.text)))

    for table_index, table in enumerate(tables):
        for row_index, row in enumerate(table.rows):
            for col_index, cell in enumerate(row):
                for pattern in patterns:
                    value = _match_value(pattern, cell)
                    if value is not None:
                        source = TableSource(table_index, row_index, col_index, make_snippet(cell))
                        yield ParsedMetric(name, value, source)


def extract_metrics(
    paragraphs: Sequence[Paragraph],
    tables: Sequence[Table],
    dictionary: dict[str, MetricDefinition],
) -> MetricExtraction:
    """Resolve one value per dictionary metric from document text.

    Paragraphs are scanned fully (paragraph order, then pattern order) before
    tables (table, row, column, pattern order).

    Parameters
    ----------
    paragraphs
        Parsed body paragraphs.
    tables
        Parsed body tables.
    dictionary
        Metric name -> pattern definition, in declaration order.

    Returns
    -------
    MetricExtraction
        First candidate per metric, plus names with more than one candidate.
        Metrics without any candidate are absent.
    """
    result = MetricExtraction()

    for name, definition in dictionary.items():
        patterns = compile_patterns(name, definition)
        candidates = list(_scan_candidates(name, patterns, paragraphs, tables))

        if not candidates:
            logger.debug("No match for metric %s", name)
            continue

        if len(candidates) > 1:
            result.duplicates.append(name)
            logger.warning("Metric %s matched %d times; using first match", name, len(candidates))

        result.metrics.append(candidates[0])
        logger.debug("Metric %s = %s", name, candidates[0].value)

    return result
