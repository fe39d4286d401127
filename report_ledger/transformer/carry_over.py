"""Carry-over rules: derive effective metric values from other metrics.

Rules run in declared order against a working copy of the extracted values, so
a target updated by one rule is the updated input of any later rule that reads
it. Raw extracted values are never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from report_ledger.config import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from report_ledger.config import CarryOverRule
    from report_ledger.extractor.metrics import ParsedMetric
    from report_ledger.utils.parsing import Number

logger = setup_logging(__name__)


@dataclass(frozen=True)
class CarryOverTransition:
    """One applied rule: target metric moved from ``previous`` to ``next``."""

    rule: str
    target_metric: str
    previous: Number
    next: Number

    @property
    def delta(self) -> Number:
        """Change applied to the target."""
        return self.next - self.previous


@dataclass
class CarryOverResult:
    """Effective values by metric name plus applied transitions in order."""

    effective_metrics: dict[str, Number] = field(default_factory=dict)
    applied: list[CarryOverTransition] = field(default_factory=list)


def apply_carry_over_rules(
    metrics: Sequence[ParsedMetric],
    rules: Sequence[CarryOverRule],
) -> CarryOverResult:
    """Apply carry-over rules to extracted metric values.

    Parameters
    ----------
    metrics
        Extracted metrics (raw values).
    rules
        Rules in declared order. ``add`` sets target to target + source,
        ``replace`` sets target to source.

    Returns
    -------
    CarryOverResult
        Effective value map and applied transitions. Rules whose source or
        target metric is absent are skipped.
    """
    result = CarryOverResult(effective_metrics={m.name: m.value for m in metrics})
    values = result.effective_metrics

    for rule in rules:
        source = values.get(rule.source_metric)
        target = values.get(rule.target_metric)
        if source is None or target is None:
            logger.debug("Carry-over skipped (missing metric): %s", rule.description)
            continue

        new_value = target + source if rule.operation == "add" else source
        values[rule.target_metric] = new_value
        result.applied.append(
            CarryOverTransition(
                rule=rule.description,
                target_metric=rule.target_metric,
                previous=target,
                next=new_value,
            ),
        )
        logger.info("Carry-over %s: %s -> %s (%s)", rule.target_metric, target, new_value, rule.description)

    return result
