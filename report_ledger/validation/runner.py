"""Validation engine for extracted report data.

Validation is a fold over an ordered tuple of independent checks. Each check
appends findings to a shared :class:`ValidationReport`; none raises or stops
the run, so callers always get the complete report in one pass. The category
order is fixed:

period -> required metrics -> mapping validity -> bounds -> cross-checks ->
case count -> case duplicates -> metric duplicates -> carry-over readiness
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from openpyxl.utils.cell import column_index_from_string

from report_ledger.config import setup_logging
from report_ledger.extractor.period import (
    PeriodDetection,
    is_valid_period_override,
    normalize_override,
    resolve_period,
)
from report_ledger.transformer.source_tracker import format_location
from report_ledger.utils.parsing import format_number, is_finite_number
from report_ledger.validation.types import ValidationInputs, ValidationReport

if TYPE_CHECKING:
    from collections.abc import Callable

    from report_ledger.config import CellMapping
    from report_ledger.extractor.metrics import ParsedMetric

logger = setup_logging(__name__)

__all__ = [
    "CELL_REFERENCE_RE",
    "VALIDATION_CHECKS",
    "is_valid_mapping",
    "run_validations",
]

CELL_REFERENCE_RE = re.compile(r"^([A-Z]{1,3})([1-9][0-9]*)$")

# Excel worksheet limits.
INVALID_SHEET_TITLE_RE = re.compile(r"[\\*?:/\[\]]")
MAX_SHEET_TITLE_LENGTH = 31
MAX_COLUMN_INDEX = 16384
MAX_ROW_INDEX = 1048576


def _metric_map(inputs: ValidationInputs) -> dict[str, ParsedMetric]:
    """Index extracted metrics by name."""
    return {m.name: m for m in inputs.metrics}


def is_valid_mapping(mapping: CellMapping) -> bool:
    """Return whether ``mapping`` names a writable worksheet cell.

    The sheet title must be non-blank, at most 31 characters and free of
    ``\\ / * ? : [ ]``. The cell must be an uppercase A1 reference within
    ``XFD1048576``.
    """
    sheet = mapping.sheet
    if not sheet.strip() or len(sheet) > MAX_SHEET_TITLE_LENGTH or INVALID_SHEET_TITLE_RE.search(sheet):
        return False

    match = CELL_REFERENCE_RE.match(mapping.cell)
    if match is None:
        return False
    column, row = match.groups()
    return column_index_from_string(column) <= MAX_COLUMN_INDEX and int(row) <= MAX_ROW_INDEX


# =============================================================================
# Checks (in report order)
# =============================================================================


def check_period(inputs: ValidationInputs, report: ValidationReport) -> None:
    """Override syntax (when supplied) and period resolution."""
    override = normalize_override(inputs.period_override)
    if override is not None and not is_valid_period_override(override):
        report.add("period-override", "fail", "Period override is invalid. Use YYYY-MM format.")

    detection = PeriodDetection.from_candidates(inputs.period_candidates)
    candidates = detection.candidates
    resolved = resolve_period(detection, override)
    report.resolved_period = resolved

    if resolved is None:
        details = (
            f"Multiple candidates detected: {', '.join(candidates)}"
            if len(candidates) > 1
            else "No period found in report."
        )
        report.add(
            "period-detection",
            "fail",
            "Period could not be resolved. Provide a manual override (YYYY-MM).",
            details=details,
        )
    else:
        report.add("period-detection", "pass", f"Period resolved as {resolved}.")


def check_required_metrics(inputs: ValidationInputs, report: ValidationReport) -> None:
    """One finding per required metric: present or missing."""
    metrics = _metric_map(inputs)
    for name in inputs.required_metrics:
        if name in metrics:
            report.add(f"metric-required-{name}", "pass", f"Required metric found: {name}")
        else:
            report.add(f"metric-required-{name}", "fail", f"Required metric missing: {name}")


def check_mappings(inputs: ValidationInputs, report: ValidationReport) -> None:
    """One finding per metric to be written: required first, then other mapped extracted ones."""
    extracted = _metric_map(inputs)
    names = list(dict.fromkeys(inputs.required_metrics))
    names += [name for name in inputs.metric_cell_map if name in extracted and name not in names]

    for name in names:
        mapping = inputs.metric_cell_map.get(name)
        if mapping is not None and is_valid_mapping(mapping):
            report.add(f"mapping-{name}", "pass", f"Mapped {name} to {mapping.address}.")
        else:
            report.add(f"mapping-{name}", "fail", f"Missing or invalid cell mapping for {name}.")


def check_bounds(inputs: ValidationInputs, report: ValidationReport) -> None:
    """One finding per extracted metric: numeric, sign, then range."""
    for metric in inputs.metrics:
        bounds = inputs.metric_rules.bounds_for(metric.name)
        location = format_location(metric.source)
        value = metric.value

        if not is_finite_number(value):
            report.add(
                f"numeric-{metric.name}",
                "fail",
                f"Metric {metric.name} is not numeric.",
                location=location,
            )
            continue
        if not bounds.allow_negative and value < 0:
            report.add(
                f"bounds-{metric.name}",
                "fail",
                f"Metric {metric.name} is negative ({format_number(value)}).",
                location=location,
            )
            continue
        if (bounds.min is not None and value < bounds.min) or (
            bounds.max is not None and value > bounds.max
        ):
            report.add(
                f"bounds-{metric.name}",
                "fail",
                f"Metric {metric.name} is outside bounds "
                f"({format_number(bounds.min)}-{format_number(bounds.max)}).",
                location=location,
            )
            continue
        report.add(f"bounds-{metric.name}", "pass", f"Metric {metric.name} is within expected bounds.")


def check_cross_checks(inputs: ValidationInputs, report: ValidationReport) -> None:
    """One finding per cross-check: exact sum of components equals the total."""
    metrics = _metric_map(inputs)
    for index, check in enumerate(inputs.cross_checks):
        finding_id = f"cross-check-{index}"
        total = metrics.get(check.total)
        components = [metrics.get(name) for name in check.components]

        if total is None or any(c is None for c in components):
            report.add(finding_id, "fail", f"Cross-check skipped: missing metric for {check.reason}.")
            continue

        calculated = sum(c.value for c in components if c is not None)
        arithmetic = f"Expected {format_number(total.value)}, got {format_number(calculated)}."
        if calculated != total.value:
            report.add(finding_id, "fail", f"Cross-check failed: {check.reason}. {arithmetic}")
        else:
            report.add(finding_id, "pass", f"Cross-check passed: {check.reason}.", details=arithmetic)


def check_case_count(inputs: ValidationInputs, report: ValidationReport) -> None:
    """Case rows must match the configured count metric, when one is configured."""
    metric_name = inputs.case_rules.case_count_metric
    if not metric_name:
        return

    count_metric = _metric_map(inputs).get(metric_name)
    if count_metric is None:
        report.add("case-count-metric", "fail", f"Case count metric missing: {metric_name}")
    elif len(inputs.cases) != count_metric.value:
        report.add(
            "case-count-metric",
            "fail",
            f"Case row count ({len(inputs.cases)}) does not match "
            f"{metric_name} ({format_number(count_metric.value)}).",
        )
    else:
        report.add("case-count-metric", "pass", "Case row count matches metric.")


def check_case_duplicates(inputs: ValidationInputs, report: ValidationReport) -> None:
    """Report the first repeated case identifier, if any."""
    id_field = inputs.case_rules.case_id_field
    seen: set[str] = set()
    for row in inputs.cases:
        case_id = row.normalized.get(id_field)
        if not case_id:
            continue
        if case_id in seen:
            report.add(
                "case-duplicates",
                "fail",
                f"Duplicate case ID detected: {case_id}.",
                location=row.source.describe(),
                details=f"Duplicate policy: {inputs.case_rules.duplicate_policy}",
            )
            return
        seen.add(case_id)

    report.add("case-duplicates", "pass", "No duplicate case IDs detected.")


def check_metric_duplicates(inputs: ValidationInputs, report: ValidationReport) -> None:
    """Metrics matched more than once are ambiguous."""
    if inputs.duplicate_metrics:
        report.add(
            "metric-duplicates",
            "fail",
            f"Duplicate metric mentions found: {', '.join(inputs.duplicate_metrics)}",
        )
    else:
        report.add("metric-duplicates", "pass", "No duplicate metric mentions detected.")


def check_carry_over_rules(inputs: ValidationInputs, report: ValidationReport) -> None:
    """Every carry-over rule needs both its source and target metric."""
    metrics = _metric_map(inputs)
    for index, rule in enumerate(inputs.carry_over_rules):
        finding_id = f"carry-over-{index}"
        missing = next(
            (name for name in (rule.source_metric, rule.target_metric) if name not in metrics),
            None,
        )
        if missing is not None:
            report.add(
                finding_id,
                "fail",
                f"Carry-over rule not satisfied: missing {missing}.",
                details=rule.description,
            )
        else:
            report.add(finding_id, "pass", f"Carry-over rule ready: {rule.description}")


VALIDATION_CHECKS: tuple[Callable[[ValidationInputs, ValidationReport], None], ...] = (
    check_period,
    check_required_metrics,
    check_mappings,
    check_bounds,
    check_cross_checks,
    check_case_count,
    check_case_duplicates,
    check_metric_duplicates,
    check_carry_over_rules,
)


def run_validations(inputs: ValidationInputs) -> ValidationReport:
    """Run every check in order and return the complete report.

    Parameters
    ----------
    inputs
        Extracted data, period candidates and rule tables.

    Returns
    -------
    ValidationReport
        Ordered findings and the resolved period. The function has no side
        effects besides logging and is deterministic for identical inputs.
    """
    report = ValidationReport()
    for check in VALIDATION_CHECKS:
        check(inputs, report)

    if report.has_failures():
        logger.warning("✗ Validation: %d of %d checks failed", len(report.failures), len(report.findings))
    else:
        logger.info("✓ Validation: all %d checks passed", len(report.findings))
    return report
