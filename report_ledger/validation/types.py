"""Validation dataclasses and type definitions.

This module contains pure data structures with no business logic dependencies,
ensuring they can be imported without circular dependencies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collections.abc import Sequence

    from report_ledger.config import (
        CarryOverRule,
        CaseRules,
        CellMapping,
        CrossCheck,
        MetricRules,
    )
    from report_ledger.extractor.cases import ParsedCaseRow
    from report_ledger.extractor.metrics import ParsedMetric

__all__ = [
    "Finding",
    "FindingStatus",
    "ValidationInputs",
    "ValidationReport",
]

FindingStatus = Literal["pass", "fail"]


@dataclass(frozen=True)
class Finding:
    """Atomic pass/fail result of one validation check.

    Attributes
    ----------
    id : str
        Stable check identifier (e.g. ``"metric-required-Total Cases"``).
    status : {"pass", "fail"}
        Outcome.
    message : str
        Human-readable summary.
    location : str | None
        Where in the report the problem was found, when known.
    details : str | None
        Extra diagnostic context.
    """

    id: str
    status: FindingStatus
    message: str
    location: str | None = None
    details: str | None = None

    @property
    def passed(self) -> bool:
        """Whether the check passed."""
        return self.status == "pass"

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting empty optional fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ValidationInputs:
    """Everything the validation engine reads for one run."""

    metrics: Sequence[ParsedMetric]
    cases: Sequence[ParsedCaseRow]
    duplicate_metrics: Sequence[str]
    period_candidates: Sequence[str]
    period_override: str | None
    required_metrics: Sequence[str]
    metric_cell_map: dict[str, CellMapping]
    metric_rules: MetricRules
    cross_checks: Sequence[CrossCheck]
    case_rules: CaseRules
    carry_over_rules: Sequence[CarryOverRule]


@dataclass
class ValidationReport:
    """Ordered findings plus the resolved period.

    The ordered ``findings`` list is the report; generation is allowed only
    when a period is resolved and every finding passed.
    """

    findings: list[Finding] = field(default_factory=list)
    resolved_period: str | None = None

    def add(
        self,
        finding_id: str,
        status: FindingStatus,
        message: str,
        location: str | None = None,
        details: str | None = None,
    ) -> None:
        """Append one finding."""
        self.findings.append(Finding(finding_id, status, message, location, details))

    @property
    def failures(self) -> list[Finding]:
        """Findings with status ``fail``, in report order."""
        return [f for f in self.findings if not f.passed]

    @property
    def can_generate(self) -> bool:
        """Whether output generation is permitted."""
        return self.resolved_period is not None and all(f.passed for f in self.findings)

    def has_failures(self, prefix: str | None = None) -> bool:
        """Check for failures, optionally only among ids starting with ``prefix``."""
        return any(
            not f.passed and (prefix is None or f.id.startswith(prefix)) for f in self.findings
        )

    def get(self, finding_id: str) -> Finding | None:
        """Return the first finding with ``finding_id``."""
        return next((f for f in self.findings if f.id == finding_id), None)

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize findings in report order."""
        return [f.to_dict() for f in self.findings]
