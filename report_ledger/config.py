"""Configuration management for report-ledger.

This module centralizes file-system paths, environment variables, logging and
the JSON rule tables consumed by the extraction and validation pipeline.

Configuration files
-------------------
One JSON file per rule table lives under ``config/``:

* ``metric_dictionary.json``: metric name -> ``{"patterns": [{"regex": ...}]}``
* ``required_metrics.json``: ordered list of metric names
* ``metric_cell_map.json``: metric name -> ``{"sheet": ..., "cell": ...}``
* ``metric_rules.json``: bounds ``defaults`` plus per-metric ``overrides``
* ``cross_checks.json``: ``[{"total": ..., "components": [...], "reason": ...}]``
* ``case_field_map.json``: ``{"section": ..., "headerMap": {...}}``
* ``case_rules.json``: ``{"caseCountMetric", "caseIdField", "duplicatePolicy"}``
* ``carry_over_rules.json``: ordered ``[{"sourceMetric", "targetMetric", "operation", "description"}]``

Environment variables
---------------------
``CONFIG_DIR``, ``DATA_DIR``, ``LOGS_DIR`` and ``OUTPUT_DIR`` override default
directories. Directories are created eagerly on import so downstream callers
can rely on their existence.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, cast

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = Path(os.getenv("CONFIG_DIR", PROJECT_ROOT / "config"))
DATA_DIR = Path(os.getenv("DATA_DIR", PROJECT_ROOT / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", PROJECT_ROOT / "logs"))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", DATA_DIR / "output"))

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

CARRY_OVER_OPERATIONS = ("add", "replace")
DUPLICATE_POLICIES = ("fail", "warn")


def setup_logging(name: str = "report_ledger") -> logging.Logger:
    """Configure a console+file logger if not already present.

    Parameters
    ----------
    name : str, optional
        Logger namespace; reused to avoid duplicate handlers.

    Returns
    -------
    logging.Logger
        Logger with INFO-level console handler and DEBUG-level file handler
        under ``LOGS_DIR``.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

        # File handler
        log_filename = f"{datetime.now(UTC).strftime('%Y-%m-%d')}_run.log"
        file_handler = logging.FileHandler(LOGS_DIR / log_filename)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


logger = setup_logging(__name__)


# =============================================================================
# Typed Rule Tables
# =============================================================================


@dataclass(frozen=True)
class MetricDefinition:
    """Textual patterns that locate one metric in the report.

    Each pattern is a case-insensitive regular expression whose first capture
    group holds the numeric literal.
    """

    patterns: tuple[str, ...]

    @classmethod
    def from_dict(cls, name: str, raw: dict[str, Any]) -> MetricDefinition:
        """Build a definition from ``{"patterns": [{"regex": ...}, ...]}``."""
        entries = raw.get("patterns")
        if not isinstance(entries, list):
            msg = f"Metric '{name}' must declare a 'patterns' list"
            raise ValueError(msg)
        patterns = []
        for entry in entries:
            regex = entry.get("regex") if isinstance(entry, dict) else entry
            if not isinstance(regex, str) or not regex:
                msg = f"Metric '{name}' has a pattern without a regex"
                raise ValueError(msg)
            patterns.append(regex)
        return cls(patterns=tuple(patterns))


@dataclass(frozen=True)
class CellMapping:
    """Destination of a metric in the target workbook."""

    sheet: str
    cell: str

    @property
    def address(self) -> str:
        """Return the ``Sheet!B12`` style address."""
        return f"{self.sheet}!{self.cell}"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CellMapping:
        """Build a mapping, tolerating missing keys (validated later)."""
        return cls(sheet=str(raw.get("sheet") or ""), cell=str(raw.get("cell") or ""))

    def to_dict(self) -> dict[str, str]:
        """Serialize back to the on-disk shape."""
        return {"sheet": self.sheet, "cell": self.cell}


@dataclass(frozen=True)
class BoundsRule:
    """Bounds for a metric value.

    ``None`` fields in an override mean "inherit from defaults".
    """

    min: float | None = None
    max: float | None = None
    allow_negative: bool | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BoundsRule:
        """Build a rule from ``{"min", "max", "allowNegative"}``."""
        return cls(
            min=raw.get("min"),
            max=raw.get("max"),
            allow_negative=raw.get("allowNegative"),
        )

    def overlay(self, override: BoundsRule | None) -> BoundsRule:
        """Return these bounds with any non-``None`` override field applied."""
        if override is None:
            return self
        return BoundsRule(
            min=override.min if override.min is not None else self.min,
            max=override.max if override.max is not None else self.max,
            allow_negative=(
                override.allow_negative if override.allow_negative is not None else self.allow_negative
            ),
        )


@dataclass(frozen=True)
class MetricRules:
    """Default bounds plus per-metric overrides."""

    defaults: BoundsRule
    overrides: dict[str, BoundsRule] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MetricRules:
        """Build from ``{"defaults": {...}, "overrides": {name: {...}}}``."""
        defaults = raw.get("defaults")
        if not isinstance(defaults, dict):
            msg = "metric_rules.json must define a 'defaults' object"
            raise ValueError(msg)
        overrides = {
            name: BoundsRule.from_dict(rule) for name, rule in (raw.get("overrides") or {}).items()
        }
        default_rule = BoundsRule.from_dict(defaults)
        if default_rule.min is None or default_rule.max is None or default_rule.allow_negative is None:
            msg = "metric_rules.json defaults need 'min', 'max' and 'allowNegative'"
            raise ValueError(msg)
        return cls(defaults=default_rule, overrides=overrides)

    def bounds_for(self, metric_name: str) -> BoundsRule:
        """Return effective bounds for ``metric_name``."""
        return self.defaults.overlay(self.overrides.get(metric_name))


@dataclass(frozen=True)
class CrossCheck:
    """Total metric that must equal the exact sum of its components."""

    total: str
    components: tuple[str, ...]
    reason: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CrossCheck:
        """Build from ``{"total", "components", "reason"}``."""
        return cls(
            total=str(raw["total"]),
            components=tuple(str(c) for c in raw.get("components", [])),
            reason=str(raw.get("reason", "")),
        )


@dataclass(frozen=True)
class CaseFieldMap:
    """Section label plus normalized header text -> canonical field name."""

    section: str
    header_map: dict[str, str]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CaseFieldMap:
        """Build from ``{"section", "headerMap"}``."""
        return cls(section=str(raw.get("section", "")), header_map=dict(raw.get("headerMap") or {}))


@dataclass(frozen=True)
class CaseRules:
    """Case-level checks: row count metric and identifier field."""

    case_count_metric: str | None
    case_id_field: str
    duplicate_policy: Literal["fail", "warn"] = "fail"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CaseRules:
        """Build from ``{"caseCountMetric", "caseIdField", "duplicatePolicy"}``."""
        policy = raw.get("duplicatePolicy", "fail")
        if policy not in DUPLICATE_POLICIES:
            msg = f"Unknown duplicatePolicy: {policy}"
            raise ValueError(msg)
        return cls(
            case_count_metric=raw.get("caseCountMetric") or None,
            case_id_field=str(raw.get("caseIdField", "")),
            duplicate_policy=policy,
        )


@dataclass(frozen=True)
class CarryOverRule:
    """Derive a target metric's effective value from a source metric."""

    source_metric: str
    target_metric: str
    operation: Literal["add", "replace"]
    description: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CarryOverRule:
        """Build from ``{"sourceMetric", "targetMetric", "operation", "description"}``."""
        operation = raw.get("operation")
        if operation not in CARRY_OVER_OPERATIONS:
            msg = f"Unknown carry-over operation: {operation}"
            raise ValueError(msg)
        return cls(
            source_metric=str(raw["sourceMetric"]),
            target_metric=str(raw["targetMetric"]),
            operation=operation,
            description=str(raw.get("description", "")),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """All rule tables needed for one analysis run."""

    metric_dictionary: dict[str, MetricDefinition]
    required_metrics: tuple[str, ...]
    metric_cell_map: dict[str, CellMapping]
    metric_rules: MetricRules
    cross_checks: tuple[CrossCheck, ...]
    case_field_map: CaseFieldMap
    case_rules: CaseRules
    carry_over_rules: tuple[CarryOverRule, ...]

    def with_mapping_override(self, override: dict[str, CellMapping] | None) -> PipelineConfig:
        """Return a copy whose cell map has ``override`` entries merged on top."""
        if not override:
            return self
        merged = {**self.metric_cell_map, **override}
        return PipelineConfig(
            metric_dictionary=self.metric_dictionary,
            required_metrics=self.required_metrics,
            metric_cell_map=merged,
            metric_rules=self.metric_rules,
            cross_checks=self.cross_checks,
            case_field_map=self.case_field_map,
            case_rules=self.case_rules,
            carry_over_rules=self.carry_over_rules,
        )


# =============================================================================
# JSON Loaders
# =============================================================================


def _read_json(filename: str, config_dir: Path | None = None) -> Any:
    """Read a config JSON file, tolerating a UTF-8 byte order mark.

    Raises
    ------
    FileNotFoundError
        If the file is missing.
    json.JSONDecodeError
        If the file exists but is not valid JSON.
    """
    config_path = (config_dir or CONFIG_DIR) / filename
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open(encoding="utf-8-sig") as f:
        return json.load(f)


def get_metric_dictionary(config_dir: Path | None = None) -> dict[str, MetricDefinition]:
    """Load metric name -> pattern definitions in declaration order."""
    raw = cast("dict[str, Any]", _read_json("metric_dictionary.json", config_dir))
    return {name: MetricDefinition.from_dict(name, entry) for name, entry in raw.items()}


def get_required_metrics(config_dir: Path | None = None) -> tuple[str, ...]:
    """Load the ordered list of metrics that must be present and mapped."""
    return tuple(cast("list[str]", _read_json("required_metrics.json", config_dir)))


def get_metric_cell_map(config_dir: Path | None = None) -> dict[str, CellMapping]:
    """Load metric name -> destination cell mapping."""
    raw = cast("dict[str, Any]", _read_json("metric_cell_map.json", config_dir))
    return {name: CellMapping.from_dict(entry) for name, entry in raw.items()}


def get_metric_rules(config_dir: Path | None = None) -> MetricRules:
    """Load bounds defaults and overrides."""
    return MetricRules.from_dict(_read_json("metric_rules.json", config_dir))


def get_cross_checks(config_dir: Path | None = None) -> tuple[CrossCheck, ...]:
    """Load total/components cross-check definitions."""
    return tuple(CrossCheck.from_dict(entry) for entry in _read_json("cross_checks.json", config_dir))


def get_case_field_map(config_dir: Path | None = None) -> CaseFieldMap:
    """Load the case table header mapping."""
    return CaseFieldMap.from_dict(_read_json("case_field_map.json", config_dir))


def get_case_rules(config_dir: Path | None = None) -> CaseRules:
    """Load case count and duplicate identifier rules."""
    return CaseRules.from_dict(_read_json("case_rules.json", config_dir))


def get_carry_over_rules(config_dir: Path | None = None) -> tuple[CarryOverRule, ...]:
    """Load carry-over rules in declared order."""
    return tuple(
        CarryOverRule.from_dict(entry) for entry in _read_json("carry_over_rules.json", config_dir)
    )


def parse_mapping_override(raw: dict[str, Any] | None) -> dict[str, CellMapping]:
    """Convert a raw ``{name: {"sheet", "cell"}}`` payload into cell mappings.

    Raises
    ------
    ValueError
        If the payload is not a mapping of objects.
    """
    if not raw:
        return {}
    if not isinstance(raw, dict) or not all(isinstance(v, dict) for v in raw.values()):
        msg = "Mapping override must be an object of {sheet, cell} entries"
        raise ValueError(msg)
    return {name: CellMapping.from_dict(entry) for name, entry in raw.items()}


def load_pipeline_config(
    config_dir: Path | None = None,
    mapping_override: dict[str, CellMapping] | None = None,
) -> PipelineConfig:
    """Load every rule table into a :class:`PipelineConfig`.

    Parameters
    ----------
    config_dir : Path | None, optional
        Directory holding the JSON files; defaults to ``CONFIG_DIR``.
    mapping_override : dict[str, CellMapping] | None, optional
        Entries merged over the stored cell map (e.g. from an edited mapping).

    Returns
    -------
    PipelineConfig
        Read-only configuration for one analysis run.
    """
    config = PipelineConfig(
        metric_dictionary=get_metric_dictionary(config_dir),
        required_metrics=get_required_metrics(config_dir),
        metric_cell_map=get_metric_cell_map(config_dir),
        metric_rules=get_metric_rules(config_dir),
        cross_checks=get_cross_checks(config_dir),
        case_field_map=get_case_field_map(config_dir),
        case_rules=get_case_rules(config_dir),
        carry_over_rules=get_carry_over_rules(config_dir),
    )
    logger.debug(
        "Loaded config: %d metrics, %d required, %d mapped",
        len(config.metric_dictionary),
        len(config.required_metrics),
        len(config.metric_cell_map),
    )
    return config.with_mapping_override(mapping_override)


def save_metric_cell_map(mapping: dict[str, CellMapping], config_dir: Path | None = None) -> Path:
    """Persist an edited metric cell map to ``metric_cell_map.json``.

    Parameters
    ----------
    mapping : dict[str, CellMapping]
        Full mapping to store.
    config_dir : Path | None, optional
        Target directory; defaults to ``CONFIG_DIR``.

    Returns
    -------
    Path
        Location of the written file.
    """
    target_dir = config_dir or CONFIG_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    filepath = target_dir / "metric_cell_map.json"

    with filepath.open("w", encoding="utf-8") as f:
        json.dump({name: m.to_dict() for name, m in mapping.items()}, f, indent=2, ensure_ascii=False)

    logger.info("Saved metric cell map: %s", filepath)
    return filepath
