"""Practice settings loaded from YAML.

Example::

    scoring:
      blocking: 30
      warning: 10
      info: 1
    aging:
      buckets:
        - {label: "0-30", lower: 0, upper: 30}
        - {label: "31+", lower: 31}
      risk:
        critical_days: 150
    corrections:
      auto_apply_threshold: 0.9
    automatic_mode: true
    meta_issue_severity: blocking
    max_correction_passes: 2
"""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .aging import DEFAULT_BUCKETS, BucketBoundary, RiskThresholds, validate_buckets
from .corrections import CorrectionPolicy
from .errors import SettingsError
from .models import Severity
from .rules import ScoringWeights

logger = logging.getLogger(__name__)


class ScoringSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    blocking: float = Field(default=25.0, ge=0)
    warning: float = Field(default=10.0, ge=0)
    info: float = Field(default=2.0, ge=0)


class BucketSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str = Field(..., min_length=1)
    lower: int = Field(..., ge=0)
    upper: int | None = Field(default=None, ge=0)


def _default_buckets() -> list[BucketSettings]:
    return [
        BucketSettings(label=b.label, lower=b.lower, upper=b.upper) for b in DEFAULT_BUCKETS
    ]


class RiskSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    critical_days: int = Field(default=120, ge=0)
    critical_balance: Decimal = Field(default=Decimal("10000.00"), ge=0)
    high_days: int = Field(default=90, ge=0)
    high_balance: Decimal = Field(default=Decimal("5000.00"), ge=0)
    medium_days: int = Field(default=60, ge=0)
    medium_balance: Decimal = Field(default=Decimal("1000.00"), ge=0)


class AgingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    buckets: list[BucketSettings] = Field(default_factory=_default_buckets)
    risk: RiskSettings = Field(default_factory=RiskSettings)


class CorrectionSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    auto_apply_threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class PracticeSettings(BaseModel):
    """Per-practice tuning of scoring, aging and correction behaviour."""

    model_config = ConfigDict(extra="forbid")

    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    aging: AgingSettings = Field(default_factory=AgingSettings)
    corrections: CorrectionSettings = Field(default_factory=CorrectionSettings)
    automatic_mode: bool = False
    meta_issue_severity: Severity = Severity.WARNING
    max_correction_passes: int = Field(default=3, ge=1, le=10)

    def scoring_weights(self) -> ScoringWeights:
        return ScoringWeights(
            blocking=self.scoring.blocking,
            warning=self.scoring.warning,
            info=self.scoring.info,
        )

    def bucket_boundaries(self) -> tuple[BucketBoundary, ...]:
        return validate_buckets(
            [BucketBoundary(b.label, b.lower, b.upper) for b in self.aging.buckets]
        )

    def risk_thresholds(self) -> RiskThresholds:
        return RiskThresholds(**self.aging.risk.model_dump())

    def correction_policy(self) -> CorrectionPolicy:
        return CorrectionPolicy(auto_apply_threshold=self.corrections.auto_apply_threshold)


def parse_settings(data: dict[str, Any] | None) -> PracticeSettings:
    """Validate a parsed settings document.

    Raises:
        SettingsError: If any field is invalid or the derived weights,
            buckets or risk thresholds are inconsistent
    """
    try:
        settings = PracticeSettings.model_validate(data or {})
    except ValidationError as e:
        errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "error": err["msg"],
            }
            for err in e.errors()
        ]
        raise SettingsError(f"Invalid practice settings: {len(errors)} error(s)", errors=errors) from e

    # Cross-field checks live on the domain objects themselves
    errors = []
    for name, build in (
        ("scoring", settings.scoring_weights),
        ("aging.buckets", settings.bucket_boundaries),
        ("aging.risk", settings.risk_thresholds),
    ):
        try:
            build()
        except ValueError as e:
            errors.append({"field": name, "error": str(e)})

    if errors:
        raise SettingsError(f"Invalid practice settings: {len(errors)} error(s)", errors=errors)
    return settings


def load_settings(path: str | Path | None = None) -> PracticeSettings:
    """Load practice settings from YAML; a missing file yields the defaults.

    Raises:
        SettingsError: If the file is not valid YAML or fails validation
    """
    if not path or not Path(path).exists():
        logger.info(f"No practice settings at {path}, using defaults")
        return PracticeSettings()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(f"Practice settings file is not valid YAML: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise SettingsError("Practice settings must be a mapping")

    settings = parse_settings(data)
    logger.info(f"Loaded practice settings from {path}")
    return settings
