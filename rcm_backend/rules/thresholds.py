"""Scoring weights for validation results."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..models import Severity, ValidationIssue

MAX_SCORE = 100.0


@dataclass(frozen=True)
class ScoringWeights:
    """Points deducted from a clean score of 100 per issue severity."""

    blocking: float = 25.0
    warning: float = 10.0
    info: float = 2.0

    def __post_init__(self) -> None:
        if not (self.blocking > self.warning > self.info >= 0):
            raise ValueError(
                "Scoring weights must satisfy blocking > warning > info >= 0, got "
                f"{self.blocking}/{self.warning}/{self.info}"
            )

    def weight_for(self, severity: Severity) -> float:
        if severity == Severity.BLOCKING:
            return self.blocking
        if severity == Severity.WARNING:
            return self.warning
        return self.info

    def score(self, issues: Iterable[ValidationIssue]) -> float:
        deduction = sum(self.weight_for(issue.severity) for issue in issues)
        return self.clamp_score(MAX_SCORE - deduction)

    @staticmethod
    def clamp_score(score: float) -> float:
        if score < 0.0:
            return 0.0
        if score > MAX_SCORE:
            return MAX_SCORE
        return score
