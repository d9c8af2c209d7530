"""Data models for correction suggestions."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FixMode(str, Enum):
    """Whether a suggestion may be applied without a human looking at it."""

    AUTO = "auto"
    MANUAL_REVIEW = "manual-review"


class SuggestionStatus(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class FieldEdit:
    """Replace the value at ``field_path``, provided it still equals ``expected``."""

    field_path: str
    expected: Any
    new_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_path": self.field_path,
            "expected": _jsonable(self.expected),
            "new_value": _jsonable(self.new_value),
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def make_suggestion_id(issue_id: str, edits: tuple[FieldEdit, ...]) -> str:
    content = issue_id + "|" + "|".join(
        f"{edit.field_path}={edit.new_value!r}" for edit in edits
    )
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass
class CorrectionSuggestion:
    """A proposed fix for one validation issue.

    Status moves from ``proposed`` to ``accepted`` or ``rejected`` exactly
    once; everything else is fixed at creation.
    """

    suggestion_id: str
    issue_id: str
    rule_id: str
    edits: tuple[FieldEdit, ...]
    confidence: float
    mode: FixMode
    rationale: str
    status: SuggestionStatus = SuggestionStatus.PROPOSED
    rejection_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.edits:
            raise ValueError("A correction suggestion needs at least one field edit")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    @property
    def is_open(self) -> bool:
        return self.status == SuggestionStatus.PROPOSED

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestion_id": self.suggestion_id,
            "issue_id": self.issue_id,
            "rule_id": self.rule_id,
            "edits": [edit.to_dict() for edit in self.edits],
            "confidence": self.confidence,
            "applicability": self.mode.value,
            "rationale": self.rationale,
            "status": self.status.value,
            "rejection_reason": self.rejection_reason,
        }


@dataclass(frozen=True)
class CorrectionPolicy:
    """Confidence a suggestion needs before it is applied automatically."""

    auto_apply_threshold: float = 0.8

    def __post_init__(self) -> None:
        if not 0.0 <= self.auto_apply_threshold <= 1.0:
            raise ValueError(
                f"auto_apply_threshold must be within [0, 1], got {self.auto_apply_threshold}"
            )


@dataclass
class ProposedFix:
    """What a fixer returns before the engine assigns identifiers."""

    edits: list[FieldEdit]
    confidence: float
    mode: FixMode
    rationale: str
