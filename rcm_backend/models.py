"""Domain models for claims and validation results."""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from .utils import ZERO, parse_flexible_date, require_date, to_money


class Severity(str, Enum):
    """Severity of a validation finding."""

    BLOCKING = "blocking"
    WARNING = "warning"
    INFO = "info"


class ClaimState(str, Enum):
    """Lifecycle states of a claim."""

    DRAFT = "draft"
    VALIDATING = "validating"
    INVALID = "invalid"
    VALID = "valid"
    CORRECTING = "correcting"
    SUBMITTABLE = "submittable"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    DENIED = "denied"
    PAID = "paid"
    WRITTEN_OFF = "written-off"


def make_issue_id(rule_id: str, field_path: str, message: str, occurrence: int = 0) -> str:
    """Derive a stable issue identifier from what the issue says."""
    content = f"{rule_id}|{field_path}|{message}|{occurrence}"
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding produced by one rule during one validation run."""

    issue_id: str
    rule_id: str
    severity: Severity
    field_path: str
    message: str
    detected_at: datetime = field(compare=False)
    is_meta: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING

    def to_dict(self) -> dict[str, Any]:
        return {
            "issue_id": self.issue_id,
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "field_path": self.field_path,
            "message": self.message,
            "detected_at": self.detected_at.isoformat(),
            "is_meta": self.is_meta,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Score and issues from one validation run."""

    score: float
    issues: tuple[ValidationIssue, ...]
    ruleset_version: str
    evaluated_at: datetime = field(compare=False)

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_blocking]

    @property
    def is_clean(self) -> bool:
        """True when nothing gates submission; warnings and infos are allowed."""
        return not self.blocking_issues


@dataclass
class ServiceLine:
    """One rendered service on a claim."""

    procedure_code: str
    diagnosis_codes: list[str]
    units: int
    charge: Decimal
    service_date: date
    modifiers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceLine:
        diagnosis_codes = data.get("diagnosis_codes")
        if diagnosis_codes is None:
            single = data.get("diagnosis_code")
            diagnosis_codes = [single] if single else []
        return cls(
            procedure_code=str(data.get("procedure_code") or ""),
            diagnosis_codes=[str(code) for code in diagnosis_codes],
            units=int(data.get("units", 1)),
            charge=to_money(data.get("charge", ZERO)),
            service_date=require_date(data.get("service_date"), "service_date"),
            modifiers=[str(m) for m in data.get("modifiers") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "procedure_code": self.procedure_code,
            "diagnosis_codes": list(self.diagnosis_codes),
            "units": self.units,
            "charge": str(self.charge),
            "service_date": self.service_date.isoformat(),
            "modifiers": list(self.modifiers),
        }


@dataclass
class Claim:
    """A reimbursement request for one encounter.

    The claim owns its service lines and its current issue list. Issues are
    replaced wholesale by each validation run; ``revision`` increases on every
    service-line edit and ``dirty`` marks edits that still need re-validation.
    """

    claim_id: str
    patient_id: str
    provider_id: str
    payer_id: str
    service_lines: list[ServiceLine]
    created_at: date = field(default_factory=date.today)
    state: ClaimState = ClaimState.DRAFT
    score: float | None = None
    issues: list[ValidationIssue] = field(default_factory=list)
    ruleset_version: str | None = None
    coverage_start: date | None = None
    coverage_end: date | None = None
    revision: int = 0
    dirty: bool = True
    cloned_from: str | None = None

    @property
    def billed_amount(self) -> Decimal:
        return sum((line.charge for line in self.service_lines), ZERO)

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_blocking]

    @property
    def has_blocking_issues(self) -> bool:
        return any(issue.is_blocking for issue in self.issues)

    def mark_edited(self) -> None:
        self.revision += 1
        self.dirty = True

    def copy(self) -> Claim:
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Claim:
        """Build a draft claim from a plain structured record.

        Raises:
            ValueError: If a required date or amount cannot be parsed
        """
        created_at = parse_flexible_date(data.get("created_at")) or date.today()
        return cls(
            claim_id=str(data["claim_id"]),
            patient_id=str(data.get("patient_id") or ""),
            provider_id=str(data.get("provider_id") or ""),
            payer_id=str(data.get("payer_id") or ""),
            service_lines=[ServiceLine.from_dict(line) for line in data.get("service_lines", [])],
            created_at=created_at,
            coverage_start=parse_flexible_date(data.get("coverage_start")),
            coverage_end=parse_flexible_date(data.get("coverage_end")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "patient_id": self.patient_id,
            "provider_id": self.provider_id,
            "payer_id": self.payer_id,
            "service_lines": [line.to_dict() for line in self.service_lines],
            "created_at": self.created_at.isoformat(),
            "state": self.state.value,
            "score": self.score,
            "issues": [issue.to_dict() for issue in self.issues],
            "ruleset_version": self.ruleset_version,
            "coverage_start": self.coverage_start.isoformat() if self.coverage_start else None,
            "coverage_end": self.coverage_end.isoformat() if self.coverage_end else None,
            "revision": self.revision,
            "billed_amount": str(self.billed_amount),
            "cloned_from": self.cloned_from,
        }
