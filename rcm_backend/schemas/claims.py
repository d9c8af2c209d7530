"""Request schemas for claim and adjudication endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..lifecycle import AdjudicationEvent, AdjudicationOutcome
from ..models import Claim, ServiceLine
from ..utils import parse_flexible_date, to_money


def _flexible_date(value: Any) -> Any:
    # Accept US and compact formats in addition to ISO
    if isinstance(value, str):
        parsed = parse_flexible_date(value)
        if parsed is None:
            raise ValueError(f"Unrecognized date: {value!r}")
        return parsed
    return value


class ServiceLinePayload(BaseModel):
    procedure_code: str = ""
    diagnosis_codes: list[str] = Field(default_factory=list)
    units: int = 1
    charge: Decimal
    service_date: date
    modifiers: list[str] = Field(default_factory=list)

    @field_validator("service_date", mode="before")
    @classmethod
    def parse_service_date(cls, v: Any) -> Any:
        return _flexible_date(v)

    def to_service_line(self) -> ServiceLine:
        return ServiceLine(
            procedure_code=self.procedure_code,
            diagnosis_codes=list(self.diagnosis_codes),
            units=self.units,
            charge=to_money(self.charge),
            service_date=self.service_date,
            modifiers=list(self.modifiers),
        )


class ClaimPayload(BaseModel):
    """A raw claim record as supplied by the encounter system."""

    claim_id: str = Field(..., min_length=1, max_length=64)
    patient_id: str = ""
    provider_id: str = ""
    payer_id: str = ""
    service_lines: list[ServiceLinePayload] = Field(default_factory=list, max_length=100)
    created_at: date | None = None
    coverage_start: date | None = None
    coverage_end: date | None = None

    @field_validator("created_at", "coverage_start", "coverage_end", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _flexible_date(v)

    def to_claim(self) -> Claim:
        claim = Claim(
            claim_id=self.claim_id,
            patient_id=self.patient_id,
            provider_id=self.provider_id,
            payer_id=self.payer_id,
            service_lines=[line.to_service_line() for line in self.service_lines],
            coverage_start=self.coverage_start,
            coverage_end=self.coverage_end,
        )
        if self.created_at is not None:
            claim.created_at = self.created_at
        return claim


class CorrectionRequest(BaseModel):
    auto_apply: bool | None = None


class RejectSuggestionRequest(BaseModel):
    reason: str = Field(default="", max_length=500)


class ConfirmSubmissionRequest(BaseModel):
    confirmed_by: str = Field(..., min_length=1, max_length=128)


class WriteOffRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class AdjudicationPayload(BaseModel):
    event_id: str = Field(..., min_length=1)
    claim_id: str = Field(..., min_length=1)
    outcome: AdjudicationOutcome
    paid_amount: Decimal = Decimal("0")
    received_on: date | None = None
    reason: str | None = None

    @field_validator("received_on", mode="before")
    @classmethod
    def parse_received_on(cls, v: Any) -> Any:
        return _flexible_date(v)

    def to_event(self) -> AdjudicationEvent:
        return AdjudicationEvent(
            event_id=self.event_id,
            claim_id=self.claim_id,
            outcome=self.outcome,
            paid_amount=self.paid_amount,
            received_on=self.received_on,
            reason=self.reason,
        )
