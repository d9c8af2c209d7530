"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

# Set test environment before importing the package
_temp_dir = tempfile.mkdtemp(prefix="rcm-tests-")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUDIT_DB_PATH"] = str(Path(_temp_dir) / "audit.db")
os.environ["RCM_SETTINGS_PATH"] = str(Path(_temp_dir) / "missing_settings.yaml")
os.environ["CLEARINGHOUSE_URL"] = ""

from rcm_backend.audit import AuditLog  # noqa: E402
from rcm_backend.errors import ExternalSubmissionError  # noqa: E402
from rcm_backend.gateway import SubmissionReceipt  # noqa: E402
from rcm_backend.lifecycle import ClaimCoordinator  # noqa: E402
from rcm_backend.models import Claim, ServiceLine  # noqa: E402
from rcm_backend.rules import RuleSet, load_ruleset  # noqa: E402

SERVICE_DATE = date(2026, 3, 2)
CREATED_AT = date(2026, 3, 9)
NOW = datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)


def build_line(**overrides: Any) -> ServiceLine:
    values: dict[str, Any] = {
        "procedure_code": "99213",
        "diagnosis_codes": ["J06.9"],
        "units": 1,
        "charge": Decimal("150.00"),
        "service_date": SERVICE_DATE,
        "modifiers": [],
    }
    values.update(overrides)
    return ServiceLine(**values)


def build_claim(
    claim_id: str = "CLM-1001",
    lines: list[ServiceLine] | None = None,
    **overrides: Any,
) -> Claim:
    values: dict[str, Any] = {
        "claim_id": claim_id,
        "patient_id": "PAT-001",
        "provider_id": "1234567890",
        "payer_id": "AETNA",
        "service_lines": lines if lines is not None else [build_line()],
        "created_at": CREATED_AT,
    }
    values.update(overrides)
    return Claim(**values)


class FakeGateway:
    """Records submissions and answers with a receipt or a configured error."""

    def __init__(self, error: ExternalSubmissionError | None = None) -> None:
        self.error = error
        self.submitted: list[str] = []

    def submit(self, claim: Claim) -> SubmissionReceipt:
        self.submitted.append(claim.claim_id)
        if self.error is not None:
            raise self.error
        return SubmissionReceipt(
            claim_id=claim.claim_id,
            submission_id=f"SUB-{len(self.submitted):04d}",
            status="accepted",
            submitted_at=NOW,
        )


@pytest.fixture(scope="session")
def ruleset() -> RuleSet:
    """The packaged default rule catalog."""
    return load_ruleset()


@pytest.fixture
def make_line() -> Callable[..., ServiceLine]:
    return build_line


@pytest.fixture
def make_claim() -> Callable[..., Claim]:
    """Factory for claims that pass the default catalog unless overridden."""
    return build_claim


@pytest.fixture
def clean_claim() -> Claim:
    return build_claim()


@pytest.fixture
def missing_diagnosis_claim() -> Claim:
    return build_claim("CLM-2001", lines=[build_line(diagnosis_codes=[])])


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def audit_log() -> AuditLog:
    log = AuditLog(":memory:")
    yield log
    log.close()


@pytest.fixture
def coordinator(ruleset: RuleSet, gateway: FakeGateway, audit_log: AuditLog) -> ClaimCoordinator:
    return ClaimCoordinator(ruleset, gateway=gateway, audit=audit_log, clock=lambda: NOW)
