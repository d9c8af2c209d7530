"""Accounts-receivable reporting routes. All side-effect free."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from ..lifecycle import ClaimCoordinator
from .dependencies import get_coordinator

router = APIRouter(prefix="/api/ar", tags=["accounts-receivable"])


@router.get("/aging")
def get_aging_buckets(
    as_of: date | None = Query(default=None, description="As-of date (ISO format), default today"),
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    buckets = coordinator.get_aging_buckets(as_of)
    return {
        "as_of": as_of.isoformat() if as_of else None,
        "buckets": [bucket.to_dict() for bucket in buckets],
    }


@router.get("/summary")
def get_ar_summary(
    as_of: date | None = Query(default=None, description="As-of date (ISO format), default today"),
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    return coordinator.get_ar_summary(as_of).to_dict()


@router.get("/receivables")
def list_receivables(
    as_of: date | None = Query(default=None, description="As-of date (ISO format), default today"),
    risk: str | None = Query(default=None, description="Filter by risk category"),
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Open receivables with their collection risk, riskiest first."""
    rated = coordinator.get_receivable_risks(as_of)
    if risk:
        rated = [(receivable, category) for receivable, category in rated if category.value == risk]
    return {
        "receivables": [
            {**receivable.to_dict(), "risk": category.value} for receivable, category in rated
        ],
        "total": len(rated),
    }
