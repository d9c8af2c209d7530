"""A/R aging and collection KPIs.

All functions are pure over a collection of receivables and an as-of date.
Empty input yields zero-filled buckets and zero KPIs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from ..utils import ZERO
from .models import (
    DEFAULT_BUCKETS,
    AgingBucket,
    ARSummary,
    BucketBoundary,
    Receivable,
    RiskCategory,
    RiskThresholds,
    validate_buckets,
)


def _open_only(receivables: Iterable[Receivable]) -> list[Receivable]:
    return [r for r in receivables if r.is_open]


def compute_aging(
    receivables: Iterable[Receivable],
    as_of: date,
    buckets: Sequence[BucketBoundary] | None = None,
) -> list[AgingBucket]:
    """Group open balances by age. Every configured bucket is returned."""
    boundaries = validate_buckets(buckets or DEFAULT_BUCKETS)
    totals = {boundary.label: [ZERO, 0] for boundary in boundaries}

    for receivable in _open_only(receivables):
        age = receivable.age_on(as_of)
        for boundary in boundaries:
            if boundary.contains(age):
                totals[boundary.label][0] += receivable.balance
                totals[boundary.label][1] += 1
                break

    return [
        AgingBucket(
            label=boundary.label,
            lower=boundary.lower,
            upper=boundary.upper,
            balance=totals[boundary.label][0],
            count=totals[boundary.label][1],
        )
        for boundary in boundaries
    ]


def days_in_ar(receivables: Iterable[Receivable], as_of: date) -> float:
    """Balance-weighted average age of open receivables."""
    weighted = ZERO
    total = ZERO
    for receivable in _open_only(receivables):
        weighted += receivable.balance * receivable.age_on(as_of)
        total += receivable.balance
    if total == ZERO:
        return 0.0
    return float(weighted / total)


def collection_rate(receivables: Iterable[Receivable]) -> float:
    """Share of everything billed that has been collected, in [0, 1]."""
    billed = ZERO
    paid = ZERO
    for receivable in receivables:
        billed += receivable.billed
        paid += receivable.paid
    if billed == ZERO:
        return 0.0
    return float(paid / billed)


def risk_category(
    receivable: Receivable,
    as_of: date,
    thresholds: RiskThresholds | None = None,
) -> RiskCategory:
    """Escalate on whichever of age or balance is worse."""
    thresholds = thresholds or RiskThresholds()
    age = receivable.age_on(as_of)
    balance = receivable.balance

    if age > thresholds.critical_days or balance > thresholds.critical_balance:
        return RiskCategory.CRITICAL
    if age > thresholds.high_days or balance > thresholds.high_balance:
        return RiskCategory.HIGH
    if age > thresholds.medium_days or balance > thresholds.medium_balance:
        return RiskCategory.MEDIUM
    return RiskCategory.LOW


def summarize(
    receivables: Iterable[Receivable],
    as_of: date,
    buckets: Sequence[BucketBoundary] | None = None,
) -> ARSummary:
    items = list(receivables)
    aging = compute_aging(items, as_of, buckets)
    total: Decimal = sum((bucket.balance for bucket in aging), ZERO)

    percentages = {
        bucket.label: (round(float(bucket.balance / total * 100), 2) if total > ZERO else 0.0)
        for bucket in aging
    }

    return ARSummary(
        as_of=as_of,
        total_outstanding=total,
        days_in_ar=round(days_in_ar(items, as_of), 2),
        collection_rate=round(collection_rate(items), 4),
        receivable_count=sum(bucket.count for bucket in aging),
        buckets=aging,
        bucket_percentages=percentages,
    )
