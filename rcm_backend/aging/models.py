"""Receivable and aging data models."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from ..errors import PaymentPostingError
from ..utils import ZERO, to_money


class ReceivableStatus(str, Enum):
    OPEN = "open"
    PARTIALLY_PAID = "partially-paid"
    PAID = "paid"
    WRITTEN_OFF = "written-off"


@dataclass(frozen=True)
class Receivable:
    """Money owed by a payer for one submitted claim.

    Immutable. Every payment or write-off returns a new value and the
    ledger swaps it in, so ``paid + balance == billed`` holds for every
    instance that exists.
    """

    claim_id: str
    payer_id: str
    billed: Decimal
    paid: Decimal
    balance: Decimal
    outstanding_since: date
    status: ReceivableStatus = ReceivableStatus.OPEN
    last_payment_date: date | None = None
    write_off_reason: str | None = None

    def __post_init__(self) -> None:
        if self.billed < ZERO or self.paid < ZERO or self.balance < ZERO:
            raise ValueError(f"Receivable {self.claim_id} amounts must not be negative")
        if self.paid + self.balance != self.billed:
            raise ValueError(
                f"Receivable {self.claim_id}: paid {self.paid} + balance {self.balance} "
                f"!= billed {self.billed}"
            )

    @classmethod
    def open(
        cls,
        claim_id: str,
        payer_id: str,
        billed: Decimal | int | float | str,
        outstanding_since: date,
    ) -> Receivable:
        amount = to_money(billed)
        return cls(
            claim_id=claim_id,
            payer_id=payer_id,
            billed=amount,
            paid=ZERO,
            balance=amount,
            outstanding_since=outstanding_since,
            status=ReceivableStatus.OPEN if amount > ZERO else ReceivableStatus.PAID,
        )

    @property
    def is_open(self) -> bool:
        return self.status in (ReceivableStatus.OPEN, ReceivableStatus.PARTIALLY_PAID)

    def age_on(self, as_of: date) -> int:
        """Whole days outstanding, never negative."""
        return max(0, (as_of - self.outstanding_since).days)

    def apply_payment(self, amount: Decimal | int | float | str, paid_on: date) -> Receivable:
        """Return a copy with the payment posted.

        Raises:
            PaymentPostingError: If the receivable is closed, or the amount is
                not positive or exceeds the balance
        """
        try:
            payment = to_money(amount)
        except ValueError as e:
            raise PaymentPostingError(f"Invalid payment amount for {self.claim_id}: {e}") from e

        if not self.is_open:
            raise PaymentPostingError(
                f"Receivable {self.claim_id} is {self.status.value}; payment not accepted"
            )
        if payment <= ZERO:
            raise PaymentPostingError(
                f"Payment for {self.claim_id} must be positive, got {payment}"
            )
        if payment > self.balance:
            raise PaymentPostingError(
                f"Payment {payment} exceeds balance {self.balance} for {self.claim_id}"
            )

        balance = self.balance - payment
        return replace(
            self,
            paid=self.paid + payment,
            balance=balance,
            status=ReceivableStatus.PAID if balance == ZERO else ReceivableStatus.PARTIALLY_PAID,
            last_payment_date=paid_on,
        )

    def write_off(self, reason: str | None = None) -> Receivable:
        """Close the receivable. The outstanding balance stays on record."""
        if self.status == ReceivableStatus.WRITTEN_OFF:
            return self
        if self.status == ReceivableStatus.PAID:
            raise PaymentPostingError(f"Receivable {self.claim_id} is already paid")
        return replace(self, status=ReceivableStatus.WRITTEN_OFF, write_off_reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "payer_id": self.payer_id,
            "billed": str(self.billed),
            "paid": str(self.paid),
            "balance": str(self.balance),
            "outstanding_since": self.outstanding_since.isoformat(),
            "status": self.status.value,
            "last_payment_date": (
                self.last_payment_date.isoformat() if self.last_payment_date else None
            ),
            "write_off_reason": self.write_off_reason,
        }


@dataclass(frozen=True)
class BucketBoundary:
    """An inclusive day range; ``upper=None`` means open-ended."""

    label: str
    lower: int
    upper: int | None = None

    def __post_init__(self) -> None:
        if self.lower < 0:
            raise ValueError(f"Bucket {self.label} lower bound must be >= 0")
        if self.upper is not None and self.upper < self.lower:
            raise ValueError(f"Bucket {self.label} upper bound is below its lower bound")

    def contains(self, age_days: int) -> bool:
        return age_days >= self.lower and (self.upper is None or age_days <= self.upper)


DEFAULT_BUCKETS: tuple[BucketBoundary, ...] = (
    BucketBoundary("0-30", 0, 30),
    BucketBoundary("31-60", 31, 60),
    BucketBoundary("61-90", 61, 90),
    BucketBoundary("90+", 91, None),
)


def validate_buckets(buckets: Sequence[BucketBoundary]) -> tuple[BucketBoundary, ...]:
    """Check buckets start at day 0, are contiguous and end open-ended.

    Raises:
        ValueError: If the boundaries leave a gap, overlap, or stop short
    """
    if not buckets:
        raise ValueError("At least one aging bucket is required")

    ordered = tuple(buckets)
    if ordered[0].lower != 0:
        raise ValueError("The first aging bucket must start at day 0")

    labels = [bucket.label for bucket in ordered]
    if len(set(labels)) != len(labels):
        raise ValueError("Aging bucket labels must be unique")

    for previous, current in zip(ordered, ordered[1:]):
        if previous.upper is None:
            raise ValueError(f"Only the last aging bucket may be open-ended ({previous.label})")
        if current.lower != previous.upper + 1:
            raise ValueError(
                f"Aging buckets {previous.label} and {current.label} are not contiguous"
            )

    if ordered[-1].upper is not None:
        raise ValueError("The last aging bucket must be open-ended")
    return ordered


@dataclass(frozen=True)
class AgingBucket:
    """Aggregate of open receivables whose age falls in one range."""

    label: str
    lower: int
    upper: int | None
    balance: Decimal = ZERO
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "lower": self.lower,
            "upper": self.upper,
            "balance": str(self.balance),
            "count": self.count,
        }


class RiskCategory(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RiskThresholds:
    """Days-outstanding and balance levels at which a receivable escalates."""

    critical_days: int = 120
    critical_balance: Decimal = Decimal("10000.00")
    high_days: int = 90
    high_balance: Decimal = Decimal("5000.00")
    medium_days: int = 60
    medium_balance: Decimal = Decimal("1000.00")

    def __post_init__(self) -> None:
        if not (self.critical_days > self.high_days > self.medium_days >= 0):
            raise ValueError("Risk day thresholds must satisfy critical > high > medium >= 0")
        if not (self.critical_balance > self.high_balance > self.medium_balance >= ZERO):
            raise ValueError("Risk balance thresholds must satisfy critical > high > medium >= 0")


@dataclass(frozen=True)
class ARSummary:
    """Headline A/R figures for one as-of date."""

    as_of: date
    total_outstanding: Decimal
    days_in_ar: float
    collection_rate: float
    receivable_count: int
    buckets: list[AgingBucket] = field(default_factory=list)
    bucket_percentages: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of.isoformat(),
            "total_outstanding": str(self.total_outstanding),
            "days_in_ar": self.days_in_ar,
            "collection_rate": self.collection_rate,
            "receivable_count": self.receivable_count,
            "buckets": [bucket.to_dict() for bucket in self.buckets],
            "bucket_percentages": dict(self.bucket_percentages),
        }
