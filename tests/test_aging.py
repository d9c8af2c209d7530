"""Tests for receivables, the ledger and A/R aging."""

from __future__ import annotations

import random
import threading
from datetime import date, timedelta
from decimal import Decimal

import pytest

from rcm_backend.aging import (
    BucketBoundary,
    Receivable,
    ReceivableLedger,
    ReceivableStatus,
    RiskCategory,
    RiskThresholds,
    collection_rate,
    compute_aging,
    days_in_ar,
    risk_category,
    summarize,
    validate_buckets,
)
from rcm_backend.errors import PaymentPostingError

AS_OF = date(2026, 6, 30)


def receivable(claim_id, billed, age_days, payer_id="AETNA"):
    return Receivable.open(claim_id, payer_id, billed, AS_OF - timedelta(days=age_days))


def balances(buckets):
    return {bucket.label: bucket.balance for bucket in buckets}


class TestReceivable:
    """Tests for the immutable receivable value."""

    def test_open(self):
        item = receivable("C1", "100", 0)

        assert item.billed == Decimal("100.00")
        assert item.balance == Decimal("100.00")
        assert item.paid == Decimal("0.00")
        assert item.status == ReceivableStatus.OPEN

    def test_zero_billed_opens_paid(self):
        assert receivable("C1", 0, 0).status == ReceivableStatus.PAID

    def test_partial_then_full_payment(self):
        item = receivable("C1", "100", 0).apply_payment("30", AS_OF)

        assert item.status == ReceivableStatus.PARTIALLY_PAID
        assert item.paid + item.balance == item.billed

        item = item.apply_payment("70.00", AS_OF)

        assert item.status == ReceivableStatus.PAID
        assert item.balance == Decimal("0.00")
        assert item.last_payment_date == AS_OF

    def test_payment_returns_new_value(self):
        original = receivable("C1", "100", 0)

        original.apply_payment("30", AS_OF)

        assert original.balance == Decimal("100.00")

    @pytest.mark.parametrize("amount", ["0", "-5", "100.01", "abc"])
    def test_rejected_payments(self, amount):
        with pytest.raises(PaymentPostingError):
            receivable("C1", "100", 0).apply_payment(amount, AS_OF)

    def test_payment_on_paid_receivable(self):
        paid = receivable("C1", "100", 0).apply_payment("100", AS_OF)

        with pytest.raises(PaymentPostingError):
            paid.apply_payment("1", AS_OF)

    def test_write_off_keeps_balance(self):
        item = receivable("C1", "100", 0).apply_payment("40", AS_OF).write_off("denied")

        assert item.status == ReceivableStatus.WRITTEN_OFF
        assert item.balance == Decimal("60.00")
        assert item.write_off_reason == "denied"
        assert item.write_off("again") is item

    def test_write_off_paid_receivable(self):
        with pytest.raises(PaymentPostingError):
            receivable("C1", "100", 0).apply_payment("100", AS_OF).write_off()

    def test_invariant_enforced(self):
        with pytest.raises(ValueError):
            Receivable("C1", "AETNA", Decimal("10"), Decimal("5"), Decimal("6"), AS_OF)

    def test_future_service_date_ages_zero(self):
        assert receivable("C1", "100", -5).age_on(AS_OF) == 0

    def test_random_payment_sequences(self):
        """Test that any sequence of valid payments conserves the billed amount."""
        rng = random.Random(20260309)

        for _ in range(200):
            item = receivable("C1", Decimal(rng.randint(1, 500_000)) / 100, 0)
            while item.is_open:
                cents = rng.randint(1, int(item.balance * 100))
                item = item.apply_payment(Decimal(cents) / 100, AS_OF)
                assert item.paid + item.balance == item.billed
                assert item.balance >= 0
            assert item.status == ReceivableStatus.PAID


class TestAging:
    """Tests for bucket aggregation and KPIs."""

    def test_two_receivable_example(self):
        """Test $100 at 10 days with $30 paid, and $50 at 95 days."""
        items = [
            receivable("C1", "100", 10).apply_payment("30", AS_OF),
            receivable("C2", "50", 95),
        ]

        summary = summarize(items, AS_OF)

        assert balances(summary.buckets) == {
            "0-30": Decimal("70.00"),
            "31-60": Decimal("0"),
            "61-90": Decimal("0"),
            "90+": Decimal("50.00"),
        }
        assert summary.total_outstanding == Decimal("120.00")
        assert days_in_ar(items, AS_OF) == pytest.approx(45.4167, abs=1e-4)
        assert summary.days_in_ar == 45.42
        assert summary.bucket_percentages == {"0-30": 58.33, "31-60": 0.0, "61-90": 0.0, "90+": 41.67}
        assert summary.collection_rate == 0.2
        assert summary.receivable_count == 2

    def test_empty(self):
        summary = summarize([], AS_OF)

        assert [bucket.label for bucket in summary.buckets] == ["0-30", "31-60", "61-90", "90+"]
        assert all(bucket.balance == 0 and bucket.count == 0 for bucket in summary.buckets)
        assert summary.days_in_ar == 0.0
        assert summary.collection_rate == 0.0

    @pytest.mark.parametrize(
        "age,label",
        [(0, "0-30"), (30, "0-30"), (31, "31-60"), (60, "31-60"), (90, "61-90"), (91, "90+"), (400, "90+")],
    )
    def test_bucket_edges(self, age, label):
        buckets = compute_aging([receivable("C1", "10", age)], AS_OF)

        assert [bucket.label for bucket in buckets if bucket.count] == [label]

    def test_closed_receivables_excluded(self):
        items = [
            receivable("C1", "100", 10).apply_payment("100", AS_OF),
            receivable("C2", "80", 40).write_off("denied"),
            receivable("C3", "25", 40),
        ]

        buckets = compute_aging(items, AS_OF)

        assert balances(buckets)["31-60"] == Decimal("25.00")
        assert sum(bucket.count for bucket in buckets) == 1
        assert days_in_ar(items, AS_OF) == 40.0

    def test_collection_rate_counts_everything_billed(self):
        items = [
            receivable("C1", "100", 10).apply_payment("100", AS_OF),
            receivable("C2", "100", 40).write_off(),
        ]

        assert collection_rate(items) == 0.5

    def test_custom_buckets(self):
        custom = [BucketBoundary("current", 0, 14), BucketBoundary("late", 15)]

        buckets = compute_aging([receivable("C1", "10", 14), receivable("C2", "5", 15)], AS_OF, custom)

        assert balances(buckets) == {"current": Decimal("10.00"), "late": Decimal("5.00")}

    @pytest.mark.parametrize(
        "boundaries",
        [
            [BucketBoundary("a", 1, 30), BucketBoundary("b", 31)],
            [BucketBoundary("a", 0, 30), BucketBoundary("b", 40)],
            [BucketBoundary("a", 0, 30), BucketBoundary("b", 31, 60)],
            [BucketBoundary("a", 0), BucketBoundary("b", 31)],
            [BucketBoundary("a", 0, 30), BucketBoundary("a", 31)],
            [],
        ],
    )
    def test_invalid_buckets(self, boundaries):
        with pytest.raises(ValueError):
            validate_buckets(boundaries)

    def test_summary_to_dict(self):
        data = summarize([receivable("C1", "10", 5)], AS_OF).to_dict()

        assert data["total_outstanding"] == "10.00"
        assert data["buckets"][0]["count"] == 1


class TestRisk:
    """Tests for receivable risk categories."""

    @pytest.mark.parametrize(
        "billed,age,expected",
        [
            ("500", 30, RiskCategory.LOW),
            ("500", 61, RiskCategory.MEDIUM),
            ("1500", 5, RiskCategory.MEDIUM),
            ("500", 91, RiskCategory.HIGH),
            ("6000", 5, RiskCategory.HIGH),
            ("500", 121, RiskCategory.CRITICAL),
            ("12000", 5, RiskCategory.CRITICAL),
            ("500", 120, RiskCategory.HIGH),
        ],
    )
    def test_categories(self, billed, age, expected):
        assert risk_category(receivable("C1", billed, age), AS_OF) == expected

    def test_custom_thresholds(self):
        thresholds = RiskThresholds(critical_days=30, high_days=20, medium_days=10)

        assert risk_category(receivable("C1", "10", 31), AS_OF, thresholds) == RiskCategory.CRITICAL

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValueError):
            RiskThresholds(critical_days=30, high_days=60)


class TestLedger:
    """Tests for the lock-guarded receivable store."""

    def test_open_is_idempotent(self):
        ledger = ReceivableLedger()

        first = ledger.open("C1", "AETNA", Decimal("100"), AS_OF)
        second = ledger.open("C1", "AETNA", Decimal("999"), AS_OF)

        assert second is first
        assert len(ledger) == 1
        assert "C1" in ledger

    def test_post_payment(self):
        ledger = ReceivableLedger()
        ledger.open("C1", "AETNA", Decimal("100"), AS_OF)

        updated = ledger.post_payment("C1", "25.50", AS_OF)

        assert updated.balance == Decimal("74.50")
        assert ledger.get("C1") == updated

    def test_unknown_claim(self):
        with pytest.raises(PaymentPostingError, match="No receivable"):
            ReceivableLedger().post_payment("missing", "10", AS_OF)

    def test_overpayment_leaves_ledger_unchanged(self):
        ledger = ReceivableLedger()
        ledger.open("C1", "AETNA", Decimal("100"), AS_OF)

        with pytest.raises(PaymentPostingError):
            ledger.post_payment("C1", "150", AS_OF)

        assert ledger.get("C1").balance == Decimal("100.00")

    def test_snapshot_is_a_copy(self):
        ledger = ReceivableLedger()
        ledger.open("C1", "AETNA", Decimal("100"), AS_OF)
        snapshot = ledger.snapshot()

        ledger.post_payment("C1", "10", AS_OF)

        assert snapshot[0].balance == Decimal("100.00")

    def test_concurrent_payments(self):
        """Test that parallel postings never lose or over-apply a payment."""
        ledger = ReceivableLedger()
        ledger.open("C1", "AETNA", Decimal("100"), AS_OF)
        failures = []

        def pay():
            for _ in range(20):
                try:
                    ledger.post_payment("C1", "1", AS_OF)
                except PaymentPostingError:
                    failures.append(1)

        threads = [threading.Thread(target=pay) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        final = ledger.get("C1")
        assert final.balance == Decimal("0.00")
        assert final.status == ReceivableStatus.PAID
        assert len(failures) == 60
