"""Lock-guarded store of receivables keyed by claim id."""

from __future__ import annotations

import logging
import threading
from datetime import date
from decimal import Decimal

from ..errors import PaymentPostingError
from .models import Receivable

logger = logging.getLogger(__name__)


class ReceivableLedger:
    """Holds the current Receivable per claim.

    Receivables are immutable; every update replaces the stored value while
    the lock is held, so ``snapshot()`` never sees a half-posted payment.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._receivables: dict[str, Receivable] = {}

    def open(
        self,
        claim_id: str,
        payer_id: str,
        billed: Decimal,
        outstanding_since: date,
    ) -> Receivable:
        """Open a receivable for a claim, or return the one already open."""
        with self._lock:
            existing = self._receivables.get(claim_id)
            if existing is not None:
                return existing
            receivable = Receivable.open(claim_id, payer_id, billed, outstanding_since)
            self._receivables[claim_id] = receivable

        logger.info(f"Opened receivable for claim {claim_id}: {receivable.billed} due from {payer_id}")
        return receivable

    def get(self, claim_id: str) -> Receivable | None:
        with self._lock:
            return self._receivables.get(claim_id)

    def post_payment(
        self,
        claim_id: str,
        amount: Decimal | int | float | str,
        paid_on: date,
    ) -> Receivable:
        """Raises PaymentPostingError for unknown claims and invalid amounts."""
        with self._lock:
            updated = self._require(claim_id).apply_payment(amount, paid_on)
            self._receivables[claim_id] = updated

        logger.info(
            f"Posted payment on claim {claim_id}: paid {updated.paid}, balance {updated.balance}"
        )
        return updated

    def write_off(self, claim_id: str, reason: str | None = None) -> Receivable:
        with self._lock:
            updated = self._require(claim_id).write_off(reason)
            self._receivables[claim_id] = updated

        logger.info(f"Wrote off receivable for claim {claim_id}: balance {updated.balance}")
        return updated

    def snapshot(self) -> tuple[Receivable, ...]:
        with self._lock:
            return tuple(self._receivables.values())

    def _require(self, claim_id: str) -> Receivable:
        receivable = self._receivables.get(claim_id)
        if receivable is None:
            raise PaymentPostingError(f"No receivable open for claim {claim_id}")
        return receivable

    def __contains__(self, claim_id: object) -> bool:
        with self._lock:
            return claim_id in self._receivables

    def __len__(self) -> int:
        with self._lock:
            return len(self._receivables)
