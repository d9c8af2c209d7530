"""Accounts-receivable aging engine."""

from .engine import collection_rate, compute_aging, days_in_ar, risk_category, summarize
from .ledger import ReceivableLedger
from .models import (
    DEFAULT_BUCKETS,
    AgingBucket,
    ARSummary,
    BucketBoundary,
    Receivable,
    ReceivableStatus,
    RiskCategory,
    RiskThresholds,
    validate_buckets,
)

__all__ = [
    "compute_aging",
    "days_in_ar",
    "collection_rate",
    "risk_category",
    "summarize",
    "ReceivableLedger",
    "DEFAULT_BUCKETS",
    "AgingBucket",
    "ARSummary",
    "BucketBoundary",
    "Receivable",
    "ReceivableStatus",
    "RiskCategory",
    "RiskThresholds",
    "validate_buckets",
]
