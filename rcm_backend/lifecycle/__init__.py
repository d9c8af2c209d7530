"""Claim lifecycle: states, per-claim locking and the coordinator."""

from .coordinator import (
    PAYER_REJECTED,
    AdjudicationEvent,
    AdjudicationOutcome,
    ClaimCoordinator,
    ClaimStatus,
)
from .locks import KeyedLock
from .states import TERMINAL_STATES, TRANSITIONS, can_transition, transition

__all__ = [
    "PAYER_REJECTED",
    "AdjudicationEvent",
    "AdjudicationOutcome",
    "ClaimCoordinator",
    "ClaimStatus",
    "KeyedLock",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "can_transition",
    "transition",
]
