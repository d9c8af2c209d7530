"""Claim lifecycle transition table."""

from __future__ import annotations

from ..errors import InvalidTransitionError
from ..models import ClaimState

TRANSITIONS: dict[ClaimState, frozenset[ClaimState]] = {
    ClaimState.DRAFT: frozenset({ClaimState.VALIDATING}),
    ClaimState.VALIDATING: frozenset({ClaimState.INVALID, ClaimState.VALID}),
    ClaimState.INVALID: frozenset({ClaimState.CORRECTING, ClaimState.VALIDATING}),
    ClaimState.CORRECTING: frozenset({ClaimState.VALIDATING, ClaimState.INVALID}),
    ClaimState.VALID: frozenset({ClaimState.SUBMITTABLE, ClaimState.VALIDATING}),
    ClaimState.SUBMITTABLE: frozenset({ClaimState.SUBMITTED, ClaimState.VALIDATING}),
    ClaimState.SUBMITTED: frozenset(
        {ClaimState.ACCEPTED, ClaimState.DENIED, ClaimState.PAID, ClaimState.INVALID}
    ),
    ClaimState.ACCEPTED: frozenset(
        {ClaimState.PAID, ClaimState.DENIED, ClaimState.WRITTEN_OFF}
    ),
    ClaimState.DENIED: frozenset(),
    ClaimState.PAID: frozenset(),
    ClaimState.WRITTEN_OFF: frozenset(),
}

TERMINAL_STATES = frozenset(state for state, targets in TRANSITIONS.items() if not targets)


def can_transition(current: ClaimState, target: ClaimState) -> bool:
    return target in TRANSITIONS[current]


def transition(
    current: ClaimState,
    target: ClaimState,
    claim_id: str | None = None,
) -> ClaimState:
    """Return ``target`` if the edge exists.

    Raises:
        InvalidTransitionError: If ``current -> target`` is not in the table
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(claim_id, current.value, target.value)
    return target
