"""Exception hierarchy for the RCM claim core.

Every error raised by the core derives from ``RCMError`` so callers at the
HTTP boundary can map the whole family in one place.
"""

from __future__ import annotations

from typing import Any


class RCMError(Exception):
    """Base class for all claim-core errors."""


class RuleDefinitionError(RCMError):
    """Raised when a rule catalog entry is malformed at load time."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class RuleEvaluationError(RCMError):
    """Raised when a single rule's predicate or check fails."""

    def __init__(self, rule_id: str, cause: BaseException):
        super().__init__(f"Rule {rule_id} failed to evaluate: {cause}")
        self.rule_id = rule_id
        self.cause = cause


class InvalidTransitionError(RCMError):
    """Raised when a claim is asked to move along a disallowed edge."""

    def __init__(
        self,
        claim_id: str | None,
        current: str,
        target: str,
        reason: str | None = None,
    ):
        message = f"Claim {claim_id}: cannot transition from {current} to {target}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.claim_id = claim_id
        self.current = current
        self.target = target
        self.reason = reason


class CorrectionConflictError(RCMError):
    """Raised when a suggestion targets a field that changed since it was proposed."""

    def __init__(
        self,
        suggestion_id: str,
        field_path: str,
        expected: Any,
        actual: Any,
    ):
        super().__init__(
            f"Suggestion {suggestion_id} is stale: {field_path} expected "
            f"{expected!r} but found {actual!r}"
        )
        self.suggestion_id = suggestion_id
        self.field_path = field_path
        self.expected = expected
        self.actual = actual


class SuggestionClosedError(RCMError):
    """Raised when a suggestion that was already accepted or rejected is acted on."""

    def __init__(self, suggestion_id: str, status: str):
        super().__init__(f"Suggestion {suggestion_id} is already {status}")
        self.suggestion_id = suggestion_id
        self.status = status


class ExternalSubmissionError(RCMError):
    """Raised when the clearinghouse does not accept a claim.

    ``definitive`` separates payer/format rejections (never retried) from
    transport failures that survived every retry attempt.
    """

    def __init__(
        self,
        message: str,
        claim_id: str,
        definitive: bool = False,
        status_code: int | None = None,
        reasons: list[str] | None = None,
    ):
        super().__init__(message)
        self.claim_id = claim_id
        self.definitive = definitive
        self.status_code = status_code
        self.reasons = reasons or []


class PaymentPostingError(RCMError):
    """Raised when a payment cannot be applied to a receivable."""


class ClaimNotFoundError(RCMError):
    """Raised for an unknown claim identifier."""

    def __init__(self, claim_id: str):
        super().__init__(f"Claim not found: {claim_id}")
        self.claim_id = claim_id


class SuggestionNotFoundError(RCMError):
    """Raised for an unknown correction suggestion identifier."""

    def __init__(self, claim_id: str, suggestion_id: str):
        super().__init__(f"Suggestion {suggestion_id} not found for claim {claim_id}")
        self.claim_id = claim_id
        self.suggestion_id = suggestion_id


class SettingsError(RCMError):
    """Raised when the practice settings file fails validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []
