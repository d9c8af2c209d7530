"""Claim lifecycle coordinator.

Drives claims through validation, correction, confirmation, submission and
adjudication. Every mutation of one claim runs under that claim's lock;
different claims proceed in parallel.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from ..aging import (
    AgingBucket,
    ARSummary,
    BucketBoundary,
    Receivable,
    ReceivableLedger,
    RiskCategory,
    RiskThresholds,
    compute_aging,
    risk_category,
    summarize,
)
from ..audit import AuditAction, AuditLog
from ..corrections import (
    CorrectionEngine,
    CorrectionPolicy,
    CorrectionSuggestion,
    SuggestionStatus,
)
from ..errors import (
    ClaimNotFoundError,
    CorrectionConflictError,
    ExternalSubmissionError,
    InvalidTransitionError,
    SuggestionClosedError,
    SuggestionNotFoundError,
)
from ..gateway import ClearinghouseGateway, SubmissionReceipt
from ..models import Claim, ClaimState, Severity, ValidationIssue, make_issue_id
from ..rules import RuleSet, ScoringWeights, validate
from ..utils import ZERO, to_money
from .locks import KeyedLock
from .states import TERMINAL_STATES, can_transition, transition

logger = logging.getLogger(__name__)

PAYER_REJECTED = "PAYER_REJECTED"

_CORRECTABLE_STATES = frozenset(
    {ClaimState.INVALID, ClaimState.VALID, ClaimState.SUBMITTABLE}
)


class AdjudicationOutcome(str, Enum):
    ACCEPTED = "accepted"
    PAID = "paid"
    DENIED = "denied"


@dataclass(frozen=True)
class AdjudicationEvent:
    """A payer decision delivered by the clearinghouse. ``event_id`` is unique per delivery."""

    event_id: str
    claim_id: str
    outcome: AdjudicationOutcome
    paid_amount: Decimal = ZERO
    received_on: date | None = None
    reason: str | None = None


@dataclass(frozen=True)
class ClaimStatus:
    claim_id: str
    state: ClaimState
    score: float | None
    ruleset_version: str | None
    revision: int
    dirty: bool
    issue_count: int
    blocking_count: int
    archived: bool = False
    receivable: dict[str, Any] | None = None
    cloned_from: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "state": self.state.value,
            "score": self.score,
            "ruleset_version": self.ruleset_version,
            "revision": self.revision,
            "dirty": self.dirty,
            "issue_count": self.issue_count,
            "blocking_count": self.blocking_count,
            "archived": self.archived,
            "receivable": self.receivable,
            "cloned_from": self.cloned_from,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _ClaimRecord:
    claim: Claim
    suggestions: dict[str, CorrectionSuggestion] = field(default_factory=dict)


class ClaimCoordinator:
    """Owns live claims, their suggestions and the receivable ledger."""

    def __init__(
        self,
        ruleset: RuleSet,
        gateway: ClearinghouseGateway | None = None,
        ledger: ReceivableLedger | None = None,
        corrections: CorrectionEngine | None = None,
        correction_policy: CorrectionPolicy | None = None,
        weights: ScoringWeights | None = None,
        audit: AuditLog | None = None,
        automatic_mode: bool = False,
        max_correction_passes: int = 3,
        meta_issue_severity: Severity = Severity.WARNING,
        buckets: Sequence[BucketBoundary] | None = None,
        risk_thresholds: RiskThresholds | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_correction_passes < 1:
            raise ValueError("max_correction_passes must be at least 1")

        self.ruleset = ruleset
        self.gateway = gateway
        self.ledger = ledger or ReceivableLedger()
        self.corrections = corrections or CorrectionEngine(
            policy=correction_policy,
            feedback=self._record_rejection,
        )
        self.weights = weights or ScoringWeights()
        self.audit = audit
        self.automatic_mode = automatic_mode
        self.max_correction_passes = max_correction_passes
        self.meta_issue_severity = meta_issue_severity
        self.buckets = tuple(buckets) if buckets else None
        self.risk_thresholds = risk_thresholds or RiskThresholds()
        self._clock = clock

        self._locks = KeyedLock()
        self._registry_lock = threading.Lock()
        self._records: dict[str, _ClaimRecord] = {}
        self._archive: dict[str, Claim] = {}
        self._events_lock = threading.Lock()
        self._processed_events: set[str] = set()

    @classmethod
    def from_settings(cls, settings: Any, ruleset: RuleSet, **kwargs: Any) -> ClaimCoordinator:
        """Build a coordinator from ``PracticeSettings``."""
        return cls(
            ruleset,
            weights=settings.scoring_weights(),
            automatic_mode=settings.automatic_mode,
            max_correction_passes=settings.max_correction_passes,
            meta_issue_severity=settings.meta_issue_severity,
            buckets=settings.bucket_boundaries(),
            risk_thresholds=settings.risk_thresholds(),
            correction_policy=settings.correction_policy(),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def on_claim_changed(self, claim: Claim) -> Claim:
        """Validate a new or edited claim; returns it in ``valid`` or ``invalid``.

        Raises:
            InvalidTransitionError: If the claim is past the point where it
                can be edited
        """
        with self._locks.hold(claim.claim_id):
            with self._registry_lock:
                if claim.claim_id in self._archive:
                    raise InvalidTransitionError(
                        claim.claim_id, "archived", ClaimState.VALIDATING.value
                    )
                record = self._records.get(claim.claim_id)

            if record is not None and record.claim is not claim:
                existing = record.claim
                if not can_transition(existing.state, ClaimState.VALIDATING):
                    raise InvalidTransitionError(
                        claim.claim_id,
                        existing.state.value,
                        ClaimState.VALIDATING.value,
                        "claim can no longer be edited",
                    )
                claim.state = existing.state
                claim.revision = existing.revision + 1
                claim.cloned_from = claim.cloned_from or existing.cloned_from
                claim.dirty = True
                record.claim = claim
            elif record is None:
                record = _ClaimRecord(claim)
                with self._registry_lock:
                    self._records[claim.claim_id] = record

            self._run_validation(record)

            if self.automatic_mode:
                for _ in range(self.max_correction_passes):
                    if claim.state != ClaimState.INVALID or not self._correct(record, True):
                        break

            return claim

    def correct(self, claim_id: str, auto_apply: bool | None = None) -> list[CorrectionSuggestion]:
        """Propose corrections for an invalid claim.

        With ``auto_apply`` (defaults to automatic mode) the auto-applicable
        suggestions are applied and the claim re-validated. When nothing is
        applied the claim returns to ``invalid`` with its suggestions open
        for review.
        """
        apply_now = self.automatic_mode if auto_apply is None else auto_apply
        with self._locks.hold(claim_id):
            record = self._require(claim_id)
            self._correct(record, apply_now)
            return list(record.suggestions.values())

    def accept_suggestion(self, claim_id: str, suggestion_id: str) -> Claim:
        """Apply one suggestion and re-validate.

        Raises:
            CorrectionConflictError: If the claim changed underneath the
                suggestion. The claim is re-validated before this is raised.
            SuggestionClosedError: If the suggestion was already accepted or
                rejected. The claim state is left unchanged.
        """
        with self._locks.hold(claim_id):
            record = self._require(claim_id)
            claim = record.claim
            suggestion = self._require_suggestion(record, suggestion_id)

            if claim.state not in _CORRECTABLE_STATES:
                raise InvalidTransitionError(
                    claim_id,
                    claim.state.value,
                    ClaimState.CORRECTING.value,
                    "claim is not open for corrections",
                )

            if not suggestion.is_open:
                raise SuggestionClosedError(suggestion_id, suggestion.status.value)

            if claim.state == ClaimState.INVALID:
                self._move(claim, ClaimState.CORRECTING)

            try:
                self.corrections.apply(claim, suggestion)
            except CorrectionConflictError as e:
                self._audit(
                    AuditAction.CORRECTION_CONFLICT,
                    claim_id,
                    details={"suggestion_id": suggestion_id, "field_path": e.field_path},
                    status="error",
                    error_message=str(e),
                )
                claim.dirty = True
                self._run_validation(record)
                raise

            self._audit(
                AuditAction.CORRECTION_APPLY,
                claim_id,
                details={"suggestion_id": suggestion_id, "rule_id": suggestion.rule_id, "mode": "manual"},
            )
            self._run_validation(record)
            return claim

    def reject_suggestion(
        self,
        claim_id: str,
        suggestion_id: str,
        reason: str = "",
    ) -> CorrectionSuggestion:
        """Reject a suggestion; the issue it targets stays open."""
        with self._locks.hold(claim_id):
            record = self._require(claim_id)
            suggestion = self._require_suggestion(record, suggestion_id)
            return self.corrections.reject(suggestion, reason)

    def confirm_submission(self, claim_id: str, confirmed_by: str) -> Claim:
        """Move a valid claim to ``submittable`` on explicit user confirmation."""
        with self._locks.hold(claim_id):
            claim = self._require(claim_id).claim
            if claim.dirty or claim.has_blocking_issues:
                raise InvalidTransitionError(
                    claim_id,
                    claim.state.value,
                    ClaimState.SUBMITTABLE.value,
                    "claim has unresolved blocking issues or unvalidated edits",
                )
            self._move(claim, ClaimState.SUBMITTABLE)
            self._audit(AuditAction.CLAIM_CONFIRM, claim_id, user_id=confirmed_by)
            return claim

    def submit(self, claim_id: str) -> SubmissionReceipt:
        """Send a submittable claim to the clearinghouse.

        Raises:
            InvalidTransitionError: If the claim is not submittable or carries
                a blocking issue
            ExternalSubmissionError: On rejection (claim becomes ``invalid``)
                or when retries are exhausted (claim stays ``submittable``)
        """
        with self._locks.hold(claim_id):
            record = self._require(claim_id)
            claim = record.claim

            if claim.dirty or claim.has_blocking_issues:
                raise InvalidTransitionError(
                    claim_id,
                    claim.state.value,
                    ClaimState.SUBMITTED.value,
                    "claim has unresolved blocking issues or unvalidated edits",
                )
            if not can_transition(claim.state, ClaimState.SUBMITTED):
                raise InvalidTransitionError(claim_id, claim.state.value, ClaimState.SUBMITTED.value)
            if self.gateway is None:
                raise ExternalSubmissionError("No clearinghouse is configured", claim_id)

            try:
                receipt = self.gateway.submit(claim)
            except ExternalSubmissionError as e:
                self._audit(
                    AuditAction.CLAIM_SUBMIT_FAILED,
                    claim_id,
                    details={"definitive": e.definitive, "status_code": e.status_code, "reasons": e.reasons},
                    status="error",
                    error_message=str(e),
                )
                if e.definitive:
                    self._record_payer_rejection(record, e)
                else:
                    logger.warning(f"Claim {claim_id} left submittable: {e}")
                raise

            self._move(claim, ClaimState.SUBMITTED)
            receivable = self.ledger.open(
                claim_id,
                claim.payer_id,
                claim.billed_amount,
                self._outstanding_since(claim),
            )
            self._audit(
                AuditAction.CLAIM_SUBMIT,
                claim_id,
                details={"submission_id": receipt.submission_id, "billed": str(receivable.billed)},
            )
            return receipt

    def on_adjudication_event(self, event: AdjudicationEvent) -> Claim:
        """Apply a payer decision. Replayed events are ignored."""
        with self._locks.hold(event.claim_id):
            record = self._require(event.claim_id)
            claim = record.claim

            with self._events_lock:
                if event.event_id in self._processed_events:
                    logger.info(f"Ignoring replayed adjudication event {event.event_id}")
                    return claim

            received_on = event.received_on or self._clock().date()

            if event.outcome == AdjudicationOutcome.ACCEPTED:
                self._move(claim, ClaimState.ACCEPTED)
                self._ensure_receivable(claim)

            elif event.outcome == AdjudicationOutcome.PAID:
                transition(claim.state, ClaimState.PAID, claim.claim_id)
                self._ensure_receivable(claim)
                receivable = self.ledger.post_payment(claim.claim_id, event.paid_amount, received_on)
                if receivable.balance == ZERO:
                    self._move(claim, ClaimState.PAID)
                elif claim.state != ClaimState.ACCEPTED:
                    self._move(claim, ClaimState.ACCEPTED)

            elif event.outcome == AdjudicationOutcome.DENIED:
                self._move(claim, ClaimState.DENIED)
                self._ensure_receivable(claim)
                self.ledger.write_off(claim.claim_id, event.reason or "denied by payer")

            with self._events_lock:
                self._processed_events.add(event.event_id)

            self._audit(
                AuditAction.CLAIM_ADJUDICATE,
                claim.claim_id,
                details={
                    "event_id": event.event_id,
                    "outcome": event.outcome.value,
                    "paid_amount": str(to_money(event.paid_amount)),
                    "state": claim.state.value,
                },
            )
            return claim

    def write_off(self, claim_id: str, reason: str) -> Claim:
        with self._locks.hold(claim_id):
            claim = self._require(claim_id).claim
            self._move(claim, ClaimState.WRITTEN_OFF)
            self._ensure_receivable(claim)
            self.ledger.write_off(claim_id, reason)
            self._audit(AuditAction.CLAIM_WRITE_OFF, claim_id, details={"reason": reason})
            return claim

    def clone_denied(self, claim_id: str) -> Claim:
        """Copy a denied claim into a new draft; the denied claim is unchanged."""
        with self._locks.hold(claim_id):
            original = self._require(claim_id).claim
            if original.state != ClaimState.DENIED:
                raise InvalidTransitionError(
                    claim_id,
                    original.state.value,
                    ClaimState.DRAFT.value,
                    "only denied claims can be cloned",
                )

            clone = original.copy()
            clone.claim_id = f"{claim_id}-{uuid.uuid4().hex[:8]}"
            clone.state = ClaimState.DRAFT
            clone.score = None
            clone.issues = []
            clone.ruleset_version = None
            clone.revision = 0
            clone.dirty = True
            clone.cloned_from = claim_id
            clone.created_at = self._clock().date()

        with self._registry_lock:
            self._records[clone.claim_id] = _ClaimRecord(clone)

        self._audit(AuditAction.CLAIM_CLONE, claim_id, details={"clone_id": clone.claim_id})
        logger.info(f"Cloned denied claim {claim_id} as {clone.claim_id}")
        return clone

    def archive(self, claim_id: str) -> Claim:
        """Move a claim in a terminal state out of the live set."""
        with self._locks.hold(claim_id):
            claim = self._require(claim_id).claim
            if claim.state not in TERMINAL_STATES:
                raise InvalidTransitionError(
                    claim_id, claim.state.value, "archived", "only closed claims can be archived"
                )
            with self._registry_lock:
                del self._records[claim_id]
                self._archive[claim_id] = claim

        self._audit(AuditAction.CLAIM_ARCHIVE, claim_id, details={"state": claim.state.value})
        return claim

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_claim(self, claim_id: str) -> Claim:
        with self._locks.hold(claim_id):
            return self._lookup(claim_id).copy()

    def get_claim_status(self, claim_id: str) -> ClaimStatus:
        with self._locks.hold(claim_id):
            claim = self._lookup(claim_id)
            with self._registry_lock:
                archived = claim_id in self._archive
            receivable = self.ledger.get(claim_id)
            return ClaimStatus(
                claim_id=claim.claim_id,
                state=claim.state,
                score=claim.score,
                ruleset_version=claim.ruleset_version,
                revision=claim.revision,
                dirty=claim.dirty,
                issue_count=len(claim.issues),
                blocking_count=len(claim.blocking_issues),
                archived=archived,
                receivable=receivable.to_dict() if receivable else None,
                cloned_from=claim.cloned_from,
            )

    def get_open_issues(self, claim_id: str) -> list[ValidationIssue]:
        with self._locks.hold(claim_id):
            return list(self._lookup(claim_id).issues)

    def get_suggestions(self, claim_id: str) -> list[CorrectionSuggestion]:
        with self._locks.hold(claim_id):
            return list(self._require(claim_id).suggestions.values())

    def get_aging_buckets(self, as_of: date | None = None) -> list[AgingBucket]:
        return compute_aging(self.ledger.snapshot(), as_of or self._clock().date(), self.buckets)

    def get_ar_summary(self, as_of: date | None = None) -> ARSummary:
        return summarize(self.ledger.snapshot(), as_of or self._clock().date(), self.buckets)

    def get_receivable_risks(self, as_of: date | None = None) -> list[tuple[Receivable, RiskCategory]]:
        """Open receivables with their collection risk, riskiest and oldest first."""
        as_of = as_of or self._clock().date()
        order = list(RiskCategory)
        rated = [
            (receivable, risk_category(receivable, as_of, self.risk_thresholds))
            for receivable in self.ledger.snapshot()
            if receivable.is_open
        ]
        return sorted(
            rated,
            key=lambda item: (-order.index(item[1]), item[0].outstanding_since, item[0].claim_id),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, claim_id: str) -> _ClaimRecord:
        with self._registry_lock:
            record = self._records.get(claim_id)
        if record is None:
            raise ClaimNotFoundError(claim_id)
        return record

    def _lookup(self, claim_id: str) -> Claim:
        with self._registry_lock:
            record = self._records.get(claim_id)
            if record is not None:
                return record.claim
            archived = self._archive.get(claim_id)
        if archived is None:
            raise ClaimNotFoundError(claim_id)
        return archived

    def _require_suggestion(self, record: _ClaimRecord, suggestion_id: str) -> CorrectionSuggestion:
        suggestion = record.suggestions.get(suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(record.claim.claim_id, suggestion_id)
        return suggestion

    def _move(self, claim: Claim, target: ClaimState) -> None:
        previous = claim.state
        claim.state = transition(previous, target, claim.claim_id)
        logger.info(f"Claim {claim.claim_id}: {previous.value} -> {target.value}")

    def _run_validation(self, record: _ClaimRecord) -> None:
        claim = record.claim
        self._move(claim, ClaimState.VALIDATING)
        result = validate(
            claim,
            self.ruleset,
            weights=self.weights,
            now=self._clock(),
            meta_issue_severity=self.meta_issue_severity,
        )
        self._move(claim, ClaimState.VALID if result.is_clean else ClaimState.INVALID)

        # Suggestion ids derive from issue ids, so a rejected suggestion is
        # recognised when the same issue comes back.
        previous = record.suggestions
        refreshed: dict[str, CorrectionSuggestion] = {}
        for suggestion in self.corrections.suggest_all(result.issues):
            prior = previous.get(suggestion.suggestion_id)
            if prior is not None and prior.status == SuggestionStatus.REJECTED:
                refreshed[suggestion.suggestion_id] = prior
            else:
                refreshed[suggestion.suggestion_id] = suggestion
        record.suggestions = refreshed

        self._audit(
            AuditAction.CLAIM_VALIDATE,
            claim.claim_id,
            details={
                "score": result.score,
                "issues": len(result.issues),
                "blocking": len(result.blocking_issues),
                "ruleset_version": result.ruleset_version,
                "state": claim.state.value,
            },
        )

    def _correct(self, record: _ClaimRecord, apply_now: bool) -> int:
        """One correction pass; returns the number of suggestions applied."""
        claim = record.claim
        self._move(claim, ClaimState.CORRECTING)

        applied = 0
        if apply_now:
            for suggestion in list(record.suggestions.values()):
                if not suggestion.is_open or not self.corrections.is_auto_applicable(suggestion):
                    continue
                try:
                    self.corrections.apply(claim, suggestion)
                except CorrectionConflictError as e:
                    logger.warning(f"Skipping stale suggestion on claim {claim.claim_id}: {e}")
                    continue
                applied += 1
                self._audit(
                    AuditAction.CORRECTION_APPLY,
                    claim.claim_id,
                    details={"suggestion_id": suggestion.suggestion_id, "rule_id": suggestion.rule_id, "mode": "auto"},
                )

        if applied:
            self._run_validation(record)
        else:
            self._move(claim, ClaimState.INVALID)
        return applied

    def _record_payer_rejection(self, record: _ClaimRecord, error: ExternalSubmissionError) -> None:
        claim = record.claim
        message = "Payer rejected claim: " + ("; ".join(error.reasons) or str(error))
        issue = ValidationIssue(
            issue_id=make_issue_id(PAYER_REJECTED, "claim", message),
            rule_id=PAYER_REJECTED,
            severity=Severity.BLOCKING,
            field_path="claim",
            message=message,
            detected_at=self._clock(),
            metadata={"status_code": error.status_code, "reasons": list(error.reasons)},
        )
        self._move(claim, ClaimState.VALIDATING)
        claim.issues = [*claim.issues, issue]
        claim.score = self.weights.score(claim.issues)
        self._move(claim, ClaimState.INVALID)
        logger.error(f"Claim {claim.claim_id} rejected by payer: {error.reasons}")

    def _ensure_receivable(self, claim: Claim) -> None:
        self.ledger.open(
            claim.claim_id,
            claim.payer_id,
            claim.billed_amount,
            self._outstanding_since(claim),
        )

    def _outstanding_since(self, claim: Claim) -> date:
        """Receivables age from the earliest date of service."""
        if claim.service_lines:
            return min(line.service_date for line in claim.service_lines)
        return self._clock().date()

    def _record_rejection(self, suggestion: CorrectionSuggestion, reason: str) -> None:
        logger.info(f"Suggestion {suggestion.suggestion_id} ({suggestion.rule_id}) rejected: {reason}")
        self._audit(
            AuditAction.CORRECTION_REJECT,
            suggestion.suggestion_id,
            resource_type="suggestion",
            details={
                "suggestion_id": suggestion.suggestion_id,
                "issue_id": suggestion.issue_id,
                "rule_id": suggestion.rule_id,
                "confidence": suggestion.confidence,
                "reason": reason,
            },
        )

    def _audit(
        self,
        action: AuditAction,
        resource_id: str | None,
        resource_type: str = "claim",
        **kwargs: Any,
    ) -> None:
        if self.audit is not None:
            self.audit.record(action, resource_id=resource_id, resource_type=resource_type, **kwargs)
