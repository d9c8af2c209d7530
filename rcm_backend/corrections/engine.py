"""Auto-correction engine.

Turns validation issues into correction suggestions and applies accepted
suggestions to a claim. Applying is all-or-nothing: every edit's expected
value is checked before any field is written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..errors import CorrectionConflictError, SuggestionClosedError
from ..models import Claim, ValidationIssue
from ..utils import get_field, set_field
from .fixers import DEFAULT_FIXERS, Fixer
from .models import (
    CorrectionPolicy,
    CorrectionSuggestion,
    FixMode,
    SuggestionStatus,
    make_suggestion_id,
)

logger = logging.getLogger(__name__)

FeedbackHook = Callable[[CorrectionSuggestion, str], None]

_MISSING = object()


class CorrectionEngine:
    """Suggests, applies and rejects corrections."""

    def __init__(
        self,
        policy: CorrectionPolicy | None = None,
        fixers: dict[str, Fixer] | None = None,
        feedback: FeedbackHook | None = None,
    ) -> None:
        self.policy = policy or CorrectionPolicy()
        self._fixers: dict[str, Fixer] = dict(DEFAULT_FIXERS if fixers is None else fixers)
        self._feedback = feedback

    def register(self, rule_id: str, fixer: Fixer) -> None:
        """Register or replace the fixer for a rule."""
        self._fixers[rule_id] = fixer

    def has_fixer(self, rule_id: str) -> bool:
        return rule_id in self._fixers

    def suggest(self, issue: ValidationIssue) -> CorrectionSuggestion | None:
        """Propose a fix for one issue, or None when no mechanical fix exists."""
        if issue.is_meta:
            return None

        fixer = self._fixers.get(issue.rule_id)
        if fixer is None:
            return None

        proposed = fixer(issue)
        if proposed is None:
            return None

        edits = tuple(proposed.edits)
        return CorrectionSuggestion(
            suggestion_id=make_suggestion_id(issue.issue_id, edits),
            issue_id=issue.issue_id,
            rule_id=issue.rule_id,
            edits=edits,
            confidence=proposed.confidence,
            mode=proposed.mode,
            rationale=proposed.rationale,
        )

    def suggest_all(self, issues: Iterable[ValidationIssue]) -> list[CorrectionSuggestion]:
        suggestions = []
        for issue in issues:
            suggestion = self.suggest(issue)
            if suggestion is not None:
                suggestions.append(suggestion)
        return suggestions

    def is_auto_applicable(self, suggestion: CorrectionSuggestion) -> bool:
        return (
            suggestion.mode == FixMode.AUTO
            and suggestion.confidence >= self.policy.auto_apply_threshold
        )

    def apply(self, claim: Claim, suggestion: CorrectionSuggestion) -> Claim:
        """Apply every edit of an open suggestion to the claim.

        Raises:
            CorrectionConflictError: If any field no longer holds the value
                the suggestion was computed from. The claim is left untouched.
            SuggestionClosedError: If the suggestion was already accepted or rejected.
        """
        if not suggestion.is_open:
            raise SuggestionClosedError(suggestion.suggestion_id, suggestion.status.value)

        for edit in suggestion.edits:
            try:
                actual = get_field(claim, edit.field_path)
            except KeyError:
                actual = _MISSING
            if actual is _MISSING or actual != edit.expected:
                logger.warning(
                    f"Claim {claim.claim_id}: suggestion {suggestion.suggestion_id} "
                    f"conflicts on {edit.field_path}"
                )
                raise CorrectionConflictError(
                    suggestion.suggestion_id,
                    edit.field_path,
                    edit.expected,
                    None if actual is _MISSING else actual,
                )

        for edit in suggestion.edits:
            set_field(claim, edit.field_path, edit.new_value)

        claim.mark_edited()
        suggestion.status = SuggestionStatus.ACCEPTED
        logger.info(
            f"Claim {claim.claim_id}: applied suggestion {suggestion.suggestion_id} "
            f"({suggestion.rule_id}), revision {claim.revision}"
        )
        return claim

    def reject(self, suggestion: CorrectionSuggestion, reason: str) -> CorrectionSuggestion:
        """Mark a suggestion rejected and forward the decision to the feedback hook."""
        if not suggestion.is_open:
            raise SuggestionClosedError(suggestion.suggestion_id, suggestion.status.value)
        suggestion.status = SuggestionStatus.REJECTED
        suggestion.rejection_reason = reason
        if self._feedback is not None:
            self._feedback(suggestion, reason)
        return suggestion
