"""Core claim validation engine."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone

from ..errors import RuleEvaluationError
from ..models import Claim, Severity, ValidationIssue, ValidationResult, make_issue_id
from .models import RuleSet
from .thresholds import ScoringWeights

logger = logging.getLogger(__name__)

RULE_EVALUATION_FAILED = "RULE_EVALUATION_FAILED"


def evaluate_rules(
    claim: Claim,
    ruleset: RuleSet,
    now: datetime,
    meta_issue_severity: Severity = Severity.WARNING,
) -> list[ValidationIssue]:
    """Run every applicable rule and collect issues in catalog order.

    A rule that raises is recorded as a meta-issue; the remaining rules
    still run.
    """
    issues: list[ValidationIssue] = []
    occurrences: dict[tuple[str, str, str], int] = defaultdict(int)

    def add_issue(
        rule_id: str,
        severity: Severity,
        field_path: str,
        message: str,
        is_meta: bool = False,
        metadata: dict | None = None,
    ) -> None:
        key = (rule_id, field_path, message)
        issue_id = make_issue_id(rule_id, field_path, message, occurrences[key])
        occurrences[key] += 1
        issues.append(
            ValidationIssue(
                issue_id=issue_id,
                rule_id=rule_id,
                severity=severity,
                field_path=field_path,
                message=message,
                detected_at=now,
                is_meta=is_meta,
                metadata=dict(metadata or {}),
            )
        )

    for rule in ruleset:
        context = rule.context_for(claim, ruleset.datasets)
        try:
            if not rule.applies(context):
                continue
            findings = rule.evaluate(context)
        except Exception as e:
            error = RuleEvaluationError(rule.rule_id, e)
            logger.warning(f"Claim {claim.claim_id}: {error}", exc_info=True)
            add_issue(
                RULE_EVALUATION_FAILED,
                meta_issue_severity,
                "claim",
                f"Rule {rule.rule_id} failed to evaluate: {type(e).__name__}: {e}",
                is_meta=True,
                metadata={"failed_rule_id": rule.rule_id},
            )
            continue

        for finding in findings:
            add_issue(
                rule.rule_id,
                rule.severity,
                finding.field_path,
                finding.message,
                metadata={"category": rule.category, **finding.metadata},
            )

    return issues


def validate(
    claim: Claim,
    ruleset: RuleSet,
    weights: ScoringWeights | None = None,
    now: datetime | None = None,
    meta_issue_severity: Severity = Severity.WARNING,
) -> ValidationResult:
    """Validate a claim against a rule set and store the outcome on the claim.

    The claim's score, issues and ruleset version are replaced and its dirty
    flag cleared. Service lines are never touched.
    """
    weights = weights or ScoringWeights()
    now = now or datetime.now(timezone.utc)

    issues = evaluate_rules(claim, ruleset, now, meta_issue_severity)
    result = ValidationResult(
        score=weights.score(issues),
        issues=tuple(issues),
        ruleset_version=ruleset.version,
        evaluated_at=now,
    )

    claim.score = result.score
    claim.issues = list(result.issues)
    claim.ruleset_version = ruleset.version
    claim.dirty = False

    logger.debug(
        f"Claim {claim.claim_id} validated with catalog {ruleset.version}: "
        f"score={result.score} issues={len(issues)} blocking={len(result.blocking_issues)}"
    )
    return result
