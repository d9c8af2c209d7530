"""Timely filing rules.

Days elapsed are measured from each line's date of service to the date the
claim was created, so the result depends only on claim state.
"""

from __future__ import annotations

from rcm_backend.rules.models import RuleContext, RuleFinding

DEFAULT_FILING_LIMIT_DAYS = 365
DEFAULT_WARNING_WINDOW_DAYS = 30


def _filing_limit(context: RuleContext) -> int:
    configured = context.config.get("filing_limit_days")
    if configured is not None:
        return int(configured)
    limits = context.datasets.get("filing_limits", {})
    return int(limits.get(context.claim.payer_id, limits.get("*", DEFAULT_FILING_LIMIT_DAYS)))


def timely_filing_late_rule(context: RuleContext) -> list[RuleFinding]:
    """Check if the claim was created after the payer's filing deadline."""
    claim = context.claim
    filing_limit_days = _filing_limit(context)
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        days_elapsed = (claim.created_at - line.service_date).days
        if days_elapsed > filing_limit_days:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].service_date",
                    message=(
                        f"Claim filed {days_elapsed} days after service, exceeds "
                        f"{filing_limit_days}-day limit"
                    ),
                    metadata={
                        "line_index": idx,
                        "days_elapsed": days_elapsed,
                        "filing_limit": filing_limit_days,
                    },
                )
            )

    return findings


def timely_filing_approaching_rule(context: RuleContext) -> list[RuleFinding]:
    """Warn when a line is inside the window before the filing deadline."""
    claim = context.claim
    filing_limit_days = _filing_limit(context)
    window = int(context.config.get("warning_window_days", DEFAULT_WARNING_WINDOW_DAYS))
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        days_elapsed = (claim.created_at - line.service_date).days
        if filing_limit_days - window < days_elapsed <= filing_limit_days:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].service_date",
                    message=(
                        f"Claim filed {days_elapsed} days after service, approaching "
                        f"{filing_limit_days}-day limit"
                    ),
                    metadata={
                        "line_index": idx,
                        "days_elapsed": days_elapsed,
                        "filing_limit": filing_limit_days,
                    },
                )
            )

    return findings
