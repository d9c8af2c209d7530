"""Coverage window and date logic rules."""

from __future__ import annotations

from rcm_backend.rules.models import RuleContext, RuleFinding


def coverage_dates_rule(context: RuleContext) -> list[RuleFinding]:
    """Service dates must fall inside the patient's coverage window."""
    claim = context.claim
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        field_path = f"service_lines[{idx}].service_date"
        if claim.coverage_start and line.service_date < claim.coverage_start:
            findings.append(
                RuleFinding(
                    field_path=field_path,
                    message=(
                        f"Service date {line.service_date.isoformat()} precedes coverage start "
                        f"{claim.coverage_start.isoformat()}"
                    ),
                    metadata={"line_index": idx},
                )
            )
        if claim.coverage_end and line.service_date > claim.coverage_end:
            findings.append(
                RuleFinding(
                    field_path=field_path,
                    message=(
                        f"Service date {line.service_date.isoformat()} is after coverage end "
                        f"{claim.coverage_end.isoformat()}"
                    ),
                    metadata={"line_index": idx},
                )
            )

    return findings


def service_date_future_rule(context: RuleContext) -> list[RuleFinding]:
    """A service cannot be dated after the claim that bills it."""
    claim = context.claim
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        if line.service_date > claim.created_at:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].service_date",
                    message=(
                        f"Service date {line.service_date.isoformat()} is after the claim date "
                        f"{claim.created_at.isoformat()}"
                    ),
                    metadata={"line_index": idx},
                )
            )

    return findings
