"""Units and charge rules."""

from __future__ import annotations

from rcm_backend.rules.models import RuleContext, RuleFinding
from rcm_backend.utils import ZERO


def _max_units_for(context: RuleContext, procedure_code: str) -> int | None:
    """Resolve the unit cap: rule params, then payer table, then the ``*`` table."""
    configured = context.config.get("max_units")
    if configured is not None:
        return int(configured)

    unit_limits = context.datasets.get("unit_limits", {})
    payer_limits = unit_limits.get(context.claim.payer_id, {})
    if procedure_code in payer_limits:
        return int(payer_limits[procedure_code])
    default_limits = unit_limits.get("*", {})
    if procedure_code in default_limits:
        return int(default_limits[procedure_code])
    return None


def units_positive_rule(context: RuleContext) -> list[RuleFinding]:
    """Units must be at least one."""
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        if line.units <= 0:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].units",
                    message=f"Invalid units quantity {line.units} on line {idx + 1}",
                    metadata={"line_index": idx, "units": line.units},
                )
            )

    return findings


def units_max_rule(context: RuleContext) -> list[RuleFinding]:
    """Units must not exceed the payer's per-claim maximum for the procedure."""
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        max_units = _max_units_for(context, line.procedure_code)
        if max_units is None or line.units <= max_units:
            continue
        findings.append(
            RuleFinding(
                field_path=f"service_lines[{idx}].units",
                message=(
                    f"{line.procedure_code} units ({line.units}) exceed payer "
                    f"{context.claim.payer_id} maximum of {max_units}"
                ),
                metadata={"line_index": idx, "units": line.units, "max_units": max_units},
            )
        )

    return findings


def charge_positive_rule(context: RuleContext) -> list[RuleFinding]:
    """Charges must be greater than zero."""
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        if line.charge <= ZERO:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].charge",
                    message=f"Charge amount {line.charge} on line {idx + 1} must be greater than zero",
                    metadata={"line_index": idx, "charge": str(line.charge)},
                )
            )

    return findings
