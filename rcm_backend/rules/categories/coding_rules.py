"""Diagnosis linkage, duplicate line and modifier rules."""

from __future__ import annotations

from rcm_backend.rules.models import RuleContext, RuleFinding


def diagnosis_required_rule(context: RuleContext) -> list[RuleFinding]:
    """Flag covered lines that carry no diagnosis code at all.

    Narrow the rule to the procedures that need a diagnosis through its
    applicability; an unrestricted instance requires one on every line.
    """
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        if any(code.strip() for code in line.diagnosis_codes):
            continue
        findings.append(
            RuleFinding(
                field_path=f"service_lines[{idx}].diagnosis_codes",
                message=f"Procedure {line.procedure_code} requires at least one diagnosis code",
                metadata={"line_index": idx, "procedure_code": line.procedure_code},
            )
        )

    return findings


def diagnosis_compatibility_rule(context: RuleContext) -> list[RuleFinding]:
    """Check that a procedure's diagnoses fall in an expected ICD-10 family.

    ``procedure_diagnosis_families`` maps a procedure code to diagnosis
    prefixes, e.g. psychotherapy codes to ``["F32", "F33", "F41"]``.
    """
    families = context.datasets.get("procedure_diagnosis_families", {})
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        prefixes = families.get(line.procedure_code)
        if not prefixes or not line.diagnosis_codes:
            continue
        if any(code.startswith(prefix) for code in line.diagnosis_codes for prefix in prefixes):
            continue
        findings.append(
            RuleFinding(
                field_path=f"service_lines[{idx}].diagnosis_codes",
                message=(
                    f"Procedure {line.procedure_code} may not be medically necessary for "
                    f"diagnoses {', '.join(line.diagnosis_codes)}; expected one of "
                    f"{', '.join(prefixes)}"
                ),
                metadata={"line_index": idx, "expected_prefixes": list(prefixes)},
            )
        )

    return findings


def duplicate_lines_rule(context: RuleContext) -> list[RuleFinding]:
    """Flag service lines repeated verbatim on the same claim."""
    findings: list[RuleFinding] = []
    seen: dict[tuple, int] = {}

    for idx, line in context.covered_lines():
        key = (
            line.procedure_code,
            line.service_date,
            tuple(sorted(line.modifiers)),
            tuple(line.diagnosis_codes),
            line.units,
            line.charge,
        )
        if key in seen:
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}]",
                    message=(
                        f"Line {idx + 1} duplicates line {seen[key] + 1} "
                        f"({line.procedure_code} on {line.service_date.isoformat()})"
                    ),
                    metadata={"line_index": idx, "duplicate_of": seen[key]},
                )
            )
        else:
            seen[key] = idx

    return findings


def modifier_conflict_rule(context: RuleContext) -> list[RuleFinding]:
    """Flag lines carrying mutually exclusive modifiers (e.g. LT with RT)."""
    conflicts = context.datasets.get("modifier_conflicts", [])
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        present = {m.upper() for m in line.modifiers}
        for pair in conflicts:
            overlap = present.intersection(m.upper() for m in pair)
            if len(overlap) > 1:
                findings.append(
                    RuleFinding(
                        field_path=f"service_lines[{idx}].modifiers",
                        message=f"Conflicting modifiers on line {idx + 1}: {', '.join(sorted(overlap))}",
                        metadata={"line_index": idx, "modifiers": sorted(overlap)},
                    )
                )

    return findings
