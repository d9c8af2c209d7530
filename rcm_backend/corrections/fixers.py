"""Mechanical fixers keyed by the rule that raised the issue.

A fixer only looks at the issue and the remediation metadata its rule
attached. It returns ``None`` when the issue needs clinical or billing
judgment rather than a mechanical edit.
"""

from __future__ import annotations

from collections.abc import Callable

from ..models import ValidationIssue
from ..rules.categories.format_rules import is_valid_icd10, is_valid_procedure_code
from .models import FieldEdit, FixMode, ProposedFix

Fixer = Callable[[ValidationIssue], "ProposedFix | None"]


def normalize_icd10(code: str) -> str:
    """Upper-case, strip whitespace and put the dot after the category."""
    compact = "".join(code.split()).upper().replace(".", "")
    if len(compact) > 3:
        return f"{compact[:3]}.{compact[3:]}"
    return compact


def normalize_procedure_code(code: str) -> str:
    return "".join(code.split()).upper()


def fix_units_exceed_max(issue: ValidationIssue) -> ProposedFix | None:
    units = issue.metadata.get("units")
    max_units = issue.metadata.get("max_units")
    if units is None or max_units is None or max_units < 1:
        return None
    return ProposedFix(
        edits=[FieldEdit(issue.field_path, units, max_units)],
        confidence=0.9,
        mode=FixMode.AUTO,
        rationale=f"Reduce units from {units} to the payer maximum of {max_units}",
    )


def fix_units_positive(issue: ValidationIssue) -> ProposedFix | None:
    units = issue.metadata.get("units")
    if units is None:
        return None
    return ProposedFix(
        edits=[FieldEdit(issue.field_path, units, 1)],
        confidence=0.6,
        mode=FixMode.MANUAL_REVIEW,
        rationale=f"Units of {units} are not billable; one unit is the most common quantity",
    )


def fix_diagnosis_code_format(issue: ValidationIssue) -> ProposedFix | None:
    code = issue.metadata.get("code")
    if not code:
        return None
    normalized = normalize_icd10(code)
    if normalized == code or not is_valid_icd10(normalized):
        return None
    return ProposedFix(
        edits=[FieldEdit(issue.field_path, code, normalized)],
        confidence=0.85,
        mode=FixMode.AUTO,
        rationale=f"Normalize diagnosis code {code!r} to ICD-10 format {normalized!r}",
    )


def fix_procedure_code_format(issue: ValidationIssue) -> ProposedFix | None:
    code = issue.metadata.get("code")
    if not code:
        return None
    normalized = normalize_procedure_code(code)
    if normalized == code or not is_valid_procedure_code(normalized):
        return None
    return ProposedFix(
        edits=[FieldEdit(issue.field_path, code, normalized)],
        confidence=0.95,
        mode=FixMode.AUTO,
        rationale=f"Remove whitespace and upper-case procedure code {code!r}",
    )


# Duplicate lines, missing diagnoses, coverage, timely filing and payer
# rejections have no entry: they need a person.
DEFAULT_FIXERS: dict[str, Fixer] = {
    "UNITS_EXCEED_MAX": fix_units_exceed_max,
    "UNITS_POSITIVE": fix_units_positive,
    "DIAGNOSIS_CODE_FORMAT": fix_diagnosis_code_format,
    "PROCEDURE_CODE_FORMAT": fix_procedure_code_format,
}
