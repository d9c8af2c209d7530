"""Format and required-field validation rules."""

from __future__ import annotations

import re

from rcm_backend.rules.models import RuleContext, RuleFinding

# CPT (5 digits, or Category II/III 4 digits + letter) and HCPCS Level II
CPT_PATTERN = re.compile(r"^\d{5}$|^\d{4}[FTU]$")
HCPCS_PATTERN = re.compile(r"^[A-Z]\d{4}$")
ICD10_PATTERN = re.compile(r"^[A-Z]\d[0-9A-Z](\.[0-9A-Z]{1,4})?$")


def is_valid_procedure_code(code: str) -> bool:
    return bool(CPT_PATTERN.match(code) or HCPCS_PATTERN.match(code))


def is_valid_icd10(code: str) -> bool:
    return bool(ICD10_PATTERN.match(code))


def required_fields_rule(context: RuleContext) -> list[RuleFinding]:
    """Check for missing claim-level references and an empty claim."""
    findings: list[RuleFinding] = []
    claim = context.claim

    required_fields = [
        ("patient_id", "Patient reference"),
        ("provider_id", "Rendering provider"),
        ("payer_id", "Payer"),
    ]

    for field_path, field_name in required_fields:
        if not str(getattr(claim, field_path) or "").strip():
            findings.append(
                RuleFinding(
                    field_path=field_path,
                    message=f"Required field '{field_name}' is missing or empty",
                )
            )

    if not claim.service_lines:
        findings.append(
            RuleFinding(
                field_path="service_lines",
                message="Claim has no service lines",
            )
        )

    return findings


def procedure_code_format_rule(context: RuleContext) -> list[RuleFinding]:
    """Validate CPT/HCPCS procedure code shape per line."""
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        code = line.procedure_code
        field_path = f"service_lines[{idx}].procedure_code"

        if not code:
            findings.append(
                RuleFinding(
                    field_path=field_path,
                    message=f"Line {idx + 1} missing procedure code",
                    metadata={"line_index": idx, "code": code},
                )
            )
            continue

        if not is_valid_procedure_code(code):
            findings.append(
                RuleFinding(
                    field_path=field_path,
                    message=f"Invalid procedure code format: {code!r}",
                    metadata={"line_index": idx, "code": code},
                )
            )

    return findings


def diagnosis_code_format_rule(context: RuleContext) -> list[RuleFinding]:
    """Validate ICD-10-CM diagnosis code shape per line."""
    findings: list[RuleFinding] = []

    for idx, line in context.covered_lines():
        for code_idx, code in enumerate(line.diagnosis_codes):
            if is_valid_icd10(code):
                continue
            findings.append(
                RuleFinding(
                    field_path=f"service_lines[{idx}].diagnosis_codes[{code_idx}]",
                    message=f"Diagnosis code {code!r} is not in valid ICD-10 format (e.g. F32.9)",
                    metadata={"line_index": idx, "code_index": code_idx, "code": code},
                )
            )

    return findings
