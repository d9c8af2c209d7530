"""Claim validation rules organized by category."""

from __future__ import annotations

from .coding_rules import (
    diagnosis_compatibility_rule,
    diagnosis_required_rule,
    duplicate_lines_rule,
    modifier_conflict_rule,
)
from .coverage_rules import (
    coverage_dates_rule,
    service_date_future_rule,
)
from .format_rules import (
    diagnosis_code_format_rule,
    procedure_code_format_rule,
    required_fields_rule,
)
from .timely_filing_rules import (
    timely_filing_approaching_rule,
    timely_filing_late_rule,
)
from .units_rules import (
    charge_positive_rule,
    units_max_rule,
    units_positive_rule,
)

__all__ = [
    # Format rules
    "required_fields_rule",
    "procedure_code_format_rule",
    "diagnosis_code_format_rule",
    # Coding rules
    "diagnosis_required_rule",
    "diagnosis_compatibility_rule",
    "duplicate_lines_rule",
    "modifier_conflict_rule",
    # Units rules
    "units_positive_rule",
    "units_max_rule",
    "charge_positive_rule",
    # Coverage rules
    "coverage_dates_rule",
    "service_date_future_rule",
    # Timely filing rules
    "timely_filing_late_rule",
    "timely_filing_approaching_rule",
]
