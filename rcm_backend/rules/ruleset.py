"""Default claim validation checks.

Catalog files refer to checks by the names registered here; the catalog
entry supplies severity, applicability and parameters.
"""

from __future__ import annotations

from .categories import (
    charge_positive_rule,
    coverage_dates_rule,
    diagnosis_code_format_rule,
    diagnosis_compatibility_rule,
    diagnosis_required_rule,
    duplicate_lines_rule,
    modifier_conflict_rule,
    procedure_code_format_rule,
    required_fields_rule,
    service_date_future_rule,
    timely_filing_approaching_rule,
    timely_filing_late_rule,
    units_max_rule,
    units_positive_rule,
)
from .registry import CheckRegistry

DEFAULT_CHECKS = (
    # Format & required fields
    ("required_fields", required_fields_rule),
    ("procedure_code_format", procedure_code_format_rule),
    ("diagnosis_code_format", diagnosis_code_format_rule),
    # Coding
    ("diagnosis_required", diagnosis_required_rule),
    ("diagnosis_compatibility", diagnosis_compatibility_rule),
    ("duplicate_lines", duplicate_lines_rule),
    ("modifier_conflict", modifier_conflict_rule),
    # Units & charges
    ("units_positive", units_positive_rule),
    ("units_max", units_max_rule),
    ("charge_positive", charge_positive_rule),
    # Coverage & dates
    ("coverage_dates", coverage_dates_rule),
    ("service_date_future", service_date_future_rule),
    # Timely filing
    ("timely_filing_late", timely_filing_late_rule),
    ("timely_filing_approaching", timely_filing_approaching_rule),
)


def register_default_checks(registry: CheckRegistry) -> None:
    """Register every built-in check under its catalog name."""
    registry.extend(DEFAULT_CHECKS)
