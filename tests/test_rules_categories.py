"""Tests for every built-in rule check."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from rcm_backend.rules.categories import (
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
from rcm_backend.rules.models import Applicability, RuleContext

PSYCH_FAMILIES = {"90837": ["F32", "F33", "F41", "F43", "F90", "F84"]}


def context_for(claim, datasets=None, config=None, applicability=None) -> RuleContext:
    return RuleContext(
        claim=claim,
        datasets=datasets or {},
        config=config or {},
        applicability=applicability or Applicability(),
    )


# ============================================================================
# FORMAT RULES TESTS
# ============================================================================
class TestFormatRules:
    """Tests for required-field and code-shape rules."""

    def test_missing_patient(self, make_claim):
        """Test that an empty patient reference is reported."""
        hits = required_fields_rule(context_for(make_claim(patient_id="  ")))

        assert [h.field_path for h in hits] == ["patient_id"]

    def test_no_service_lines(self, make_claim):
        hits = required_fields_rule(context_for(make_claim(lines=[])))

        assert any(h.field_path == "service_lines" for h in hits)

    def test_complete_claim(self, clean_claim):
        assert required_fields_rule(context_for(clean_claim)) == []

    def test_procedure_code_shapes(self, make_claim, make_line):
        claim = make_claim(
            lines=[
                make_line(procedure_code="99213"),
                make_line(procedure_code="G0438"),
                make_line(procedure_code="0001F"),
                make_line(procedure_code="9921"),
                make_line(procedure_code=" 99214"),
            ]
        )

        hits = procedure_code_format_rule(context_for(claim))

        assert [h.field_path for h in hits] == [
            "service_lines[3].procedure_code",
            "service_lines[4].procedure_code",
        ]
        assert hits[1].metadata["code"] == " 99214"

    def test_missing_procedure_code(self, make_claim, make_line):
        hits = procedure_code_format_rule(context_for(make_claim(lines=[make_line(procedure_code="")])))

        assert len(hits) == 1
        assert "missing procedure code" in hits[0].message

    def test_diagnosis_without_dot(self, make_claim, make_line):
        """Test that an ICD-10 code missing its dot is flagged with remediation data."""
        claim = make_claim(lines=[make_line(diagnosis_codes=["J06.9", "F329"])])

        hits = diagnosis_code_format_rule(context_for(claim))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].diagnosis_codes[1]"
        assert hits[0].metadata == {"line_index": 0, "code_index": 1, "code": "F329"}

    def test_short_icd10_category_is_valid(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(diagnosis_codes=["I10"])])

        assert diagnosis_code_format_rule(context_for(claim)) == []


# ============================================================================
# CODING RULES TESTS
# ============================================================================
class TestCodingRules:
    """Tests for diagnosis linkage, duplicates and modifiers."""

    def test_diagnosis_required(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(diagnosis_codes=[])])

        hits = diagnosis_required_rule(context_for(claim))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].diagnosis_codes"
        assert hits[0].metadata["procedure_code"] == "99213"

    def test_diagnosis_required_blank_codes(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(diagnosis_codes=["  "])])

        assert len(diagnosis_required_rule(context_for(claim))) == 1

    def test_diagnosis_required_respects_procedure_filter(self, make_claim, make_line):
        """Test that lines outside the rule's procedure codes are skipped."""
        claim = make_claim(
            lines=[
                make_line(procedure_code="99213", diagnosis_codes=[]),
                make_line(procedure_code="90837", diagnosis_codes=[]),
            ]
        )
        applicability = Applicability(procedure_codes=frozenset({"90837"}))

        hits = diagnosis_required_rule(context_for(claim, applicability=applicability))

        assert [h.field_path for h in hits] == ["service_lines[1].diagnosis_codes"]

    def test_psychotherapy_requires_mental_health_diagnosis(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(procedure_code="90837", diagnosis_codes=["J06.9"])])

        hits = diagnosis_compatibility_rule(
            context_for(claim, datasets={"procedure_diagnosis_families": PSYCH_FAMILIES})
        )

        assert len(hits) == 1
        assert "F41" in hits[0].message

    def test_psychotherapy_with_anxiety_diagnosis(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(procedure_code="90837", diagnosis_codes=["F41.1"])])

        hits = diagnosis_compatibility_rule(
            context_for(claim, datasets={"procedure_diagnosis_families": PSYCH_FAMILIES})
        )

        assert hits == []

    def test_duplicate_lines(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(), make_line(), make_line(units=2)])

        hits = duplicate_lines_rule(context_for(claim))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[1]"
        assert hits[0].metadata["duplicate_of"] == 0

    def test_modifier_conflict(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(modifiers=["lt", "RT"]), make_line(modifiers=["LT"])])

        hits = modifier_conflict_rule(
            context_for(claim, datasets={"modifier_conflicts": [["LT", "RT"]]})
        )

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].modifiers"


# ============================================================================
# UNITS RULES TESTS
# ============================================================================
class TestUnitsRules:
    """Tests for units and charge rules."""

    def test_zero_units(self, make_claim, make_line):
        hits = units_positive_rule(context_for(make_claim(lines=[make_line(units=0)])))

        assert len(hits) == 1
        assert hits[0].metadata["units"] == 0

    def test_units_above_default_limit(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(units=3)])

        hits = units_max_rule(context_for(claim, datasets={"unit_limits": {"*": {"99213": 1}}}))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].units"
        assert hits[0].metadata == {"line_index": 0, "units": 3, "max_units": 1}

    def test_payer_specific_limit_wins(self, make_claim, make_line):
        """Test that a payer table overrides the default table."""
        claim = make_claim(payer_id="MEDICARE", lines=[make_line(procedure_code="97110", units=3)])
        datasets = {"unit_limits": {"*": {"97110": 2}, "MEDICARE": {"97110": 4}}}

        assert units_max_rule(context_for(claim, datasets=datasets)) == []

    def test_configured_limit_wins(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(units=2)])
        datasets = {"unit_limits": {"*": {"99213": 4}}}

        hits = units_max_rule(context_for(claim, datasets=datasets, config={"max_units": 1}))

        assert len(hits) == 1

    def test_no_limit_known(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(procedure_code="97140", units=12)])

        assert units_max_rule(context_for(claim)) == []

    def test_zero_charge(self, make_claim, make_line):
        hits = charge_positive_rule(context_for(make_claim(lines=[make_line(charge=Decimal("0.00"))])))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].charge"


# ============================================================================
# COVERAGE RULES TESTS
# ============================================================================
class TestCoverageRules:
    """Tests for coverage window and service date rules."""

    def test_service_before_coverage(self, make_claim):
        claim = make_claim(coverage_start=date(2026, 3, 5))

        hits = coverage_dates_rule(context_for(claim))

        assert len(hits) == 1
        assert "precedes coverage start" in hits[0].message

    def test_service_after_coverage(self, make_claim):
        claim = make_claim(coverage_end=date(2026, 2, 28))

        hits = coverage_dates_rule(context_for(claim))

        assert len(hits) == 1
        assert "after coverage end" in hits[0].message

    def test_service_inside_coverage(self, make_claim):
        claim = make_claim(coverage_start=date(2026, 1, 1), coverage_end=date(2026, 12, 31))

        assert coverage_dates_rule(context_for(claim)) == []

    def test_service_after_claim_date(self, make_claim, make_line):
        claim = make_claim(lines=[make_line(service_date=date(2026, 3, 10))])

        hits = service_date_future_rule(context_for(claim))

        assert len(hits) == 1
        assert hits[0].field_path == "service_lines[0].service_date"


# ============================================================================
# TIMELY FILING RULES TESTS
# ============================================================================
class TestTimelyFilingRules:
    """Tests for filing deadline rules."""

    def _claim_filed_after(self, make_claim, make_line, days, payer_id="AETNA"):
        created_at = date(2026, 3, 9)
        return make_claim(
            payer_id=payer_id,
            created_at=created_at,
            lines=[make_line(service_date=created_at - timedelta(days=days))],
        )

    def test_late_filing(self, make_claim, make_line):
        claim = self._claim_filed_after(make_claim, make_line, 400)

        hits = timely_filing_late_rule(context_for(claim))

        assert len(hits) == 1
        assert hits[0].metadata["days_elapsed"] == 400
        assert hits[0].metadata["filing_limit"] == 365

    def test_payer_filing_limit(self, make_claim, make_line):
        """Test that a payer-specific limit applies before the default."""
        claim = self._claim_filed_after(make_claim, make_line, 200, payer_id="MEDICAID")
        datasets = {"filing_limits": {"*": 365, "MEDICAID": 180}}

        assert len(timely_filing_late_rule(context_for(claim, datasets=datasets))) == 1

    def test_on_time_filing(self, make_claim, make_line):
        claim = self._claim_filed_after(make_claim, make_line, 365)

        assert timely_filing_late_rule(context_for(claim)) == []

    def test_approaching_deadline(self, make_claim, make_line):
        claim = self._claim_filed_after(make_claim, make_line, 350)

        hits = timely_filing_approaching_rule(context_for(claim, config={"warning_window_days": 30}))

        assert len(hits) == 1
        assert "approaching" in hits[0].message

    def test_outside_approach_window(self, make_claim, make_line):
        claim = self._claim_filed_after(make_claim, make_line, 300)

        assert timely_filing_approaching_rule(context_for(claim)) == []

    def test_late_claim_is_not_approaching(self, make_claim, make_line):
        claim = self._claim_filed_after(make_claim, make_line, 366)

        assert timely_filing_approaching_rule(context_for(claim)) == []
