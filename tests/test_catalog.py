"""Tests for loading and validating rule catalogs."""

from __future__ import annotations

import json

import pytest
import yaml

from rcm_backend.errors import RuleDefinitionError
from rcm_backend.models import Severity
from rcm_backend.rules import CheckRegistry, RuleFinding, build_ruleset, load_ruleset
from rcm_backend.rules.catalog import RuleDefinition


def _catalog(*rules, version="test-1", datasets=None):
    data = {"version": version, "rules": list(rules)}
    if datasets is not None:
        data["datasets"] = datasets
    return data


def _entry(**overrides):
    entry = {
        "id": "UNITS_POSITIVE",
        "check": "units_positive",
        "severity": "blocking",
        "applies_to": "all",
    }
    entry.update(overrides)
    return entry


class TestDefaultCatalog:
    """Tests for the packaged catalog."""

    def test_version_and_size(self, ruleset):
        assert ruleset.version == "2026.1"
        assert len(ruleset) == 14

    def test_rule_order_follows_file(self, ruleset):
        ids = [rule.rule_id for rule in ruleset]

        assert ids[0] == "REQUIRED_FIELDS"
        assert ids[-1] == "TIMELY_FILING_APPROACHING"

    def test_severities(self, ruleset):
        assert ruleset.get("DIAGNOSIS_REQUIRED").severity == Severity.BLOCKING
        assert ruleset.get("DIAGNOSIS_CODE_FORMAT").severity == Severity.WARNING
        assert ruleset.get("TIMELY_FILING_APPROACHING").severity == Severity.INFO

    def test_params_are_read_only(self, ruleset):
        rule = ruleset.get("TIMELY_FILING_APPROACHING")

        assert rule.params["warning_window_days"] == 30
        with pytest.raises(TypeError):
            rule.params["warning_window_days"] = 5

    def test_datasets_loaded(self, ruleset):
        assert ruleset.datasets["filing_limits"]["MEDICAID"] == 180
        assert ruleset.datasets["unit_limits"]["MEDICARE"]["97110"] == 4

    def test_applicability_narrowing(self, ruleset):
        rule = ruleset.get("DIAGNOSIS_REQUIRED")

        assert not rule.applicability.is_universal
        assert "90837" in rule.applicability.procedure_codes


class TestInvalidDefinitions:
    """Tests that malformed entries fail at load time."""

    def test_missing_severity(self):
        entry = _entry()
        del entry["severity"]

        with pytest.raises(RuleDefinitionError) as exc_info:
            build_ruleset(_catalog(entry))

        assert exc_info.value.errors[0]["field"] == "severity"

    def test_missing_applicability(self):
        entry = _entry()
        del entry["applies_to"]

        with pytest.raises(RuleDefinitionError) as exc_info:
            build_ruleset(_catalog(entry))

        assert exc_info.value.errors[0]["field"] == "applies_to"

    def test_unknown_severity(self):
        with pytest.raises(RuleDefinitionError):
            build_ruleset(_catalog(_entry(severity="critical")))

    def test_unknown_check(self):
        with pytest.raises(RuleDefinitionError) as exc_info:
            build_ruleset(_catalog(_entry(check="does_not_exist")))

        assert "unknown check" in exc_info.value.errors[0]["error"]

    def test_duplicate_ids(self):
        with pytest.raises(RuleDefinitionError) as exc_info:
            build_ruleset(_catalog(_entry(), _entry()))

        assert exc_info.value.errors == [
            {"rule": "UNITS_POSITIVE", "field": "id", "error": "duplicate rule id"}
        ]

    def test_errors_are_collected(self):
        """Test that every bad entry is reported, not just the first."""
        bad_one = _entry(id="A", severity="nope")
        bad_two = _entry(id="B", check="missing")

        with pytest.raises(RuleDefinitionError) as exc_info:
            build_ruleset(_catalog(bad_one, bad_two))

        assert {error["rule"] for error in exc_info.value.errors} == {"A", "B"}

    def test_missing_version(self):
        with pytest.raises(RuleDefinitionError, match="version"):
            build_ruleset({"rules": [_entry()]})

    def test_rules_must_be_list(self):
        with pytest.raises(RuleDefinitionError):
            build_ruleset({"version": "x", "rules": {"id": "A"}})

    def test_unknown_entry_key(self):
        with pytest.raises(RuleDefinitionError):
            build_ruleset(_catalog(_entry(weight=5)))


class TestCatalogOptions:
    """Tests for applicability, disabled rules and custom checks."""

    def test_disabled_rule_skipped(self):
        ruleset = build_ruleset(
            _catalog(_entry(), _entry(id="CHARGE_POSITIVE", check="charge_positive", enabled=False))
        )

        assert [rule.rule_id for rule in ruleset] == ["UNITS_POSITIVE"]

    def test_payer_applicability(self, make_claim):
        ruleset = build_ruleset(_catalog(_entry(applies_to={"payers": ["MEDICARE"]})))
        rule = ruleset.get("UNITS_POSITIVE")

        assert not rule.applies(rule.context_for(make_claim(payer_id="AETNA"), {}))
        assert rule.applies(rule.context_for(make_claim(payer_id="MEDICARE"), {}))

    def test_custom_registry(self, make_claim):
        registry = CheckRegistry()
        registry.register(
            "always",
            lambda context: [RuleFinding(field_path="claim", message="always fires")],
        )

        ruleset = build_ruleset(
            _catalog(_entry(id="ALWAYS", check="always", severity="info")),
            registry=registry,
        )

        rule = ruleset.get("ALWAYS")
        assert rule.evaluate(rule.context_for(make_claim(), {}))[0].message == "always fires"

    def test_registry_name_conflict(self):
        registry = CheckRegistry()
        registry.register("check", lambda context: [])

        with pytest.raises(ValueError):
            registry.register("check", lambda context: [])

    def test_definition_model(self):
        definition = RuleDefinition.model_validate(_entry(applies_to={"procedure_codes": ["90837"]}))

        applicability = definition.to_applicability()
        assert applicability.procedure_codes == frozenset({"90837"})
        assert applicability.payer_ids == frozenset()


class TestLoadRuleset:
    """Tests for reading catalog files."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(yaml.safe_dump(_catalog(_entry(), version="2026.2")))

        assert load_ruleset(path).version == "2026.2"

    def test_json_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(_catalog(_entry(), datasets={"filing_limits": {"*": 90}})))

        ruleset = load_ruleset(path)

        assert ruleset.datasets["filing_limits"]["*"] == 90

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "rules.txt"
        path.write_text("version: x")

        with pytest.raises(ValueError, match="Unsupported"):
            load_ruleset(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_ruleset(tmp_path / "missing.yaml")
