"""Rule catalog loader.

Loads versioned rule catalogs from YAML or JSON. Every entry is validated
when the catalog is loaded, so a malformed rule never reaches evaluation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import RuleDefinitionError
from ..models import Severity
from .models import Applicability, Rule, RuleSet
from .registry import CheckRegistry, default_registry
from .ruleset import register_default_checks

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "default_rules.yaml"


class ApplicabilityDefinition(BaseModel):
    """Restrictions on which claims a rule applies to."""

    model_config = ConfigDict(extra="forbid")

    payers: list[str] = Field(default_factory=list)
    procedure_codes: list[str] = Field(default_factory=list)


class RuleDefinition(BaseModel):
    """One catalog entry. ``severity`` and ``applies_to`` have no defaults."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, max_length=64)
    check: str = Field(..., min_length=1)
    severity: Severity
    applies_to: Literal["all"] | ApplicabilityDefinition
    description: str = ""
    category: str = "general"
    enabled: bool = True
    params: dict[str, Any] = Field(default_factory=dict)

    def to_applicability(self) -> Applicability:
        if self.applies_to == "all":
            return Applicability.everywhere()
        return Applicability(
            payer_ids=frozenset(self.applies_to.payers),
            procedure_codes=frozenset(self.applies_to.procedure_codes),
        )


def _registry_or_default(registry: CheckRegistry | None) -> CheckRegistry:
    if registry is not None:
        return registry
    # ensure default registry is populated
    register_default_checks(default_registry)
    return default_registry


def build_ruleset(data: dict[str, Any], registry: CheckRegistry | None = None) -> RuleSet:
    """Build a RuleSet from a parsed catalog document.

    Raises:
        RuleDefinitionError: If the version is missing or any entry is invalid
    """
    registry = _registry_or_default(registry)

    if not isinstance(data, dict):
        raise RuleDefinitionError("Rule catalog must be a mapping")

    version = str(data.get("version") or "").strip()
    if not version:
        raise RuleDefinitionError("Rule catalog is missing 'version'")

    raw_rules = data.get("rules")
    if not isinstance(raw_rules, list):
        raise RuleDefinitionError("Rule catalog 'rules' must be a list")

    datasets = data.get("datasets") or {}
    if not isinstance(datasets, dict):
        raise RuleDefinitionError("Rule catalog 'datasets' must be a mapping")

    rules: list[Rule] = []
    errors: list[dict[str, Any]] = []
    seen_ids: set[str] = set()

    for idx, raw in enumerate(raw_rules):
        rule_ref = raw.get("id", f"#{idx}") if isinstance(raw, dict) else f"#{idx}"
        try:
            definition = RuleDefinition.model_validate(raw)
        except ValidationError as e:
            errors.extend(
                {
                    "rule": rule_ref,
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "error": err["msg"],
                }
                for err in e.errors()
            )
            continue

        if definition.id in seen_ids:
            errors.append({"rule": definition.id, "field": "id", "error": "duplicate rule id"})
            continue
        seen_ids.add(definition.id)

        check = registry.get(definition.check)
        if check is None:
            errors.append(
                {
                    "rule": definition.id,
                    "field": "check",
                    "error": f"unknown check '{definition.check}'",
                }
            )
            continue

        if not definition.enabled:
            logger.info(f"Rule {definition.id} disabled in catalog {version}")
            continue

        rules.append(
            Rule(
                rule_id=definition.id,
                severity=definition.severity,
                applicability=definition.to_applicability(),
                check=check,
                description=definition.description,
                category=definition.category,
                params=definition.params,
            )
        )

    if errors:
        raise RuleDefinitionError(
            f"Rule catalog {version} has {len(errors)} invalid definition(s)",
            errors=errors,
        )

    return RuleSet(version=version, rules=tuple(rules), datasets=datasets)


def load_ruleset(path: str | Path | None = None, registry: CheckRegistry | None = None) -> RuleSet:
    """Load a rule catalog from a YAML or JSON file.

    Args:
        path: Catalog file. Defaults to the packaged default catalog.
        registry: Check registry. Defaults to the built-in checks.

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuleDefinitionError: If validation fails
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH

    if not catalog_path.exists():
        raise FileNotFoundError(f"Rule catalog not found: {catalog_path}")

    suffix = catalog_path.suffix.lower()
    with open(catalog_path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported catalog format: {suffix}")

    ruleset = build_ruleset(data, registry)
    logger.info(f"Loaded rule catalog {ruleset.version} with {len(ruleset)} rule(s) from {catalog_path.name}")
    return ruleset
