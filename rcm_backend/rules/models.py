"""Data models for the rule catalog."""
from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..errors import RuleDefinitionError
from ..models import Claim, ServiceLine, Severity


@dataclass(frozen=True)
class RuleFinding:
    """What a check reports; the validator turns it into a ValidationIssue."""

    field_path: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Applicability:
    """Which claims a rule applies to.

    Empty sets mean "no restriction", so ``Applicability()`` applies to every
    claim. A procedure-code filter also narrows which service lines a
    line-level check inspects.
    """

    payer_ids: frozenset[str] = frozenset()
    procedure_codes: frozenset[str] = frozenset()

    @classmethod
    def everywhere(cls) -> Applicability:
        return cls()

    @property
    def is_universal(self) -> bool:
        return not self.payer_ids and not self.procedure_codes

    def covers_line(self, line: ServiceLine) -> bool:
        return not self.procedure_codes or line.procedure_code in self.procedure_codes

    def matches(self, claim: Claim) -> bool:
        if self.payer_ids and claim.payer_id not in self.payer_ids:
            return False
        if self.procedure_codes:
            return any(self.covers_line(line) for line in claim.service_lines)
        return True


@dataclass(frozen=True)
class RuleContext:
    """Inputs available to a rule check."""

    claim: Claim
    datasets: Mapping[str, Any]
    config: Mapping[str, Any] = field(default_factory=dict)
    applicability: Applicability = field(default_factory=Applicability)

    def covered_lines(self) -> Iterator[tuple[int, ServiceLine]]:
        """Yield (index, line) for the lines this rule instance inspects."""
        for idx, line in enumerate(self.claim.service_lines):
            if self.applicability.covers_line(line):
                yield idx, line


RuleCheck = Callable[[RuleContext], list[RuleFinding]]


@dataclass(frozen=True)
class Rule:
    """A catalog entry: identity, severity, applicability and the check."""

    rule_id: str
    severity: Severity
    applicability: Applicability
    check: RuleCheck
    description: str = ""
    category: str = "general"
    params: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.rule_id:
            raise RuleDefinitionError("Rule id must not be empty")
        if not isinstance(self.severity, Severity):
            raise RuleDefinitionError(f"Rule {self.rule_id}: invalid severity {self.severity!r}")
        if not isinstance(self.applicability, Applicability):
            raise RuleDefinitionError(f"Rule {self.rule_id}: missing applicability")
        if not callable(self.check):
            raise RuleDefinitionError(f"Rule {self.rule_id}: check is not callable")
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def context_for(self, claim: Claim, datasets: Mapping[str, Any]) -> RuleContext:
        return RuleContext(
            claim=claim,
            datasets=datasets,
            config=self.params,
            applicability=self.applicability,
        )

    def applies(self, context: RuleContext) -> bool:
        return self.applicability.matches(context.claim)

    def evaluate(self, context: RuleContext) -> list[RuleFinding]:
        return self.check(context)


@dataclass(frozen=True)
class RuleSet:
    """A versioned, ordered collection of rules plus their reference data."""

    version: str
    rules: tuple[Rule, ...]
    datasets: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.version:
            raise RuleDefinitionError("Rule set version must not be empty")
        seen: set[str] = set()
        for rule in self.rules:
            if rule.rule_id in seen:
                raise RuleDefinitionError(f"Duplicate rule id: {rule.rule_id}")
            seen.add(rule.rule_id)
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "datasets", MappingProxyType(dict(self.datasets)))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.rule_id == rule_id:
                return rule
        return None
