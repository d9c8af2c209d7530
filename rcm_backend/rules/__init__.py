"""Rule catalog and claim validator."""

from .catalog import RuleDefinition, build_ruleset, load_ruleset
from .engine import RULE_EVALUATION_FAILED, validate
from .models import Applicability, Rule, RuleContext, RuleFinding, RuleSet
from .registry import CheckRegistry, default_registry
from .thresholds import ScoringWeights

__all__ = [
    "validate",
    "RULE_EVALUATION_FAILED",
    "build_ruleset",
    "load_ruleset",
    "RuleDefinition",
    "Applicability",
    "Rule",
    "RuleContext",
    "RuleFinding",
    "RuleSet",
    "CheckRegistry",
    "default_registry",
    "ScoringWeights",
]
