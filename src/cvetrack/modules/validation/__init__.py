"""Schema validation for advisory documents."""

from .registry import RuleRegistry, ScoringRules, default_registry, load_rule_registry
from .report import ValidationIssue, ValidationReport
from .validator import SchemaValidator

__all__ = [
    "RuleRegistry",
    "SchemaValidator",
    "ScoringRules",
    "ValidationIssue",
    "ValidationReport",
    "default_registry",
    "load_rule_registry",
]
