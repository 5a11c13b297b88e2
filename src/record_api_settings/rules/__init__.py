"""Access rule validation, synchronous and superseding-async."""
from __future__ import annotations

from record_api_settings.rules.supersede import (
    DEFAULT_DEBOUNCE_SECONDS,
    SupersedingValidator,
)
from record_api_settings.rules.validator import (
    AccessRuleKind,
    AccessRuleValidator,
    ExpressionParser,
    ParsedExpression,
    RuleValidationResult,
    RuleVariable,
    SqlExpressionParser,
    access_rules_for,
    permitted_variables,
)

__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "AccessRuleKind",
    "AccessRuleValidator",
    "ExpressionParser",
    "ParsedExpression",
    "RuleValidationResult",
    "RuleVariable",
    "SqlExpressionParser",
    "SupersedingValidator",
    "access_rules_for",
    "permitted_variables",
]
