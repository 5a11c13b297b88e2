"""Access rule validation.

An access rule is a boolean SQL expression (SQLite dialect) that gates one
operation of a Record API. Each rule slot may only reference the variables
that exist when that operation runs:

=========  ==========================
Slot       Visible variables
=========  ==========================
read       ``_USER_``, ``_ROW_``, ``_REQ_``
create     ``_USER_``, ``_REQ_``
update     ``_USER_``, ``_ROW_``, ``_REQ_``
delete     ``_USER_``, ``_ROW_``, ``_REQ_``
schema     ``_USER_``
=========  ==========================

Validation is syntactic. Whether referenced columns exist is a runtime
concern and is never checked here.

Example
-------
>>> validator = AccessRuleValidator()
>>> bool(validator.validate(AccessRuleKind.READ, "_ROW_.owner = _USER_.id"))
True
>>> bool(validator.validate(AccessRuleKind.CREATE, "_ROW_.owner = _USER_.id"))
False
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import ParseError, SqlglotError

from record_api_settings.errors import RuleSyntaxError, RuleValidationError
from record_api_settings.permissions.flags import ResourceKind

logger = logging.getLogger(__name__)


class RuleVariable(str, Enum):
    """Variable namespaces an access rule may reference."""

    USER = "_USER_"
    ROW = "_ROW_"
    REQ = "_REQ_"


class AccessRuleKind(str, Enum):
    """The five access rule slots of a Record API entry."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SCHEMA = "schema"

    @property
    def field_name(self) -> str:
        """Name of the entry field holding this rule."""
        return f"{self.value}_access_rule"

    @classmethod
    def from_field_name(cls, field_name: str) -> AccessRuleKind:
        return cls(field_name.removesuffix("_access_rule"))


_ALL_VARIABLES = frozenset(RuleVariable)

_PERMITTED_VARIABLES: dict[AccessRuleKind, frozenset[RuleVariable]] = {
    AccessRuleKind.READ: _ALL_VARIABLES,
    # No row exists before it is created.
    AccessRuleKind.CREATE: frozenset([RuleVariable.USER, RuleVariable.REQ]),
    AccessRuleKind.UPDATE: _ALL_VARIABLES,
    AccessRuleKind.DELETE: _ALL_VARIABLES,
    AccessRuleKind.SCHEMA: frozenset([RuleVariable.USER]),
}

_RULES_BY_KIND: dict[ResourceKind, tuple[AccessRuleKind, ...]] = {
    ResourceKind.TABLE: tuple(AccessRuleKind),
    ResourceKind.VIEW: (AccessRuleKind.READ, AccessRuleKind.SCHEMA),
}

_VARIABLE_LOOKUP: dict[str, RuleVariable] = {v.value: v for v in RuleVariable}


def permitted_variables(rule: AccessRuleKind) -> frozenset[RuleVariable]:
    """Return the variables ``rule`` may reference."""
    return _PERMITTED_VARIABLES[rule]


def access_rules_for(kind: ResourceKind) -> tuple[AccessRuleKind, ...]:
    """Return the rule slots a resource of ``kind`` exposes, in display order."""
    return _RULES_BY_KIND[kind]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedExpression:
    """Outcome of a successful parse.

    Attributes
    ----------
    expression:
        The source text.
    variables:
        Rule variables the expression references.
    """

    expression: str
    variables: frozenset[RuleVariable]


class ExpressionParser(Protocol):
    """External parser contract used by :class:`AccessRuleValidator`.

    Implementations raise :class:`RuleSyntaxError` on malformed input.
    """

    def parse(self, expression: str) -> ParsedExpression: ...


class SqlExpressionParser:
    """Parses rule expressions with sqlglot.

    Parameters
    ----------
    dialect:
        sqlglot dialect name. Record API rules run on SQLite.
    """

    def __init__(self, dialect: str = "sqlite") -> None:
        self._dialect = Dialect.get_or_raise(dialect)

    def parse(self, expression: str) -> ParsedExpression:
        """Parse a single boolean expression and collect rule variables.

        Raises
        ------
        RuleSyntaxError
            If the text is not exactly one well-formed expression.
        """
        try:
            trees = self._dialect.parse_into(exp.Condition, expression)
        except ParseError as exc:
            raise RuleSyntaxError(_describe(exc)) from exc
        except SqlglotError as exc:
            raise RuleSyntaxError(_plain_message(str(exc))) from exc

        trees = [t for t in trees if t is not None]
        if len(trees) != 1:
            raise RuleSyntaxError(
                f"Expected a single expression, found {len(trees)} statements"
            )

        variables: set[RuleVariable] = set()
        for column in trees[0].find_all(exp.Column):
            qualifier = column.table or column.name
            variable = _VARIABLE_LOOKUP.get(qualifier.upper())
            if variable is not None:
                variables.add(variable)

        return ParsedExpression(expression=expression, variables=frozenset(variables))


_MISSING_OPERAND = re.compile(
    r"Required keyword: '(?P<keyword>\w+)' missing for <class '(?:\w+\.)*(?P<node>\w+)'>"
)
_CLASS_REPR = re.compile(r"<class '(?:\w+\.)*(\w+)'>")

# sqlglot node names for the operators a rule is likely to leave dangling.
_OPERATORS: dict[str, str] = {
    "EQ": "=",
    "NEQ": "!=",
    "GT": ">",
    "GTE": ">=",
    "LT": "<",
    "LTE": "<=",
    "And": "AND",
    "Or": "OR",
    "Not": "NOT",
    "Is": "IS",
    "In": "IN",
    "Like": "LIKE",
    "Add": "+",
    "Sub": "-",
    "Mul": "*",
    "Div": "/",
}


def _describe(exc: ParseError) -> str:
    """Pick the most specific description sqlglot recorded, in plain words."""
    for error in exc.errors:
        description = error.get("description")
        if description:
            message = _plain_message(str(description))
            line = error.get("line")
            col = error.get("col")
            if line is not None and col is not None:
                return f"{message} (line {line}, col {col})"
            return message
    return _plain_message(str(exc))


def _plain_message(description: str) -> str:
    match = _MISSING_OPERAND.search(description)
    if match is not None:
        node = match.group("node")
        operator = _OPERATORS.get(node)
        if operator is not None:
            return f"Incomplete expression: {operator} is missing an operand"
        return f"Incomplete {node.upper()} expression: missing {match.group('keyword')}"
    return _CLASS_REPR.sub(r"\1", description)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleValidationResult:
    """Immutable result of validating one access rule.

    Attributes
    ----------
    rule:
        The slot the expression was validated for.
    expression:
        The validated text, or ``None`` when the slot is unset.
    valid:
        Whether the expression is acceptable for the slot.
    diagnostic:
        Description of the problem when ``valid`` is ``False``.
    """

    rule: AccessRuleKind
    expression: str | None
    valid: bool
    diagnostic: str | None = None

    def __bool__(self) -> bool:
        """Return True if the expression is valid."""
        return self.valid


class AccessRuleValidator:
    """Checks access rule syntax and variable scoping.

    Parameters
    ----------
    parser:
        External expression parser. Defaults to :class:`SqlExpressionParser`.
    """

    def __init__(self, parser: ExpressionParser | None = None) -> None:
        self._parser: ExpressionParser = parser or SqlExpressionParser()

    def validate(
        self,
        rule: AccessRuleKind,
        expression: str | None,
    ) -> RuleValidationResult:
        """Validate ``expression`` for the ``rule`` slot.

        An empty or absent expression leaves the slot unset and is always
        valid.

        Parameters
        ----------
        rule:
            The rule slot.
        expression:
            Candidate boolean SQL expression.

        Returns
        -------
        RuleValidationResult
        """
        if expression is None or not expression.strip():
            return RuleValidationResult(rule=rule, expression=None, valid=True)

        try:
            parsed = self._parser.parse(expression)
        except RuleSyntaxError as exc:
            logger.debug("Rule %s failed to parse: %s", rule.value, exc)
            return RuleValidationResult(
                rule=rule, expression=expression, valid=False, diagnostic=str(exc)
            )

        forbidden = parsed.variables - permitted_variables(rule)
        if forbidden:
            names = ", ".join(sorted(v.value for v in forbidden))
            diagnostic = f"{names} not available in {rule.value} rules"
            logger.debug("Rule %s rejected: %s", rule.value, diagnostic)
            return RuleValidationResult(
                rule=rule, expression=expression, valid=False, diagnostic=diagnostic
            )

        return RuleValidationResult(rule=rule, expression=expression, valid=True)

    def validate_or_raise(self, rule: AccessRuleKind, expression: str | None) -> None:
        """Validate and raise :class:`RuleValidationError` on failure."""
        result = self.validate(rule, expression)
        if not result.valid:
            raise RuleValidationError(rule, result.diagnostic or "invalid expression")
