"""Rule language: rule types, rule-string grammar and clause separation."""

from .clauses import parse_when_clause, separate_rule
from .grammar import parse_rules
from .models import Cell, Column, Rule, WhenClause
from .types import RuleCategory, RuleKey, RuleType, resolve_query_types

__all__ = [
    "Cell",
    "Column",
    "Rule",
    "RuleCategory",
    "RuleKey",
    "RuleType",
    "WhenClause",
    "parse_rules",
    "parse_when_clause",
    "resolve_query_types",
    "separate_rule",
]
