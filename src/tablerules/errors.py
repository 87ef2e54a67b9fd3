"""Error taxonomy for rule parsing and evaluation.

Structural errors (subclasses of ``RuleError``) describe a rule that cannot be
understood at all. They abort the whole validation run. Semantic failures, where a
cell simply does not satisfy its rule, are never raised: they are recorded as
``ValidationIssue`` entries by the validator.
"""

from typing import Any

NS = "validate#"

PRESENCE_TOKENS = "true, t, 1, yes, y, false, f, 0, no, n"


def _where(column: int | None) -> str:
    return f" in column {column}" if column is not None else ""


class RuleError(Exception):
    """Base class for structural rule errors."""

    error_code = "rule_error"

    def __init__(self, message: str, column: int | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.column = column  # 1-based column number, when known
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "column": self.column,
            "details": self.details,
        }


class MalformedRuleError(RuleError):
    """A rule entry has no content and its type does not allow that."""

    error_code = "malformed_rule"

    def __init__(self, rule: str):
        super().__init__(f"{NS}MALFORMED RULE ERROR malformed rule: {rule}", details={"rule": rule})


class UnrecognizedRuleTypeError(RuleError):
    """The rule type token of a rule entry is unknown."""

    error_code = "unrecognized_rule_type"

    def __init__(self, rule_type: str, column: int | None = None):
        super().__init__(
            f"{NS}UNRECOGNIZED RULE TYPE ERROR{_where(column)}: unrecognized rule type \"{rule_type}\".",
            column,
            {"rule_type": rule_type},
        )


class UnrecognizedQueryTypeError(RuleError):
    """One of the ``|``-separated query types of a rule is unknown."""

    error_code = "unrecognized_query_type"

    def __init__(self, query_type: str, rule: str, column: int | None = None):
        super().__init__(
            f"{NS}UNRECOGNIZED QUERY TYPE ERROR{_where(column)}: query type \"{query_type}\" "
            f"not recognized in rule \"{rule}\".",
            column,
            {"query_type": query_type, "rule": rule},
        )


class InvalidPresenceRuleError(RuleError):
    """A presence rule's content is not a truth value."""

    error_code = "invalid_presence_rule"

    def __init__(self, rule: str, rule_type: str, column: int | None = None):
        super().__init__(
            f"{NS}INVALID PRESENCE RULE ERROR{_where(column)}: invalid rule: \"{rule}\" for rule type: "
            f"{rule_type}. Must be one of: {PRESENCE_TOKENS}",
            column,
            {"rule": rule, "rule_type": rule_type},
        )


class NoMainClauseError(RuleError):
    """A query rule has a when-clause but nothing in front of it."""

    error_code = "no_main_clause"

    def __init__(self, rule: str, column: int | None = None):
        super().__init__(
            f"{NS}NO MAIN ERROR{_where(column)}: rule: \"{rule}\" has when clause but no main clause.",
            column,
            {"rule": rule},
        )


class MalformedWhenClauseError(RuleError):
    """A when-clause cannot be decomposed into subject, types and axiom."""

    error_code = "malformed_when_clause"

    def __init__(self, clause: str, column: int | None = None):
        super().__init__(
            f"{NS}MALFORMED WHEN CLAUSE ERROR{_where(column)}: unable to decompose when-clause: \"{clause}\".",
            column,
            {"clause": clause},
        )


class InvalidWhenTypeError(RuleError):
    """A when-clause uses a rule type outside the query category."""

    error_code = "invalid_when_type"

    def __init__(self, clause: str, allowed: list[str], column: int | None = None):
        super().__init__(
            f"{NS}INVALID WHEN TYPE ERROR{_where(column)}: in clause: \"{clause}\": Only rules of type: "
            f"{', '.join(allowed)} are allowed in a when clause.",
            column,
            {"clause": clause},
        )


class ColumnOutOfRangeError(RuleError):
    """A ``%N`` wildcard points past the end of the row."""

    error_code = "column_out_of_range"

    def __init__(self, wildcard: str, row_length: int, column: int | None = None):
        super().__init__(
            f"{NS}COLUMN OUT OF RANGE ERROR{_where(column)}: rule \"{wildcard}\" indicates a column number "
            f"that is greater than the row length ({row_length}).",
            column,
            {"wildcard": wildcard, "row_length": row_length},
        )
        self.row_length = row_length


class MissingColumnError(RuleError):
    """A ``{Column}`` placeholder names a header that does not exist."""

    error_code = "missing_column"

    def __init__(self, column_name: str, table: str | None = None, column: int | None = None):
        location = f" in {table}" if table else ""
        super().__init__(
            f"{NS}MISSING COLUMN ERROR{location}: no column named \"{column_name}\".",
            column,
            {"column_name": column_name},
        )
        self.column_name = column_name


class ExpressionParseError(Exception):
    """Raised by an expression parser when text is not a class expression."""


class UnsupportedQueryError(Exception):
    """Raised by a query service that cannot answer a kind of query."""

