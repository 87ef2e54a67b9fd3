"""Parsed rule structures and table cell/column models."""

from dataclasses import dataclass, field

from .types import RuleKey


@dataclass(frozen=True)
class WhenClause:
    """A precondition attached to a rule: ``<subject> <query-types> <axiom>``."""
    subject: str  # Label, quoted label or parenthesized expression
    query_types: str  # One or more query type tokens separated by "|"
    axiom: str

    def __str__(self) -> str:
        return f"{self.subject} {self.query_types} {self.axiom}"


@dataclass(frozen=True)
class Rule:
    """A rule's main clause together with its when-clauses."""
    main_clause: str
    when_clauses: tuple[WhenClause, ...] = ()

    def texts(self) -> list[str]:
        """All interpolatable texts in order of appearance."""
        texts = [self.main_clause]
        for clause in self.when_clauses:
            texts.extend([clause.subject, clause.axiom])
        return texts

    def __str__(self) -> str:
        if not self.when_clauses:
            return self.main_clause
        conditions = " & ".join(str(clause) for clause in self.when_clauses)
        return f"{self.main_clause} (when {conditions})"


@dataclass(frozen=True)
class Column:
    """A table column and the rules attached to it."""
    header: str
    index: int  # 0-based position in the header row
    raw_rules: str = ""
    rules: dict[RuleKey, list[str]] = field(default_factory=dict)
    parsed: dict[RuleKey, list[Rule]] = field(default_factory=dict)  # Separated once per table

    @property
    def number(self) -> int:
        """1-based column number used in messages."""
        return self.index + 1

    @property
    def has_rules(self) -> bool:
        return bool(self.rules)


@dataclass(frozen=True)
class Cell:
    """Raw cell content and its ``|``-separated values."""
    raw: str
    values: tuple[str, ...]

    @classmethod
    def from_raw(cls, raw: str | None) -> "Cell":
        raw = raw or ""
        values = raw.strip().split("|")
        # Trailing empty values are dropped, an empty cell keeps a single empty value
        while len(values) > 1 and values[-1] == "":
            values.pop()
        return cls(raw, tuple(values))

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()
