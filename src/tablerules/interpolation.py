"""Expansion of row-relative placeholders in rule text.

Two placeholder forms refer to cells of the row being validated:

- ``{Column Name}`` names a column by its header,
- ``%N`` names the N-th column of the row (1-based).

A referenced cell may hold several ``|``-separated terms. Each term is rendered as
a quoted label when the knowledge base knows it, and as a parenthesized literal
otherwise. A text referencing several multi-valued cells expands into one concrete
text per combination of terms.

Placeholder keys are expanded in order of first appearance across the texts being
expanded, whichever their form.
"""

import logging
import re
from dataclasses import dataclass

from .errors import ColumnOutOfRangeError, MissingColumnError
from .knowledge.base import LabelResolver
from .rules.models import Rule, WhenClause

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^}]+)\}|%(\d+)")


def has_placeholders(text: str) -> bool:
    """Whether ``text`` refers to any cell of the row."""
    return _PLACEHOLDER.search(text) is not None


@dataclass(frozen=True)
class Binding:
    """A placeholder key and the terms it resolves to for one row."""
    placeholder: str  # As written, e.g. "{Parent}" or "%2"
    pattern: re.Pattern
    terms: tuple[str, ...]


class Interpolator:
    """Expands placeholders for a row using a label resolver."""

    def __init__(self, resolver: LabelResolver, table: str | None = None):
        self.resolver = resolver
        self.table = table

    def interpolate(
        self, text: str, headers: list[str], row: list[str], column: int | None = None
    ) -> list[str]:
        """Expand the placeholders of a single text.

        Args:
            text: Clause text, possibly containing placeholders
            headers: Header row of the table
            row: Current data row
            column: 1-based column number for error messages

        Returns:
            One text per combination of placeholder terms; ``[text]`` when there are
            no placeholders and ``[""]`` for a blank text

        Raises:
            MissingColumnError: If a ``{Column}`` header does not exist
            ColumnOutOfRangeError: If a ``%N`` wildcard is past the end of the row
        """
        if not text.strip():
            return [""]
        return [texts[0] for texts in self.expand([text], headers, row, column)]

    def interpolate_rule(
        self, rule: Rule, headers: list[str], row: list[str], column: int | None = None
    ) -> list[Rule]:
        """Expand a whole rule, using one binding per key across all of its clauses."""
        expanded = []
        for texts in self.expand(rule.texts(), headers, row, column):
            main_clause, rest = texts[0], texts[1:]
            when_clauses = tuple(
                WhenClause(subject=rest[2 * i], query_types=clause.query_types, axiom=rest[2 * i + 1])
                for i, clause in enumerate(rule.when_clauses)
            )
            expanded.append(Rule(main_clause=main_clause, when_clauses=when_clauses))
        return expanded

    def expand(
        self, texts: list[str], headers: list[str], row: list[str], column: int | None = None
    ) -> list[list[str]]:
        """Expand placeholders jointly over several texts.

        Returns:
            A list of expanded copies of ``texts``; each copy substitutes one
            combination of terms
        """
        bindings = self.bindings(texts, headers, row, column)
        if not bindings:
            return [list(texts)]

        expanded: list[list[str]] = []
        for position, binding in enumerate(bindings):
            renderings = [self.render(term) for term in binding.terms if term and term.strip()]
            if position == 0:
                expanded = [self._substitute(binding, rendering, texts) for rendering in renderings]
            else:
                expanded = [
                    self._substitute(binding, rendering, current)
                    for rendering in renderings
                    for current in expanded
                ]

        if not expanded:
            logger.debug(f"No terms to interpolate into {texts}; rule is not applied to this row")
        return expanded

    def bindings(
        self, texts: list[str], headers: list[str], row: list[str], column: int | None = None
    ) -> list[Binding]:
        """Resolve every placeholder key of ``texts`` against the row, in expansion order."""
        keys: list[str | int] = []  # Column names and wildcard numbers
        for text in texts:
            for match in _PLACEHOLDER.finditer(text):
                key = match.group(1) if match.group(1) is not None else int(match.group(2))
                if key not in keys:
                    keys.append(key)

        bindings: list[Binding] = []
        for key in keys:
            if isinstance(key, int):
                bindings.append(Binding(
                    placeholder=f"%{key}",
                    pattern=re.compile(rf"%{key}(?!\d)"),
                    terms=self._wildcard_terms(key, row, column),
                ))
                continue

            if key not in headers:
                raise MissingColumnError(key, self.table, column)
            index = headers.index(key)
            cell = row[index] if index < len(row) else ""
            bindings.append(Binding(
                placeholder=f"{{{key}}}",
                pattern=re.compile(r"\{" + re.escape(key) + r"\}"),
                terms=tuple((cell or "").split("|")),
            ))

        return bindings

    def _wildcard_terms(self, number: int, row: list[str], column: int | None) -> tuple[str, ...]:
        index = number - 1
        if index < 0 or index >= len(row):
            raise ColumnOutOfRangeError(f"%{number}", len(row), column)

        term = (row[index] or "").strip()
        if not term:
            logger.info(
                f"Failed to retrieve label from wildcard: %{number}. No term at position {number} of this row."
            )
            return ()
        return tuple(term.split("|"))

    def render(self, term: str) -> str:
        """Render a term as ``'label'`` when known, ``(term)`` otherwise."""
        term = term.strip()
        label = self.resolver.resolve_label(term)
        return f"'{label}'" if label else f"({term})"

    @staticmethod
    def _substitute(binding: Binding, rendering: str, texts: list[str]) -> list[str]:
        return [binding.pattern.sub(lambda _: rendering, text) for text in texts]
