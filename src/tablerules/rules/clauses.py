"""Separation of rule content into a main clause and when-clauses.

Rule content may end with a when-clause listing preconditions joined by ``&``::

    'material entity' (when %1 instance-of 'sample' & {Parent} subclass-of 'organ')

Each precondition is ``<entity> <query-types> <axiom>`` where the entity is a bare
token, a single-quoted label or a parenthesized expression. The text is read with a
small scanner that tracks parenthesis depth and quoted labels, so parentheses or
ampersands inside labels and nested expressions are never mistaken for structure.
"""

import logging
import re
from collections.abc import Iterator

from ..errors import InvalidWhenTypeError, MalformedWhenClauseError, NoMainClauseError
from .grammar import DEFAULT_PRESENCE_CONTENT
from .models import Rule, WhenClause
from .types import QUERY_TOKENS, RuleCategory, RuleKey, RuleType

logger = logging.getLogger(__name__)

_WHEN_HEAD = re.compile(r"\(\s*when\s")
_WHEN_KEYWORD = re.compile(r"^\s*when\s+")
_BARE_ENTITY = re.compile(r"[^'\s()]+")
_TYPES_AND_AXIOM = re.compile(r"\s+([a-z\-|]+)\s+(\S.*)$", re.DOTALL)

# Characters after which a single quote opens a quoted label
_QUOTE_OPENERS = "(&|"


def _scan(text: str) -> Iterator[tuple[int, str, int, bool]]:
    """Yield ``(index, char, depth, quoted)`` for every character of ``text``.

    An opening and its matching closing parenthesis report the same depth. A
    single quote only opens a label at the start of a token, so apostrophes
    inside words are plain characters.
    """
    depth = 0
    quoted = False
    for index, char in enumerate(text):
        if quoted:
            if char == "'":
                quoted = False
            yield index, char, depth, True
        elif char == "'" and (index == 0 or text[index - 1].isspace() or text[index - 1] in _QUOTE_OPENERS):
            quoted = True
            yield index, char, depth, True
        elif char == "(":
            yield index, char, depth, False
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
            yield index, char, depth, False
        else:
            yield index, char, depth, False


def _find_when(text: str) -> int | None:
    """Index of the ``(when`` opening the when-clause, if any."""
    for index, char, depth, quoted in _scan(text):
        if char == "(" and depth == 0 and not quoted and _WHEN_HEAD.match(text, index):
            return index
    return None


def _matching_paren(text: str, start: int) -> int | None:
    """Index of the parenthesis closing the one at ``start``."""
    for index, char, depth, quoted in _scan(text):
        if index <= start or quoted:
            continue
        if char == ")" and depth == 0:
            return index
    return None


def _split_conditions(body: str) -> list[str]:
    """Split a when-clause body on top-level ``&``."""
    parts = []
    current = 0
    for index, char, depth, quoted in _scan(body):
        if char == "&" and depth == 0 and not quoted:
            parts.append(body[current:index])
            current = index + 1
    parts.append(body[current:])
    return [part.strip() for part in parts]


def parse_when_clause(text: str, column: int | None = None) -> WhenClause:
    """Parse a single ``<entity> <query-types> <axiom>`` condition.

    Raises:
        MalformedWhenClauseError: If the condition cannot be decomposed
        InvalidWhenTypeError: If a listed type is not a query type
    """
    text = text.strip()
    if not text:
        raise MalformedWhenClauseError(text, column)

    if text[0] == "'":
        end = text.find("'", 1)
        if end <= 1:
            raise MalformedWhenClauseError(text, column)
    elif text[0] == "(":
        end = _matching_paren(text, 0)
        if end is None:
            raise MalformedWhenClauseError(text, column)
    else:
        match = _BARE_ENTITY.match(text)
        if not match:
            raise MalformedWhenClauseError(text, column)
        end = match.end() - 1

    subject = text[:end + 1]
    match = _TYPES_AND_AXIOM.match(text, end + 1)
    if not match:
        raise MalformedWhenClauseError(text, column)

    query_types, axiom = match.group(1), match.group(2).strip()
    for token in query_types.split("|"):
        rule_type = RuleType.from_token(token)
        if rule_type is None or rule_type.category != RuleCategory.QUERY:
            raise InvalidWhenTypeError(text, list(QUERY_TOKENS), column)

    return WhenClause(subject=subject, query_types=query_types, axiom=axiom)


def separate_rule(content: str, key: RuleKey, column: int | None = None) -> Rule:
    """Separate rule content into its main clause and when-clauses.

    Args:
        content: Rule content following the rule type
        key: Rule key the content belongs to
        column: 1-based column number for error messages

    Returns:
        Parsed rule; presence rules without a main clause get ``"true"``

    Raises:
        NoMainClauseError: If a query rule has only a when-clause
        MalformedWhenClauseError: If the when-clause cannot be parsed
        InvalidWhenTypeError: If a condition uses a non-query type
    """
    start = _find_when(content)
    if start is None:
        logger.debug(f"No when-clauses found in rule: \"{content}\".")
        main_clause = content.strip()
        if not main_clause and key.category == RuleCategory.PRESENCE:
            main_clause = DEFAULT_PRESENCE_CONTENT
        return Rule(main_clause=main_clause)

    main_clause = content[:start].strip()
    if not main_clause and key.category != RuleCategory.PRESENCE:
        raise NoMainClauseError(content, column)

    end = _matching_paren(content, start)
    if end is None:
        raise MalformedWhenClauseError(content[start:], column)

    trailing = content[end + 1:].strip()
    if trailing:
        logger.warning(f"Ignoring string \"{trailing}\" at end of rule \"{content}\".")

    body = _WHEN_KEYWORD.sub("", content[start + 1:end], count=1)
    when_clauses = tuple(parse_when_clause(part, column) for part in _split_conditions(body))

    return Rule(
        main_clause=main_clause or DEFAULT_PRESENCE_CONTENT,
        when_clauses=when_clauses,
    )
