"""Parsing of raw per-column rule strings.

A rule string holds one or more semicolon-separated entries of the form
``<rule-type> <content>``::

    is-required; subclass-of 'material entity' (when %1 instance-of 'sample')

Entries starting with ``#`` are commented out, and a string starting with ``##``
disables the whole column.
"""

import logging
import re

from ..errors import MalformedRuleError
from .types import RuleCategory, RuleKey

logger = logging.getLogger(__name__)

_ENTRY_SEPARATOR = re.compile(r"\s*;\s*")
_TYPE_SEPARATOR = re.compile(r"\s+")

DEFAULT_PRESENCE_CONTENT = "true"


def parse_rules(rule_string: str | None, column: int | None = None) -> dict[RuleKey, list[str]]:
    """Parse a raw rule string into rule contents grouped by rule type.

    Args:
        rule_string: Raw rule string from the rules source
        column: 1-based column number for error messages

    Returns:
        Ordered mapping of rule key to the contents given for it

    Raises:
        MalformedRuleError: If an entry has no content and is not a presence rule
        UnrecognizedRuleTypeError: If an entry's rule type is unknown
    """
    rules: dict[RuleKey, list[str]] = {}
    if rule_string is None:
        return rules

    stripped = rule_string.strip()
    if not stripped or stripped.startswith("##"):
        return rules

    for entry in _ENTRY_SEPARATOR.split(stripped):
        entry = entry.strip()
        if not entry or entry.startswith("#"):
            continue

        parts = _TYPE_SEPARATOR.split(entry, maxsplit=1)
        key = RuleKey.parse(parts[0], column)
        if len(parts) == 2 and parts[1].strip():
            content = parts[1].strip()
        elif key.category == RuleCategory.PRESENCE:
            content = DEFAULT_PRESENCE_CONTENT
        else:
            raise MalformedRuleError(entry)

        rules.setdefault(key, []).append(content)

    logger.debug(f"Parsed rule string \"{rule_string}\" into {sum(len(v) for v in rules.values())} rule(s)")
    return rules
