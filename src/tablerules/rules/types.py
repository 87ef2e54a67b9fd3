"""Rule categories, rule types and the token registry."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from ..errors import UnrecognizedQueryTypeError, UnrecognizedRuleTypeError


class RuleCategory(Enum):
    """Rule categories.

    Query rules are answered by the knowledge base, presence rules only look at
    whether a cell has content.
    """
    QUERY = "query"
    PRESENCE = "presence"


class RuleType(str, Enum):
    """Rule types, valued by the token used in rule strings."""
    SUBCLASS_OF = "subclass-of"
    DIRECT_SUBCLASS_OF = "direct-subclass-of"
    NOT_SUBCLASS_OF = "not-subclass-of"
    NOT_DIRECT_SUBCLASS_OF = "not-direct-subclass-of"
    SUPERCLASS_OF = "superclass-of"
    DIRECT_SUPERCLASS_OF = "direct-superclass-of"
    NOT_SUPERCLASS_OF = "not-superclass-of"
    NOT_DIRECT_SUPERCLASS_OF = "not-direct-superclass-of"
    EQUIVALENT_TO = "equivalent-to"
    NOT_EQUIVALENT_TO = "not-equivalent-to"
    INSTANCE_OF = "instance-of"
    DIRECT_INSTANCE_OF = "direct-instance-of"
    NOT_INSTANCE_OF = "not-instance-of"
    IS_REQUIRED = "is-required"
    IS_EXCLUDED = "is-excluded"

    @property
    def token(self) -> str:
        return self.value

    @property
    def category(self) -> RuleCategory:
        return _CATEGORIES[self]

    @property
    def direct(self) -> bool:
        """True for types restricted to immediate parents, children or types."""
        return self.value.startswith("direct-") or self.value.startswith("not-direct-")

    @property
    def negated(self) -> bool:
        return self.value.startswith("not-")

    @classmethod
    def from_token(cls, token: str) -> "RuleType | None":
        """Look up a rule type by token, or None when unknown."""
        return TOKEN_REGISTRY.get(token.strip())


_CATEGORIES = MappingProxyType({
    RuleType.SUBCLASS_OF: RuleCategory.QUERY,
    RuleType.DIRECT_SUBCLASS_OF: RuleCategory.QUERY,
    RuleType.NOT_SUBCLASS_OF: RuleCategory.QUERY,
    RuleType.NOT_DIRECT_SUBCLASS_OF: RuleCategory.QUERY,
    RuleType.SUPERCLASS_OF: RuleCategory.QUERY,
    RuleType.DIRECT_SUPERCLASS_OF: RuleCategory.QUERY,
    RuleType.NOT_SUPERCLASS_OF: RuleCategory.QUERY,
    RuleType.NOT_DIRECT_SUPERCLASS_OF: RuleCategory.QUERY,
    RuleType.EQUIVALENT_TO: RuleCategory.QUERY,
    RuleType.NOT_EQUIVALENT_TO: RuleCategory.QUERY,
    RuleType.INSTANCE_OF: RuleCategory.QUERY,
    RuleType.DIRECT_INSTANCE_OF: RuleCategory.QUERY,
    RuleType.NOT_INSTANCE_OF: RuleCategory.QUERY,
    RuleType.IS_REQUIRED: RuleCategory.PRESENCE,
    RuleType.IS_EXCLUDED: RuleCategory.PRESENCE,
})

# token -> rule type, built once from the explicit table above
TOKEN_REGISTRY = MappingProxyType({rule_type.value: rule_type for rule_type in _CATEGORIES})

QUERY_TOKENS = tuple(
    token for token, rule_type in TOKEN_REGISTRY.items() if rule_type.category == RuleCategory.QUERY
)

SUBCLASS_TYPES = frozenset({
    RuleType.SUBCLASS_OF,
    RuleType.DIRECT_SUBCLASS_OF,
    RuleType.NOT_SUBCLASS_OF,
    RuleType.NOT_DIRECT_SUBCLASS_OF,
})
SUPERCLASS_TYPES = frozenset({
    RuleType.SUPERCLASS_OF,
    RuleType.DIRECT_SUPERCLASS_OF,
    RuleType.NOT_SUPERCLASS_OF,
    RuleType.NOT_DIRECT_SUPERCLASS_OF,
})
EQUIVALENCE_TYPES = frozenset({RuleType.EQUIVALENT_TO, RuleType.NOT_EQUIVALENT_TO})
INSTANCE_TYPES = frozenset({RuleType.INSTANCE_OF, RuleType.DIRECT_INSTANCE_OF, RuleType.NOT_INSTANCE_OF})


def resolve_query_types(tokens: str, rule: str = "", column: int | None = None) -> tuple[RuleType, ...]:
    """Resolve a ``|``-separated list of query type tokens.

    Every token is resolved before anything is returned, so an unknown token
    fails before any query runs.

    Args:
        tokens: Query types as written, e.g. ``subclass-of|equivalent-to``
        rule: Rule text for the error message
        column: 1-based column number for the error message

    Returns:
        Rule types in the order written

    Raises:
        UnrecognizedQueryTypeError: If a token is unknown
    """
    resolved = []
    for token in tokens.split("|"):
        rule_type = RuleType.from_token(token)
        if rule_type is None:
            raise UnrecognizedQueryTypeError(token, rule or tokens, column)
        resolved.append(rule_type)
    return tuple(resolved)


@dataclass(frozen=True)
class RuleKey:
    """The type part of a rule entry as written, e.g. ``subclass-of|equivalent-to``.

    The first token is the primary type and decides the rule's category.
    """
    token: str
    primary: RuleType

    @classmethod
    def parse(cls, token: str, column: int | None = None) -> "RuleKey":
        token = token.strip()
        primary = RuleType.from_token(token.split("|")[0])
        if primary is None:
            raise UnrecognizedRuleTypeError(token, column)
        return cls(token, primary)

    @property
    def category(self) -> RuleCategory:
        return self.primary.category

    def query_types(self, rule: str = "", column: int | None = None) -> tuple[RuleType, ...]:
        return resolve_query_types(self.token, rule, column)

    def __str__(self) -> str:
        return self.token
