"""Collaborator interfaces consumed by the rule engine.

The engine never reasons itself. It asks three collaborators:

- a label resolver that maps terms (labels, IRIs, CURIEs) to labels and entities,
- an expression parser that turns rule text into class expressions,
- a query service answering subsumption, equivalence, instance and entailment
  questions.

A single backend object usually implements all three, as
``InMemoryKnowledgeBase`` does.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class EntityKind(str, Enum):
    """Kinds of named entities a subject may resolve to."""
    CLASS = "class"
    INDIVIDUAL = "individual"
    OTHER = "other"


@dataclass(frozen=True)
class Entity:
    """A named entity of the knowledge base."""
    iri: str
    kind: EntityKind
    label: str | None = None


@dataclass(frozen=True)
class ClassExpression:
    """A parsed class expression.

    Named classes carry their IRI. Anonymous expressions leave ``iri`` unset.
    """
    text: str
    iri: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.iri is None


@runtime_checkable
class LabelResolver(Protocol):
    """Maps terms to labels and labels to entities."""

    def resolve_label(self, term: str) -> str | None:
        """Return the label for a label, IRI or short form, or None."""
        ...

    def label_of(self, iri: str) -> str | None:
        """Return the label of an IRI or CURIE, or None."""
        ...

    def entity_for_label(self, label: str) -> Entity | None:
        """Return the entity carrying ``label``, or None."""
        ...


@runtime_checkable
class ExpressionParser(Protocol):
    """Parses text into class expressions."""

    def parse(self, text: str) -> ClassExpression:
        """Parse ``text``.

        Raises:
            ExpressionParseError: If the text is not a class expression
        """
        ...


@runtime_checkable
class QueryService(Protocol):
    """Answers knowledge-base queries about class expressions.

    Set-returning methods return entity IRIs.
    """

    def subclasses(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        ...

    def superclasses(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        ...

    def equivalents(self, expression: ClassExpression) -> set[str]:
        ...

    def instances(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        ...

    def is_entailed_subclass(self, sub: ClassExpression, sup: ClassExpression) -> bool:
        """Whether ``sub SubClassOf sup`` is entailed.

        Raises:
            UnsupportedQueryError: If the backend cannot answer generalized queries
        """
        ...

    def is_entailed_equivalent(self, first: ClassExpression, second: ClassExpression) -> bool:
        """Whether ``first EquivalentTo second`` is entailed.

        Raises:
            UnsupportedQueryError: If the backend cannot answer generalized queries
        """
        ...
