"""In-memory knowledge base over an asserted class taxonomy.

Implements the label resolver, expression parser and query service protocols for
small taxonomies kept in a JSON document::

    {
      "prefixes": {"ex": "http://example.org/"},
      "classes": [
        {"iri": "ex:animal", "label": "animal"},
        {"iri": "ex:dog", "label": "dog", "parents": ["ex:animal"]},
        {"iri": "ex:hound", "label": "hound", "equivalents": ["ex:dog"]}
      ],
      "individuals": [{"iri": "ex:rex", "label": "rex", "types": ["ex:dog"]}]
    }

Subsumption is read off a ``networkx`` digraph (parent -> child) and equivalent
classes are linked in both directions. Only named classes are understood: there is
no reasoning over anonymous class expressions.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import networkx as nx

from ..errors import ExpressionParseError, UnsupportedQueryError
from .base import ClassExpression, Entity, EntityKind

logger = logging.getLogger(__name__)

_CURIE = re.compile(r"^[A-Za-z_][\w.-]*:[^\s/][^\s]*$")
_SURROUNDING_QUOTES = re.compile(r"^'|'$")


def _strip_parens(text: str) -> str:
    """Remove parentheses wrapping the whole of ``text``."""
    text = text.strip()
    while text.startswith("(") and text.endswith(")"):
        depth = 0
        for index, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0 and index != len(text) - 1:
                    return text
        text = text[1:-1].strip()
    return text


class InMemoryKnowledgeBase:
    """Named classes, individuals and labels held in memory."""

    def __init__(self, prefixes: dict[str, str] | None = None):
        self.prefixes: dict[str, str] = dict(prefixes or {})
        self.taxonomy = nx.DiGraph()  # parent -> child
        self.entities: dict[str, Entity] = {}
        self.types: dict[str, set[str]] = {}  # individual IRI -> asserted class IRIs
        self._label_index: dict[str, str] = {}  # label -> IRI
        self._aliases: dict[str, str] = {}  # IRI, CURIE or local name -> IRI

    # Loading

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryKnowledgeBase":
        """Build a knowledge base from its JSON document."""
        kb = cls(data.get("prefixes"))
        classes = data.get("classes", [])
        for entry in classes:
            kb.add_class(entry["iri"], entry.get("label"))
        for entry in classes:
            for parent in entry.get("parents", []):
                kb.add_subclass(entry["iri"], parent)
            for other in entry.get("equivalents", []):
                kb.add_equivalent(entry["iri"], other)
        for entry in data.get("individuals", []):
            kb.add_individual(entry["iri"], entry.get("label"), entry.get("types", []))
        logger.info(
            f"Loaded knowledge base with {len(classes)} classes and "
            f"{len(data.get('individuals', []))} individuals"
        )
        return kb

    @classmethod
    def load(cls, path: str | Path) -> "InMemoryKnowledgeBase":
        """Load a knowledge base from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Knowledge base not found: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in knowledge base {path}: {e}")
        return cls.from_dict(data)

    def expand(self, term: str) -> str:
        """Expand a CURIE using the known prefixes."""
        if term.startswith("<") and term.endswith(">"):
            return term[1:-1]
        if _CURIE.match(term):
            prefix, local = term.split(":", 1)
            if prefix in self.prefixes:
                return self.prefixes[prefix] + local
        return term

    def add_class(self, iri: str, label: str | None = None) -> Entity:
        return self._add_entity(self.expand(iri), EntityKind.CLASS, label)

    def add_individual(self, iri: str, label: str | None = None, types: list[str] | tuple[str, ...] = ()) -> Entity:
        entity = self._add_entity(self.expand(iri), EntityKind.INDIVIDUAL, label)
        asserted = self.types.setdefault(entity.iri, set())
        for class_iri in types:
            class_iri = self._require_class(class_iri)
            asserted.add(class_iri)
        return entity

    def add_subclass(self, child: str, parent: str) -> None:
        self.taxonomy.add_edge(self._require_class(parent), self._require_class(child))

    def add_equivalent(self, first: str, second: str) -> None:
        first, second = self._require_class(first), self._require_class(second)
        self.taxonomy.add_edge(first, second)
        self.taxonomy.add_edge(second, first)

    def _require_class(self, iri: str) -> str:
        iri = self.expand(iri)
        if iri not in self.entities:
            self.add_class(iri)
        return iri

    def _add_entity(self, iri: str, kind: EntityKind, label: str | None) -> Entity:
        entity = Entity(iri=iri, kind=kind, label=label)
        self.entities[iri] = entity
        if kind == EntityKind.CLASS:
            self.taxonomy.add_node(iri)

        for alias in {iri, self.short_form(iri), self.curie(iri)}:
            if alias:
                self._aliases[alias] = iri

        if label:
            if label in self._label_index and self._label_index[label] != iri:
                logger.warning(
                    f"Duplicate label \"{label}\". Overwriting value \"{self._label_index[label]}\" with \"{iri}\""
                )
            self._label_index[label] = iri
        return entity

    def short_form(self, iri: str) -> str:
        """Local name of an IRI (text after the last ``#`` or ``/``)."""
        for separator in ("#", "/"):
            if separator in iri:
                return iri.rsplit(separator, 1)[1]
        return iri

    def curie(self, iri: str) -> str | None:
        for prefix, namespace in self.prefixes.items():
            if iri.startswith(namespace) and len(iri) > len(namespace):
                return f"{prefix}:{iri[len(namespace):]}"
        return None

    # LabelResolver

    def resolve_label(self, term: str) -> str | None:
        if term is None:
            return None
        term = _SURROUNDING_QUOTES.sub("", term.strip())
        if term in self._label_index:
            return term
        iri = self._aliases.get(term) or self._aliases.get(self.expand(term))
        if iri is None:
            return None
        return self.entities[iri].label

    def label_of(self, iri: str) -> str | None:
        entity = self.entities.get(self._aliases.get(iri, self.expand(iri)))
        return entity.label if entity else None

    def entity_for_label(self, label: str) -> Entity | None:
        iri = self._label_index.get(label)
        return self.entities.get(iri) if iri else None

    # ExpressionParser

    def parse(self, text: str) -> ClassExpression:
        term = _strip_parens(text)
        iri = self._reference(term)
        if iri is None:
            raise ExpressionParseError(f"Unknown class reference \"{text}\"")
        if self.entities[iri].kind != EntityKind.CLASS:
            raise ExpressionParseError(f"\"{text}\" does not name a class")
        return ClassExpression(text=text, iri=iri)

    def _reference(self, term: str) -> str | None:
        if len(term) > 1 and term.startswith("'") and term.endswith("'"):
            return self._label_index.get(term[1:-1])
        if term in self._label_index:
            return self._label_index[term]
        return self._aliases.get(term) or self._aliases.get(self.expand(term))

    # QueryService

    def _named(self, expression: ClassExpression) -> str:
        if expression.is_anonymous:
            raise UnsupportedQueryError("Anonymous class expressions are not supported by the in-memory knowledge base")
        return expression.iri

    def _equivalent_iris(self, iri: str) -> set[str]:
        if iri not in self.taxonomy:
            return {iri}
        return {iri} | (nx.descendants(self.taxonomy, iri) & nx.ancestors(self.taxonomy, iri))

    def _strict_subclasses(self, iri: str) -> set[str]:
        if iri not in self.taxonomy:
            return set()
        return nx.descendants(self.taxonomy, iri) - self._equivalent_iris(iri)

    def _strict_superclasses(self, iri: str) -> set[str]:
        if iri not in self.taxonomy:
            return set()
        return nx.ancestors(self.taxonomy, iri) - self._equivalent_iris(iri)

    def _most_general(self, iris: set[str]) -> set[str]:
        return {iri for iri in iris if not any(iri in self._strict_subclasses(other) for other in iris)}

    def _most_specific(self, iris: set[str]) -> set[str]:
        return {iri for iri in iris if not any(iri in self._strict_superclasses(other) for other in iris)}

    def subclasses(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        found = self._strict_subclasses(self._named(expression))
        return self._most_general(found) if direct else found

    def superclasses(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        found = self._strict_superclasses(self._named(expression))
        return self._most_specific(found) if direct else found

    def equivalents(self, expression: ClassExpression) -> set[str]:
        return self._equivalent_iris(self._named(expression))

    def instances(self, expression: ClassExpression, direct: bool = False) -> set[str]:
        targets = self._equivalent_iris(self._named(expression))
        found = set()
        for individual, asserted in self.types.items():
            closure = set(asserted)
            for class_iri in asserted:
                closure |= self._strict_superclasses(class_iri) | self._equivalent_iris(class_iri)
            candidates = self._most_specific(closure) if direct else closure
            if candidates & targets:
                found.add(individual)
        return found

    def is_entailed_subclass(self, sub: ClassExpression, sup: ClassExpression) -> bool:
        sub_iri, sup_iri = self._named(sub), self._named(sup)
        return sup_iri in self._strict_superclasses(sub_iri) | self._equivalent_iris(sub_iri)

    def is_entailed_equivalent(self, first: ClassExpression, second: ClassExpression) -> bool:
        return self._named(second) in self._equivalent_iris(self._named(first))
