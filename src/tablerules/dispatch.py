"""Dispatch of concrete queries to the knowledge base.

A query asks whether a subject (a cell value or a when-clause entity) stands in
one of the listed relations to an axiom. The subject is classified first:

- a named individual can only be tested with the instance types,
- a named class is tested by membership in sub/super/equivalent class sets,
- anything else is parsed as a class expression and tested by entailment of a
  constructed subclass or equivalence axiom. Direct and instance types have no
  meaning there and are skipped.

Multiple query types form a disjunction: the query is satisfied as soon as one
listed type is.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import ExpressionParseError, UnsupportedQueryError
from .knowledge.base import ClassExpression, Entity, EntityKind, ExpressionParser, LabelResolver, QueryService
from .rules.types import (
    EQUIVALENCE_TYPES,
    INSTANCE_TYPES,
    SUBCLASS_TYPES,
    SUPERCLASS_TYPES,
    RuleType,
    resolve_query_types,
)

logger = logging.getLogger(__name__)


class SubjectKind(str, Enum):
    """What a subject string refers to."""
    INDIVIDUAL = "individual"
    NAMED_CLASS = "named_class"
    UNRESOLVED = "unresolved"  # No label; treated as a class expression
    OTHER = "other"  # Labelled entity that is neither a class nor an individual


@dataclass(frozen=True)
class Subject:
    """A classified query subject."""
    text: str
    kind: SubjectKind
    entity: Entity | None = None


class QueryDispatcher:
    """Runs query rules against the knowledge-base collaborators."""

    def __init__(self, resolver: LabelResolver, parser: ExpressionParser, queries: QueryService):
        self.resolver = resolver
        self.parser = parser
        self.queries = queries

    def classify(self, subject: str) -> Subject:
        """Classify a subject by resolving its label and looking up the entity."""
        label = self.resolver.resolve_label(subject)
        if label is None:
            return Subject(subject, SubjectKind.UNRESOLVED)

        entity = self.resolver.entity_for_label(label)
        if entity is None:
            return Subject(subject, SubjectKind.OTHER)
        if entity.kind == EntityKind.INDIVIDUAL:
            return Subject(subject, SubjectKind.INDIVIDUAL, entity)
        if entity.kind == EntityKind.CLASS:
            return Subject(subject, SubjectKind.NAMED_CLASS, entity)
        return Subject(subject, SubjectKind.OTHER, entity)

    def parse_expression(self, text: str) -> ClassExpression | None:
        """Parse text as a class expression, retrying once as a quoted label."""
        try:
            return self.parser.parse(text)
        except ExpressionParseError as e:
            try:
                return self.parser.parse(f"'{text}'")
            except ExpressionParseError:
                logger.warning(f"Could not determine class expression from \"{text}\".\n\t{str(e).strip()}.")
                return None

    def dispatch(
        self,
        subject: str,
        axiom: str,
        query_types: str,
        row: list[str] | None = None,
        column: int | None = None,
    ) -> bool:
        """Decide whether ``subject`` satisfies any of ``query_types`` against ``axiom``.

        Args:
            subject: Subject term (label, IRI, CURIE or class expression)
            axiom: Class expression text to query against
            query_types: One or more query type tokens separated by ``|``
            row: Row being validated, for tracing
            column: 1-based column number for messages

        Returns:
            True if at least one query type is satisfied

        Raises:
            UnrecognizedQueryTypeError: If a query type is unknown
        """
        logger.debug(
            f"dispatch(): subject: \"{subject}\", axiom: \"{axiom}\", row: {row}, query type: \"{query_types}\"."
        )
        rule_types = resolve_query_types(query_types, f"{query_types} {axiom}", column)

        rule_expression = self.parse_expression(axiom)
        if rule_expression is None:
            logger.warning(f"Unable to parse rule \"{query_types} {axiom}\" at column {column}.")
            return False

        target = self.classify(subject)
        if target.kind == SubjectKind.OTHER:
            logger.error(
                f"While validating \"{subject}\" against \"{query_types} {axiom}\", "
                f"subject is neither a named class nor a named individual."
            )
            return False

        subject_expression = None
        if target.kind == SubjectKind.UNRESOLVED:
            subject_expression = self.parse_expression(subject)
            if subject_expression is None:
                logger.error(f"Unable to parse subject \"{subject}\" at column {column}.")
                return False

        for rule_type in rule_types:
            try:
                if target.kind == SubjectKind.INDIVIDUAL:
                    satisfied = self._individual_query(target.entity, rule_expression, rule_type)
                elif target.kind == SubjectKind.NAMED_CLASS:
                    satisfied = self._class_query(target.entity, rule_expression, rule_type)
                else:
                    satisfied = self._generalized_query(subject_expression, rule_expression, rule_type)
            except UnsupportedQueryError as e:
                logger.error(f"{rule_type.token} queries are not supported by this knowledge base: {e}")
                continue
            if satisfied:
                return True
        return False

    def _individual_query(self, individual: Entity, expression: ClassExpression, rule_type: RuleType) -> bool:
        if rule_type not in INSTANCE_TYPES:
            logger.error(f"{rule_type.token} validation not possible for individual {individual.iri}.")
            return False
        found = self.queries.instances(expression, direct=rule_type == RuleType.DIRECT_INSTANCE_OF)
        return (individual.iri in found) != rule_type.negated

    def _class_query(self, named_class: Entity, expression: ClassExpression, rule_type: RuleType) -> bool:
        if rule_type in SUBCLASS_TYPES:
            found = self.queries.subclasses(expression, direct=rule_type.direct)
        elif rule_type in SUPERCLASS_TYPES:
            found = self.queries.superclasses(expression, direct=rule_type.direct)
        elif rule_type in EQUIVALENCE_TYPES:
            found = self.queries.equivalents(expression)
        else:
            logger.error(f"{rule_type.token} validation not possible for class {named_class.iri}.")
            return False
        return (named_class.iri in found) != rule_type.negated

    def _generalized_query(
        self, subject: ClassExpression, expression: ClassExpression, rule_type: RuleType
    ) -> bool:
        if rule_type.direct or rule_type in INSTANCE_TYPES:
            logger.error(f"{rule_type.token} validation not possible for class expression {subject.text}.")
            return False
        if rule_type in SUBCLASS_TYPES:
            entailed = self.queries.is_entailed_subclass(subject, expression)
        elif rule_type in SUPERCLASS_TYPES:
            entailed = self.queries.is_entailed_subclass(expression, subject)
        else:
            entailed = self.queries.is_entailed_equivalent(subject, expression)
        return entailed != rule_type.negated
