"""Knowledge-base collaborators: protocols and the in-memory backend."""

from .base import (
    ClassExpression,
    Entity,
    EntityKind,
    ExpressionParser,
    LabelResolver,
    QueryService,
)
from .memory import InMemoryKnowledgeBase

__all__ = [
    "ClassExpression",
    "Entity",
    "EntityKind",
    "ExpressionParser",
    "InMemoryKnowledgeBase",
    "LabelResolver",
    "QueryService",
]
