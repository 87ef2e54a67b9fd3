"""Tests for the in-memory knowledge base."""

import json

import pytest

from tablerules.errors import ExpressionParseError, UnsupportedQueryError
from tablerules.knowledge import ClassExpression, EntityKind, ExpressionParser, InMemoryKnowledgeBase, LabelResolver, QueryService

EX = "http://example.org/"


def named(kb, label):
    return kb.parse(f"'{label}'")


class TestLoading:
    """Test building knowledge bases."""

    def test_implements_protocols(self, kb):
        assert isinstance(kb, LabelResolver)
        assert isinstance(kb, ExpressionParser)
        assert isinstance(kb, QueryService)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps({"classes": [{"iri": "http://x.org/a", "label": "a"}]}), encoding="utf-8")
        kb = InMemoryKnowledgeBase.load(path)
        assert kb.resolve_label("a") == "a"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            InMemoryKnowledgeBase.load(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            InMemoryKnowledgeBase.load(path)

    def test_duplicate_label_warns_and_later_wins(self, caplog):
        kb = InMemoryKnowledgeBase.from_dict({
            "classes": [
                {"iri": "http://x.org/a", "label": "thing"},
                {"iri": "http://x.org/b", "label": "thing"},
            ]
        })
        assert "Duplicate label" in caplog.text
        assert kb.entity_for_label("thing").iri == "http://x.org/b"


class TestLabels:
    """Test the label resolver."""

    @pytest.mark.parametrize("term", ["heart", "'heart'", "ex:heart", f"{EX}heart", "heart "])
    def test_resolve_label_forms(self, kb, term):
        assert kb.resolve_label(term) == "heart"

    def test_unknown_term(self, kb):
        assert kb.resolve_label("spleen") is None

    def test_label_of(self, kb):
        assert kb.label_of("ex:organ") == "organ"
        assert kb.label_of("ex:nothing") is None

    def test_entity_for_label(self, kb):
        assert kb.entity_for_label("sample 1").kind == EntityKind.INDIVIDUAL
        assert kb.entity_for_label("organ").kind == EntityKind.CLASS
        assert kb.entity_for_label("spleen") is None


class TestParser:
    """Test parsing named class references."""

    @pytest.mark.parametrize("text", ["'organ'", "organ", "ex:organ", f"<{EX}organ>", "('organ')"])
    def test_named_forms(self, kb, text):
        assert kb.parse(text).iri == f"{EX}organ"

    def test_unknown_reference(self, kb):
        with pytest.raises(ExpressionParseError):
            kb.parse("'part of' some organ")

    def test_individual_is_not_a_class(self, kb):
        with pytest.raises(ExpressionParseError):
            kb.parse("'sample 1'")


class TestQueries:
    """Test subsumption, equivalence and instance queries."""

    def test_subclasses(self, kb):
        assert kb.subclasses(named(kb, "organ")) == {f"{EX}heart", f"{EX}liver", f"{EX}cardiac_organ"}
        assert f"{EX}heart" in kb.subclasses(named(kb, "entity"))

    def test_direct_subclasses(self, kb):
        assert kb.subclasses(named(kb, "material entity"), direct=True) == {f"{EX}organ", f"{EX}sample"}

    def test_superclasses(self, kb):
        assert kb.superclasses(named(kb, "heart")) == {f"{EX}organ", f"{EX}material_entity", f"{EX}entity"}
        assert kb.superclasses(named(kb, "heart"), direct=True) == {f"{EX}organ"}

    def test_equivalents(self, kb):
        assert kb.equivalents(named(kb, "heart")) == {f"{EX}heart", f"{EX}cardiac_organ"}

    def test_equivalent_classes_share_superclasses(self, kb):
        assert f"{EX}organ" in kb.superclasses(named(kb, "cardiac organ"))

    def test_instances(self, kb):
        assert kb.instances(named(kb, "sample")) == {f"{EX}s1"}
        assert kb.instances(named(kb, "sample"), direct=True) == set()
        assert kb.instances(named(kb, "blood sample"), direct=True) == {f"{EX}s1"}
        assert kb.instances(named(kb, "cardiac organ"), direct=True) == {f"{EX}h1"}

    def test_entailment(self, kb):
        assert kb.is_entailed_subclass(named(kb, "heart"), named(kb, "organ"))
        assert kb.is_entailed_subclass(named(kb, "heart"), named(kb, "cardiac organ"))
        assert not kb.is_entailed_subclass(named(kb, "organ"), named(kb, "heart"))
        assert kb.is_entailed_equivalent(named(kb, "cardiac organ"), named(kb, "heart"))

    def test_anonymous_expression_unsupported(self, kb):
        with pytest.raises(UnsupportedQueryError):
            kb.is_entailed_subclass(ClassExpression(text="'part of' some organ"), named(kb, "organ"))

    def test_parsed_expression_is_named(self, kb):
        """Test a parsed reference carries only its text and IRI."""
        expression = named(kb, "heart")
        assert expression == ClassExpression(text="'heart'", iri=f"{EX}heart")
        assert not expression.is_anonymous
        assert ClassExpression(text="'part of' some organ").is_anonymous
