"""Tests for query dispatch."""

import itertools

import pytest

from tablerules.dispatch import QueryDispatcher, SubjectKind
from tablerules.errors import ExpressionParseError, UnrecognizedQueryTypeError, UnsupportedQueryError
from tablerules.knowledge import ClassExpression, EntityKind, InMemoryKnowledgeBase


class QuotedOnlyParser:
    """Parser accepting only single-quoted labels."""

    def __init__(self, kb):
        self.kb = kb
        self.seen: list[str] = []

    def parse(self, text):
        self.seen.append(text)
        if not text.startswith("'"):
            raise ExpressionParseError(f"not quoted: {text}")
        return self.kb.parse(text)


@pytest.fixture
def dispatcher(kb):
    return QueryDispatcher(kb, kb, kb)


class TestClassify:
    """Test subject classification."""

    def test_individual(self, dispatcher):
        subject = dispatcher.classify("'sample 1'")
        assert subject.kind == SubjectKind.INDIVIDUAL
        assert subject.entity.kind == EntityKind.INDIVIDUAL

    def test_named_class(self, dispatcher):
        assert dispatcher.classify("ex:heart").kind == SubjectKind.NAMED_CLASS

    def test_unresolved(self, dispatcher):
        subject = dispatcher.classify("('part of' some organ)")
        assert subject.kind == SubjectKind.UNRESOLVED
        assert subject.entity is None


class TestNamedClassQueries:
    """Test queries on named class subjects."""

    @pytest.mark.parametrize("subject,types,axiom,expected", [
        ("heart", "subclass-of", "'organ'", True),
        ("heart", "subclass-of", "'material entity'", True),
        ("organ", "subclass-of", "'heart'", False),
        ("heart", "direct-subclass-of", "'organ'", True),
        ("heart", "direct-subclass-of", "'material entity'", False),
        ("heart", "not-subclass-of", "'sample'", True),
        ("heart", "not-subclass-of", "'organ'", False),
        ("heart", "not-direct-subclass-of", "'material entity'", True),
        ("organ", "superclass-of", "'heart'", True),
        ("organ", "direct-superclass-of", "'heart'", True),
        ("material entity", "direct-superclass-of", "'heart'", False),
        ("sample", "not-superclass-of", "'heart'", True),
        ("material entity", "not-direct-superclass-of", "'heart'", True),
        ("heart", "equivalent-to", "'cardiac organ'", True),
        ("heart", "not-equivalent-to", "'liver'", True),
        ("heart", "not-equivalent-to", "'cardiac organ'", False),
    ])
    def test_class_query(self, dispatcher, subject, types, axiom, expected):
        assert dispatcher.dispatch(subject, axiom, types) is expected

    def test_subject_is_not_its_own_subclass(self, dispatcher):
        assert dispatcher.dispatch("organ", "'organ'", "subclass-of") is False

    def test_instance_type_not_applicable_to_class(self, dispatcher, caplog):
        assert dispatcher.dispatch("heart", "'organ'", "instance-of") is False
        assert "not possible for class" in caplog.text

    def test_axiom_retried_as_quoted_label(self, kb):
        """Test an axiom the parser rejects is retried in single quotes."""
        parser = QuotedOnlyParser(kb)
        dispatcher = QueryDispatcher(kb, parser, kb)
        assert dispatcher.dispatch("heart", "material entity", "subclass-of") is True
        assert parser.seen == ["material entity", "'material entity'"]


class TestIndividualQueries:
    """Test queries on individual subjects."""

    @pytest.mark.parametrize("types,axiom,expected", [
        ("instance-of", "'sample'", True),
        ("instance-of", "'organ'", False),
        ("direct-instance-of", "'blood sample'", True),
        ("direct-instance-of", "'sample'", False),
        ("not-instance-of", "'organ'", True),
        ("not-instance-of", "'sample'", False),
    ])
    def test_instance_query(self, dispatcher, types, axiom, expected):
        assert dispatcher.dispatch("sample 1", axiom, types) is expected

    def test_class_type_not_applicable_to_individual(self, dispatcher, caplog):
        assert dispatcher.dispatch("sample 1", "'sample'", "subclass-of") is False
        assert "not possible for individual" in caplog.text


class TestDisjunction:
    """Test multiple query types."""

    def test_any_type_satisfies(self, dispatcher):
        assert dispatcher.dispatch("heart", "'cardiac organ'", "subclass-of|equivalent-to") is True
        assert dispatcher.dispatch("heart", "'liver'", "subclass-of|equivalent-to") is False

    @pytest.mark.parametrize("first,second", list(itertools.permutations(
        ["subclass-of", "equivalent-to", "superclass-of", "not-subclass-of"], 2)
    ))
    def test_disjunction_law(self, dispatcher, first, second):
        """Test A|B is satisfied iff A or B is, in either order."""
        for subject, axiom in [("heart", "'organ'"), ("heart", "'cardiac organ'"), ("organ", "'heart'")]:
            expected = dispatcher.dispatch(subject, axiom, first) or dispatcher.dispatch(subject, axiom, second)
            assert dispatcher.dispatch(subject, axiom, f"{first}|{second}") is expected
            assert dispatcher.dispatch(subject, axiom, f"{second}|{first}") is expected

    def test_unknown_type_fails_before_querying(self, dispatcher):
        """Test every type is resolved even when an earlier one would succeed."""
        with pytest.raises(UnrecognizedQueryTypeError):
            dispatcher.dispatch("heart", "'organ'", "subclass-of|bogus")


class TestParseFailures:
    """Test unparsable axioms and subjects."""

    def test_unparsable_axiom_not_satisfied(self, dispatcher, caplog):
        assert dispatcher.dispatch("heart", "'spleen'", "subclass-of") is False
        assert "Unable to parse rule" in caplog.text

    def test_unparsable_subject_not_satisfied(self, dispatcher, caplog):
        assert dispatcher.dispatch("(spleen)", "'organ'", "subclass-of") is False
        assert "Unable to parse subject" in caplog.text


class FakeBackend(InMemoryKnowledgeBase):
    """Knowledge base that parses anything and records entailment questions."""

    def __init__(self, entailed: bool = True, supported: bool = True):
        super().__init__()
        self.entailed = entailed
        self.supported = supported
        self.asked: list[tuple[str, str, str]] = []

    def parse(self, text):
        return ClassExpression(text=text)

    def is_entailed_subclass(self, sub, sup):
        if not self.supported:
            raise UnsupportedQueryError("no reasoner")
        self.asked.append(("subclass", sub.text, sup.text))
        return self.entailed

    def is_entailed_equivalent(self, first, second):
        self.asked.append(("equivalent", first.text, second.text))
        return self.entailed


class TestGeneralizedQueries:
    """Test class expression subjects."""

    def test_subclass_entailment(self):
        backend = FakeBackend()
        dispatcher = QueryDispatcher(backend, backend, backend)
        assert dispatcher.dispatch("('part of' some heart)", "'organ'", "subclass-of") is True
        assert backend.asked == [("subclass", "('part of' some heart)", "'organ'")]

    def test_superclass_swaps_arguments(self):
        backend = FakeBackend()
        dispatcher = QueryDispatcher(backend, backend, backend)
        dispatcher.dispatch("(x)", "(y)", "superclass-of")
        assert backend.asked == [("subclass", "(y)", "(x)")]

    def test_equivalence_and_negation(self):
        backend = FakeBackend(entailed=False)
        dispatcher = QueryDispatcher(backend, backend, backend)
        assert dispatcher.dispatch("(x)", "(y)", "not-equivalent-to") is True
        assert backend.asked == [("equivalent", "(x)", "(y)")]

    @pytest.mark.parametrize("types", ["direct-subclass-of", "instance-of", "not-direct-superclass-of"])
    def test_direct_and_instance_types_skipped(self, types, caplog):
        backend = FakeBackend()
        dispatcher = QueryDispatcher(backend, backend, backend)
        assert dispatcher.dispatch("(x)", "(y)", types) is False
        assert backend.asked == []
        assert "not possible for class expression" in caplog.text

    def test_skipped_type_does_not_block_disjunction(self):
        backend = FakeBackend()
        dispatcher = QueryDispatcher(backend, backend, backend)
        assert dispatcher.dispatch("(x)", "(y)", "direct-subclass-of|subclass-of") is True

    def test_unsupported_backend_not_satisfied(self, caplog):
        backend = FakeBackend(supported=False)
        dispatcher = QueryDispatcher(backend, backend, backend)
        assert dispatcher.dispatch("(x)", "(y)", "subclass-of") is False
        assert "not supported" in caplog.text
