"""Tests for rule instance evaluation."""

import pytest

from tablerules.dispatch import QueryDispatcher
from tablerules.errors import InvalidPresenceRuleError
from tablerules.evaluator import FALSY, TRUTHY, Evaluator, presence_flag
from tablerules.rules import Rule, RuleKey, WhenClause

REQUIRED = RuleKey.parse("is-required")
EXCLUDED = RuleKey.parse("is-excluded")
SUBCLASS = RuleKey.parse("subclass-of")


class RecordingDispatcher:
    """Dispatcher stub answering from a table and recording calls."""

    def __init__(self, answers=None, default=True):
        self.answers = answers or {}
        self.default = default
        self.calls = []

    def dispatch(self, subject, axiom, query_types, row=None, column=None):
        self.calls.append((subject, query_types, axiom))
        return self.answers.get((subject, query_types, axiom), self.default)


@pytest.fixture
def evaluator(kb):
    return Evaluator(QueryDispatcher(kb, kb, kb))


class TestPresenceRules:
    """Test is-required and is-excluded."""

    @pytest.mark.parametrize("flag", sorted(TRUTHY) + ["TRUE", "Yes"])
    def test_truthy_tokens_enable(self, evaluator, flag):
        assert evaluator.evaluate(REQUIRED, Rule(flag), "", []) is not None

    @pytest.mark.parametrize("flag", sorted(FALSY) + ["FALSE", "No"])
    def test_falsy_tokens_disable(self, evaluator, flag):
        assert evaluator.evaluate(REQUIRED, Rule(flag), "", []) is None
        assert evaluator.evaluate(EXCLUDED, Rule(flag), "heart", []) is None

    @pytest.mark.parametrize("flag", ["maybe", "2", "", "required"])
    def test_invalid_token(self, evaluator, flag):
        with pytest.raises(InvalidPresenceRuleError) as exc_info:
            evaluator.evaluate(REQUIRED, Rule(flag), "", [], column=2)
        assert exc_info.value.column == 2

    def test_required(self, evaluator):
        message = evaluator.evaluate(REQUIRED, Rule("true"), "  ", [])
        assert message == 'Cell is empty but rule: "is-required true" does not allow this.'
        assert evaluator.evaluate(REQUIRED, Rule("true"), "heart", []) is None

    def test_excluded(self, evaluator):
        message = evaluator.evaluate(EXCLUDED, Rule("true"), "heart", [])
        assert message == 'Cell is non-empty ("heart") but rule: "is-excluded true" does not allow this.'
        assert evaluator.evaluate(EXCLUDED, Rule("true"), "", []) is None


class TestQueryRules:
    """Test query main clauses."""

    def test_pass(self, evaluator):
        assert evaluator.evaluate(SUBCLASS, Rule("'organ'"), "heart", ["heart"]) is None

    def test_failure_message(self, evaluator):
        message = evaluator.evaluate(SUBCLASS, Rule("'organ'"), "sample", ["sample"])
        assert message == "Validation failed for rule: \"sample subclass-of 'organ'\"."

    def test_blank_value_passes_without_query(self):
        dispatcher = RecordingDispatcher(default=False)
        assert Evaluator(dispatcher).evaluate(SUBCLASS, Rule("'organ'"), " ", []) is None
        assert dispatcher.calls == []


class TestWhenClauses:
    """Test when-clause gating."""

    def rule(self, *clauses):
        return Rule("'organ'", tuple(WhenClause(s, "instance-of", a) for s, a in clauses))

    def test_unsatisfied_when_clause_suppresses_failure(self):
        """Test a failing main clause is not evaluated when a condition fails."""
        dispatcher = RecordingDispatcher({("'x'", "instance-of", "'sample'"): False}, default=False)
        assert Evaluator(dispatcher).evaluate(SUBCLASS, self.rule(("'x'", "'sample'")), "heart", []) is None
        assert dispatcher.calls == [("'x'", "instance-of", "'sample'")]

    def test_satisfied_when_clauses_run_main_clause(self):
        dispatcher = RecordingDispatcher({("heart", "subclass-of", "'organ'"): False})
        rule = self.rule(("'x'", "'sample'"), ("'y'", "'organ'"))
        message = Evaluator(dispatcher).evaluate(SUBCLASS, rule, "heart", [])
        assert message is not None
        assert dispatcher.calls[-1] == ("heart", "subclass-of", "'organ'")
        assert len(dispatcher.calls) == 3

    def test_short_circuit_on_first_failure(self):
        dispatcher = RecordingDispatcher({("'x'", "instance-of", "'sample'"): False})
        rule = self.rule(("'x'", "'sample'"), ("'y'", "'organ'"))
        Evaluator(dispatcher).evaluate(SUBCLASS, rule, "heart", [])
        assert dispatcher.calls == [("'x'", "instance-of", "'sample'")]

    def test_blank_subject_skipped(self):
        dispatcher = RecordingDispatcher()
        Evaluator(dispatcher).evaluate(SUBCLASS, self.rule(("", "'sample'")), "heart", [])
        assert dispatcher.calls == [("heart", "subclass-of", "'organ'")]

    def test_presence_rule_gated(self, evaluator):
        """Test is-required only applies when its condition holds."""
        rule = Rule("true", (WhenClause("'sample 1'", "instance-of", "'sample'"),))
        assert evaluator.evaluate(REQUIRED, rule, "", []) is not None
        rule = Rule("true", (WhenClause("'heart 1'", "instance-of", "'sample'"),))
        assert evaluator.evaluate(REQUIRED, rule, "", []) is None

    def test_gated_instance_is_not_applied(self):
        """Test a skipped instance is told apart from a passing one."""
        dispatcher = RecordingDispatcher({("'x'", "instance-of", "'sample'"): False})
        evaluation = Evaluator(dispatcher).run(SUBCLASS, self.rule(("'x'", "'sample'")), "heart", [])
        assert evaluation.applied is False
        assert evaluation.failed is False

        evaluation = Evaluator(RecordingDispatcher()).run(SUBCLASS, self.rule(("'x'", "'sample'")), "heart", [])
        assert evaluation.applied is True
        assert evaluation.failed is False

    def test_applied_failure(self):
        dispatcher = RecordingDispatcher({("heart", "subclass-of", "'organ'"): False})
        evaluation = Evaluator(dispatcher).run(SUBCLASS, self.rule(("'x'", "'sample'")), "heart", [])
        assert evaluation.applied is True
        assert evaluation.failed is True
        assert "heart subclass-of 'organ'" in evaluation.message


class TestPresenceFlag:
    """Test reading presence rule content."""

    def test_values(self):
        assert presence_flag(REQUIRED, " Yes ") is True
        assert presence_flag(REQUIRED, "n") is False

    def test_invalid(self):
        with pytest.raises(InvalidPresenceRuleError):
            presence_flag(EXCLUDED, "sometimes", column=3)
