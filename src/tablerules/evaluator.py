"""Evaluation of one concrete rule instance against one cell.

Evaluation runs through ``START -> WHEN_CHECK -> MAIN_CHECK -> DONE``. When-clauses
are a conjunction: the first unsatisfied one ends evaluation without a message.
The main clause is then checked according to the rule's category.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .dispatch import QueryDispatcher
from .errors import InvalidPresenceRuleError
from .rules.models import Rule
from .rules.types import RuleCategory, RuleKey, RuleType

logger = logging.getLogger(__name__)

TRUTHY = frozenset({"true", "t", "1", "yes", "y"})
FALSY = frozenset({"false", "f", "0", "no", "n"})


class EvaluationState(str, Enum):
    START = "start"
    WHEN_CHECK = "when_check"
    MAIN_CHECK = "main_check"
    DONE = "done"


@dataclass(frozen=True)
class Evaluation:
    """Outcome of one rule instance on one value."""
    applied: bool  # False when a when-clause did not hold
    message: str | None = None

    @property
    def failed(self) -> bool:
        return self.message is not None


def presence_flag(key: RuleKey, main_clause: str, column: int | None = None) -> bool:
    """Read a presence rule's content as a truth value.

    Raises:
        InvalidPresenceRuleError: If the content is not one of the accepted truth values
    """
    flag = main_clause.strip().lower()
    if flag in TRUTHY:
        return True
    if flag in FALSY:
        return False
    raise InvalidPresenceRuleError(main_clause, key.token, column)


class Evaluator:
    """Evaluates rule instances, returning a failure message or None."""

    def __init__(self, dispatcher: QueryDispatcher):
        self.dispatcher = dispatcher

    def evaluate(
        self,
        key: RuleKey,
        rule: Rule,
        value: str,
        row: list[str],
        column: int | None = None,
    ) -> str | None:
        """Evaluate an interpolated rule against a cell.

        Returns:
            Failure message, or None when the rule passes or does not apply
        """
        return self.run(key, rule, value, row, column).message

    def run(
        self,
        key: RuleKey,
        rule: Rule,
        value: str,
        row: list[str],
        column: int | None = None,
    ) -> Evaluation:
        """Run the evaluation state machine for one rule instance.

        Args:
            key: Rule key the rule was written under
            rule: Interpolated rule instance
            value: Raw cell content for presence rules, a single cell value for
                query rules
            row: Current data row
            column: 1-based column number for messages

        Returns:
            Evaluation telling whether the main clause was reached and its
            failure message, if any

        Raises:
            InvalidPresenceRuleError: If a presence rule's content is not a truth value
            UnrecognizedQueryTypeError: If a query type is unknown
        """
        state = EvaluationState.START
        applied = False
        message = None

        while state != EvaluationState.DONE:
            logger.debug(f"{state.value}: {key} \"{rule}\" on \"{value}\"")
            if state == EvaluationState.START:
                state = EvaluationState.WHEN_CHECK
            elif state == EvaluationState.WHEN_CHECK:
                state = EvaluationState.MAIN_CHECK if self.when_satisfied(rule, row, column) else EvaluationState.DONE
            elif state == EvaluationState.MAIN_CHECK:
                applied = True
                if key.category == RuleCategory.PRESENCE:
                    message = self.check_presence(key, rule.main_clause, value, column)
                else:
                    message = self.check_query(key, rule.main_clause, value, row, column)
                state = EvaluationState.DONE

        return Evaluation(applied=applied, message=message)

    def when_satisfied(self, rule: Rule, row: list[str], column: int | None = None) -> bool:
        """Whether all when-clauses of ``rule`` hold. Blank subjects are skipped."""
        for clause in rule.when_clauses:
            if not clause.subject.strip():
                continue
            if not self.dispatcher.dispatch(clause.subject, clause.axiom, clause.query_types, row, column):
                logger.info(
                    f"When clause: \"{clause}\" is not satisfied. Not running main clause: \"{rule.main_clause}\""
                )
                return False
            logger.info(f"Validated when clause \"{clause}\".")
        return True

    def check_presence(self, key: RuleKey, main_clause: str, content: str, column: int | None = None) -> str | None:
        if not presence_flag(key, main_clause, column):
            return None

        if key.primary == RuleType.IS_REQUIRED and not content.strip():
            return f"Cell is empty but rule: \"{key.token} {main_clause}\" does not allow this."
        if key.primary == RuleType.IS_EXCLUDED and content.strip():
            return f"Cell is non-empty (\"{content}\") but rule: \"{key.token} {main_clause}\" does not allow this."
        return None

    def check_query(
        self, key: RuleKey, axiom: str, value: str, row: list[str], column: int | None = None
    ) -> str | None:
        if not value.strip():
            return None
        if self.dispatcher.dispatch(value, axiom, key.token, row, column):
            logger.info(f"Validated \"{key.token} {axiom}\" against \"{value}\".")
            return None
        return f"Validation failed for rule: \"{value} {key.token} {axiom}\"."
