"""Table validation: iteration over tables, rows, columns and rules.

Each table is validated in its own pass with a fresh ``ValidationContext``. Every
failing rule application becomes a ``ValidationIssue``; a table with at least one
issue is invalid. Structural rule errors propagate and abort the run.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .config import OutputFormat, ValidationOptions
from .dispatch import QueryDispatcher
from .evaluator import Evaluator, presence_flag
from .interpolation import Interpolator, has_placeholders
from .knowledge.base import ExpressionParser, LabelResolver, QueryService
from .output import TableSink, create_sink
from .rules import Cell, Column, Rule, RuleCategory, RuleKey, parse_rules, separate_rule
from .utils.cells import cell_ref

logger = logging.getLogger(__name__)

SinkFactory = Callable[[OutputFormat, str, bool], TableSink]


@dataclass
class ValidationIssue:
    """A single failing rule application."""
    table: str  # Table name without extension
    cell: str  # A1 reference
    rule: str  # Rule type token as written
    message: str

    def __str__(self) -> str:
        return f"{self.table} {self.cell} [{self.rule}]: {self.message}"


@dataclass
class ValidationResult:
    """Results of a validation run."""
    invalid_tables: list[str] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)
    outputs: list[Path] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.invalid_tables

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = all tables valid, 1 = at least one invalid table."""
        return 0 if self.valid else 1

    def add_issue(self, table: str, cell: str, rule: str, message: str) -> ValidationIssue:
        """Add a validation issue."""
        issue = ValidationIssue(table, cell, rule, message)
        self.issues.append(issue)
        self.increment_counter("issues")
        return issue

    def increment_counter(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        self.counters[name] = self.counters.get(name, 0) + value

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "valid": self.valid,
            "exit_code": self.exit_code,
            "invalid_tables": self.invalid_tables,
            "counters": self.counters,
            "outputs": [str(path) for path in self.outputs],
            "issues": [
                {
                    "table": issue.table,
                    "cell": issue.cell,
                    "rule": issue.rule,
                    "message": issue.message,
                }
                for issue in self.issues
            ],
        }


@dataclass
class ValidationContext:
    """State of one table pass."""
    table: str  # Table name as given, e.g. "terms.csv"
    stem: str
    headers: list[str]
    sink: TableSink | None = None
    row_index: int = -1
    row_number: int = 0
    column: Column | None = None
    cell: Cell | None = None
    valid: bool = True
    issues: list[ValidationIssue] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    @property
    def cell_ref(self) -> str:
        return cell_ref(self.row_number, self.column.number)

    def count(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value


def table_stem(name: str) -> str:
    """Table name without directories and extension."""
    return Path(name).stem


class TableValidator:
    """Validates tables against per-column rules using knowledge-base collaborators."""

    def __init__(
        self,
        resolver: LabelResolver,
        parser: ExpressionParser,
        queries: QueryService,
        options: ValidationOptions | None = None,
        sink_factory: SinkFactory = create_sink,
    ):
        self.resolver = resolver
        self.options = options or ValidationOptions()
        self.sink_factory = sink_factory
        self.evaluator = Evaluator(QueryDispatcher(resolver, parser, queries))

    @classmethod
    def from_knowledge_base(cls, kb, options: ValidationOptions | None = None, **kwargs) -> "TableValidator":
        """Create a validator from one object implementing all three collaborator protocols."""
        return cls(kb, kb, kb, options=options, **kwargs)

    def validate(
        self,
        tables: Mapping[str, Sequence[Sequence[str]]],
        rules: Mapping[str, Mapping[str, str]],
        options: ValidationOptions | None = None,
    ) -> ValidationResult:
        """Validate tables in order.

        Args:
            tables: Table name -> rows, first row holding the headers
            rules: Table stem -> header -> raw rule string
            options: Run options (defaults to the validator's options)

        Returns:
            ValidationResult with invalid tables, issues and counters

        Raises:
            RuleError: If a rule is structurally invalid
        """
        options = options or self.options
        result = ValidationResult()

        logger.info(f"Starting validation of {len(tables)} table(s)")

        for name, data in tables.items():
            table_rules = rules.get(table_stem(name), rules.get(name))
            if table_rules is None:
                logger.info(f"No rules for table {name}; skipping")
                continue

            context = self.validate_table(name, data, table_rules, options)

            result.increment_counter("tables_validated")
            for counter, value in context.counters.items():
                result.increment_counter(counter, value)
            for issue in context.issues:
                result.add_issue(issue.table, issue.cell, issue.rule, issue.message)
            if not context.valid:
                result.invalid_tables.append(name)

            if context.sink is not None and (options.write_all or not context.valid):
                path = context.sink.write(context.sink.output_path(options.output_dir))
                result.outputs.append(path)
                logger.info(f"Wrote {path}")

        logger.info(
            f"Validation completed: {len(result.invalid_tables)} invalid table(s), {len(result.issues)} issue(s)"
        )
        return result

    def build_columns(self, headers: Sequence[str], table_rules: Mapping[str, str], table: str = "") -> list[Column]:
        """Parse the rules of every header column.

        Rule types, query types and presence values are all checked here, so a
        structural error surfaces before any row is read.

        Raises:
            RuleError: If a rule string or a rule's when-clause is invalid
        """
        for header in table_rules:
            if header not in headers:
                logger.warning(f"Rules given for unknown column \"{header}\" in {table}")

        columns = []
        for index, header in enumerate(headers):
            raw_rules = table_rules.get(header) or ""
            rules = parse_rules(raw_rules, index + 1)
            parsed = {
                key: [separate_rule(content, key, index + 1) for content in contents]
                for key, contents in rules.items()
            }
            for key, separated in parsed.items():
                self._check_rules(key, separated, index + 1)
            columns.append(Column(header=header, index=index, raw_rules=raw_rules, rules=rules, parsed=parsed))
        return columns

    @staticmethod
    def _check_rules(key: RuleKey, rules: list[Rule], column: int) -> None:
        if key.category == RuleCategory.QUERY:
            key.query_types(f"{key.token} {rules[0].main_clause}", column)
            return
        for rule in rules:
            # Row-dependent values are checked on evaluation
            if not has_placeholders(rule.main_clause):
                presence_flag(key, rule.main_clause, column)

    def validate_table(
        self,
        name: str,
        data: Sequence[Sequence[str]],
        table_rules: Mapping[str, str],
        options: ValidationOptions | None = None,
    ) -> ValidationContext:
        """Validate a single table in a fresh context.

        Args:
            name: Table name, e.g. ``terms.csv``
            data: Rows, first row holding the headers
            table_rules: Header -> raw rule string
            options: Run options (defaults to the validator's options)

        Returns:
            The finished context, holding validity, issues and the sink

        Raises:
            RuleError: If a rule is structurally invalid
        """
        options = options or self.options
        headers = list(data[0]) if data else []
        context = ValidationContext(table=name, stem=table_stem(name), headers=headers)

        columns = self.build_columns(headers, table_rules, name)
        if options.output_format is not None:
            context.sink = self.sink_factory(options.output_format, context.stem, options.standalone)
            context.sink.set_header(headers)

        interpolator = Interpolator(self.resolver, table=context.stem)

        skip_row = options.skip_row
        offset = 3 if 0 < skip_row <= 2 else 2

        for row_index, row in enumerate(data[1:]):
            row = list(row)
            row_number = row_index + offset
            if offset == 2 and skip_row > 2 and row_number >= skip_row:
                # Rows from the skipped row onwards sit one line further down
                offset = 3
                row_number = row_index + offset

            if not any((value or "").strip() for value in row):
                logger.debug(f"Skipping empty row {row_number} of {name}")
                continue

            context.row_index = row_index
            context.row_number = row_number
            context.count("rows_validated")

            for column in columns:
                context.column = column
                context.cell = Cell.from_raw(row[column.index] if column.index < len(row) else "")
                if column.has_rules:
                    context.count("cells_validated")
                    self._validate_cell(context, interpolator, row, options)

            if context.sink is not None:
                context.sink.add_row(row_number, row)

        return context

    def _validate_cell(
        self, context: ValidationContext, interpolator: Interpolator, row: list[str], options: ValidationOptions
    ) -> None:
        column = context.column
        cell = context.cell
        for key, rules in column.parsed.items():
            # Presence rules look at the whole cell, query rules at each value
            values = [cell.raw] if key.category == RuleCategory.PRESENCE else list(cell.values)
            for rule in rules:
                instances = interpolator.interpolate_rule(rule, context.headers, row, column.number)
                for value in values:
                    message = self._evaluate_alternatives(key, instances, value, row, column.number)
                    if message is not None:
                        self._report(context, key.token, message, options)

    def _evaluate_alternatives(
        self, key: RuleKey, instances: list[Rule], value: str, row: list[str], column: int
    ) -> str | None:
        """Evaluate the interpolated instances of one rule as alternatives.

        Only instances whose when-clauses hold take part. The value passes as soon
        as one of them passes, or when none applies. Otherwise the failure messages
        of the applicable instances are joined.
        """
        failures = []
        for instance in instances:
            evaluation = self.evaluator.run(key, instance, value, row, column)
            if not evaluation.applied:
                continue
            if not evaluation.failed:
                return None
            failures.append(evaluation.message)
        return "; ".join(failures) if failures else None

    def _report(self, context: ValidationContext, rule: str, message: str, options: ValidationOptions) -> None:
        context.valid = False
        ref = context.cell_ref
        context.issues.append(ValidationIssue(context.stem, ref, rule, message))

        located = f"At {context.table} row {context.row_number}, column {context.column.number}: {message}"
        if not options.silent:
            logger.warning(located)

        if context.sink is not None:
            context.sink.mark_failed(ref)
            context.sink.add_comment(ref, message)
            context.sink.add_message(located)
