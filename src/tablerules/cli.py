"""CLI interface for tablerules using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from tablerules import __description__, __version__
from tablerules.config import LogLevel, OutputFormat, ValidationOptions, load_config
from tablerules.errors import RuleError
from tablerules.knowledge import InMemoryKnowledgeBase
from tablerules.rules import RuleKey, parse_rules, separate_rule
from tablerules.tables import extract_inline_rules, load_rules, load_tables
from tablerules.validator import TableValidator, ValidationResult

INLINE_RULES_SKIP_ROW = 2

app = typer.Typer(
    name="tablerules",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()

logger = logging.getLogger(__name__)


def setup_logging(level: LogLevel) -> None:
    """Configure the root logger with a Rich handler."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.level)


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"tablerules version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """tablerules - Validate tables against per-column rules."""


def _print_result(result: ValidationResult) -> None:
    status = "[green]VALID[/green]" if result.valid else "[red]INVALID[/red]"
    console.print(f"Validation Status: {status}")
    console.print(f"Exit Code: {result.exit_code}")

    if result.counters:
        console.print("\n[blue]Counters:[/blue]")
        counter_table = Table()
        counter_table.add_column("Metric", style="cyan")
        counter_table.add_column("Count", style="white", justify="right")
        for key, value in sorted(result.counters.items()):
            counter_table.add_row(key.replace("_", " ").title(), str(value))
        console.print(counter_table)

    if result.issues:
        console.print("\n[blue]Issues Found:[/blue]")
        issues_table = Table()
        issues_table.add_column("Table", style="cyan")
        issues_table.add_column("Cell", style="white")
        issues_table.add_column("Rule", style="white")
        issues_table.add_column("Message", style="white")
        for issue in result.issues:
            issues_table.add_row(escape(issue.table), issue.cell, escape(issue.rule), escape(issue.message))
        console.print(issues_table)
        console.print(f"\n[red]Invalid tables:[/red] {', '.join(result.invalid_tables)}")
    else:
        console.print("\n[green]No issues found![/green]")

    for path in result.outputs:
        console.print(f"[dim]Wrote {path}[/dim]")


@app.command()
def validate(
    tables: Annotated[
        list[Path],
        typer.Argument(help="CSV or TSV tables to validate")
    ],
    rules: Annotated[
        Optional[Path],
        typer.Option("--rules", "-r", help="JSON rules file (default: use the row under each table's headers)")
    ] = None,
    knowledge: Annotated[
        Optional[Path],
        typer.Option("--knowledge", "-k", help="JSON knowledge base file")
    ] = None,
    format: Annotated[
        Optional[OutputFormat],
        typer.Option("--format", "-f", help="Write validated tables as html, txt or xlsx")
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory for written tables")
    ] = None,
    skip_row: Annotated[
        Optional[int],
        typer.Option("--skip-row", min=0, help="Row number skipped in the source table")
    ] = None,
    standalone: Annotated[
        bool,
        typer.Option("--standalone", help="Write HTML as a complete page")
    ] = False,
    write_all: Annotated[
        bool,
        typer.Option("--write-all", help="Write every table, not only invalid ones")
    ] = False,
    silent: Annotated[
        bool,
        typer.Option("--silent", "-s", help="Do not log located failure messages")
    ] = False,
    json: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON")
    ] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .tablerules.json)")
    ] = None,
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option("--log-level", "-l", help="Logging level")
    ] = None,
) -> None:
    """Validate tables against their column rules."""
    try:
        settings = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2)

    setup_logging(log_level or settings.logging.level)

    try:
        loaded = load_tables(tables)
        if rules is not None:
            rule_map = load_rules(rules)
        else:
            rule_map, loaded = extract_inline_rules(loaded)
            if skip_row is None:
                skip_row = INLINE_RULES_SKIP_ROW

        knowledge_path = knowledge or settings.knowledge.path
        if knowledge_path:
            kb = InMemoryKnowledgeBase.load(knowledge_path)
        else:
            logger.warning("No knowledge base given; query rules will not be satisfied")
            kb = InMemoryKnowledgeBase()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2)

    options = ValidationOptions.from_config(
        settings,
        skip_row=skip_row,
        silent=silent or None,
        standalone=standalone or None,
        write_all=write_all or None,
        output_format=format,
        output_dir=output_dir,
    )

    validator = TableValidator.from_knowledge_base(kb, options)
    try:
        result = validator.validate(loaded, rule_map)
    except RuleError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(2)

    if json:
        typer.echo(jsonlib.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)

    raise typer.Exit(result.exit_code)


@app.command("rules")
def show_rules(
    rule_string: Annotated[
        str,
        typer.Argument(help="Rule string, or a single rule's content with --type")
    ],
    rule_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Rule type of a single rule's content")
    ] = None,
) -> None:
    """Parse a rule string and show its structure."""
    try:
        if rule_type is not None:
            key = RuleKey.parse(rule_type)
            parsed = {key: [rule_string]}
        else:
            parsed = parse_rules(rule_string)

        rules_table = Table()
        rules_table.add_column("Type", style="cyan")
        rules_table.add_column("Category", style="white")
        rules_table.add_column("Main clause", style="white")
        rules_table.add_column("When clauses", style="dim")
        for key, contents in parsed.items():
            for content in contents:
                rule = separate_rule(content, key)
                rules_table.add_row(
                    escape(key.token),
                    key.category.value,
                    escape(rule.main_clause),
                    escape("\n".join(str(clause) for clause in rule.when_clauses)),
                )
    except RuleError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(2)

    if not parsed:
        console.print("[yellow]No rules[/yellow]")
        return
    console.print(rules_table)


if __name__ == "__main__":
    app()
