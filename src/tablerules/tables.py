"""Loading of tables and rule sources."""

import csv
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TSV_SUFFIXES = {".tsv", ".tab"}

Table = list[list[str]]


def load_table(path: str | Path) -> Table:
    """Read a CSV or TSV file into rows of strings.

    The delimiter is a tab for ``.tsv`` and ``.tab`` files and a comma otherwise.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")

    delimiter = "\t" if path.suffix.lower() in TSV_SUFFIXES else ","
    with open(path, encoding="utf-8", newline="") as f:
        rows = [list(row) for row in csv.reader(f, delimiter=delimiter)]

    logger.debug(f"Loaded {len(rows)} row(s) from {path}")
    return rows


def load_tables(paths: list[str | Path]) -> dict[str, Table]:
    """Load several tables, keyed by file name in the given order."""
    tables: dict[str, Table] = {}
    for path in paths:
        path = Path(path)
        if path.name in tables:
            logger.warning(f"Table {path.name} given more than once; using {path}")
        tables[path.name] = load_table(path)
    return tables


def load_rules(path: str | Path) -> dict[str, dict[str, str]]:
    """Load a rule source: a JSON object of table name -> header -> rule string.

    Table names may be given with or without their file extension.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or not shaped as described
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in rules file {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Rules file {path} must contain a JSON object of tables")

    rules: dict[str, dict[str, str]] = {}
    for table, columns in data.items():
        if not isinstance(columns, dict) or not all(isinstance(v, str) for v in columns.values()):
            raise ValueError(f"Rules for table \"{table}\" in {path} must map column names to rule strings")
        rules[Path(table).stem] = dict(columns)
    return rules


def extract_inline_rules(tables: dict[str, Table]) -> tuple[dict[str, dict[str, str]], dict[str, Table]]:
    """Split the rules row (the row under the headers) off every table.

    Returns:
        The rule map keyed by table stem, and the tables without their rules row
    """
    rules: dict[str, dict[str, str]] = {}
    stripped: dict[str, Table] = {}
    for name, rows in tables.items():
        if len(rows) < 2:
            logger.warning(f"Table {name} has no rules row")
            stripped[name] = list(rows)
            continue

        headers, rule_row = rows[0], rows[1]
        rules[Path(name).stem] = {
            header: rule_row[index] for index, header in enumerate(headers)
            if index < len(rule_row) and rule_row[index].strip()
        }
        stripped[name] = [rows[0]] + list(rows[2:])
    return rules, stripped
