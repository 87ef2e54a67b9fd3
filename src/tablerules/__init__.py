"""tablerules - Rule-driven validation of tabular data against a knowledge base.

tablerules reads per-column rule strings (presence rules and knowledge-base
queries with optional when-clauses), expands them for every row of a table and
reports each failing cell with a located message.
"""

__version__ = "0.1.0"
__author__ = "tablerules contributors"
__description__ = "Rule-driven validation of tabular data against a knowledge base"

from tablerules.config import TableRulesConfig, ValidationOptions
from tablerules.validator import TableValidator, ValidationIssue, ValidationResult

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "TableRulesConfig",
    "TableValidator",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationResult",
]
