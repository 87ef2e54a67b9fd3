"""Output sinks for validated tables."""

from ..config import OutputFormat
from .base import SinkRow, TableSink
from .html import HtmlSink
from .text import TextSink
from .xlsx import XlsxSink

SINKS: dict[str, type[TableSink]] = {
    OutputFormat.HTML.value: HtmlSink,
    OutputFormat.TXT.value: TextSink,
    OutputFormat.XLSX.value: XlsxSink,
}


def create_sink(format: str | OutputFormat, table_name: str, standalone: bool = False) -> TableSink:
    """Create the sink for an output format.

    Raises:
        ValueError: If the format is unknown
    """
    key = format.value if isinstance(format, OutputFormat) else str(format).lower()
    if key not in SINKS:
        raise ValueError(f"Invalid output format '{format}'. Must be one of: {', '.join(sorted(SINKS))}")
    return SINKS[key](table_name, standalone=standalone)


__all__ = ["SINKS", "HtmlSink", "SinkRow", "TableSink", "TextSink", "XlsxSink", "create_sink"]
