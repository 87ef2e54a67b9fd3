"""Base class for validated-table output sinks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..utils.cells import cell_ref


@dataclass
class SinkRow:
    """A validated data row.

    Attributes:
        number: Row number as displayed in messages (1-based, header is row 1)
        cells: Raw cell contents, one per header column
    """
    number: int
    cells: list[str]

    def ref(self, column_index: int) -> str:
        """A1 reference of the cell at a 0-based column index."""
        return cell_ref(self.number, column_index + 1)


class TableSink(ABC):
    """Collects a table, its failed cells and messages, and writes a rendering."""

    def __init__(self, table_name: str, standalone: bool = False):
        """Initialize sink.

        Args:
            table_name: Table stem, used for the output file name and title
            standalone: Render a self-contained document where the format has one
        """
        self.table_name = table_name
        self.standalone = standalone
        self.header: list[str] = []
        self.rows: list[SinkRow] = []
        self.failed: set[str] = set()
        self.comments: dict[str, list[str]] = {}
        self.messages: list[str] = []

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension without the dot (e.g., 'html')."""
        pass

    @abstractmethod
    def write(self, path: Path) -> Path:
        """Render the table to ``path``.

        Args:
            path: Output file path

        Returns:
            Path written to
        """
        pass

    def set_header(self, header: list[str]) -> None:
        self.header = list(header)

    def add_row(self, number: int, cells: list[str]) -> None:
        # Pad short rows so every rendered row has one cell per header
        padded = list(cells) + [""] * (len(self.header) - len(cells))
        self.rows.append(SinkRow(number, padded))

    def mark_failed(self, ref: str) -> None:
        self.failed.add(ref)

    def add_comment(self, ref: str, message: str) -> None:
        self.comments.setdefault(ref, []).append(message)

    def comment(self, ref: str) -> str | None:
        """All comments on a cell joined with ``"; "``, or None."""
        comments = self.comments.get(ref)
        return "; ".join(comments) if comments else None

    def add_message(self, message: str) -> None:
        self.messages.append(message)

    def output_path(self, output_dir: Path) -> Path:
        """Default output path for this table inside ``output_dir``."""
        return Path(output_dir) / f"{self.table_name}.{self.extension}"

    def _prepare(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
