"""Excel sink built with openpyxl."""

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .base import TableSink

logger = logging.getLogger(__name__)

FAILED_FILL = PatternFill(start_color="FF0000", end_color="FF0000", fill_type="solid")
FAILED_FONT = Font(color="FFFFFF")
HEADER_FONT = Font(bold=True)


class XlsxSink(TableSink):
    """Writes a single-sheet workbook; failed cells are red with a white font and a comment."""

    @property
    def extension(self) -> str:
        return "xlsx"

    def build(self) -> Workbook:
        wb = Workbook()
        ws = wb.active
        ws.title = self.table_name[:31] or "Sheet"  # Excel sheet title limit

        ws.append(self.header)
        for col in range(1, len(self.header) + 1):
            ws.cell(row=1, column=col).font = HEADER_FONT

        for position, row in enumerate(self.rows, start=2):
            for index, raw in enumerate(row.cells):
                cell = ws.cell(row=position, column=index + 1, value=raw)
                ref = row.ref(index)
                if ref in self.failed:
                    cell.fill = FAILED_FILL
                    cell.font = FAILED_FONT
                comment = self.comment(ref)
                if comment:
                    cell.comment = Comment(comment, "tablerules")

        self._auto_width(ws)
        return wb

    def _auto_width(self, ws) -> None:
        """Adjust column widths to content."""
        for column in ws.columns:
            max_length = max((len(str(cell.value)) for cell in column if cell.value), default=0)
            ws.column_dimensions[get_column_letter(column[0].column)].width = min(max_length + 2, 50)

    def write(self, path: Path) -> Path:
        path = self._prepare(path)
        self.build().save(path)
        logger.debug(f"Wrote workbook for {self.table_name} to {path}")
        return path
