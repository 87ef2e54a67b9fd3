"""HTML sink: the validated table with failed cells highlighted."""

import html
from pathlib import Path

from .base import TableSink

BOOTSTRAP_CSS = "https://stackpath.bootstrapcdn.com/bootstrap/4.3.1/css/bootstrap.min.css"


class HtmlSink(TableSink):
    """Renders a Bootstrap-styled table.

    Failed cells get the ``bg-danger`` class and their comments as a ``title``
    tooltip. Multi-valued cells are rendered one value per line.
    """

    @property
    def extension(self) -> str:
        return "html"

    def render(self) -> str:
        lines = ['<table class="table table-sm table-bordered">', "<thead>", "<tr>"]
        lines.extend(f"<th>{html.escape(header)}</th>" for header in self.header)
        lines.extend(["</tr>", "</thead>", "<tbody>"])

        for row in self.rows:
            lines.append("<tr>")
            for index, raw in enumerate(row.cells):
                ref = row.ref(index)
                attributes = ""
                if ref in self.failed:
                    attributes += ' class="bg-danger"'
                comment = self.comment(ref)
                if comment:
                    attributes += f' title="{html.escape(comment, quote=True)}"'
                content = "<br>".join(html.escape(value) for value in raw.split("|"))
                lines.append(f"<td{attributes}>{content}</td>")
            lines.append("</tr>")

        lines.extend(["</tbody>", "</table>"])
        table = "\n".join(lines)

        if not self.standalone:
            return table
        return "\n".join([
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f'<link rel="stylesheet" href="{BOOTSTRAP_CSS}">',
            f"<title>{html.escape(self.table_name)}</title>",
            "</head>",
            "<body>",
            '<div class="container-fluid">',
            table,
            "</div>",
            "</body>",
            "</html>",
        ])

    def write(self, path: Path) -> Path:
        path = self._prepare(path)
        path.write_text(self.render() + "\n", encoding="utf-8")
        return path
