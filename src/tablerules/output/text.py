"""Plain-text sink: one located message per line."""

from pathlib import Path

from .base import TableSink


class TextSink(TableSink):

    @property
    def extension(self) -> str:
        return "txt"

    def write(self, path: Path) -> Path:
        path = self._prepare(path)
        with open(path, "w", encoding="utf-8") as f:
            for message in self.messages:
                f.write(message + "\n")
        return path
