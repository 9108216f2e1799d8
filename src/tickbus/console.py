from __future__ import annotations

import sys
from typing import List, Optional, TextIO


class Console:
    """Plain-text line sink for handler output (stdout unless told otherwise)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # looked up lazily so pytest's capsys swap of sys.stdout is honoured
        return self._stream or sys.stdout

    def write_line(self, text: object) -> None:
        self.stream.write(f"{text}\n")
        self.stream.flush()


class RecordingConsole(Console):
    """Keeps every line in memory instead of writing it."""

    def __init__(self):
        super().__init__()
        self.lines: List[str] = []

    def write_line(self, text: object) -> None:
        self.lines.append(str(text))
