"""
Apply an EditSet to a document.

Two back-ends expose the same line interface (get_line, replace_line,
get_value):

* EditorBuffer: an in-memory editor buffer; every replacement is visible to
  the next get_line immediately.
* FileSnapshot: a file read once into a line list; commit() writes it back
  only if some line actually changed.

apply_edits only touches the assignee slot of each edited line. Everything
else on the line (metadata, delegate, links, dates, block id) goes back
through the codec unchanged.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Union

from models.edits import EditSet
from models.line import CLEAR, Override
from parsers.line_codec import normalize_task_line

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    line: int
    ch: int


class EditorBuffer:
    """Editable text buffer addressed by 0-based line and character."""

    def __init__(self, text: str = ""):
        self._lines: List[str] = text.split("\n")

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, n: int) -> str:
        return self._lines[n]

    def get_value(self) -> str:
        return "\n".join(self._lines)

    def set_value(self, text: str) -> None:
        self._lines = text.split("\n")

    def replace_range(self, text: str, start: Position, end: Position) -> None:
        """Replace the text between two positions, which may span lines."""
        head = self._lines[start.line][:start.ch]
        tail = self._lines[end.line][end.ch:]
        replacement = (head + text + tail).split("\n")
        self._lines[start.line:end.line + 1] = replacement

    def replace_line(self, n: int, text: str) -> None:
        self.replace_range(text, Position(n, 0), Position(n, len(self._lines[n])))


class FileSnapshot:
    """
    Whole-file view of a document.

    The file is read once; replace_line mutates the in-memory copy. The
    original line ending style (``\\n`` or ``\\r\\n``) is kept on write.
    """

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        content = self.file_path.read_bytes().decode("utf-8")
        self._eol = "\r\n" if "\r\n" in content else "\n"
        self._original = content
        self._lines: List[str] = content.split(self._eol)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def get_line(self, n: int) -> str:
        return self._lines[n]

    def get_value(self) -> str:
        return self._eol.join(self._lines)

    def replace_line(self, n: int, text: str) -> None:
        self._lines[n] = text

    @property
    def dirty(self) -> bool:
        return self.get_value() != self._original

    def commit(self) -> bool:
        """Write the content back if it changed. Returns True if written."""
        if not self.dirty:
            return False
        content = self.get_value()
        self.file_path.write_bytes(content.encode("utf-8"))
        self._original = content
        log.info("Wrote %s", self.file_path)
        return True


LineBuffer = Union[EditorBuffer, FileSnapshot]
RenderMark = Callable[[str], str]


def rewrite_assignee(buffer: LineBuffer, line0: int, override: Override, strict: bool = True) -> bool:
    """Apply one assignee override to a line. Returns True if the text changed."""
    original = buffer.get_line(line0)
    updated = normalize_task_line(original, assignee=override, strict=strict)
    if updated == original:
        return False
    buffer.replace_line(line0, updated)
    return True


def apply_edits(
    buffer: LineBuffer,
    edits: EditSet,
    render_mark: RenderMark,
    strict: bool = True,
) -> List[int]:
    """
    Apply to_set then to_remove on buffer.

    Returns the sorted 0-based lines whose text changed.
    """
    changed = set()
    for line0, alias in sorted(edits.to_set.items()):
        if line0 >= buffer.line_count:
            log.warning("Edit for line %d is past the end of the document", line0)
            continue
        if rewrite_assignee(buffer, line0, Override.value(render_mark(alias)), strict):
            changed.add(line0)
    for line0 in sorted(edits.to_remove):
        if line0 >= buffer.line_count:
            log.warning("Edit for line %d is past the end of the document", line0)
            continue
        if rewrite_assignee(buffer, line0, CLEAR, strict):
            changed.add(line0)
    return sorted(changed)
