"""
Cascade outputs and the result type threaded through the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union


@dataclass
class EditSet:
    """
    Line-level assignee edits produced by one cascade run.

    Keys are 0-based line indexes into the document.
    """

    to_set: Dict[int, str] = field(default_factory=dict)
    to_remove: Set[int] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.to_set and not self.to_remove

    def to_dict(self, base: int = 0) -> dict:
        """Serialisable form; base is added to every line number."""
        return {
            "to_set": {str(k + base): v for k, v in sorted(self.to_set.items())},
            "to_remove": [k + base for k in sorted(self.to_remove)],
        }


class CascadeError(str, Enum):
    PARSE_MISS = "parse-miss"
    MISSING_INDEX_ENTRY = "missing-index-entry"
    MISSING_NODE = "missing-node"


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class Err:
    reason: CascadeError
    detail: str = ""

    @property
    def message(self) -> str:
        return f"{self.reason.value}: {self.detail}" if self.detail else self.reason.value


Result = Union[Ok, Err]


@dataclass
class CascadeReport:
    """
    What an applied assignment change did to a document.

    changed_lines and the edit keys are 0-based; line and to_dict() are 1-based.
    """

    file_path: Path
    line: int
    old_alias: Optional[str]
    new_alias: Optional[str]
    edits: EditSet = field(default_factory=EditSet)
    changed_lines: List[int] = field(default_factory=list)
    cleared_self: bool = False
    written: bool = False

    def to_dict(self) -> dict:
        return {
            "file_path": str(self.file_path),
            "line": self.line,
            "old_alias": self.old_alias,
            "new_alias": self.new_alias,
            "edits": self.edits.to_dict(base=1),
            "changed_lines": [n + 1 for n in self.changed_lines],
            "cleared_self": self.cleared_self,
            "written": self.written,
        }
