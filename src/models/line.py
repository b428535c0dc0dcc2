"""
Structured form of a single task line.

A ParsedLine holds every field the line codec recognises; serialising it back
through parsers.line_codec always emits the canonical field order defined in
utils.formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional


@dataclass(frozen=True)
class Mark:
    """An inline <mark> element plus the key it sorts by."""

    name: str
    markup: str


@dataclass(frozen=True)
class DateToken:
    """A date-like token (due date, snooze, ...) removed from the body text."""

    kind: str
    text: str
    priority: int


@dataclass
class ParsedLine:
    """
    A task line split into its canonical fields.

    status_token keeps the list marker, checkbox and any indentation verbatim
    (e.g. ``"    - [ ] "``) so that re-serialising never changes nesting.
    """

    status_token: str
    body_text: str = ""
    leading_type_mark: Optional[str] = None
    metadata_marks: List[Mark] = field(default_factory=list)
    assignee_mark: Optional[str] = None
    delegate_mark: Optional[str] = None
    link_marks: List[Mark] = field(default_factory=list)
    date_tokens: List[DateToken] = field(default_factory=list)
    block_id: Optional[str] = None

    @property
    def status(self) -> str:
        """The checkbox character (" " for an open task)."""
        inner = self.status_token.strip()
        start = inner.find("[")
        end = inner.find("]", start + 1)
        if start < 0 or end < 0:
            return ""
        return inner[start + 1:end].strip() or " "


class OverrideKind(str, Enum):
    UNSPECIFIED = "unspecified"
    CLEAR = "clear"
    VALUE = "value"


@dataclass(frozen=True)
class Override:
    """
    Tri-state instruction for one mutable slot of a ParsedLine.

    UNSPECIFIED leaves the parsed value alone, CLEAR empties the slot and
    VALUE replaces the slot's raw markup.
    """

    kind: OverrideKind = OverrideKind.UNSPECIFIED
    markup: Optional[str] = None

    @classmethod
    def unspecified(cls) -> Override:
        return cls(OverrideKind.UNSPECIFIED)

    @classmethod
    def clear(cls) -> Override:
        return cls(OverrideKind.CLEAR)

    @classmethod
    def value(cls, markup: Optional[str]) -> Override:
        """Replace the slot; an empty markup string clears it."""
        if not markup:
            return cls.clear()
        return cls(OverrideKind.VALUE, markup)

    @classmethod
    def from_options(cls, options: Mapping[str, Any], key: str) -> Override:
        """
        Build an override from a loose options mapping.

        A missing key means "don't touch"; a key that is present with a
        None or empty value means "clear".
        """
        if key not in options:
            return cls.unspecified()
        return cls.value(options[key])

    @property
    def is_unspecified(self) -> bool:
        return self.kind is OverrideKind.UNSPECIFIED

    def resolve(self, current: Optional[str]) -> Optional[str]:
        """Apply this override to the slot's current value."""
        if self.kind is OverrideKind.UNSPECIFIED:
            return current
        if self.kind is OverrideKind.CLEAR:
            return None
        return self.markup


UNSPECIFIED = Override.unspecified()
CLEAR = Override.clear()
