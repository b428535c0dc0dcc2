"""
Canonical token formatting for task line serialization.

This module is the single source of truth for the glyphs and ordering rules
the line codec uses when it re-emits a task line. Changing an order here and
running a normalize operation will update every task line in the vault.

Current canonical order:
    - [status] {type mark} {text} {metadata marks} {assignee} → {delegate} {link marks} {date tokens} ^{block id}
"""

import re
from typing import Dict

# Date glyphs followed by an ISO date, with their canonical priority.
DATE_GLYPH_PRIORITY: Dict[str, int] = {
    "🛫": 1,  # start
    "⏳": 2,  # scheduled
    "📅": 3,  # due
    "🎯": 4,  # target
    "✅": 7,  # completed
    "❌": 8,  # cancelled
}

DATE_GLYPH_KIND: Dict[str, str] = {
    "🛫": "start",
    "⏳": "scheduled",
    "📅": "due",
    "🎯": "target",
    "✅": "completed",
    "❌": "cancelled",
}

SNOOZE_PRIORITY = 5
SNOOZE_SUBTREE_PRIORITY = 6

SNOOZE_GLYPH = "💤"
SUBTREE_GLYPH = "⬇️"
MULTI_ENTRY_GLYPH = "🗂️"
HIDDEN_SPAN_OPEN = '<span style="display: none">'

ASSIGNEE_GLYPH = "👋"
DELEGATE_GLYPHS = ("🤝", "👥", "👤")

# Separator rendered between the assignee and delegate marks
DELEGATE_SEPARATOR = "→"

# Reserved alias meaning "owned by the whole team"
EVERYONE_ALIAS = "team"

# Link marks with this name always sort first
PRIORITY_LINK_NAME = "okr"


def _glyph(text: str) -> str:
    """Regex source for an emoji whose trailing variation selector is optional."""
    return re.escape(text.replace("\ufe0f", "")) + "\ufe0f?"


_DATE = r"\d{4}-\d{2}-\d{2}"
_HIDDEN = re.escape(HIDDEN_SPAN_OPEN)

# Alternation order matters: longer snooze shapes must be tried first.
DATE_TOKEN_RE = re.compile(
    rf"(?P<dated>(?P<glyph>{'|'.join(re.escape(g) for g in DATE_GLYPH_PRIORITY)})\s+{_DATE})"
    rf"|(?P<snooze_subtree_multi>{_glyph(SNOOZE_GLYPH)}{_glyph(SUBTREE_GLYPH)}{_glyph(MULTI_ENTRY_GLYPH)}{_HIDDEN}\[.*?\]</span>)"
    rf"|(?P<snooze_multi>{_glyph(SNOOZE_GLYPH)}{_glyph(MULTI_ENTRY_GLYPH)}{_HIDDEN}\[.*?\]</span>)"
    rf"|(?P<snooze_subtree_user>{_glyph(SNOOZE_GLYPH)}{_glyph(SUBTREE_GLYPH)}{_HIDDEN}[^<]+</span>\s+{_DATE})"
    rf"|(?P<snooze_user>{_glyph(SNOOZE_GLYPH)}{_HIDDEN}[^<]+</span>\s+{_DATE})"
    rf"|(?P<snooze_subtree>{_glyph(SNOOZE_GLYPH)}{_glyph(SUBTREE_GLYPH)}(?!\S))"
    rf"|(?P<snooze>{_glyph(SNOOZE_GLYPH)}(?!\S))",
    re.DOTALL,
)

SNOOZE_KIND_PRIORITY: Dict[str, int] = {
    "snooze": SNOOZE_PRIORITY,
    "snooze_user": SNOOZE_PRIORITY,
    "snooze_multi": SNOOZE_PRIORITY,
    "snooze_subtree": SNOOZE_SUBTREE_PRIORITY,
    "snooze_subtree_user": SNOOZE_SUBTREE_PRIORITY,
    "snooze_subtree_multi": SNOOZE_SUBTREE_PRIORITY,
}


def link_sort_key(name: str):
    """Sort key for link marks: the priority link class first, then alphabetical."""
    return (name != PRIORITY_LINK_NAME, name)


def render_block_id(block_id: str) -> str:
    return f"^{block_id}"
