"""
Rendering of assignee and delegate marks.

The markup, glyphs and colours here are what the line codec recognises when it
reads a line back, so a mark rendered by this module always classifies into
the slot it was rendered for.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from utils.formatting import ASSIGNEE_GLYPH, EVERYONE_ALIAS

VARIANTS = ("active", "inactive")
TARGET_KINDS = ("team", "internal", "external")

INACTIVE_BACKGROUND = "#CACFD9A6"
EVERYONE_BACKGROUND = "#FFFFFF"
MEMBER_BACKGROUND = "#BBFABBA6"

DELEGATE_STYLE: Dict[str, tuple] = {
    # kind: (glyph, active background)
    "team": ("🤝", "#008080"),
    "internal": ("👥", "#687D70"),
    "external": ("👤", "#FA9684"),
}

# Trailing 6-char identity code ("-1abc9z") and anything after it
_CODE_SUFFIX_RE = re.compile(r"-[0-9][a-z0-9]{5}.*$", re.IGNORECASE)
_KNOWN_POSTFIX_RE = re.compile(r"-(?:ext|int|team)$", re.IGNORECASE)
_UNICODE_DASH_RE = re.compile("[\u2010-\u2015]")


@dataclass
class Team:
    """Display names for the members of one team, keyed by alias."""

    name: str = ""
    members: Dict[str, str] = field(default_factory=dict)

    def display_name(self, alias: str) -> str:
        name = self.members.get(alias.lower())
        return name or display_name_from_alias(alias)


def parse_team_members(raw: str, name: str = "") -> Team:
    """
    Build a Team from ``alias=Display Name,alias2=Other``.

    Entries without ``=`` use the alias-derived display name.
    """
    members: Dict[str, str] = {}
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        alias, _, display = entry.partition("=")
        alias = alias.strip().lower()
        if alias:
            members[alias] = display.strip() or display_name_from_alias(alias)
    return Team(name=name, members=members)


def _title_case(text: str) -> str:
    return re.sub(r"\S+", lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def display_name_from_alias(alias: str) -> str:
    """
    Human-readable name for an alias.

    >>> display_name_from_alias("jane-doe-1abc9z-ext")
    'Jane Doe'
    >>> display_name_from_alias("mary--ann-int")
    'Mary-ann'
    """
    base = _UNICODE_DASH_RE.sub("-", (alias or "").strip()).lower()
    if not base:
        return ""

    cut = _CODE_SUFFIX_RE.sub("", base)
    base = cut if cut != base else _KNOWN_POSTFIX_RE.sub("", base)

    # "--" is a literal hyphen; a single hyphen separates words
    words = [part.replace("-", " ") for part in base.split("--")]
    base = "-".join(words)
    base = re.sub(r"\s+", " ", base).strip()
    return " ".join(w[:1].upper() + w[1:] for w in base.split(" ") if w)


def render_assignee_mark(
    alias: str,
    variant: str = "active",
    team: Optional[Team] = None,
) -> str:
    """Assignee mark for a member alias, or the Everyone mark for the team alias."""
    if alias.strip().lower() == EVERYONE_ALIAS:
        bg = EVERYONE_BACKGROUND if variant == "active" else INACTIVE_BACKGROUND
        return (
            f'<mark class="{variant}-{EVERYONE_ALIAS}" style="background: {bg}; color: #000000">'
            f"<strong>🤝 Everyone</strong></mark>"
        )

    bg = MEMBER_BACKGROUND if variant == "active" else INACTIVE_BACKGROUND
    name = team.display_name(alias) if team else display_name_from_alias(alias)
    label = _title_case(display_name_from_alias(name))
    return (
        f'<mark class="{variant}-{alias}" style="background: {bg};">'
        f"<strong>{ASSIGNEE_GLYPH} {label}</strong></mark>"
    )


def render_delegate_mark(
    alias: str,
    display_name: str,
    variant: str = "active",
    target_kind: str = "internal",
) -> str:
    """Delegate mark; target_kind picks the glyph and colour."""
    if target_kind not in DELEGATE_STYLE:
        raise ValueError(f"Unknown delegate target kind: {target_kind!r}")
    glyph, active_bg = DELEGATE_STYLE[target_kind]
    bg = active_bg if variant == "active" else INACTIVE_BACKGROUND
    return (
        f'<mark class="{variant}-{alias}" style="background: {bg};">'
        f"<strong>{glyph} {_title_case(display_name or '')}</strong></mark>"
    )
