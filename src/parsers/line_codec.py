"""
Codec for a single Markdown task line.

Main API:
    parse_line(line)  → ParsedLine | None
    serialize_line(parsed, assignee=..., delegate=..., strict=True)  → str
    normalize_task_line(line, ...)  → str

Parsing pulls the trailing block id, every date-like token and every inline
``<mark><strong>…</strong></mark>`` element out of the line and classifies the
marks. Serialising re-emits the fields in the canonical order defined in
utils.formatting, so ``serialize_line(parse_line(line)) == line`` for any line
that is already canonical.

A line that is not a task (no ``- [ ]`` style prefix) is a parse-miss:
parse_line returns None and normalize_task_line hands the line back untouched.
"""

import re
from typing import Any, List, Mapping, Optional, Tuple

from models.line import UNSPECIFIED, DateToken, Mark, Override, ParsedLine
from utils.formatting import (
    ASSIGNEE_GLYPH,
    DATE_GLYPH_KIND,
    DATE_GLYPH_PRIORITY,
    DATE_TOKEN_RE,
    DELEGATE_GLYPHS,
    DELEGATE_SEPARATOR,
    EVERYONE_ALIAS,
    SNOOZE_KIND_PRIORITY,
    link_sort_key,
    render_block_id,
)

TASK_PREFIX_RE = re.compile(r"^(\s*(?:[-*+]|\d+\.)\s+\[[^\]]\]\s*)(.*)$", re.DOTALL)
BLOCK_ID_RE = re.compile(r"\s*\^([A-Za-z0-9-]+)\s*$")

# A delegate mark may be preceded by the separator arrow; it is consumed with it.
MARK_RE = re.compile(
    rf"(?P<arrow>{DELEGATE_SEPARATOR}\s*)?"
    r"(?P<mark><mark\b[^>]*>\s*<strong>.*?</strong>\s*</mark>)",
    re.IGNORECASE | re.DOTALL,
)

_OPEN_TAG_RE = re.compile(r"<mark\b[^>]*>", re.IGNORECASE)
_CLASS_ATTR_RE = re.compile(r"\bclass=[\"']([^\"']*)[\"']", re.IGNORECASE)
_STRONG_RE = re.compile(r"<strong>\s*(.*?)</strong>", re.IGNORECASE | re.DOTALL)
_HREF_RE = re.compile(r"<a\b[^>]*\bhref=", re.IGNORECASE)
_MEMBER_CLASS_RE = re.compile(r"^(?:active|inactive)-([a-z0-9-]+)$", re.IGNORECASE)
_TRAILING_MARK_RE = re.compile(r"</mark>\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Mark classification
# ---------------------------------------------------------------------------

def _classes(markup: str) -> List[str]:
    """Class names on the opening <mark> tag."""
    tag = _OPEN_TAG_RE.match(markup.strip())
    if not tag:
        return []
    attr = _CLASS_ATTR_RE.search(tag.group(0))
    return attr.group(1).split() if attr else []


def _strong_text(markup: str) -> str:
    m = _STRONG_RE.search(markup)
    return m.group(1).strip() if m else ""


def _prefixed_class(markup: str, prefix: str) -> Optional[str]:
    for cls in _classes(markup):
        if cls.lower().startswith(prefix) and len(cls) > len(prefix):
            return cls[len(prefix):]
    return None


def is_everyone_mark(markup: Optional[str]) -> bool:
    """True if the mark assigns the task to the whole team."""
    if not markup:
        return False
    if any(cls.lower() in ("active-team", "inactive-team") for cls in _classes(markup)):
        return True
    return "everyone" in _strong_text(markup).lower()


def _is_type_mark(markup: str) -> bool:
    return any(cls.lower() == "artifact-item-type" for cls in _classes(markup))


def _link_name(markup: str) -> Optional[str]:
    name = _prefixed_class(markup, "artifact-link-")
    if name:
        return name
    if _HREF_RE.search(markup):
        return "link"
    return None


def _is_assignee_mark(markup: str) -> bool:
    return _strong_text(markup).startswith(ASSIGNEE_GLYPH)


def _is_delegate_mark(markup: str) -> bool:
    if not _strong_text(markup).startswith(DELEGATE_GLYPHS):
        return False
    return not is_everyone_mark(markup)


def alias_from_mark(markup: Optional[str]) -> Optional[str]:
    """
    Alias named by an assignee mark.

    The Everyone mark maps to the reserved team alias; a personal mark maps
    to the lowercased alias from its ``active-<alias>`` / ``inactive-<alias>``
    class.
    """
    if not markup:
        return None
    if is_everyone_mark(markup):
        return EVERYONE_ALIAS
    for cls in _classes(markup):
        m = _MEMBER_CLASS_RE.match(cls)
        if m:
            return m.group(1).lower()
    return None


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------

def _date_token(match: "re.Match[str]") -> DateToken:
    kind = match.lastgroup or ""
    if match.group("dated"):
        glyph = match.group("glyph")
        return DateToken(DATE_GLYPH_KIND[glyph], match.group(0), DATE_GLYPH_PRIORITY[glyph])
    return DateToken(kind, match.group(0), SNOOZE_KIND_PRIORITY[kind])


def _extract_date_tokens(text: str, parsed: ParsedLine) -> str:
    """Remove every date-like token from text, collecting them on parsed."""
    pieces: List[str] = []
    pos = 0
    for match in DATE_TOKEN_RE.finditer(text):
        parsed.date_tokens.append(_date_token(match))
        pieces.append(text[pos:match.start()])
        pieces.append(" ")
        pos = match.end()
    pieces.append(text[pos:])
    parsed.date_tokens.sort(key=lambda t: t.priority)
    return "".join(pieces)


def _classify(markup: str) -> Tuple[str, str]:
    """Return (slot, sort name) for a mark."""
    if _is_type_mark(markup):
        return "type", ""
    metadata_name = _prefixed_class(markup, "metadata-mark-tag-")
    if metadata_name:
        return "metadata", metadata_name
    link_name = _link_name(markup)
    if link_name:
        return "link", link_name
    if _is_assignee_mark(markup):
        return "assignee", ""
    if _is_delegate_mark(markup):
        return "delegate", ""
    if is_everyone_mark(markup):
        return "everyone", ""
    return "metadata", "unknown"


def _extract_marks(text: str, parsed: ParsedLine) -> str:
    """Remove and classify every inline mark, filling the mark slots on parsed."""
    pieces: List[str] = []
    pos = 0
    everyone: Optional[str] = None

    for match in MARK_RE.finditer(text):
        markup = match.group("mark")
        slot, name = _classify(markup)

        pieces.append(text[pos:match.start()])
        # The separator arrow belongs to the delegate; anywhere else it is body text
        if slot != "delegate" and match.group("arrow"):
            pieces.append(match.group("arrow"))
        pieces.append(" ")
        pos = match.end()

        # Only the first type mark, assignee and delegate are kept
        if slot == "type":
            if parsed.leading_type_mark is None:
                parsed.leading_type_mark = markup
        elif slot == "metadata":
            parsed.metadata_marks.append(Mark(name, markup))
        elif slot == "link":
            parsed.link_marks.append(Mark(name, markup))
        elif slot == "assignee":
            if parsed.assignee_mark is None:
                parsed.assignee_mark = markup
        elif slot == "delegate":
            if parsed.delegate_mark is None:
                parsed.delegate_mark = markup
        elif everyone is None:
            everyone = markup

    pieces.append(text[pos:])

    # A personal assignee outranks the Everyone mark
    if parsed.assignee_mark is None:
        parsed.assignee_mark = everyone

    parsed.metadata_marks.sort(key=lambda m: m.name)
    parsed.link_marks.sort(key=lambda m: link_sort_key(m.name))
    return "".join(pieces)


def parse_line(line: str) -> Optional[ParsedLine]:
    """Split a task line into its canonical fields, or None if it is not a task."""
    m = TASK_PREFIX_RE.match(line)
    if not m:
        return None

    parsed = ParsedLine(status_token=m.group(1))
    rest = m.group(2)

    block = BLOCK_ID_RE.search(rest)
    if block:
        parsed.block_id = block.group(1)
        rest = rest[:block.start()] + " "

    rest = _extract_date_tokens(rest, parsed)
    rest = _extract_marks(rest, parsed)

    parsed.body_text = re.sub(r"\s{2,}", " ", rest).strip()
    return parsed


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------

def serialize_line(
    parsed: ParsedLine,
    assignee: Override = UNSPECIFIED,
    delegate: Override = UNSPECIFIED,
    strict: bool = True,
) -> str:
    """
    Reassemble a ParsedLine in canonical order, applying slot overrides.

    A resolved Everyone assignee always drops the delegate. With strict=True
    a delegate without any assignee is dropped as well.
    """
    assignee_mark = assignee.resolve(parsed.assignee_mark)
    delegate_mark = delegate.resolve(parsed.delegate_mark)

    if is_everyone_mark(assignee_mark):
        delegate_mark = None
    if strict and not assignee_mark:
        delegate_mark = None

    parts: List[str] = []
    if parsed.leading_type_mark:
        parts.append(parsed.leading_type_mark)
    if parsed.body_text:
        parts.append(parsed.body_text)
    parts.extend(m.markup for m in parsed.metadata_marks)
    if assignee_mark:
        parts.append(assignee_mark)
    if delegate_mark:
        parts.append(f"{DELEGATE_SEPARATOR} {delegate_mark}")
    parts.extend(m.markup for m in parsed.link_marks)
    parts.extend(t.text for t in parsed.date_tokens)
    if parsed.block_id:
        parts.append(render_block_id(parsed.block_id))

    out = parsed.status_token
    if parts:
        if not out.endswith(" "):
            out += " "
        out += " ".join(parts)

    # Obsidian needs a character after an inline element for the cursor to rest on
    if _TRAILING_MARK_RE.search(out):
        return out.rstrip() + " "
    return out.rstrip()


def normalize_task_line(
    line: str,
    assignee: Override = UNSPECIFIED,
    delegate: Override = UNSPECIFIED,
    strict: bool = True,
) -> str:
    """Parse and re-serialise a line; non-task lines are returned unchanged."""
    parsed = parse_line(line)
    if parsed is None:
        return line
    return serialize_line(parsed, assignee=assignee, delegate=delegate, strict=strict)


def normalize_task_line_with_options(
    line: str,
    options: Mapping[str, Any],
    strict: bool = True,
) -> str:
    """
    Like normalize_task_line, but overrides come from an options mapping.

    ``{"assignee": None}`` clears the assignee; omitting the key leaves it.
    """
    return normalize_task_line(
        line,
        assignee=Override.from_options(options, "assignee"),
        delegate=Override.from_options(options, "delegate"),
        strict=strict,
    )


def explicit_alias(line: str) -> Optional[str]:
    """The alias explicitly assigned on a task line, or None."""
    parsed = parse_line(line)
    if parsed is None:
        return None
    return alias_from_mark(parsed.assignee_mark)
