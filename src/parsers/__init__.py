from .line_codec import (
    alias_from_mark,
    explicit_alias,
    is_everyone_mark,
    normalize_task_line,
    normalize_task_line_with_options,
    parse_line,
    serialize_line,
)
from .task_parser import (
    alias_map,
    indent_width,
    is_list_line,
    is_task_line,
    parse_content,
    parse_file,
)

__all__ = [
    "parse_line",
    "serialize_line",
    "normalize_task_line",
    "normalize_task_line_with_options",
    "explicit_alias",
    "alias_from_mark",
    "is_everyone_mark",
    "parse_file",
    "parse_content",
    "alias_map",
    "indent_width",
    "is_list_line",
    "is_task_line",
]
