from .resolver import Resolution, resolve_effective, resolve_effective_with_source, resolve_inherited
from .engine import compute_cascade, dedupe_pass, infer_old_alias, is_self_redundant, preserve_pass
from .applicator import EditorBuffer, FileSnapshot, Position, apply_edits
from .service import (
    apply_assignee_change,
    cascade_after_external_change,
    effective_owner,
    normalize_file,
    owned_tasks,
)

__all__ = [
    "Resolution",
    "resolve_effective",
    "resolve_effective_with_source",
    "resolve_inherited",
    "preserve_pass",
    "dedupe_pass",
    "compute_cascade",
    "is_self_redundant",
    "infer_old_alias",
    "EditorBuffer",
    "FileSnapshot",
    "Position",
    "apply_edits",
    "apply_assignee_change",
    "cascade_after_external_change",
    "effective_owner",
    "owned_tasks",
    "normalize_file",
]
