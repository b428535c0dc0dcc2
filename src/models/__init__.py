from .task import TaskNode, TaskTree, CachedFile
from .line import CLEAR, UNSPECIFIED, DateToken, Mark, Override, OverrideKind, ParsedLine
from .edits import CascadeError, CascadeReport, EditSet, Err, Ok, Result

__all__ = [
    "TaskNode",
    "TaskTree",
    "CachedFile",
    "ParsedLine",
    "Mark",
    "DateToken",
    "Override",
    "OverrideKind",
    "UNSPECIFIED",
    "CLEAR",
    "EditSet",
    "CascadeError",
    "CascadeReport",
    "Ok",
    "Err",
    "Result",
]
