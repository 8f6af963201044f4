from .entities import (
    HierarchyNode,
    Office,
    OfficeLevel,
    ProgressEntry,
    Project,
    ProjectCompletion,
    TaskNode,
    TreeNode,
)
from .errors import BuildtrackError, InvariantViolation, NotFoundError, ValidationError

__all__ = [
    "HierarchyNode",
    "Office",
    "OfficeLevel",
    "ProgressEntry",
    "Project",
    "ProjectCompletion",
    "TaskNode",
    "TreeNode",
    "BuildtrackError",
    "InvariantViolation",
    "NotFoundError",
    "ValidationError",
]
