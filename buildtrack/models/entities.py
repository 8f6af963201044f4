# Rev 0.1.0
"""Lightweight entities aligned with schema Rev 0.1.0 (tasks, task_progress, offices)"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from .types import EntrySource


@dataclass
class TreeNode:
    """One node of a nested-set forest. Parent/children are ids owned by the tree."""
    id: int
    name: str
    parent_id: Optional[int] = None
    position: int = 0
    left: int = 0          # 0 = never rebuilt
    right: int = 0

    @property
    def has_bounds(self) -> bool:
        return 0 < self.left < self.right


@dataclass
class TaskNode(TreeNode):
    project_id: int = 0
    weight: float = 0.0
    volume: float = 0.0
    unit: Optional[str] = None
    unit_price: float = 0.0

    @property
    def total_price(self) -> float:
        return self.volume * self.unit_price


@dataclass
class Office(TreeNode):
    level_id: Optional[int] = None
    code: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class OfficeLevel:
    id: int | None
    level: int
    name: str
    description: Optional[str] = None
    is_default_user_level: bool = False


@dataclass
class Project:
    id: int | None
    name: str
    description: Optional[str] = None
    office_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = "active"


@dataclass
class ProgressEntry:
    task_id: int
    project_id: int
    reporter_id: int
    date: date
    percentage: float
    notes: Optional[str] = None
    is_synthetic: bool = False
    id: int | None = None
    created_at_utc: Optional[datetime] = None

    @property
    def source(self) -> EntrySource:
        return "synthetic" if self.is_synthetic else "real"


@dataclass
class HierarchyNode:
    """A task annotated with its computed percentage as of some date."""
    task: TaskNode
    percentage: float
    children: List["HierarchyNode"] = field(default_factory=list)


@dataclass
class ProjectCompletion:
    percentage: float
    completed_leaf_count: int
    total_leaf_count: int

    @property
    def completion_rate(self) -> float:
        if self.total_leaf_count == 0:
            return 0.0
        return self.completed_leaf_count / self.total_leaf_count * 100
