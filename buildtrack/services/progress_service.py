# Rev 0.2.0

"""Progress service (Rev 0.2.0)
Entry points other subsystems call: submit/correct progress, hierarchy and
completion queries, and the tree rebuild maintenance hook.
"""
from __future__ import annotations

import math
import numbers
import threading
import weakref
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Hashable, Iterator, List, Optional

from ..models.entities import HierarchyNode, ProgressEntry, Project, ProjectCompletion
from ..models.errors import NotFoundError, ValidationError
from ..repositories.db import Database
from ..repositories.progress_store import ProgressStore
from ..repositories.sqlite_project_repository import SQLiteProjectRepository
from ..repositories.sqlite_task_repository import SQLiteTaskRepository
from ..utils.config import defaults
from ..utils.logging_setup import get_logger
from .aggregator import WeightedAggregator
from .backfill import BackfillEngine
from .nested_set import Bounds
from .task_tree import TaskTree


class KeyedLocks:
    """One lock per key (task id, project id), created on first use.

    Entries are weak: a lock lives while some caller holds or waits on it,
    so the table only tracks keys in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[Hashable, Any]" = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, key: Hashable) -> Any:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield


def validate_percentage(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f"percentage must be a number, got {value!r}")
    pct = float(value)
    if math.isnan(pct) or pct < 0 or pct > 100:
        raise ValidationError(f"percentage must be between 0 and 100, got {value!r}")
    return pct


def as_date(value: Any, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}") from None
    raise ValidationError(f"{field} must be a date, got {value!r}")


def _require_id(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer, got {value!r}")
    return value


class ProgressService:
    def __init__(
        self,
        db: Database,
        tasks: SQLiteTaskRepository,
        projects: SQLiteProjectRepository,
        progress: ProgressStore,
        *,
        engine: Optional[BackfillEngine] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._log = get_logger("ProgressService")
        self._db = db
        self._tasks = tasks
        self._projects = projects
        self._progress = progress
        self._engine = engine or BackfillEngine()
        self._settings = settings or defaults()
        self._task_locks = KeyedLocks()
        self._tree_locks = KeyedLocks()

    # -------------------------
    # Lookups
    # -------------------------
    def get_project(self, project_id: int) -> Project:
        project = self._projects.get_project(_require_id(project_id, "project_id"))
        if project is None:
            raise NotFoundError(f"project {project_id} not found")
        return project

    def load_tree(self, project_id: int) -> TaskTree:
        self.get_project(project_id)
        sep = self._settings["hierarchy"]["path_separator"]
        return TaskTree(self._tasks.list_tasks(project_id), project_id=project_id, separator=sep)

    def aggregator(self, project_id: int) -> WeightedAggregator:
        return WeightedAggregator(self.load_tree(project_id), self._progress)

    # -------------------------
    # Submission
    # -------------------------
    def _check_window(self, project: Project, day: date) -> None:
        policy = self._settings["progress"]
        if policy.get("reject_future_dates") and day > date.today():
            raise ValidationError(f"cannot report progress for a future date ({day})")
        if policy.get("enforce_project_window") and project.start_date and project.end_date:
            if day < project.start_date:
                raise ValidationError(f"progress date must be on or after project start ({project.start_date})")
            if day > project.end_date:
                raise ValidationError(f"progress date must be on or before project end ({project.end_date})")

    def submit_progress(
        self,
        task_id: int,
        project_id: int,
        reporter_id: int,
        date: date,
        percentage: float,
        notes: Optional[str] = None,
    ) -> ProgressEntry:
        """
        Record a leaf task's progress for one day.

        The first report ever recorded for a task may be preceded by a
        synthetic daily history (see BackfillEngine); both land in the same
        transaction. A report for a day that already has an entry corrects
        that entry in place and never backfills.
        """
        pct = validate_percentage(percentage)
        day = as_date(date)
        _require_id(reporter_id, "reporter_id")
        project = self.get_project(project_id)
        task = self._tasks.get_task(_require_id(task_id, "task_id"))
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        if task.project_id != project.id:
            raise ValidationError(f"task {task_id} does not belong to project {project_id}")
        if self._tasks.has_children(task_id):
            raise ValidationError(f"task {task_id} ({task.name!r}) has children; only leaf tasks take progress")
        self._check_window(project, day)

        real = ProgressEntry(
            task_id=task_id,
            project_id=project.id,
            reporter_id=reporter_id,
            date=day,
            percentage=pct,
            notes=notes,
        )
        with self._task_locks.hold(task_id):
            with self._db.transaction():
                if self._progress.get_entry(task_id, day) is not None:
                    self._log.info("correcting task %s on %s -> %.2f", task_id, day, pct)
                    return self._progress.upsert_entry(real)
                has_history = self._progress.count_for_task(task_id) > 0
                batch = self._engine.plan(real, has_history=has_history, start_date=project.start_date)
                self._progress.insert_entries(batch[:-1])
                stored = self._progress.upsert_entry(batch[-1])
        self._log.info(
            "task %s progress %.2f on %s recorded (%d synthetic)", task_id, pct, day, len(batch) - 1
        )
        return stored

    def correct_progress(
        self, task_id: int, date: date, percentage: float, notes: Optional[str] = None
    ) -> ProgressEntry:
        pct = validate_percentage(percentage)
        day = as_date(date)
        with self._task_locks.hold(task_id):
            with self._db.transaction():
                if not self._progress.update_entry(task_id, day, pct, notes):
                    raise NotFoundError(f"no progress entry for task {task_id} on {day}")
                entry = self._progress.get_entry(task_id, day)
        self._log.info("corrected task %s on %s -> %.2f", task_id, day, pct)
        return entry

    def history(self, task_id: int) -> List[ProgressEntry]:
        return self._progress.history(task_id)

    # -------------------------
    # Read side
    # -------------------------
    def get_task_hierarchy(self, project_id: int, as_of: Optional[date] = None) -> List[HierarchyNode]:
        day = as_date(as_of) if as_of is not None else date.today()
        return self.aggregator(project_id).hierarchy(day)

    def get_project_completion(self, project_id: int, as_of: Optional[date] = None) -> ProjectCompletion:
        day = as_date(as_of) if as_of is not None else date.today()
        return self.aggregator(project_id).completion(day)

    def get_node_progress(self, project_id: int, task_id: int, as_of: Optional[date] = None) -> float:
        day = as_date(as_of) if as_of is not None else date.today()
        return self.aggregator(project_id).node_progress(task_id, day)

    # -------------------------
    # Maintenance
    # -------------------------
    def tree_lock(self, project_id: int):
        """Exclusive hold on a project's tree; take it before opening a transaction."""
        return self._tree_locks.hold(project_id)

    def rebuild_tree(self, project_id: int) -> Bounds:
        """Recompute and persist lft/rgt for every task of the project."""
        with self._tree_locks.hold(project_id):
            with self._db.transaction():
                tree = self.load_tree(project_id)
                bounds = tree.rebuild()
                self._tasks.update_bounds(bounds)
        self._log.info("rebuilt task tree of project %s (%d nodes)", project_id, len(bounds))
        return bounds
