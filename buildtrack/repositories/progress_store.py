# Rev 0.1.0
"""ProgressStore contract: append-only (task, date) -> percentage time series."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models.entities import ProgressEntry


class ProgressStore(ABC):
    # writes
    @abstractmethod
    def count_for_task(self, task_id: int) -> int: ...

    @abstractmethod
    def get_entry(self, task_id: int, day: date) -> Optional[ProgressEntry]: ...

    @abstractmethod
    def insert_entries(self, entries: Sequence[ProgressEntry]) -> int: ...

    @abstractmethod
    def upsert_entry(self, entry: ProgressEntry) -> ProgressEntry: ...

    @abstractmethod
    def update_entry(
        self, task_id: int, day: date, percentage: float, notes: Optional[str] = None
    ) -> bool: ...

    # reads
    @abstractmethod
    def history(self, task_id: int) -> List[ProgressEntry]: ...

    @abstractmethod
    def latest_as_of(self, task_id: int, as_of: date) -> Optional[ProgressEntry]: ...

    @abstractmethod
    def latest_map(self, project_id: int, as_of: date) -> Dict[int, float]: ...

    @abstractmethod
    def project_date_range(self, project_id: int) -> Optional[Tuple[date, date]]: ...

    @abstractmethod
    def projects_with_progress(self, project_ids: Iterable[int]) -> Set[int]: ...

    @abstractmethod
    def task_ids_with_progress(
        self, project_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> Set[int]: ...
