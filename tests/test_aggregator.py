# tests/test_aggregator.py
from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pytest

from buildtrack.models.entities import ProgressEntry, TaskNode
from buildtrack.repositories.progress_store import ProgressStore
from buildtrack.services.aggregator import WeightedAggregator, weighted_average
from buildtrack.services.task_tree import TaskTree

DAY = date(2025, 12, 1)

# --- A tiny in-memory stub store just for unit tests -----------------------

class _StubStore(ProgressStore):
    def __init__(self):
        # (task_id, date) -> entry
        self.rows: Dict[Tuple[int, date], ProgressEntry] = {}

    def put(self, task_id: int, day: date, pct: float, project_id: int = 1) -> None:
        self.rows[(task_id, day)] = ProgressEntry(
            task_id=task_id, project_id=project_id, reporter_id=1, date=day, percentage=pct
        )

    def count_for_task(self, task_id: int) -> int:
        return sum(1 for (tid, _) in self.rows if tid == task_id)

    def get_entry(self, task_id: int, day: date) -> Optional[ProgressEntry]:
        return self.rows.get((task_id, day))

    def insert_entries(self, entries: Sequence[ProgressEntry]) -> int:
        for e in entries:
            self.rows[(e.task_id, e.date)] = e
        return len(entries)

    def upsert_entry(self, entry: ProgressEntry) -> ProgressEntry:
        self.rows[(entry.task_id, entry.date)] = entry
        return entry

    def update_entry(self, task_id, day, percentage, notes=None) -> bool:
        entry = self.rows.get((task_id, day))
        if entry is None:
            return False
        entry.percentage = percentage
        return True

    def history(self, task_id: int) -> List[ProgressEntry]:
        return sorted((e for (tid, _), e in self.rows.items() if tid == task_id), key=lambda e: e.date)

    def latest_as_of(self, task_id: int, as_of: date) -> Optional[ProgressEntry]:
        past = [e for e in self.history(task_id) if e.date <= as_of]
        return past[-1] if past else None

    def latest_map(self, project_id: int, as_of: date) -> Dict[int, float]:
        out: Dict[int, float] = {}
        for e in sorted(self.rows.values(), key=lambda e: e.date):
            if e.project_id == project_id and e.date <= as_of:
                out[e.task_id] = e.percentage
        return out

    def project_date_range(self, project_id: int) -> Optional[Tuple[date, date]]:
        days = [e.date for e in self.rows.values() if e.project_id == project_id]
        return (min(days), max(days)) if days else None

    def projects_with_progress(self, project_ids: Iterable[int]) -> Set[int]:
        ids = set(project_ids)
        return {e.project_id for e in self.rows.values() if e.project_id in ids}

    def task_ids_with_progress(self, project_id, start=None, end=None) -> Set[int]:
        return {
            e.task_id
            for e in self.rows.values()
            if e.project_id == project_id
            and (start is None or e.date >= start)
            and (end is None or e.date <= end)
        }


# --- Fixtures --------------------------------------------------------------

def _leaf(task_id: int, weight: float, parent_id: Optional[int] = None, position: int = 0) -> TaskNode:
    return TaskNode(id=task_id, name=f"T{task_id}", project_id=1, parent_id=parent_id, position=position, weight=weight)


@pytest.fixture()
def store() -> _StubStore:
    return _StubStore()


# --- Tests -----------------------------------------------------------------

def test_weighted_average_zero_weights():
    assert weighted_average([(0, 50), (0, 100)]) == 0.0
    assert weighted_average([]) == 0.0


@pytest.mark.parametrize("project_id", [1, None])
def test_equal_progress_rolls_up_unchanged(store, project_id):
    tree = TaskTree([_leaf(1, 0), _leaf(2, 10, 1, 0), _leaf(3, 25, 1, 1)], project_id=project_id)
    store.put(2, DAY, 42.0)
    store.put(3, DAY, 42.0)
    agg = WeightedAggregator(tree, store)
    assert agg.node_progress(1, DAY) == pytest.approx(42.0)


def test_weighted_children(store):
    tree = TaskTree([_leaf(1, 0), _leaf(2, 30, 1, 0), _leaf(3, 70, 1, 1)], project_id=1)
    store.put(2, DAY, 0.0)
    store.put(3, DAY, 100.0)
    agg = WeightedAggregator(tree, store)
    assert agg.node_progress(1, DAY) == pytest.approx(70.0)
    assert agg.project_completion(DAY) == pytest.approx(70.0)


def test_zero_weight_children_give_zero(store):
    tree = TaskTree([_leaf(1, 0), _leaf(2, 0, 1, 0), _leaf(3, 0, 1, 1)], project_id=1)
    store.put(2, DAY, 80.0)
    store.put(3, DAY, 60.0)
    agg = WeightedAggregator(tree, store)
    assert agg.node_progress(1, DAY) == 0.0
    assert agg.project_completion(DAY) == 0.0


def test_no_history_counts_as_zero(store):
    tree = TaskTree([_leaf(1, 50), _leaf(2, 50)], project_id=1)
    store.put(1, DAY, 100.0)
    agg = WeightedAggregator(tree, store)
    assert agg.leaf_progress(2, DAY) == 0.0
    assert agg.project_completion(DAY) == pytest.approx(50.0)


def test_latest_entry_on_or_before_as_of(store):
    tree = TaskTree([_leaf(1, 1)], project_id=1)
    store.put(1, date(2025, 11, 1), 10.0)
    store.put(1, date(2025, 11, 20), 60.0)
    store.put(1, date(2025, 12, 5), 90.0)
    agg = WeightedAggregator(tree, store)
    assert agg.leaf_progress(1, DAY) == 60.0
    assert agg.leaf_progress(1, date(2025, 10, 1)) == 0.0
    assert agg.project_completion(DAY) == pytest.approx(60.0)


def test_leaf_values_capped_at_hundred(store):
    tree = TaskTree([_leaf(1, 1), _leaf(2, 1)], project_id=1)
    store.put(1, DAY, 100.0)
    store.put(2, DAY, 100.0)
    # a value that slipped past validation elsewhere
    store.rows[(2, DAY)].percentage = 140.0
    agg = WeightedAggregator(tree, store)
    assert agg.project_completion(DAY) == pytest.approx(100.0)


def test_internal_weight_overrides_children_sum(store):
    # root A (weight 0) -> B (stored 10, children 1+1) and C (leaf 30)
    tree = TaskTree(
        [
            _leaf(1, 0),
            _leaf(2, 10, 1, 0),
            _leaf(3, 30, 1, 1),
            _leaf(4, 1, 2, 0),
            _leaf(5, 1, 2, 1),
        ],
        project_id=1,
    )
    store.put(4, DAY, 100.0)
    store.put(5, DAY, 100.0)
    agg = WeightedAggregator(tree, store)
    assert agg.node_progress(2, DAY) == pytest.approx(100.0)
    # B weighs 10 against C's 30
    assert agg.node_progress(1, DAY) == pytest.approx(25.0)
    # flattened over leaves: (1*100 + 1*100 + 30*0) / 32
    assert agg.project_completion(DAY) == pytest.approx(200 / 32)


def test_hierarchy_shape_and_values(store):
    tree = TaskTree([_leaf(1, 0), _leaf(2, 30, 1, 0), _leaf(3, 70, 1, 1), _leaf(4, 5)], project_id=1)
    store.put(3, DAY, 50.0)
    roots = WeightedAggregator(tree, store).hierarchy(DAY)
    assert [r.task.id for r in roots] == [1, 4]
    assert [c.task.id for c in roots[0].children] == [2, 3]
    assert roots[0].percentage == pytest.approx(35.0)
    assert roots[0].children[1].percentage == 50.0
    assert roots[1].children == []


def test_completion_counts_finished_leaves(store):
    tree = TaskTree([_leaf(1, 1), _leaf(2, 1), _leaf(3, 2)], project_id=1)
    store.put(1, DAY, 100.0)
    store.put(2, DAY, 40.0)
    result = WeightedAggregator(tree, store).completion(DAY)
    assert result.completed_leaf_count == 1
    assert result.total_leaf_count == 3
    assert result.completion_rate == pytest.approx(100 / 3)
    assert result.percentage == pytest.approx(35.0)


def test_empty_tree(store):
    agg = WeightedAggregator(TaskTree(project_id=1), store)
    assert agg.hierarchy(DAY) == []
    assert agg.project_completion(DAY) == 0.0
    assert agg.completion_rate(DAY) == 0.0
