# Rev 0.2.0
"""
Weighted roll-up of leaf progress over a project's task tree.

Read-only: every call recomputes from the store, no locking, no caching
across calls. Leaves without history or weight contribute 0.
"""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from ..models.entities import HierarchyNode, ProjectCompletion
from ..repositories.progress_store import ProgressStore
from .task_tree import TaskTree

COMPLETE = 100.0


def _cap(pct: float) -> float:
    return min(float(pct), COMPLETE)


def weighted_average(pairs: Sequence[tuple[float, float]]) -> float:
    """Σ(w·p) / Σw over (weight, percentage) pairs; 0 when Σw is 0."""
    total = sum(w for w, _ in pairs)
    if total <= 0:
        return 0.0
    return sum(w * p for w, p in pairs) / total


class WeightedAggregator:
    def __init__(self, tree: TaskTree, store: ProgressStore) -> None:
        self.tree = tree
        self.store = store

    # -------------------------
    # Leaf level
    # -------------------------
    def leaf_progress(self, task_id: int, as_of: date) -> float:
        entry = self.store.latest_as_of(task_id, as_of)
        return _cap(entry.percentage) if entry else 0.0

    def latest(self, as_of: date) -> Dict[int, float]:
        """Capped latest percentage per leaf with history on or before as_of."""
        if self.tree.project_id is not None:
            raw = self.store.latest_map(self.tree.project_id, as_of)
            return {tid: _cap(p) for tid, p in raw.items() if tid in self.tree}
        out: Dict[int, float] = {}
        for leaf in self.tree.leaves():
            entry = self.store.latest_as_of(leaf.id, as_of)
            if entry is not None:
                out[leaf.id] = _cap(entry.percentage)
        return out

    # -------------------------
    # Hierarchy
    # -------------------------
    def node_progress_map(
        self,
        as_of: date,
        *,
        root_ids: Optional[Sequence[int]] = None,
        latest: Optional[Mapping[int, float]] = None,
    ) -> Dict[int, float]:
        """Percentage of every node (or every node under root_ids) in one post-order pass."""
        latest = self.latest(as_of) if latest is None else latest
        weights = self.tree.effective_weights()
        out: Dict[int, float] = {}
        for node in self.tree.post_order(root_ids):
            kids = self.tree.child_ids(node.id)
            if not kids:
                out[node.id] = latest.get(node.id, 0.0)
            else:
                out[node.id] = weighted_average([(weights[k], out[k]) for k in kids])
        return out

    def node_progress(self, task_id: int, as_of: date) -> float:
        self.tree.get(task_id)
        if self.tree.is_leaf(task_id):
            return self.leaf_progress(task_id, as_of)
        return self.node_progress_map(as_of, root_ids=[task_id])[task_id]

    def hierarchy(self, as_of: date) -> List[HierarchyNode]:
        values = self.node_progress_map(as_of)
        built: Dict[int, HierarchyNode] = {}
        for node in self.tree.post_order():
            built[node.id] = HierarchyNode(
                task=node,
                percentage=values[node.id],
                children=[built[k] for k in self.tree.child_ids(node.id)],
            )
        return [built[r.id] for r in self.tree.roots()]

    # -------------------------
    # Project level
    # -------------------------
    def project_completion(self, as_of: date, latest: Optional[Mapping[int, float]] = None) -> float:
        """All leaves under the project's roots, each weighted against the sum of leaf weights."""
        latest = self.latest(as_of) if latest is None else latest
        return weighted_average([(leaf.weight, latest.get(leaf.id, 0.0)) for leaf in self.tree.leaves()])

    def completion_rate(self, as_of: date, latest: Optional[Mapping[int, float]] = None) -> float:
        """Share of leaves at 100%, as a percentage."""
        return self.completion(as_of, latest).completion_rate

    def completion(self, as_of: date, latest: Optional[Mapping[int, float]] = None) -> ProjectCompletion:
        latest = self.latest(as_of) if latest is None else latest
        leaves = self.tree.leaves()
        done = sum(1 for leaf in leaves if latest.get(leaf.id, 0.0) >= COMPLETE)
        return ProjectCompletion(
            percentage=self.project_completion(as_of, latest),
            completed_leaf_count=done,
            total_leaf_count=len(leaves),
        )
