# tests/test_task_tree.py
from __future__ import annotations

import pytest

from buildtrack.models.entities import TaskNode
from buildtrack.models.errors import ValidationError
from buildtrack.services.task_tree import TaskTree


def _tree() -> TaskTree:
    return TaskTree(
        [
            TaskNode(id=1, name="Struktur", project_id=1, weight=0),
            TaskNode(id=2, name="Pondasi", project_id=1, parent_id=1, position=0, weight=20, volume=10, unit_price=150.5),
            TaskNode(id=3, name="Kolom", project_id=1, parent_id=1, position=1, weight=30, volume=4, unit_price=1000),
            TaskNode(id=4, name="Finishing", project_id=1, weight=60),
            TaskNode(id=5, name="Cat", project_id=1, parent_id=4, weight=10, volume=2.5, unit_price=3),
        ],
        project_id=1,
    )


def test_effective_weight_falls_back_to_children_sum():
    weights = _tree().effective_weights()
    assert weights[1] == 50       # stored 0 -> 20 + 30
    assert weights[4] == 60       # stored weight wins when positive
    assert weights[2] == 20


def test_total_price_is_volume_times_unit_price():
    tree = _tree()
    assert tree.get(2).total_price == pytest.approx(1505.0)
    assert tree.get(5).total_price == pytest.approx(7.5)
    subtotals = tree.subtotal_prices()
    assert subtotals[1] == pytest.approx(5505.0)
    assert tree.project_total_price() == pytest.approx(5512.5)


def test_require_leaf():
    tree = _tree()
    assert tree.require_leaf(3).name == "Kolom"
    with pytest.raises(ValidationError):
        tree.require_leaf(1)


def test_foreign_project_rejected():
    tree = _tree()
    with pytest.raises(ValidationError):
        tree.add(TaskNode(id=9, name="Lain", project_id=2))


def test_leaf_helpers_and_depth():
    tree = _tree()
    tree.rebuild()
    assert tree.leaf_ids() == [2, 3, 5]
    assert tree.leaf_weight_sum() == 60
    assert tree.depth(5) == 1
    assert tree.depth(1) == 0
