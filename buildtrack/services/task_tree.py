# Rev 0.2.0
"""Task hierarchy of one project: nested-set index plus weights and prices."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..models.entities import TaskNode
from ..models.errors import ValidationError
from .nested_set import DEFAULT_SEPARATOR, NestedSetTree


class TaskTree(NestedSetTree[TaskNode]):
    def __init__(
        self,
        tasks: Iterable[TaskNode] = (),
        *,
        project_id: Optional[int] = None,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        self.project_id = project_id
        super().__init__(tasks, separator=separator)

    def add(self, node: TaskNode) -> TaskNode:
        if self.project_id is not None and node.project_id != self.project_id:
            raise ValidationError(
                f"task {node.id} belongs to project {node.project_id}, not {self.project_id}"
            )
        return super().add(node)

    def require_leaf(self, task_id: int) -> TaskNode:
        task = self.get(task_id)
        if not self.is_leaf(task_id):
            raise ValidationError(f"task {task_id} ({task.name!r}) has children; only leaf tasks take progress")
        return task

    def leaf_weight_sum(self) -> float:
        return sum(t.weight for t in self.leaves())

    def effective_weights(self) -> Dict[int, float]:
        """
        Weight each node carries at its parent.

        Leaves use their own weight. An internal node uses its stored weight
        when positive, otherwise the sum of its children's effective weights.
        """
        out: Dict[int, float] = {}
        for node in self.post_order():
            kids = self.child_ids(node.id)
            if not kids:
                out[node.id] = node.weight
            elif node.weight > 0:
                out[node.id] = node.weight
            else:
                out[node.id] = sum(out[k] for k in kids)
        return out

    def subtotal_prices(self) -> Dict[int, float]:
        """Leaf total_price, and for internal nodes the sum over their subtree's leaves."""
        out: Dict[int, float] = {}
        for node in self.post_order():
            kids = self.child_ids(node.id)
            out[node.id] = node.total_price if not kids else sum(out[k] for k in kids)
        return out

    def project_total_price(self) -> float:
        return sum(t.total_price for t in self.leaves())

    def depth(self, task_id: int) -> int:
        return len(self.ancestors(task_id))

    def leaf_ids(self) -> List[int]:
        return [t.id for t in self.leaves()]
