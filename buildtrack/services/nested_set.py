# Rev 0.2.0

"""Nested-set index over an arena of tree nodes (Rev 0.2.0)

Nodes are stored by id; parent/child links are ids, never object references.
`left`/`right` bounds come only from rebuild(), which threads an explicit
BoundsBuilder through one depth-first pass (counter starts at 1, two ticks per
node). Queries that depend on bounds fail with InvariantViolation until the
forest has been rebuilt, and again after any structural change.
"""
from __future__ import annotations

import threading
from bisect import bisect_right
from typing import Dict, Generic, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from ..models.entities import TreeNode
from ..models.errors import InvariantViolation, NotFoundError
from ..utils.logging_setup import get_logger

N = TypeVar("N", bound=TreeNode)

Bounds = Dict[int, Tuple[int, int]]

DEFAULT_SEPARATOR = " > "


class BoundsBuilder:
    """Running boundary counter for one rebuild. One instance per pass."""

    def __init__(self, start: int = 1) -> None:
        self.counter = start
        self.bounds: Bounds = {}

    def tick(self) -> int:
        value = self.counter
        self.counter += 1
        return value

    def open(self, node_id: int) -> None:
        self.bounds[node_id] = (self.tick(), 0)

    def close(self, node_id: int) -> None:
        left, _ = self.bounds[node_id]
        self.bounds[node_id] = (left, self.tick())


class NestedSetTree(Generic[N]):
    """
    Generic hierarchy shared by offices and tasks.

    Rebuild is exclusive: it holds the tree lock for the whole pass, and so
    does every query, so no query observes half-assigned bounds.
    """

    def __init__(self, nodes: Iterable[N] = (), *, separator: str = DEFAULT_SEPARATOR) -> None:
        self._log = get_logger(type(self).__name__)
        self.separator = separator
        self._nodes: Dict[int, N] = {}
        self._children: Dict[Optional[int], List[int]] = {None: []}
        self._lock = threading.RLock()
        self._index_ids: List[int] = []
        self._index_lefts: List[int] = []
        self._index_dirty = True
        for node in nodes:
            self.add(node)

    # -------------------------
    # Arena
    # -------------------------
    def add(self, node: N) -> N:
        with self._lock:
            if node.id in self._nodes:
                raise InvariantViolation(f"duplicate node id {node.id}")
            self._nodes[node.id] = node
            self._children.setdefault(node.id, [])
            self._children.setdefault(node.parent_id, []).append(node.id)
            self._index_dirty = True
            return node

    def get(self, node_id: int) -> N:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFoundError(f"node {node_id} not found") from None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[N]:
        return iter(list(self._nodes.values()))

    def _ordered(self, ids: Sequence[int]) -> List[int]:
        # stable: position first, insertion order breaks ties
        return sorted(ids, key=lambda i: self._nodes[i].position)

    def children(self, node_id: Optional[int]) -> List[N]:
        return [self._nodes[i] for i in self.child_ids(node_id)]

    def child_ids(self, node_id: Optional[int]) -> List[int]:
        ids = [i for i in self._children.get(node_id, []) if i in self._nodes]
        return self._ordered(ids)

    def roots(self) -> List[N]:
        return self.children(None)

    def parent(self, node_id: int) -> Optional[N]:
        parent_id = self.get(node_id).parent_id
        return self._nodes.get(parent_id) if parent_id is not None else None

    def is_leaf(self, node_id: int) -> bool:
        self.get(node_id)
        return not self._children.get(node_id)

    def leaves(self) -> List[N]:
        return [n for n in self.walk() if not self._children.get(n.id)]

    # -------------------------
    # Traversal (structure only, no bounds needed)
    # -------------------------
    def walk(self, root_ids: Optional[Sequence[int]] = None) -> Iterator[N]:
        """Preorder over the forest (or the given subtrees) in sibling order."""
        stack = list(reversed(self._ordered(list(root_ids)) if root_ids is not None else self.child_ids(None)))
        seen = set()
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                raise InvariantViolation(f"cycle through node {node_id}")
            seen.add(node_id)
            yield self._nodes[node_id]
            stack.extend(reversed(self.child_ids(node_id)))

    def post_order(self, root_ids: Optional[Sequence[int]] = None) -> List[N]:
        """Children before parents, iterative."""
        return list(reversed(self._reverse_preorder(root_ids)))

    def _reverse_preorder(self, root_ids: Optional[Sequence[int]]) -> List[N]:
        # preorder visiting children right-to-left, reversed, is a post-order
        stack = list(root_ids) if root_ids is not None else self.child_ids(None)
        out: List[N] = []
        seen = set()
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                raise InvariantViolation(f"cycle through node {node_id}")
            seen.add(node_id)
            out.append(self._nodes[node_id])
            stack.extend(self.child_ids(node_id))
        return out

    # -------------------------
    # Rebuild
    # -------------------------
    def rebuild(self, roots: Optional[Sequence[int]] = None) -> Bounds:
        """
        Reassign left/right for the whole forest in one depth-first pass.

        `roots` defaults to every parentless node in sibling order. An explicit
        list sets the order of the top-level nodes and must name each of them
        exactly once, since numbering always starts at 1. Running it twice over
        the same ordering yields identical bounds.
        """
        with self._lock:
            all_roots = self.child_ids(None)
            root_ids = list(roots) if roots is not None else all_roots
            for rid in root_ids:
                if self.get(rid).parent_id is not None:
                    raise InvariantViolation(f"node {rid} is not a root")
            if len(root_ids) != len(all_roots) or set(root_ids) != set(all_roots):
                raise InvariantViolation(f"roots {root_ids} must list every root once: {all_roots}")

            builder = BoundsBuilder()
            for rid in root_ids:
                self._assign(rid, builder)

            if len(builder.bounds) != len(self._nodes):
                stray = sorted(set(self._nodes) - set(builder.bounds))
                raise InvariantViolation(f"nodes unreachable from any root (orphan or cycle): {stray}")

            for node_id, (left, right) in builder.bounds.items():
                node = self._nodes[node_id]
                node.left, node.right = left, right
            self._index_dirty = True
            self._log.debug("rebuilt %d nodes", len(builder.bounds))
            return dict(builder.bounds)

    def _assign(self, root_id: int, builder: BoundsBuilder) -> None:
        stack: List[Tuple[int, bool]] = [(root_id, False)]
        while stack:
            node_id, closing = stack.pop()
            if closing:
                builder.close(node_id)
                continue
            if node_id in builder.bounds:
                raise InvariantViolation(f"cycle through node {node_id}")
            builder.open(node_id)
            stack.append((node_id, True))
            for child_id in reversed(self.child_ids(node_id)):
                stack.append((child_id, False))

    def bounds(self) -> Bounds:
        return {n.id: (n.left, n.right) for n in self._nodes.values()}

    # -------------------------
    # Bounds-backed queries
    # -------------------------
    def validate(self) -> None:
        """Raise InvariantViolation unless every node carries consistent bounds."""
        with self._lock:
            seen_lefts = set()
            for node in self._nodes.values():
                if not node.has_bounds:
                    raise InvariantViolation(
                        f"node {node.id} has no nested-set bounds (left={node.left}, right={node.right}); rebuild the tree"
                    )
                if node.left in seen_lefts:
                    raise InvariantViolation(f"duplicate left bound {node.left}")
                seen_lefts.add(node.left)
                parent = self._nodes.get(node.parent_id) if node.parent_id is not None else None
                if parent is not None and not (parent.left < node.left and node.right < parent.right):
                    raise InvariantViolation(f"node {node.id} lies outside its parent {parent.id}")
            for parent_id, kids in self._children.items():
                ranges = sorted((self._nodes[k].left, self._nodes[k].right) for k in kids if k in self._nodes)
                for (_, r1), (l2, _) in zip(ranges, ranges[1:]):
                    if l2 < r1:
                        raise InvariantViolation(f"overlapping siblings under {parent_id}")

    def _ensure_index(self) -> None:
        if not self._index_dirty:
            return
        self.validate()
        ordered = sorted(self._nodes.values(), key=lambda n: n.left)
        self._index_ids = [n.id for n in ordered]
        self._index_lefts = [n.left for n in ordered]
        self._index_dirty = False

    def _require_bounds(self, node_id: int) -> N:
        node = self.get(node_id)
        if not node.has_bounds:
            raise InvariantViolation(f"node {node_id} has no nested-set bounds; rebuild the tree")
        self._ensure_index()
        return node

    def ancestors(self, node_id: int) -> List[N]:
        """Root-first chain of parents; empty for a root."""
        with self._lock:
            node = self._require_bounds(node_id)
            chain: List[N] = []
            seen = {node.id}
            while node.parent_id is not None:
                parent = self._nodes.get(node.parent_id)
                if parent is None:
                    raise InvariantViolation(f"node {node.id} points to missing parent {node.parent_id}")
                if parent.id in seen:
                    raise InvariantViolation(f"cycle through node {parent.id}")
                seen.add(parent.id)
                chain.append(parent)
                node = parent
            chain.reverse()
            return chain

    def descendants(self, node_id: int) -> List[N]:
        """Every node strictly inside node's bounds, ordered by left; empty for a leaf."""
        with self._lock:
            node = self._require_bounds(node_id)
            out: List[N] = []
            start = bisect_right(self._index_lefts, node.left)
            for pos in range(start, len(self._index_ids)):
                if self._index_lefts[pos] >= node.right:
                    break
                candidate = self._nodes[self._index_ids[pos]]
                if candidate.right < node.right:
                    out.append(candidate)
            return out

    def leaf_descendants(self, node_id: int) -> List[N]:
        return [d for d in self.descendants(node_id) if d.right == d.left + 1]

    def hierarchy_path(self, node_id: int, separator: Optional[str] = None) -> str:
        sep = self.separator if separator is None else separator
        names = [a.name for a in self.ancestors(node_id)]
        names.append(self.get(node_id).name)
        return sep.join(names)
