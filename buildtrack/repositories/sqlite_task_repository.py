# Rev 0.2.0
from __future__ import annotations

import sqlite3
from typing import Dict, List, Mapping, Optional, Tuple

from ..models.entities import TaskNode
from ..models.errors import ValidationError
from .db import Database


MAX_WEIGHT = 100.0


def check_task_numbers(
    *, weight: Optional[float] = None, volume: Optional[float] = None, unit_price: Optional[float] = None
) -> None:
    """Weight lies in [0, 100]; volume and unit price are never negative."""
    if weight is not None and not 0 <= weight <= MAX_WEIGHT:
        raise ValidationError(f"weight must be between 0 and {MAX_WEIGHT:g}, got {weight}")
    if volume is not None and volume < 0:
        raise ValidationError(f"volume cannot be negative, got {volume}")
    if unit_price is not None and unit_price < 0:
        raise ValidationError(f"unit_price cannot be negative, got {unit_price}")


class SQLiteTaskRepository:
    """
    Task rows of a project's hierarchy.

    Schema expectation (Rev 0.1.0):

      tasks(
        id INTEGER PRIMARY KEY,
        project_id INTEGER NOT NULL,
        parent_id INTEGER NULL,
        position INTEGER NOT NULL,      -- sibling ordering key
        name TEXT NOT NULL,
        weight REAL, volume REAL, unit TEXT, unit_price REAL,
        total_price REAL,               -- volume * unit_price, kept by this repo
        lft INTEGER, rgt INTEGER        -- 0/0 until the tree is rebuilt
      )
    """

    _COLUMNS = (
        "id, project_id, parent_id, position, name, weight, volume, unit, "
        "unit_price, total_price, lft, rgt"
    )

    def __init__(self, db: Database):
        self._db = db

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> TaskNode:
        return TaskNode(
            id=row["id"],
            name=row["name"],
            parent_id=row["parent_id"],
            position=row["position"],
            left=row["lft"],
            right=row["rgt"],
            project_id=row["project_id"],
            weight=float(row["weight"]),
            volume=float(row["volume"]),
            unit=row["unit"],
            unit_price=float(row["unit_price"]),
        )

    # -------------------------
    # CRUD
    # -------------------------
    def create_task(
        self,
        *,
        project_id: int,
        name: str,
        parent_id: Optional[int] = None,
        weight: float = 0.0,
        volume: float = 0.0,
        unit: Optional[str] = None,
        unit_price: float = 0.0,
        position: Optional[int] = None,
    ) -> int:
        check_task_numbers(weight=weight, volume=volume, unit_price=unit_price)
        if position is None:
            position = self._next_position(project_id, parent_id)
        cur = self._db.execute(
            """
            INSERT INTO tasks(project_id, parent_id, position, name, weight,
                              volume, unit, unit_price, total_price)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project_id,
                parent_id,
                position,
                name,
                float(weight),
                float(volume),
                unit,
                float(unit_price),
                float(volume) * float(unit_price),
            ),
        )
        return int(cur.lastrowid)

    def _next_position(self, project_id: int, parent_id: Optional[int]) -> int:
        row = self._db.fetchone(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM tasks WHERE project_id = ? AND parent_id IS ?",
            (project_id, parent_id),
        )
        return int(row[0])

    def get_task(self, task_id: int) -> Optional[TaskNode]:
        row = self._db.fetchone(f"SELECT {self._COLUMNS} FROM tasks WHERE id = ?", (task_id,))
        return self._row_to_task(row) if row else None

    def has_children(self, task_id: int) -> bool:
        row = self._db.fetchone("SELECT 1 FROM tasks WHERE parent_id = ? LIMIT 1", (task_id,))
        return row is not None

    def update_task_fields(
        self,
        task_id: int,
        *,
        name: Optional[str] = None,
        unit: Optional[str] = None,
        volume: Optional[float] = None,
        unit_price: Optional[float] = None,
        weight: Optional[float] = None,
    ) -> bool:
        check_task_numbers(weight=weight, volume=volume, unit_price=unit_price)
        sets, params = [], []
        if name is not None:
            sets.append("name = ?")
            params.append(name)
        if unit is not None:
            sets.append("unit = ?")
            params.append(unit)
        if volume is not None:
            sets.append("volume = ?")
            params.append(float(volume))
        if unit_price is not None:
            sets.append("unit_price = ?")
            params.append(float(unit_price))
        if weight is not None:
            sets.append("weight = ?")
            params.append(float(weight))
        if not sets:
            return False
        # SET expressions see the old row, so recompute in a second statement
        with self._db.transaction():
            cur = self._db.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", (*params, task_id))
            self._db.execute("UPDATE tasks SET total_price = volume * unit_price WHERE id = ?", (task_id,))
        return cur.rowcount > 0

    # -------------------------
    # Listings
    # -------------------------
    def list_tasks(self, project_id: int) -> List[TaskNode]:
        """All tasks of a project in stable sibling order (position, id)."""
        rows = self._db.fetchall(
            f"SELECT {self._COLUMNS} FROM tasks WHERE project_id = ? ORDER BY position, id",
            (project_id,),
        )
        return [self._row_to_task(r) for r in rows]

    def list_leaf_tasks(self, project_id: int) -> List[TaskNode]:
        rows = self._db.fetchall(
            f"""
            SELECT {self._COLUMNS} FROM tasks t
            WHERE t.project_id = ?
              AND NOT EXISTS (SELECT 1 FROM tasks c WHERE c.parent_id = t.id)
            ORDER BY t.lft, t.position, t.id
            """,
            (project_id,),
        )
        return [self._row_to_task(r) for r in rows]

    def count_tasks(self, project_id: int) -> int:
        row = self._db.fetchone("SELECT COUNT(1) FROM tasks WHERE project_id = ?", (project_id,))
        return int(row[0]) if row and row[0] is not None else 0

    # -------------------------
    # Maintenance writes
    # -------------------------
    def update_bounds(self, bounds: Mapping[int, Tuple[int, int]]) -> None:
        self._db.executemany(
            "UPDATE tasks SET lft = ?, rgt = ? WHERE id = ?",
            [(lft, rgt, task_id) for task_id, (lft, rgt) in bounds.items()],
        )

    def update_weights(self, weights: Dict[int, float]) -> None:
        self._db.executemany(
            "UPDATE tasks SET weight = ? WHERE id = ?",
            [(float(w), task_id) for task_id, w in weights.items()],
        )
