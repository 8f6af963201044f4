# Rev 0.2.0

# buildtrack – SQLiteOfficeRepository (Rev 0.2.0)
# Offices and their levels; bounds are written back by OfficeService.rebuild_office_tree()

from __future__ import annotations
import sqlite3
from typing import List, Mapping, Optional, Tuple

from ..models.entities import Office, OfficeLevel
from .db import Database


class SQLiteOfficeRepository:
    """
    Thin wrapper around the 'office_levels' and 'offices' tables.
    """

    def __init__(self, db: Database):
        self._db = db

    # --- levels -------------------------------------------------------------

    def create_level(
        self,
        *,
        level: int,
        name: str,
        description: Optional[str] = None,
        is_default_user_level: bool = False,
    ) -> int:
        cur = self._db.execute(
            "INSERT INTO office_levels(level, name, description, is_default_user_level) VALUES (?, ?, ?, ?)",
            (level, name, description, int(is_default_user_level)),
        )
        return int(cur.lastrowid)

    def list_levels(self) -> List[OfficeLevel]:
        rows = self._db.fetchall(
            "SELECT id, level, name, description, is_default_user_level FROM office_levels ORDER BY level"
        )
        return [
            OfficeLevel(
                id=r["id"],
                level=r["level"],
                name=r["name"],
                description=r["description"],
                is_default_user_level=bool(r["is_default_user_level"]),
            )
            for r in rows
        ]

    def default_user_level(self) -> Optional[OfficeLevel]:
        for lvl in self.list_levels():
            if lvl.is_default_user_level:
                return lvl
        return None

    # --- offices ------------------------------------------------------------

    @staticmethod
    def _row_to_office(row: sqlite3.Row) -> Office:
        return Office(
            id=row["id"],
            name=row["name"],
            parent_id=row["parent_id"],
            position=row["position"],
            left=row["lft"],
            right=row["rgt"],
            level_id=row["level_id"],
            code=row["code"],
            notes=row["notes"],
        )

    def create_office(
        self,
        *,
        name: str,
        parent_id: Optional[int] = None,
        level_id: Optional[int] = None,
        code: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        row = self._db.fetchone(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM offices WHERE parent_id IS ?",
            (parent_id,),
        )
        cur = self._db.execute(
            """
            INSERT INTO offices(parent_id, level_id, position, name, code, notes)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (parent_id, level_id, int(row[0]), name, code, notes),
        )
        return int(cur.lastrowid)

    def get_office(self, office_id: int) -> Optional[Office]:
        row = self._db.fetchone(
            "SELECT id, parent_id, level_id, position, name, code, notes, lft, rgt FROM offices WHERE id = ?",
            (office_id,),
        )
        return self._row_to_office(row) if row else None

    def list_offices(self) -> List[Office]:
        rows = self._db.fetchall(
            "SELECT id, parent_id, level_id, position, name, code, notes, lft, rgt "
            "FROM offices ORDER BY position, id"
        )
        return [self._row_to_office(r) for r in rows]

    def update_bounds(self, bounds: Mapping[int, Tuple[int, int]]) -> None:
        self._db.executemany(
            "UPDATE offices SET lft = ?, rgt = ? WHERE id = ?",
            [(lft, rgt, office_id) for office_id, (lft, rgt) in bounds.items()],
        )
