# Rev 0.2.0
# buildtrack – SQLiteProjectRepository (Rev 0.2.0, aligned with schema Rev 0.1.0)
from __future__ import annotations
import sqlite3
from datetime import date
from typing import Iterable, List, Optional

from ..models.entities import Project
from ._rows import date_str, to_date
from .db import Database


class SQLiteProjectRepository:
    """
    Project repository.
    Only the fields the progress engine consumes: dates, owning office, status.
    """

    def __init__(self, db: Database):
        self._db = db

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            office_id=row["office_id"],
            start_date=to_date(row["start_date"]),
            end_date=to_date(row["end_date"]),
            status=row["status"],
        )

    # ---------- public API ----------

    def create_project(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        office_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: str = "active",
    ) -> int:
        cur = self._db.execute(
            """
            INSERT INTO projects(name, description, office_id, start_date, end_date, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (name, description, office_id, date_str(start_date), date_str(end_date), status),
        )
        return int(cur.lastrowid)

    def get_project(self, project_id: int) -> Optional[Project]:
        row = self._db.fetchone(
            "SELECT id, name, description, office_id, start_date, end_date, status "
            "FROM projects WHERE id = ?",
            (project_id,),
        )
        return self._row_to_project(row) if row else None

    def list_projects(self, office_ids: Optional[Iterable[int]] = None) -> List[Project]:
        sql = "SELECT id, name, description, office_id, start_date, end_date, status FROM projects"
        params: tuple = ()
        if office_ids is not None:
            ids = list(office_ids)
            if not ids:
                return []
            sql += f" WHERE office_id IN ({', '.join('?' * len(ids))})"
            params = tuple(ids)
        rows = self._db.fetchall(sql + " ORDER BY id", params)
        return [self._row_to_project(r) for r in rows]

    def set_dates(self, project_id: int, start_date: Optional[date], end_date: Optional[date]) -> bool:
        cur = self._db.execute(
            "UPDATE projects SET start_date = ?, end_date = ? WHERE id = ?",
            (date_str(start_date), date_str(end_date), project_id),
        )
        return cur.rowcount > 0

    def delete_project(self, project_id: int) -> bool:
        # tasks and task_progress go with it (ON DELETE CASCADE)
        cur = self._db.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return cur.rowcount > 0
