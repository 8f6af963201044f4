# Rev 0.2.0 — schema Rev 0.1.0 alignment
from __future__ import annotations

import sqlite3
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models.entities import ProgressEntry
from ..models.errors import InvariantViolation
from ._rows import date_str, to_date, to_datetime
from .db import Database, utc_now_iso
from .progress_store import ProgressStore


class SQLiteProgressRepository(ProgressStore):
    """
    Read/append entries for task_progress.

    Schema expectation (Rev 0.1.0):

      task_progress(
        id INTEGER PRIMARY KEY,
        task_id INTEGER NOT NULL,
        project_id INTEGER NOT NULL,
        reporter_id INTEGER NOT NULL,
        progress_date TEXT NOT NULL,      -- YYYY-MM-DD
        percentage REAL NOT NULL,
        notes TEXT NULL,
        is_synthetic INTEGER NOT NULL,
        created_at_utc TEXT NOT NULL,
        updated_at_utc TEXT NOT NULL,
        UNIQUE (task_id, progress_date)
      )
    """

    _COLUMNS = (
        "id, task_id, project_id, reporter_id, progress_date, percentage, notes, "
        "is_synthetic, created_at_utc"
    )

    def __init__(self, db: Database):
        self._db = db

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ProgressEntry:
        return ProgressEntry(
            id=row["id"],
            task_id=row["task_id"],
            project_id=row["project_id"],
            reporter_id=row["reporter_id"],
            date=to_date(row["progress_date"]),
            percentage=float(row["percentage"]),
            notes=row["notes"],
            is_synthetic=bool(row["is_synthetic"]),
            created_at_utc=to_datetime(row["created_at_utc"]),
        )

    @staticmethod
    def _params(entry: ProgressEntry, now: str) -> tuple:
        return (
            entry.task_id,
            entry.project_id,
            entry.reporter_id,
            date_str(entry.date),
            float(entry.percentage),
            entry.notes,
            int(entry.is_synthetic),
            now,
            now,
        )

    # -------------------------
    # Commands
    # -------------------------
    def insert_entries(self, entries: Sequence[ProgressEntry]) -> int:
        if not entries:
            return 0
        now = utc_now_iso()
        self._db.executemany(
            """
            INSERT INTO task_progress(
              task_id, project_id, reporter_id, progress_date, percentage,
              notes, is_synthetic, created_at_utc, updated_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [self._params(e, now) for e in entries],
        )
        return len(entries)

    def upsert_entry(self, entry: ProgressEntry) -> ProgressEntry:
        """Insert, or correct the existing (task_id, date) row in place."""
        now = utc_now_iso()
        self._db.execute(
            """
            INSERT INTO task_progress(
              task_id, project_id, reporter_id, progress_date, percentage,
              notes, is_synthetic, created_at_utc, updated_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(task_id, progress_date) DO UPDATE SET
              reporter_id = excluded.reporter_id,
              percentage = excluded.percentage,
              notes = excluded.notes,
              is_synthetic = excluded.is_synthetic,
              updated_at_utc = excluded.updated_at_utc
            """,
            self._params(entry, now),
        )
        stored = self.get_entry(entry.task_id, entry.date)
        if stored is None:
            raise InvariantViolation(f"progress row for task {entry.task_id} on {entry.date} vanished after write")
        return stored

    def update_entry(
        self, task_id: int, day: date, percentage: float, notes: Optional[str] = None
    ) -> bool:
        cur = self._db.execute(
            """
            UPDATE task_progress
            SET percentage = ?, notes = ?, is_synthetic = 0, updated_at_utc = ?
            WHERE task_id = ? AND progress_date = ?
            """,
            (float(percentage), notes, utc_now_iso(), task_id, date_str(day)),
        )
        return cur.rowcount > 0

    # -------------------------
    # Queries
    # -------------------------
    def count_for_task(self, task_id: int) -> int:
        row = self._db.fetchone("SELECT COUNT(1) FROM task_progress WHERE task_id = ?", (task_id,))
        return int(row[0]) if row else 0

    def get_entry(self, task_id: int, day: date) -> Optional[ProgressEntry]:
        row = self._db.fetchone(
            f"SELECT {self._COLUMNS} FROM task_progress WHERE task_id = ? AND progress_date = ?",
            (task_id, date_str(day)),
        )
        return self._row_to_entry(row) if row else None

    def history(self, task_id: int) -> List[ProgressEntry]:
        rows = self._db.fetchall(
            f"SELECT {self._COLUMNS} FROM task_progress WHERE task_id = ? ORDER BY progress_date",
            (task_id,),
        )
        return [self._row_to_entry(r) for r in rows]

    def latest_as_of(self, task_id: int, as_of: date) -> Optional[ProgressEntry]:
        row = self._db.fetchone(
            f"""
            SELECT {self._COLUMNS} FROM task_progress
            WHERE task_id = ? AND progress_date <= ?
            ORDER BY progress_date DESC
            LIMIT 1
            """,
            (task_id, date_str(as_of)),
        )
        return self._row_to_entry(row) if row else None

    def latest_map(self, project_id: int, as_of: date) -> Dict[int, float]:
        """task_id -> percentage of the latest entry dated on or before as_of."""
        rows = self._db.fetchall(
            """
            SELECT p.task_id, p.percentage
            FROM task_progress p
            JOIN (
                SELECT task_id, MAX(progress_date) AS max_date
                FROM task_progress
                WHERE project_id = ? AND progress_date <= ?
                GROUP BY task_id
            ) latest
              ON latest.task_id = p.task_id AND latest.max_date = p.progress_date
            WHERE p.project_id = ?
            """,
            (project_id, date_str(as_of), project_id),
        )
        return {int(r[0]): float(r[1]) for r in rows}

    def project_date_range(self, project_id: int) -> Optional[Tuple[date, date]]:
        row = self._db.fetchone(
            "SELECT MIN(progress_date), MAX(progress_date) FROM task_progress WHERE project_id = ?",
            (project_id,),
        )
        if not row or row[0] is None:
            return None
        return to_date(row[0]), to_date(row[1])

    def projects_with_progress(self, project_ids: Iterable[int]) -> Set[int]:
        ids = list(project_ids)
        if not ids:
            return set()
        rows = self._db.fetchall(
            f"SELECT DISTINCT project_id FROM task_progress WHERE project_id IN ({', '.join('?' * len(ids))})",
            tuple(ids),
        )
        return {int(r[0]) for r in rows}

    def task_ids_with_progress(
        self, project_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> Set[int]:
        """Tasks with at least one entry inside [start, end]; open ends are unbounded."""
        sql = "SELECT DISTINCT task_id FROM task_progress WHERE project_id = ?"
        params: list = [project_id]
        if start is not None:
            sql += " AND progress_date >= ?"
            params.append(date_str(start))
        if end is not None:
            sql += " AND progress_date <= ?"
            params.append(date_str(end))
        return {int(r[0]) for r in self._db.fetchall(sql, tuple(params))}
