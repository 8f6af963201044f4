# Rev 0.2.0

"""SQLite connection & migration runner (Rev 0.2.0)
- WAL mode, foreign_keys=ON
- Applies SQL files in buildtrack/data/migrations in lexical order
- Tracks applied files in schema_migrations(filename, sha256, applied_at_utc)
- transaction() is the single all-or-nothing unit used by services
"""
from __future__ import annotations
import hashlib
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Sequence

from ..utils.logging_setup import get_logger
from ..utils.paths import DB_PATH, MIGRATIONS_DIR, ensure_dirs


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class Database:
    """
    One shared sqlite3 connection guarded by a re-entrant lock.

    Every statement and every transaction holds the lock, so a reader on
    another thread never sees a half-applied transaction on this connection.
    """

    def __init__(self, path: Path | str = DB_PATH) -> None:
        self._log = get_logger("DB")
        self.path = Path(path)
        if str(path) != ":memory:":
            if self.path == DB_PATH:
                ensure_dirs()
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA foreign_keys=ON;")
        self.conn.execute("PRAGMA busy_timeout = 5000;")
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " filename TEXT PRIMARY KEY,"
            " sha256 TEXT NOT NULL,"
            " applied_at_utc TEXT NOT NULL)"
        )
        self._lock = threading.RLock()
        self._depth = 0
        self._log.info("SQLite open %s", self.path)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    # Thin delegation helpers
    def execute(self, sql: str, params: Sequence = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.conn.execute(sql, params)

    def executemany(self, sql: str, seq: Sequence[Sequence]) -> sqlite3.Cursor:
        with self._lock:
            return self.conn.executemany(sql, seq)

    def fetchall(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    def fetchone(self, sql: str, params: Sequence = ()) -> sqlite3.Row | None:
        with self._lock:
            return self.conn.execute(sql, params).fetchone()

    @contextmanager
    def transaction(self, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        """BEGIN [IMMEDIATE] … COMMIT, ROLLBACK on error. Nested calls join the outer one."""
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self.conn
                finally:
                    self._depth -= 1
                return
            self.conn.execute("BEGIN IMMEDIATE;" if immediate else "BEGIN;")
            self._depth = 1
            try:
                yield self.conn
            except BaseException:
                self.conn.execute("ROLLBACK;")
                raise
            else:
                self.conn.execute("COMMIT;")
            finally:
                self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # -------------------------
    # Migrations
    # -------------------------
    def applied(self) -> dict[str, str]:
        rows = self.fetchall("SELECT filename, sha256 FROM schema_migrations")
        return {r[0]: r[1] for r in rows}

    def apply_sql(self, sql: str) -> None:
        with self._lock:
            self.conn.executescript(sql)

    def pending(self, migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
        applied = self.applied()
        return [p for p in sorted(Path(migrations_dir).glob("*.sql")) if p.name not in applied]

    def run_migrations(
        self, migrations_dir: Path = MIGRATIONS_DIR, stop_on_changed_hash: bool = False
    ) -> list[str]:
        applied = self.applied()
        applied_now: list[str] = []
        for p in sorted(Path(migrations_dir).glob("*.sql")):
            sql = p.read_text(encoding="utf-8")
            digest = sha256_text(sql)
            if p.name in applied:
                if applied[p.name] != digest:
                    msg = f"Hash changed for already applied migration {p.name}"
                    if stop_on_changed_hash:
                        raise RuntimeError(msg)
                    self._log.warning(msg)
                continue
            self._log.info("Applying migration %s", p.name)
            with self._lock:
                # executescript commits implicitly; run it as its own unit
                try:
                    self.conn.executescript(f"BEGIN;\n{sql}\nCOMMIT;")
                except sqlite3.Error:
                    if self.conn.in_transaction:
                        self.conn.execute("ROLLBACK;")
                    raise
                self.conn.execute(
                    "INSERT INTO schema_migrations(filename, sha256, applied_at_utc) VALUES(?, ?, ?)",
                    (p.name, digest, utc_now_iso()),
                )
            applied_now.append(p.name)
        return applied_now
