# File: buildtrack/tools/migrate.py
# Usage examples:
#   python -m buildtrack.tools.migrate up
#   python -m buildtrack.tools.migrate status
#   python -m buildtrack.tools.migrate rebuild
#   python -m buildtrack.tools.migrate up --db /path/to/buildtrack.db
#
# Notes:
# - DB path defaults to env BUILDTRACK_DB or the XDG data dir
# - Applies buildtrack/data/migrations/*.sql in lexicographic order
# - Records applied migrations (name + sha256) in schema_migrations

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from ..repositories.db import Database
from ..utils.paths import DB_PATH, MIGRATIONS_DIR

REQUIRED_TABLES = [
    "office_levels",
    "offices",
    "projects",
    "tasks",
    "task_progress",
    "schema_migrations",
]

REQUIRED_INDEXES = [
    "task_progress_project_date_idx",
    "task_progress_project_task_date_idx",
    "tasks_project_lft_rgt_idx",
]


def cmd_status(db_path: Path, migrations_dir: Path) -> int:
    db = Database(db_path)
    try:
        applied = db.applied()
        pending = db.pending(migrations_dir)
        print(f"DB: {db_path}")
        print(f"Migrations dir: {migrations_dir}")
        print(f"Applied count: {len(applied)}")
        for name in sorted(applied):
            print(f"  ✔ {name}")
        print(f"Pending count: {len(pending)}")
        for p in pending:
            print(f"  ⧗ {p.name}")
        return 0
    finally:
        db.close()


def cmd_up(db_path: Path, migrations_dir: Path, strict: bool) -> int:
    db = Database(db_path)
    try:
        applied_now = db.run_migrations(migrations_dir, stop_on_changed_hash=strict)
        for name in applied_now:
            print(f"→ Applied migration: {name}")
        if applied_now:
            print("✓ Database is up to date.")
        else:
            print("✓ No changes. Database already up to date.")
        return 0
    finally:
        db.close()


def cmd_rebuild(db_path: Path, migrations_dir: Path) -> int:
    # Drop DB file (and WAL side files) and rebuild from migrations
    for suffix in ("", "-wal", "-shm"):
        side = Path(f"{db_path}{suffix}")
        if side.exists():
            print(f"⟲ Rebuilding: removing {side}")
            side.unlink()
    db = Database(db_path)
    try:
        db.run_migrations(migrations_dir)
        print("✓ Rebuild complete.")
        return 0
    finally:
        db.close()


def cmd_verify(db_path: Path) -> int:
    db = Database(db_path)
    try:
        rows = db.fetchall("SELECT type, name FROM sqlite_master WHERE name NOT LIKE 'sqlite_%'")
        tables = {r["name"] for r in rows if r["type"] == "table"}
        indexes = {r["name"] for r in rows if r["type"] == "index"}

        missing = [t for t in REQUIRED_TABLES if t not in tables]
        if missing:
            print("❌ Missing tables:", ", ".join(missing))
            return 2

        idx_missing = [i for i in REQUIRED_INDEXES if i not in indexes]
        if idx_missing:
            print("❌ Missing indexes:", ", ".join(idx_missing))
            return 3

        (mode,) = db.fetchone("PRAGMA journal_mode;")
        if str(mode).lower() != "wal":
            print(f"❌ journal_mode is not WAL (got {mode})")
            return 4

        print("✓ Verification passed.")
        return 0
    finally:
        db.close()


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="buildtrack-migrate", description="SQLite migration runner for buildtrack")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser):
        sp.add_argument("--db", type=Path, default=DB_PATH, help=f"Path to SQLite DB (default: {DB_PATH})")
        sp.add_argument(
            "--migrations-dir",
            type=Path,
            default=MIGRATIONS_DIR,
            help=f"Migrations directory (default: {MIGRATIONS_DIR})",
        )

    s_up = sub.add_parser("up", help="Run pending migrations")
    add_common(s_up)
    s_up.add_argument("--strict", action="store_true", help="Fail when an applied migration was edited")

    s_rebuild = sub.add_parser("rebuild", help="Drop and recreate DB from migrations")
    add_common(s_rebuild)

    s_status = sub.add_parser("status", help="Show applied and pending migrations")
    add_common(s_status)

    s_verify = sub.add_parser("verify", help="Lightweight structural verification")
    s_verify.add_argument("--db", type=Path, default=DB_PATH, help=f"Path to SQLite DB (default: {DB_PATH})")

    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    ns = parse_args(sys.argv[1:] if argv is None else argv)
    if ns.cmd == "status":
        return cmd_status(ns.db, ns.migrations_dir)
    if ns.cmd == "up":
        return cmd_up(ns.db, ns.migrations_dir, ns.strict)
    if ns.cmd == "rebuild":
        return cmd_rebuild(ns.db, ns.migrations_dir)
    if ns.cmd == "verify":
        return cmd_verify(ns.db)
    raise SystemExit(1)


if __name__ == "__main__":
    raise SystemExit(main())
