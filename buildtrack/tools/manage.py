# File: buildtrack/tools/manage.py
# Usage examples:
#   buildtrack create-project --name "Gedung Makodim" --start 2025-11-01 --end 2026-03-31
#   buildtrack import-tasks 1 rab.yaml
#   buildtrack export-tasks 1 --out rab.yaml
#   buildtrack submit --project 1 --task 7 --reporter 3 --date 2025-11-20 --pct 40
#   buildtrack completion 1 --as-of 2025-11-30
#   buildtrack hierarchy 1
#
# Notes:
# - DB path defaults to env BUILDTRACK_DB or the XDG data dir; migrations run on open
# - Domain errors print "✗ <message>" and exit 1

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from ..app_context import AppContext
from ..models.entities import HierarchyNode
from ..models.errors import BuildtrackError
from ..services.hierarchy_importer import dump_hierarchy
from ..services.progress_service import as_date
from ..utils.logging_setup import get_logger, setup_logging
from ..utils.paths import DB_PATH

_log = get_logger("manage")


def _print_tree(nodes: List[HierarchyNode], depth: int = 0) -> None:
    for node in nodes:
        t = node.task
        print(f"{'  ' * depth}- [{t.id}] {t.name}  {node.percentage:6.2f}%  (w={t.weight:g})")
        _print_tree(node.children, depth + 1)


def cmd_create_project(ctx: AppContext, ns: argparse.Namespace) -> int:
    start = as_date(ns.start, "start") if ns.start else None
    end = as_date(ns.end, "end") if ns.end else None
    project_id = ctx.projects.create_project(
        name=ns.name, description=ns.description, office_id=ns.office, start_date=start, end_date=end
    )
    print(f"✓ Created project {project_id}: {ns.name}")
    return 0


def cmd_import_tasks(ctx: AppContext, ns: argparse.Namespace) -> int:
    created = ctx.importer.import_file(ns.project, ns.file)
    print(f"✓ Imported {len(created)} tasks into project {ns.project}")
    return 0


def cmd_export_tasks(ctx: AppContext, ns: argparse.Namespace) -> int:
    text = dump_hierarchy(ctx.importer.export_tasks(ns.project))
    if ns.out is None:
        print(text, end="")
        return 0
    ns.out.write_text(text, encoding="utf-8")
    print(f"✓ Exported project {ns.project} tasks to {ns.out}")
    return 0


def cmd_clone_tasks(ctx: AppContext, ns: argparse.Namespace) -> int:
    created = ctx.importer.clone_project_tasks(ns.source, ns.target)
    print(f"✓ Cloned {len(created)} tasks from project {ns.source} into {ns.target}")
    return 0


def cmd_rebuild_tree(ctx: AppContext, ns: argparse.Namespace) -> int:
    bounds = ctx.progress_service.rebuild_tree(ns.project)
    print(f"✓ Rebuilt {len(bounds)} task bounds for project {ns.project}")
    return 0


def cmd_normalize_weights(ctx: AppContext, ns: argparse.Namespace) -> int:
    report = ctx.weight_service.normalize_project_weights(ns.project)
    print(
        f"✓ Weights normalized: {report.old_sum:.4f} → {report.new_sum:.2f} "
        f"({report.updated_count} leaves updated)"
    )
    return 0


def cmd_submit(ctx: AppContext, ns: argparse.Namespace) -> int:
    entry = ctx.progress_service.submit_progress(
        task_id=ns.task,
        project_id=ns.project,
        reporter_id=ns.reporter,
        date=ns.date,
        percentage=ns.pct,
        notes=ns.notes,
    )
    print(f"✓ Task {entry.task_id}: {entry.percentage:.2f}% on {entry.date.isoformat()}")
    return 0


def cmd_completion(ctx: AppContext, ns: argparse.Namespace) -> int:
    result = ctx.progress_service.get_project_completion(ns.project, ns.as_of)
    print(f"Project {ns.project}: {result.percentage:.2f}%")
    print(f"  leaves complete: {result.completed_leaf_count}/{result.total_leaf_count}")
    return 0


def cmd_hierarchy(ctx: AppContext, ns: argparse.Namespace) -> int:
    _print_tree(ctx.progress_service.get_task_hierarchy(ns.project, ns.as_of))
    return 0


def cmd_s_curve(ctx: AppContext, ns: argparse.Namespace) -> int:
    series = ctx.dashboard.s_curve(ns.project)
    if not series.dates:
        print("ℹ️  No dates or progress to plot.")
        return 0
    for day, planned, actual in zip(series.dates, series.planned, series.actual):
        print(f"{day.isoformat()}  planned {planned:6.2f}%  actual {actual:6.2f}%")
    return 0


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="buildtrack", description="Hierarchical progress tracking for projects")
    p.add_argument("--db", type=Path, default=DB_PATH, help=f"Path to SQLite DB (default: {DB_PATH})")
    p.add_argument("-v", "--verbose", action="store_true", help="Echo log records to stdout")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("create-project", help="Create a project")
    s.add_argument("--name", required=True)
    s.add_argument("--description")
    s.add_argument("--office", type=int)
    s.add_argument("--start", help="Start date (YYYY-MM-DD)")
    s.add_argument("--end", help="End date (YYYY-MM-DD)")
    s.set_defaults(func=cmd_create_project)

    s = sub.add_parser("import-tasks", help="Import a task hierarchy from YAML/JSON")
    s.add_argument("project", type=int)
    s.add_argument("file", type=Path)
    s.set_defaults(func=cmd_import_tasks)

    s = sub.add_parser("export-tasks", help="Write a project's task tree as YAML")
    s.add_argument("project", type=int)
    s.add_argument("--out", type=Path, help="Output file (default: stdout)")
    s.set_defaults(func=cmd_export_tasks)

    s = sub.add_parser("clone-tasks", help="Copy one project's task tree into another")
    s.add_argument("source", type=int)
    s.add_argument("target", type=int)
    s.set_defaults(func=cmd_clone_tasks)

    s = sub.add_parser("rebuild-tree", help="Recompute nested-set bounds for a project")
    s.add_argument("project", type=int)
    s.set_defaults(func=cmd_rebuild_tree)

    s = sub.add_parser("normalize-weights", help="Scale leaf weights to sum to 100")
    s.add_argument("project", type=int)
    s.set_defaults(func=cmd_normalize_weights)

    s = sub.add_parser("submit", help="Submit progress for a leaf task")
    s.add_argument("--project", type=int, required=True)
    s.add_argument("--task", type=int, required=True)
    s.add_argument("--reporter", type=int, required=True)
    s.add_argument("--date", required=True, help="Report date (YYYY-MM-DD)")
    s.add_argument("--pct", type=float, required=True)
    s.add_argument("--notes")
    s.set_defaults(func=cmd_submit)

    s = sub.add_parser("completion", help="Weighted completion of a project")
    s.add_argument("project", type=int)
    s.add_argument("--as-of", dest="as_of")
    s.set_defaults(func=cmd_completion)

    s = sub.add_parser("hierarchy", help="Task tree with rolled-up percentages")
    s.add_argument("project", type=int)
    s.add_argument("--as-of", dest="as_of")
    s.set_defaults(func=cmd_hierarchy)

    s = sub.add_parser("s-curve", help="Planned vs actual progress series")
    s.add_argument("project", type=int)
    s.set_defaults(func=cmd_s_curve)

    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    ns = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(console=ns.verbose)
    ctx = AppContext.create(ns.db)
    try:
        return ns.func(ctx, ns)
    except BuildtrackError as exc:
        _log.warning("%s failed: %s", ns.cmd, exc)
        print(f"✗ {exc}", file=sys.stderr)
        return 1
    finally:
        ctx.close()


if __name__ == "__main__":
    raise SystemExit(main())
