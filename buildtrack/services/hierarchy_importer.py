# Rev 0.1.0
"""
Seeding a project's task hierarchy.

A hierarchy document is a list of task mappings, each optionally carrying
nested `children`:

    - name: Pekerjaan Persiapan
      children:
        - {name: Pembersihan lokasi, volume: 120, unit: m2, unit_price: 15000, weight: 2.5}
        - {name: Direksi keet, volume: 1, unit: ls, unit_price: 3500000, weight: 1.5}

Files may be YAML or JSON (JSON parses as YAML).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from ..models.errors import NotFoundError, ValidationError
from ..repositories.db import Database
from ..repositories.sqlite_project_repository import SQLiteProjectRepository
from ..repositories.sqlite_task_repository import SQLiteTaskRepository, check_task_numbers
from ..utils.logging_setup import get_logger
from .progress_service import ProgressService

_FIELDS = ("volume", "unit_price", "weight")


def load_hierarchy_file(path: Path | str) -> List[Dict[str, Any]]:
    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list):
        raise ValidationError(f"{path}: expected a list of tasks")
    return data


def dump_hierarchy(nodes: Sequence[Dict[str, Any]]) -> str:
    return yaml.dump({"tasks": list(nodes)}, sort_keys=False, allow_unicode=True)


class HierarchyImporter:
    def __init__(
        self,
        db: Database,
        tasks: SQLiteTaskRepository,
        projects: SQLiteProjectRepository,
        progress_service: ProgressService,
    ) -> None:
        self._log = get_logger("HierarchyImporter")
        self._db = db
        self._tasks = tasks
        self._projects = projects
        self._service = progress_service

    def _validate(self, node: Any, where: str) -> Dict[str, Any]:
        if not isinstance(node, dict):
            raise ValidationError(f"{where}: expected a mapping, got {type(node).__name__}")
        name = node.get("name")
        if not name or not isinstance(name, str):
            raise ValidationError(f"{where}: task name must be a non-empty string")
        for key in _FIELDS:
            value = node.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{where}: {key} must be a number")
        try:
            check_task_numbers(**{key: node.get(key, 0) for key in _FIELDS})
        except ValidationError as exc:
            raise ValidationError(f"{where}: {exc}") from None
        children = node.get("children") or []
        if not isinstance(children, list):
            raise ValidationError(f"{where}: children must be a list")
        return node

    def import_tasks(self, project_id: int, nodes: Sequence[Dict[str, Any]]) -> List[int]:
        """Insert the nested structure under the project's roots, then rebuild bounds."""
        if self._projects.get_project(project_id) is None:
            raise NotFoundError(f"project {project_id} not found")
        created: List[int] = []
        with self._service.tree_lock(project_id), self._db.transaction():
            stack: List[tuple[Dict[str, Any], Optional[int], str]] = [
                (n, None, f"tasks[{i}]") for i, n in reversed(list(enumerate(nodes)))
            ]
            while stack:
                node, parent_id, where = stack.pop()
                node = self._validate(node, where)
                task_id = self._tasks.create_task(
                    project_id=project_id,
                    parent_id=parent_id,
                    name=node["name"],
                    weight=node.get("weight", 0),
                    volume=node.get("volume", 0),
                    unit=node.get("unit"),
                    unit_price=node.get("unit_price", 0),
                )
                created.append(task_id)
                kids = node.get("children") or []
                for i, child in reversed(list(enumerate(kids))):
                    stack.append((child, task_id, f"{where}.children[{i}]"))
            self._service.rebuild_tree(project_id)
        self._log.info("imported %d tasks into project %s", len(created), project_id)
        return created

    def import_file(self, project_id: int, path: Path | str) -> List[int]:
        return self.import_tasks(project_id, load_hierarchy_file(path))

    def export_tasks(self, project_id: int) -> List[Dict[str, Any]]:
        tree = self._service.load_tree(project_id)

        def _node(task) -> Dict[str, Any]:
            out: Dict[str, Any] = {"name": task.name}
            if task.unit is not None:
                out["unit"] = task.unit
            for key in _FIELDS:
                out[key] = getattr(task, key)
            kids = tree.children(task.id)
            if kids:
                out["children"] = [_node(k) for k in kids]
            return out

        return [_node(r) for r in tree.roots()]

    def clone_project_tasks(self, source_project_id: int, target_project_id: int) -> List[int]:
        """Copy a project's task tree (template) into another project."""
        return self.import_tasks(target_project_id, self.export_tasks(source_project_id))
