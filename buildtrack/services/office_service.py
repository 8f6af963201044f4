# Rev 0.2.0

"""Office hierarchy service (Rev 0.2.0)
- Offices form one forest (Kodam > Korem > Kodim > Koramil by default)
- Bounds are rebuilt through the shared NestedSetTree and persisted in one transaction
- Project scoping: an office sees its own projects and those of every descendant office
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..models.entities import Office, OfficeLevel, Project
from ..models.errors import NotFoundError, ValidationError
from ..repositories.db import Database
from ..repositories.sqlite_office_repository import SQLiteOfficeRepository
from ..repositories.sqlite_project_repository import SQLiteProjectRepository
from ..utils.config import defaults
from ..utils.logging_setup import get_logger
from .nested_set import Bounds, NestedSetTree


class OfficeTree(NestedSetTree[Office]):
    def at_level(self, level_id: int) -> List[Office]:
        return [o for o in self.walk() if o.level_id == level_id]


class OfficeService:
    def __init__(
        self,
        db: Database,
        offices: SQLiteOfficeRepository,
        projects: SQLiteProjectRepository,
        settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._log = get_logger("OfficeService")
        self._db = db
        self._offices = offices
        self._projects = projects
        self._settings = settings or defaults()

    # -------------------------
    # Levels
    # -------------------------
    def seed_default_levels(self) -> List[OfficeLevel]:
        """Insert the configured default levels that are missing. Returns all levels."""
        cfg = self._settings["offices"]
        existing = {lvl.level for lvl in self._offices.list_levels()}
        default_level = int(cfg.get("default_user_level", 0))
        with self._db.transaction():
            for key, level_cfg in sorted(cfg["default_hierarchy"].items(), key=lambda kv: int(kv[0])):
                level = int(key)
                if level in existing:
                    continue
                self._offices.create_level(
                    level=level,
                    name=level_cfg["name"],
                    description=level_cfg.get("description"),
                    is_default_user_level=level == default_level,
                )
        levels = self._offices.list_levels()
        self._log.info("office levels: %s", ", ".join(lvl.name for lvl in levels))
        return levels

    def create_level(self, level: int, name: str, description: Optional[str] = None) -> int:
        if not name or not name.strip():
            raise ValidationError("level name cannot be empty")
        if any(lvl.level == level for lvl in self._offices.list_levels()):
            raise ValidationError(f"office level {level} already exists")
        return self._offices.create_level(level=level, name=name.strip(), description=description)

    # -------------------------
    # Offices
    # -------------------------
    def create_office(
        self,
        name: str,
        *,
        parent_id: Optional[int] = None,
        level_id: Optional[int] = None,
        code: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Insert an office and rebuild bounds so queries stay valid."""
        if not name or not name.strip():
            raise ValidationError("office name cannot be empty")
        if parent_id is not None and self._offices.get_office(parent_id) is None:
            raise NotFoundError(f"parent office {parent_id} not found")
        with self._db.transaction():
            office_id = self._offices.create_office(
                name=name.strip(), parent_id=parent_id, level_id=level_id, code=code, notes=notes
            )
            self.rebuild_office_tree()
        return office_id

    def load_tree(self) -> OfficeTree:
        sep = self._settings["hierarchy"]["path_separator"]
        return OfficeTree(self._offices.list_offices(), separator=sep)

    def rebuild_office_tree(self) -> Bounds:
        with self._db.transaction():
            tree = self.load_tree()
            bounds = tree.rebuild()
            self._offices.update_bounds(bounds)
        self._log.info("rebuilt office tree (%d offices)", len(bounds))
        return bounds

    def office_path(self, office_id: int) -> str:
        """Names from the top office down, e.g. 'Kodam V > Korem 084 > Kodim 0830'."""
        return self.load_tree().hierarchy_path(office_id)

    def descendant_ids(self, office_id: int) -> List[int]:
        """The office itself followed by every office under it."""
        tree = self.load_tree()
        return [office_id] + [o.id for o in tree.descendants(office_id)]

    def projects_under_office(self, office_id: int) -> List[Project]:
        return self._projects.list_projects(office_ids=self.descendant_ids(office_id))
