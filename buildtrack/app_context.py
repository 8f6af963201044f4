# buildtrack application context
# Rev 0.2.0

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .repositories.db import Database
from .repositories.sqlite_office_repository import SQLiteOfficeRepository
from .repositories.sqlite_progress_repository import SQLiteProgressRepository
from .repositories.sqlite_project_repository import SQLiteProjectRepository
from .repositories.sqlite_task_repository import SQLiteTaskRepository
from .services.dashboard_service import DashboardService
from .services.hierarchy_importer import HierarchyImporter
from .services.office_service import OfficeService
from .services.progress_service import ProgressService
from .services.weight_service import WeightService
from .utils.config import load_settings
from .utils.logging_setup import get_logger
from .utils.paths import DB_PATH


@dataclass
class AppContext:
    """Central container for shared app resources."""
    db_path: Path
    db: Database
    settings: Dict[str, Any]
    projects: SQLiteProjectRepository
    tasks: SQLiteTaskRepository
    progress: SQLiteProgressRepository
    offices: SQLiteOfficeRepository
    progress_service: ProgressService
    weight_service: WeightService
    importer: HierarchyImporter
    office_service: OfficeService
    dashboard: DashboardService

    @classmethod
    def create(
        cls,
        db_path: Path | str = DB_PATH,
        settings: Optional[Dict[str, Any]] = None,
        *,
        migrate: bool = True,
    ) -> "AppContext":
        """Open the DB, apply pending migrations, and wire repositories into services."""
        log = get_logger("AppContext")
        settings = settings if settings is not None else load_settings()
        db = Database(db_path)
        if migrate:
            db.run_migrations()
        projects = SQLiteProjectRepository(db)
        tasks = SQLiteTaskRepository(db)
        progress = SQLiteProgressRepository(db)
        offices = SQLiteOfficeRepository(db)
        progress_service = ProgressService(db, tasks, projects, progress, settings=settings)
        ctx = cls(
            db_path=Path(db_path),
            db=db,
            settings=settings,
            projects=projects,
            tasks=tasks,
            progress=progress,
            offices=offices,
            progress_service=progress_service,
            weight_service=WeightService(db, tasks),
            importer=HierarchyImporter(db, tasks, projects, progress_service),
            office_service=OfficeService(db, offices, projects, settings),
            dashboard=DashboardService(projects, progress, progress_service, settings),
        )
        log.info("AppContext initialized with DB=%s", db_path)
        return ctx

    def close(self) -> None:
        self.db.close()
