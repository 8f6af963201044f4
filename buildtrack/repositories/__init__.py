from .db import Database
from .progress_store import ProgressStore
from .sqlite_office_repository import SQLiteOfficeRepository
from .sqlite_progress_repository import SQLiteProgressRepository
from .sqlite_project_repository import SQLiteProjectRepository
from .sqlite_task_repository import SQLiteTaskRepository

__all__ = [
    "Database",
    "ProgressStore",
    "SQLiteOfficeRepository",
    "SQLiteProgressRepository",
    "SQLiteProjectRepository",
    "SQLiteTaskRepository",
]
