# Rev 0.2.0

"""Pytest fixtures for buildtrack (Rev 0.2.0)"""
from __future__ import annotations
from datetime import date, timedelta
from pathlib import Path

import pytest

from buildtrack.app_context import AppContext
from buildtrack.repositories.db import Database
from buildtrack.utils.config import defaults


@pytest.fixture()
def db(tmp_path: Path):
    database = Database(path=str(tmp_path / "test.db"))
    try:
        database.run_migrations()
        yield database
    finally:
        database.close()


@pytest.fixture()
def settings():
    return defaults()


@pytest.fixture()
def ctx(tmp_path: Path, settings):
    context = AppContext.create(tmp_path / "app.db", settings=settings)
    try:
        yield context
    finally:
        context.close()


@pytest.fixture()
def today() -> date:
    return date.today()


@pytest.fixture()
def project_id(ctx, today):
    """Project started ten days ago, ending in twenty."""
    return ctx.projects.create_project(
        name="Renovasi Makoramil",
        start_date=today - timedelta(days=10),
        end_date=today + timedelta(days=20),
    )


@pytest.fixture()
def tasks(ctx, project_id):
    """
    Persiapan (internal, weight 0)
      ├─ Pembersihan   w=30
      └─ Pengukuran    w=70
    Atap               w=0 (leaf)
    """
    ids = ctx.importer.import_tasks(
        project_id,
        [
            {
                "name": "Persiapan",
                "children": [
                    {"name": "Pembersihan", "weight": 30, "volume": 120, "unit": "m2", "unit_price": 15000},
                    {"name": "Pengukuran", "weight": 70, "volume": 1, "unit": "ls", "unit_price": 2500000},
                ],
            },
            {"name": "Atap", "weight": 0},
        ],
    )
    return dict(zip(("persiapan", "pembersihan", "pengukuran", "atap"), ids))
