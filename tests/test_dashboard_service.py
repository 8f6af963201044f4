# tests/test_dashboard_service.py
from __future__ import annotations

from datetime import date, timedelta

import pytest

from buildtrack.services.dashboard_service import bucket_for, planned_percentage, sample_interval

START = date(2025, 11, 1)


@pytest.mark.parametrize(
    "as_of, expected",
    [
        (START - timedelta(days=3), 0.0),
        (START, 0.0),
        (START + timedelta(days=5), 50.0),
        (START + timedelta(days=10), 100.0),
        (START + timedelta(days=40), 100.0),
    ],
)
def test_planned_percentage(as_of, expected):
    assert planned_percentage(START, START + timedelta(days=10), as_of) == pytest.approx(expected)


def test_planned_percentage_empty_window():
    assert planned_percentage(START, START, START) == 0.0


@pytest.mark.parametrize("days, step", [(10, 1), (30, 1), (31, 7), (90, 7), (91, 14), (400, 14)])
def test_sample_interval(days, step):
    assert sample_interval(days) == step


@pytest.mark.parametrize("pct, bucket", [(0, "0-25"), (24.99, "0-25"), (25, "25-50"), (74.9, "50-75"), (100, "75-100")])
def test_bucket_for(pct, bucket):
    assert bucket_for(pct) == bucket


def test_s_curve_daily_samples(ctx, project_id, tasks, today):
    ctx.progress_service.submit_progress(tasks["pembersihan"], project_id, 3, today - timedelta(days=5), 100)
    series = ctx.dashboard.s_curve(project_id)

    # 30-day window, daily samples, both ends included
    assert len(series) == 31
    assert series.dates[0] == today - timedelta(days=10)
    assert series.dates[-1] == today + timedelta(days=20)
    assert series.planned[0] == 0.0 and series.planned[-1] == 100.0
    assert series.actual[0] == 0.0
    assert series.actual[5] == pytest.approx(30.0)
    assert series.delay_days == 0


def test_s_curve_weekly_samples_end_on_end_date(ctx):
    pid = ctx.projects.create_project(name="Panjang", start_date=START, end_date=START + timedelta(days=60))
    series = ctx.dashboard.s_curve(pid)
    assert series.dates[:2] == [START, START + timedelta(days=7)]
    assert series.dates[-1] == START + timedelta(days=60)
    assert series.planned[-1] == 100.0
    assert len(series) == 10


def test_s_curve_baseline_from_settings(ctx, settings):
    settings["dashboard"]["baseline_start_date"] = "2025-10-27"
    pid = ctx.projects.create_project(name="Terlambat", start_date=START, end_date=START + timedelta(days=10))
    series = ctx.dashboard.s_curve(pid)
    assert series.dates[0] == date(2025, 10, 27)
    assert series.delay_days == 5
    assert series.actual[:5] == [0.0] * 5


def test_s_curve_falls_back_to_progress_dates(ctx, today):
    pid = ctx.projects.create_project(name="Tanpa Jadwal")
    (leaf,) = ctx.importer.import_tasks(pid, [{"name": "Pagar", "weight": 1}])
    ctx.progress_service.submit_progress(leaf, pid, 1, today - timedelta(days=4), 20)
    ctx.progress_service.submit_progress(leaf, pid, 1, today, 60)

    series = ctx.dashboard.s_curve(pid)
    assert series.dates[0] == today - timedelta(days=4)
    assert series.dates[-1] == today
    assert series.actual[0] == 20.0
    assert series.actual[-1] == 60.0


def test_s_curve_empty_without_data(ctx):
    pid = ctx.projects.create_project(name="Kosong")
    assert len(ctx.dashboard.s_curve(pid)) == 0


def test_portfolio_figures(ctx, project_id, tasks, today):
    idle = ctx.projects.create_project(name="Diam", start_date=today - timedelta(days=10), end_date=today + timedelta(days=10))
    ctx.importer.import_tasks(idle, [{"name": "A", "weight": 1}])
    ctx.progress_service.submit_progress(tasks["pembersihan"], project_id, 3, today, 100)
    ctx.progress_service.submit_progress(tasks["pengukuran"], project_id, 3, today, 100)

    ids = [project_id, idle]
    assert ctx.dashboard.overall_progress(ids, today) == pytest.approx(50.0)
    assert ctx.dashboard.progress_distribution(ids, today) == {"0-25": 1, "25-50": 0, "50-75": 0, "75-100": 1}
    assert ctx.dashboard.active_project_count(ids) == 1
    assert ctx.dashboard.schedule_status(project_id, today) == "on_track"
    assert ctx.dashboard.schedule_status(idle, today) == "behind"
    assert ctx.dashboard.schedule_counts(ids, today) == {"on_track": 1, "behind": 1}


def test_overall_progress_without_projects(ctx):
    assert ctx.dashboard.overall_progress([]) == 0.0
    assert ctx.dashboard.active_project_count([]) == 0


def test_average_delay_days(ctx, settings):
    settings["dashboard"]["baseline_start_date"] = "2025-11-01"
    ctx.projects.create_project(name="Tepat", start_date=START)
    late = ctx.projects.create_project(name="Telat", start_date=START + timedelta(days=6))
    later = ctx.projects.create_project(name="Telat Lagi", start_date=START + timedelta(days=10))
    assert ctx.dashboard.average_delay_days() == pytest.approx(8.0)
    assert ctx.dashboard.average_delay_days([late]) == pytest.approx(6.0)
    assert ctx.dashboard.average_delay_days([later]) == pytest.approx(10.0)


# --- Portfolio S-curve, rankings, idle tasks --------------------------------

def test_aggregated_s_curve_averages_projects(ctx, project_id, tasks, today):
    late = ctx.projects.create_project(name="Menyusul", start_date=today, end_date=today + timedelta(days=20))
    (leaf,) = ctx.importer.import_tasks(late, [{"name": "Pagar", "weight": 1}])
    ctx.progress_service.submit_progress(tasks["pembersihan"], project_id, 3, today - timedelta(days=5), 100)
    ctx.progress_service.submit_progress(leaf, late, 3, today, 50)

    series = ctx.dashboard.aggregated_s_curve([project_id, late])

    assert series.project_count == 2
    assert len(series) == 31
    assert series.dates[0] == today - timedelta(days=10)
    assert series.dates[-1] == today + timedelta(days=20)
    assert series.planned[0] == 0.0 and series.planned[-1] == 100.0
    # second project counts as 0 before its own start
    assert series.actual[5] == pytest.approx(15.0)
    assert series.actual[10] == pytest.approx(40.0)
    assert series.actual[-1] == pytest.approx(40.0)
    assert series.delay_days == 0


def test_aggregated_s_curve_window_from_settings(ctx, settings):
    settings["dashboard"]["baseline_start_date"] = "2025-11-01"
    settings["dashboard"]["baseline_end_date"] = "2025-12-31"
    ctx.projects.create_project(name="Gudang", start_date=START + timedelta(days=3), end_date=START + timedelta(days=20))

    series = ctx.dashboard.aggregated_s_curve()
    assert series.dates[:2] == [START, START + timedelta(days=7)]
    assert series.dates[-1] == date(2025, 12, 31)
    assert series.planned[-1] == 100.0
    assert set(series.actual) == {0.0}


def test_aggregated_s_curve_empty(ctx):
    assert len(ctx.dashboard.aggregated_s_curve([])) == 0
    assert ctx.dashboard.aggregated_s_curve([]).project_count == 0
    ctx.projects.create_project(name="Tanpa Jadwal")
    series = ctx.dashboard.aggregated_s_curve()
    assert len(series) == 0 and series.project_count == 1


def test_top_projects(ctx, today):
    created = {}
    for name, pct in (("Rendah", 20), ("Tinggi", 80), ("Sedang", 50), ("Diam", None)):
        pid = ctx.projects.create_project(name=name)
        (leaf,) = ctx.importer.import_tasks(pid, [{"name": "Pekerjaan", "weight": 1}])
        if pct is not None:
            ctx.progress_service.submit_progress(leaf, pid, 1, today, pct)
        created[name] = pid

    ranked = ctx.dashboard.top_projects(as_of=today)
    assert [(r.project.name, r.percentage) for r in ranked] == [("Tinggi", 80.0), ("Sedang", 50.0), ("Rendah", 20.0)]
    assert [r.project.id for r in ctx.dashboard.top_projects(as_of=today, limit=2)] == [created["Tinggi"], created["Sedang"]]
    assert ctx.dashboard.top_projects([created["Diam"]], as_of=today) == []


def test_tasks_without_progress_grouped_by_root(ctx, project_id, tasks, today):
    ctx.progress_service.submit_progress(tasks["pengukuran"], project_id, 3, today, 40)

    idle = ctx.dashboard.tasks_without_progress(project_id)
    assert list(idle) == ["Persiapan", "Atap"]
    (cleaning,) = idle["Persiapan"]
    assert cleaning.id == tasks["pembersihan"]
    assert cleaning.breadcrumb == "Persiapan > Pembersihan"
    assert cleaning.weight == 30
    assert cleaning.weight_share == pytest.approx(30.0)
    assert idle["Atap"][0].breadcrumb == "Atap"
    assert idle["Atap"][0].weight_share == 0.0


def test_tasks_without_progress_in_window(ctx, project_id, tasks, today):
    ctx.progress_service.submit_progress(tasks["pengukuran"], project_id, 3, today, 40)

    # backfilled days count as progress
    recent = ctx.dashboard.tasks_without_progress(project_id, today - timedelta(days=3), today - timedelta(days=1))
    assert [t.name for t in recent["Persiapan"]] == ["Pembersihan"]

    later = ctx.dashboard.tasks_without_progress(project_id, today + timedelta(days=1))
    assert [t.name for t in later["Persiapan"]] == ["Pembersihan", "Pengukuran"]
    assert later["Persiapan"][1].weight_share == pytest.approx(70.0)
