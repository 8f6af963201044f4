# tests/test_backfill.py
from __future__ import annotations

from datetime import date, timedelta

import pytest

from buildtrack.models.entities import ProgressEntry
from buildtrack.services.backfill import BackfillEngine, s_curve

START = date(2025, 11, 1)


def _report(day: date, pct: float = 50.0) -> ProgressEntry:
    return ProgressEntry(task_id=7, project_id=1, reporter_id=3, date=day, percentage=pct, notes="laporan")


@pytest.mark.parametrize(
    "x, expected",
    [(0.0, 0.0), (0.25, 0.125), (0.5, 0.5), (0.75, 0.875), (1.0, 1.0)],
)
def test_s_curve_points(x, expected):
    assert s_curve(x) == pytest.approx(expected)


def test_s_curve_is_monotonic():
    values = [s_curve(i / 100) for i in range(101)]
    assert values == sorted(values)


def test_first_report_gets_daily_history():
    engine = BackfillEngine()
    report = _report(START + timedelta(days=5))
    batch = engine.plan(report, has_history=False, start_date=START)

    assert len(batch) == 6
    synthetic, real = batch[:-1], batch[-1]
    assert real is report
    assert [e.date for e in synthetic] == [START + timedelta(days=i) for i in range(5)]
    assert all(e.is_synthetic and e.notes is None for e in synthetic)
    assert all(e.reporter_id == 3 and e.task_id == 7 for e in synthetic)
    assert synthetic[0].percentage == 0.0
    assert synthetic[0].percentage < 5


def test_synthetic_values_follow_curve():
    engine = BackfillEngine()
    report = _report(START + timedelta(days=4), pct=80.0)
    pcts = [e.percentage for e in engine.synthesize(report, START)]
    # x = 0, .25, .5, .75
    assert pcts == [0.0, 10.0, 40.0, 70.0]
    assert pcts == sorted(pcts)
    assert all(p <= 80.0 for p in pcts)


def test_values_rounded_to_two_decimals():
    engine = BackfillEngine()
    report = _report(START + timedelta(days=3), pct=33.33)
    for e in engine.synthesize(report, START):
        assert e.percentage == round(e.percentage, 2)


@pytest.mark.parametrize(
    "has_history, start_date, report_day",
    [
        (True, START, START + timedelta(days=5)),
        (False, None, START + timedelta(days=5)),
        (False, START, START),
        (False, START, START - timedelta(days=2)),
    ],
)
def test_no_backfill_cases(has_history, start_date, report_day):
    engine = BackfillEngine()
    report = _report(report_day)
    batch = engine.plan(report, has_history=has_history, start_date=start_date)
    assert batch == [report]


def test_decision_reports_day_count():
    decision = BackfillEngine().decide(has_history=False, start_date=START, report_date=START + timedelta(days=9))
    assert decision.backfill
    assert decision.days == 9
