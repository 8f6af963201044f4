# Rev 0.2.0

"""Backfill of a task's first progress report (Rev 0.2.0)

The first report ever recorded for a leaf task gets a dense daily history from
the project's start date up to the day before the report, following a
quadratic ease-in/ease-out curve scaled to the reported percentage:

    f(x) = 2x²            x <= 0.5
    f(x) = 1 - 2(1 - x)²  x >  0.5

with x = i / N for day offset i in 0..N-1 and N = days(start, report).
The real entry itself is never touched by the curve.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from ..models.entities import ProgressEntry
from ..utils.logging_setup import get_logger

_log = get_logger("backfill")


def s_curve(x: float) -> float:
    """Ease-in/ease-out on [0, 1]; f(0)=0, f(0.5)=0.5, f(1)=1, monotonic."""
    if x <= 0.5:
        return 2 * x * x
    return 1 - 2 * (1 - x) ** 2


@dataclass(frozen=True)
class BackfillDecision:
    backfill: bool
    reason: str
    days: int = 0


class BackfillEngine:
    def __init__(self, digits: int = 2) -> None:
        self.digits = digits

    def decide(self, *, has_history: bool, start_date: Optional[date], report_date: date) -> BackfillDecision:
        if has_history:
            return BackfillDecision(False, "task already has history")
        if start_date is None:
            return BackfillDecision(False, "project has no start date")
        days = (report_date - start_date).days
        if days <= 0:
            return BackfillDecision(False, "report is not after project start")
        return BackfillDecision(True, "first report", days)

    def synthesize(self, report: ProgressEntry, start_date: date) -> List[ProgressEntry]:
        """Synthetic entries for start_date .. report.date - 1 day (empty when N <= 0)."""
        total = (report.date - start_date).days
        entries: List[ProgressEntry] = []
        for i in range(total):
            entries.append(
                ProgressEntry(
                    task_id=report.task_id,
                    project_id=report.project_id,
                    reporter_id=report.reporter_id,
                    date=start_date + timedelta(days=i),
                    percentage=round(report.percentage * s_curve(i / total), self.digits),
                    notes=None,
                    is_synthetic=True,
                )
            )
        return entries

    def plan(
        self, report: ProgressEntry, *, has_history: bool, start_date: Optional[date]
    ) -> List[ProgressEntry]:
        """Synthetic entries followed by the real one, in date order."""
        decision = self.decide(has_history=has_history, start_date=start_date, report_date=report.date)
        if not decision.backfill or start_date is None:
            _log.debug("no backfill for task %s: %s", report.task_id, decision.reason)
            return [report]
        synthetic = self.synthesize(report, start_date)
        _log.info(
            "backfilling task %s with %d synthetic days from %s", report.task_id, len(synthetic), start_date
        )
        return synthetic + [report]
