# Rev 0.2.0

"""Dashboard statistics (Rev 0.2.0)
- Planned progress is linear over the project window
- Actual progress is the weighted project completion as of each sample date
- All figures are recomputed per call from the progress store
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.entities import Project
from ..models.types import ScheduleStatus
from ..repositories.progress_store import ProgressStore
from ..repositories.sqlite_project_repository import SQLiteProjectRepository
from ..utils.config import defaults
from ..utils.logging_setup import get_logger
from .progress_service import ProgressService, as_date

BUCKETS = ("0-25", "25-50", "50-75", "75-100")


@dataclass
class SCurveSeries:
    dates: List[date] = field(default_factory=list)
    planned: List[float] = field(default_factory=list)
    actual: List[float] = field(default_factory=list)
    delay_days: int = 0
    project_count: int = 1

    def __len__(self) -> int:
        return len(self.dates)


@dataclass(frozen=True)
class ProjectRanking:
    project: Project
    percentage: float


@dataclass(frozen=True)
class IdleTask:
    """A leaf with no progress entry inside the queried window."""
    id: int
    name: str
    weight: float
    breadcrumb: str
    weight_share: float


def planned_percentage(start: date, end: date, as_of: date) -> float:
    """Share of the window [start, end] elapsed at as_of, clamped to [0, 100]."""
    total = (end - start).days
    if total <= 0:
        return 0.0
    elapsed = (as_of - start).days
    return max(0.0, min(elapsed / total * 100, 100.0))


def sample_interval(total_days: int) -> int:
    if total_days <= 30:
        return 1
    if total_days <= 90:
        return 7
    return 14


def bucket_for(pct: float) -> str:
    if pct < 25:
        return "0-25"
    if pct < 50:
        return "25-50"
    if pct < 75:
        return "50-75"
    return "75-100"


class DashboardService:
    planned_percentage = staticmethod(planned_percentage)

    def __init__(
        self,
        projects: SQLiteProjectRepository,
        progress: ProgressStore,
        progress_service: ProgressService,
        settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._log = get_logger("DashboardService")
        self._projects = projects
        self._progress = progress
        self._service = progress_service
        self._settings = settings or defaults()

    # -------------------------
    # Helpers
    # -------------------------
    def _baseline_start(self, project: Project) -> Optional[date]:
        configured = self._settings["dashboard"].get("baseline_start_date")
        if configured:
            return as_date(configured, "dashboard.baseline_start_date")
        return project.start_date

    def _window(self, project: Project) -> Optional[Tuple[date, date, date]]:
        """(baseline start, actual start, end) for the chart, or None when nothing to plot."""
        if project.start_date and project.end_date:
            baseline = self._baseline_start(project) or project.start_date
            return baseline, project.start_date, project.end_date
        span = self._progress.project_date_range(project.id)
        if span is None:
            return None
        return span[0], span[0], span[1]

    def _completion(self, project_id: int, as_of: date) -> float:
        return self._service.get_project_completion(project_id, as_of).percentage

    def _projects_for(self, project_ids: Optional[Iterable[int]]) -> List[Project]:
        if project_ids is None:
            return self._projects.list_projects()
        found = (self._projects.get_project(pid) for pid in project_ids)
        return [p for p in found if p is not None]

    # -------------------------
    # Single project
    # -------------------------
    def s_curve(self, project_id: int) -> SCurveSeries:
        project = self._service.get_project(project_id)
        window = self._window(project)
        if window is None:
            return SCurveSeries()
        baseline, actual_start, end = window
        total = (end - baseline).days
        if total <= 0:
            return SCurveSeries()

        aggregator = self._service.aggregator(project_id)
        series = SCurveSeries(delay_days=max(0, (actual_start - baseline).days))

        def sample(day: date, planned: float) -> None:
            series.dates.append(day)
            series.planned.append(round(planned, 2))
            actual = 0.0 if day < actual_start else aggregator.project_completion(day)
            series.actual.append(round(actual, 2))

        step = sample_interval(total)
        day = baseline
        while day <= end:
            sample(day, planned_percentage(baseline, end, day))
            day += timedelta(days=step)
        if series.dates[-1] < end:
            sample(end, 100.0)
        self._log.debug("s-curve for project %s: %d samples every %d day(s)", project_id, len(series), step)
        return series

    def tasks_without_progress(
        self, project_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> Dict[str, List[IdleTask]]:
        """
        Leaves with no entry in [start, end], grouped by root task name.

        Groups and their members follow tree order. Open ends are unbounded,
        so with no window this lists leaves that never got a report.
        """
        lo = as_date(start, "start") if start is not None else None
        hi = as_date(end, "end") if end is not None else None
        tree = self._service.load_tree(project_id)
        reported = self._progress.task_ids_with_progress(project_id, lo, hi)
        total_weight = tree.leaf_weight_sum()

        out: Dict[str, List[IdleTask]] = {}
        for task in tree.walk():
            if not tree.is_leaf(task.id) or task.id in reported:
                continue
            chain = tree.ancestors(task.id)
            root = chain[0] if chain else task
            share = task.weight / total_weight * 100 if total_weight > 0 else 0.0
            out.setdefault(root.name, []).append(
                IdleTask(
                    id=task.id,
                    name=task.name,
                    weight=task.weight,
                    breadcrumb=tree.hierarchy_path(task.id),
                    weight_share=round(share, 2),
                )
            )
        return out

    def schedule_status(self, project_id: int, as_of: Optional[date] = None) -> ScheduleStatus:
        day = as_date(as_of) if as_of is not None else date.today()
        project = self._service.get_project(project_id)
        planned = 0.0
        if project.start_date and project.end_date:
            planned = planned_percentage(self._baseline_start(project) or project.start_date, project.end_date, day)
        return "on_track" if self._completion(project_id, day) >= planned else "behind"

    # -------------------------
    # Portfolio
    # -------------------------
    def overall_progress(self, project_ids: Optional[Iterable[int]] = None, as_of: Optional[date] = None) -> float:
        """Unweighted mean of project completion over the given projects (all when None)."""
        day = as_date(as_of) if as_of is not None else date.today()
        projects = self._projects_for(project_ids)
        if not projects:
            return 0.0
        return sum(self._completion(p.id, day) for p in projects) / len(projects)

    def _portfolio_window(self, projects: List[Project]) -> Optional[Tuple[date, date]]:
        cfg = self._settings["dashboard"]
        start = cfg.get("baseline_start_date")
        end = cfg.get("baseline_end_date")
        starts = [p.start_date for p in projects if p.start_date]
        ends = [p.end_date for p in projects if p.end_date]
        lo = as_date(start, "dashboard.baseline_start_date") if start else min(starts, default=None)
        hi = as_date(end, "dashboard.baseline_end_date") if end else max(ends, default=None)
        if lo is None or hi is None:
            return None
        return lo, hi

    def aggregated_s_curve(self, project_ids: Optional[Iterable[int]] = None) -> SCurveSeries:
        """
        Portfolio S-curve: linear plan over one shared window, actual as the
        plain mean of project completion. A project counts as 0 until its
        own start_date.
        """
        projects = self._projects_for(project_ids)
        window = self._portfolio_window(projects) if projects else None
        if window is None:
            return SCurveSeries(project_count=len(projects))
        start, end = window
        total = (end - start).days
        if total <= 0:
            return SCurveSeries(project_count=len(projects))

        aggregators = [(p, self._service.aggregator(p.id)) for p in projects]
        series = SCurveSeries(project_count=len(projects))

        def sample(day: date, planned: float) -> None:
            values = [
                0.0 if p.start_date and day < p.start_date else agg.project_completion(day)
                for p, agg in aggregators
            ]
            series.dates.append(day)
            series.planned.append(round(planned, 2))
            series.actual.append(round(sum(values) / len(values), 2))

        step = sample_interval(total)
        day = start
        while day <= end:
            sample(day, planned_percentage(start, end, day))
            day += timedelta(days=step)
        if series.dates[-1] < end:
            sample(end, 100.0)
        self._log.debug(
            "portfolio s-curve over %d project(s): %d samples every %d day(s)", len(projects), len(series), step
        )
        return series

    def top_projects(
        self, project_ids: Optional[Iterable[int]] = None, as_of: Optional[date] = None, limit: int = 10
    ) -> List[ProjectRanking]:
        """Projects with some progress, highest completion first."""
        day = as_date(as_of) if as_of is not None else date.today()
        ranked = []
        for project in self._projects_for(project_ids):
            pct = self._completion(project.id, day)
            if pct > 0:
                ranked.append(ProjectRanking(project=project, percentage=round(pct, 2)))
        ranked.sort(key=lambda r: r.percentage, reverse=True)
        return ranked[:limit]

    def schedule_counts(
        self, project_ids: Optional[Iterable[int]] = None, as_of: Optional[date] = None
    ) -> Dict[str, int]:
        counts = {"on_track": 0, "behind": 0}
        for project in self._projects_for(project_ids):
            counts[self.schedule_status(project.id, as_of)] += 1
        return counts

    def progress_distribution(
        self, project_ids: Optional[Iterable[int]] = None, as_of: Optional[date] = None
    ) -> Dict[str, int]:
        day = as_date(as_of) if as_of is not None else date.today()
        out = {b: 0 for b in BUCKETS}
        for project in self._projects_for(project_ids):
            out[bucket_for(self._completion(project.id, day))] += 1
        return out

    def active_project_count(self, project_ids: Optional[Iterable[int]] = None) -> int:
        """Projects with at least one progress entry."""
        ids = [p.id for p in self._projects_for(project_ids)]
        return len(self._progress.projects_with_progress(ids))

    def average_delay_days(self, project_ids: Optional[Iterable[int]] = None) -> float:
        """Mean start delay against the baseline, over projects that started late."""
        delays = []
        for project in self._projects_for(project_ids):
            if project.start_date is None:
                continue
            baseline = self._baseline_start(project)
            delay = (project.start_date - baseline).days if baseline else 0
            if delay > 0:
                delays.append(delay)
        return sum(delays) / len(delays) if delays else 0.0
