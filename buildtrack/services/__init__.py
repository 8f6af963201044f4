from .aggregator import WeightedAggregator
from .backfill import BackfillEngine
from .dashboard_service import DashboardService, SCurveSeries
from .hierarchy_importer import HierarchyImporter, load_hierarchy_file
from .nested_set import NestedSetTree
from .office_service import OfficeService, OfficeTree
from .progress_service import ProgressService
from .task_tree import TaskTree
from .weight_service import NormalizationReport, WeightService

__all__ = [
    "BackfillEngine",
    "DashboardService",
    "HierarchyImporter",
    "NestedSetTree",
    "NormalizationReport",
    "OfficeService",
    "OfficeTree",
    "ProgressService",
    "SCurveSeries",
    "TaskTree",
    "WeightService",
    "WeightedAggregator",
    "load_hierarchy_file",
]
