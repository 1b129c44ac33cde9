"""Services layer - Business logic"""

from .timer_service import TimerService
from .period_service import PeriodKind, ReportService, aggregate, period_bounds
from .target_service import calculate_target, compute_target
from .project_service import ProjectService
from .entry_service import EntryService

__all__ = [
    "TimerService",
    "PeriodKind",
    "ReportService",
    "aggregate",
    "period_bounds",
    "calculate_target",
    "compute_target",
    "ProjectService",
    "EntryService",
]
