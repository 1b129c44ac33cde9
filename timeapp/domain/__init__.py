"""Domain layer - Pure business entities and logic"""

from .models import (
    Project,
    TimeEntry,
    DayGroup,
    PeriodReport,
    ProjectSummary,
    TargetCalculation,
    duration,
    stop,
    format_duration,
    format_hours_minutes,
)
from .exceptions import TimeAppError, ValidationFailed, StoreError, NotFoundError

__all__ = [
    "Project",
    "TimeEntry",
    "DayGroup",
    "PeriodReport",
    "ProjectSummary",
    "TargetCalculation",
    "duration",
    "stop",
    "format_duration",
    "format_hours_minutes",
    "TimeAppError",
    "ValidationFailed",
    "StoreError",
    "NotFoundError",
]
