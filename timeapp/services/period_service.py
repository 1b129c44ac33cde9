"""
Period Aggregator - Buckets time entries into calendar days for reporting.

All periods are half-open [start, end) windows on started_at, computed in
naive local time. An entry belongs to the day it started on, even when it
runs past midnight. Running entries are listed but never counted.
"""

import datetime
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from timeapp.domain.models import (
    DayGroup, PeriodReport, Project, ProjectSummary, TimeEntry
)
from timeapp.infra.repository import ProjectRepository, TimeEntryRepository

logger = logging.getLogger(__name__)


class PeriodKind(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def start_of_day(value) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        value = value.date()
    return datetime.datetime.combine(value, datetime.time.min)


def month_bounds(value) -> Tuple[datetime.datetime, datetime.datetime]:
    """[first instant of the month, first instant of the next month)"""
    start = start_of_day(value).replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def period_bounds(kind: PeriodKind, anchor,
                  first_weekday: int = 0) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Compute the [start, end) window of the period containing `anchor`.

    Args:
        kind: Period granularity
        anchor: Any date or datetime inside the period
        first_weekday: First day of a week (0=Monday ... 6=Sunday)
    """
    kind = PeriodKind(kind)
    day = start_of_day(anchor)

    if kind is PeriodKind.DAY:
        return day, day + datetime.timedelta(days=1)
    if kind is PeriodKind.WEEK:
        offset = (day.weekday() - first_weekday) % 7
        start = day - datetime.timedelta(days=offset)
        return start, start + datetime.timedelta(days=7)
    if kind is PeriodKind.MONTH:
        return month_bounds(day)
    start = day.replace(month=1, day=1)
    return start, start.replace(year=start.year + 1)


def total_completed_seconds(entries: Iterable[TimeEntry]) -> int:
    """Sum of durations of entries that have ended"""
    return sum(e.completed_seconds for e in entries)


def group_by_day(entries: Iterable[TimeEntry]) -> List[DayGroup]:
    """
    Partition entries by the local day they started on.

    Entry order inside a group follows the input order; groups are returned
    most recent day first.
    """
    grouped: Dict[datetime.date, List[TimeEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.started_at.date(), []).append(entry)

    groups = [
        DayGroup(date=day, entries=day_entries, total_seconds=total_completed_seconds(day_entries))
        for day, day_entries in grouped.items()
    ]
    groups.sort(key=lambda g: g.date, reverse=True)
    return groups


def aggregate(kind: PeriodKind, anchor, entries: Iterable[TimeEntry],
              project_id: Optional[int] = None, first_weekday: int = 0) -> PeriodReport:
    """
    Build the day-grouped report for the period of `kind` containing `anchor`.

    Entries outside the period and, when `project_id` is given, entries of
    other projects are ignored, so callers may pass an unfiltered collection.
    """
    kind = PeriodKind(kind)
    start, end = period_bounds(kind, anchor, first_weekday)

    selected = [
        e for e in entries
        if start <= e.started_at < end
        and (project_id is None or e.project_id == project_id)
    ]
    groups = group_by_day(selected)

    return PeriodReport(
        period=kind.value,
        start=start,
        end=end,
        project_id=project_id,
        groups=groups,
        total_seconds=sum(g.total_seconds for g in groups)
    )


def summarize_by_project(entries: Iterable[TimeEntry],
                         projects: Iterable[Project]) -> List[ProjectSummary]:
    """
    Completed time per project, largest total first.

    Entries without a project, or whose project is not in `projects`, are
    skipped.
    """
    names = {p.id: p.name for p in projects}
    totals: Dict[int, int] = {}
    for entry in entries:
        if entry.is_running or entry.project_id not in names:
            continue
        totals[entry.project_id] = totals.get(entry.project_id, 0) + entry.completed_seconds

    summaries = [
        ProjectSummary(project_id=pid, name=names[pid], total_seconds=seconds)
        for pid, seconds in totals.items()
    ]
    summaries.sort(key=lambda s: s.total_seconds, reverse=True)
    return summaries


class ReportService:
    """
    Loads a period from the store and aggregates it.
    """

    def __init__(self, entry_repo: TimeEntryRepository,
                 project_repo: Optional[ProjectRepository] = None,
                 first_weekday: int = 0):
        self.entry_repo = entry_repo
        self.project_repo = project_repo
        self.first_weekday = first_weekday

    async def aggregate(self, kind: PeriodKind, anchor,
                        project_id: Optional[int] = None) -> PeriodReport:
        """
        Report for the period of `kind` containing `anchor`.

        Args:
            kind: day, week, month or year
            anchor: Any date inside the period
            project_id: Restrict to one project (None means all projects)
        """
        start, end = period_bounds(kind, anchor, self.first_weekday)
        entries = await self.entry_repo.query(start=start, end=end, project_id=project_id)
        report = aggregate(kind, anchor, entries, project_id, self.first_weekday)
        logger.debug(
            f"Aggregated {len(entries)} entries for {report.period} {start:%Y-%m-%d}: "
            f"{report.total_seconds}s"
        )
        return report

    async def project_summaries(self, kind: PeriodKind, anchor) -> List[ProjectSummary]:
        """Per-project totals for a period, including archived projects"""
        if self.project_repo is None:
            raise ValueError("project_summaries needs a ProjectRepository")
        start, end = period_bounds(kind, anchor, self.first_weekday)
        entries = await self.entry_repo.query(start=start, end=end)
        projects = await self.project_repo.get_all(include_archived=True)
        return summarize_by_project(entries, projects)
