"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Pydantic provides runtime data validation, ensuring data integrity when loading
from the database or YAML config files. Every computed result of the engine
(day groups, reports, target calculations) is also a plain Pydantic model so
callers can serialize it without knowing about the store.
"""

import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator


def format_duration(seconds: int) -> str:
    """
    Format a second count as HH:MM:SS.

    Hours are not capped at 99. Negative counts (from malformed entries) keep
    their sign in front of the absolute value.
    """
    sign = "-" if seconds < 0 else ""
    hours, remainder = divmod(abs(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}"


def format_hours_minutes(seconds: int) -> str:
    """Format a second count as e.g. '7h 05m' for report totals"""
    sign = "-" if seconds < 0 else ""
    hours, remainder = divmod(abs(seconds), 3600)
    return f"{sign}{hours}h {remainder // 60:02d}m"


class Project(BaseModel):
    """
    Represents a trackable project.

    A project with no monthly target (or a target <= 0) is not part of
    target/carry-over accounting.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=200)
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.now)
    is_archived: bool = False
    monthly_target_hours: Optional[float] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def has_target(self) -> bool:
        return self.monthly_target_hours is not None and self.monthly_target_hours > 0


class TimeEntry(BaseModel):
    """
    Represents a single time tracking session.

    An entry is running while ended_at is None. Duration is always derived
    from the timestamps and an explicit "now"; nothing is cached.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: Optional[int] = None
    started_at: datetime.datetime
    ended_at: Optional[datetime.datetime] = None
    note: str = ""

    @property
    def is_running(self) -> bool:
        return self.ended_at is None

    def duration_seconds(self, now: datetime.datetime) -> int:
        """Whole seconds from start to end (or to `now` while running)"""
        end = self.ended_at if self.ended_at is not None else now
        return int((end - self.started_at).total_seconds())

    @property
    def completed_seconds(self) -> int:
        """Recorded duration of an ended entry; 0 while still running"""
        if self.ended_at is None:
            return 0
        return int((self.ended_at - self.started_at).total_seconds())

    def stop(self, now: datetime.datetime) -> bool:
        """
        Record the end time if the entry is still running.

        Returns:
            True if the entry was stopped by this call, False if it had
            already been stopped (the existing end time is kept).
        """
        if self.ended_at is not None:
            return False
        self.ended_at = now
        return True

    def formatted_duration(self, now: datetime.datetime) -> str:
        return format_duration(self.duration_seconds(now))


def duration(entry: TimeEntry, now: datetime.datetime) -> int:
    """Duration of `entry` in whole seconds, measured against `now` if running"""
    return entry.duration_seconds(now)


def stop(entry: TimeEntry, now: datetime.datetime) -> bool:
    """Stop `entry` at `now`; a no-op on an entry that already ended"""
    return entry.stop(now)


class DayGroup(BaseModel):
    """Entries that started on one local calendar day"""

    date: datetime.date
    entries: List[TimeEntry] = Field(default_factory=list)
    total_seconds: int = 0

    @property
    def formatted_total(self) -> str:
        return format_hours_minutes(self.total_seconds)


class PeriodReport(BaseModel):
    """
    Day-bucketed view of one reporting period.

    Groups are ordered most recent day first; total_seconds only counts
    completed entries.
    """

    period: str
    start: datetime.datetime
    end: datetime.datetime
    project_id: Optional[int] = None
    groups: List[DayGroup] = Field(default_factory=list)
    total_seconds: int = 0

    @property
    def formatted_total(self) -> str:
        return format_hours_minutes(self.total_seconds)


class ProjectSummary(BaseModel):
    """Completed time per project within a period"""

    project_id: int
    name: str
    total_seconds: int = 0

    @property
    def formatted_duration(self) -> str:
        return format_hours_minutes(self.total_seconds)


class TargetCalculation(BaseModel):
    """
    Monthly target standing of a project, including carry-over from all
    closed months.

    carry_previous_months > 0 is a credit (ahead of target), < 0 a debt.
    status_this_month summarizes the overall standing in one signed number.
    """

    monthly_target: float
    realized_current_month: float
    target_current_month: float
    carry_previous_months: float
    remaining_this_month: float
    status_this_month: float
    number_of_closed_months: int

    @property
    def credit(self) -> float:
        return max(0.0, self.carry_previous_months)

    @property
    def debt(self) -> float:
        return max(0.0, -self.carry_previous_months)

    @property
    def is_complete_this_month(self) -> bool:
        return self.remaining_this_month == 0

    @property
    def formatted_carry(self) -> str:
        """Carry with explicit sign, e.g. '+5.0h' or '-2.0h'"""
        if self.carry_previous_months >= 0:
            return f"+{self.carry_previous_months:.1f}h"
        return f"{self.carry_previous_months:.1f}h"
