"""ISO-8601 week arithmetic for the planner's allocation window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True, slots=True)
class WeekWindow:
    year: int
    week: int

    @property
    def start(self) -> date:
        """Monday of the window."""
        return date.fromisocalendar(self.year, self.week, 1)

    @property
    def end(self) -> date:
        """Friday of the window."""
        return date.fromisocalendar(self.year, self.week, 5)

    def days(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range(5)]

    def label(self) -> str:
        return f"W{self.week} | {self.year}"


def resolve_week(value: date) -> WeekWindow:
    # isocalendar() follows the first-Thursday rule, including the year rollover.
    iso = value.isocalendar()
    return WeekWindow(year=iso.year, week=iso.week)


def step_week(value: date, delta: int) -> date:
    return value + timedelta(days=delta * 7)


def window_from_week(year: int, week: int) -> WeekWindow:
    """Validate a (year, week) pair; raises ValueError for weeks the year does not have."""
    date.fromisocalendar(year, week, 1)
    return WeekWindow(year=year, week=week)
