"""
Admission calendar arithmetic.

A patient's stay is the closed interval ``[admission, discharge]`` of
calendar dates.  The timeline page shows one month at a time: a patient
is listed when the stay intersects the month, and a day cell is filled
when the day lies inside the stay.  Time components are ignored.

Months are 1-based throughout, like :class:`datetime.date`.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from django.utils.dateparse import parse_date, parse_datetime

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Indexed by date.weekday(): Monday == 0
DAY_NAMES_SHORT = ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"]

PALETTE_SIZE = 10


def parse_calendar_date(value: Any) -> Optional[date]:
    """Return the calendar date of ``value`` or None if it cannot be read."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = parse_date(text)
        if parsed is not None:
            return parsed
        moment = parse_datetime(text)
    except ValueError:
        # well formed but impossible, e.g. 2025-02-30
        return None
    return moment.date() if moment is not None else None


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def parse_month(value: Optional[str], today: date) -> tuple[int, int]:
    """``YYYY-MM`` from a query string, falling back to ``today``'s month."""
    if value:
        try:
            year, month = (int(part) for part in value.split('-', 1))
        except ValueError:
            return today.year, today.month
        if 1 <= month <= 12 and 1 <= year <= 9999:
            return year, month
    return today.year, today.month


def overlaps_month(admission: date, discharge: date, year: int, month: int) -> bool:
    start, end = month_bounds(year, month)
    return admission <= end and discharge >= start


def occupies_day(admission: date, discharge: date, day: date) -> bool:
    return admission <= day <= discharge


def patients_in_month(records: Iterable, year: int, month: int) -> list:
    """Records whose stay intersects the month, in the order received."""
    return [
        r for r in records
        if r.has_valid_stay and overlaps_month(r.admission, r.discharge, year, month)
    ]


def occupancy_by_day(records: Iterable, year: int, month: int) -> dict[int, list]:
    records = [r for r in records if r.has_valid_stay]
    occupancy: dict[int, list] = {}
    for day in range(1, days_in_month(year, month) + 1):
        current = date(year, month, day)
        occupancy[day] = [r for r in records if occupies_day(r.admission, r.discharge, current)]
    return occupancy


@dataclass(frozen=True)
class CalendarDay:
    day: int
    weekday: str
    is_today: bool = False


@dataclass
class TimelineRow:
    record: Any
    color: int
    occupied: list[bool]

    @property
    def days_occupied(self) -> list[int]:
        return [i + 1 for i, hit in enumerate(self.occupied) if hit]


@dataclass
class MonthTimeline:
    year: int
    month: int
    days: list[CalendarDay] = field(default_factory=list)
    rows: list[TimelineRow] = field(default_factory=list)
    flagged: list = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def previous_key(self) -> str:
        y, m = shift_month(self.year, self.month, -1)
        return f"{y:04d}-{m:02d}"

    @property
    def next_key(self) -> str:
        y, m = shift_month(self.year, self.month, 1)
        return f"{y:04d}-{m:02d}"


def build_timeline(records: Iterable, year: int, month: int, today: Optional[date] = None) -> MonthTimeline:
    records = list(records)
    timeline = MonthTimeline(year=year, month=month)
    total = days_in_month(year, month)
    for day in range(1, total + 1):
        current = date(year, month, day)
        timeline.days.append(CalendarDay(
            day=day,
            weekday=DAY_NAMES_SHORT[current.weekday()],
            is_today=current == today,
        ))
    for index, record in enumerate(patients_in_month(records, year, month)):
        occupied = [
            occupies_day(record.admission, record.discharge, date(year, month, day))
            for day in range(1, total + 1)
        ]
        timeline.rows.append(TimelineRow(record=record, color=index % PALETTE_SIZE, occupied=occupied))
    timeline.flagged = [r for r in records if not r.has_valid_stay]
    return timeline
