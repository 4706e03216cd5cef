from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from .errors import ValidationError


def detect_timezone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # pragma: no cover
        raise ValidationError(f"Invalid timezone: {tz_name}") from exc


def today_in(tz_name: str) -> date:
    return datetime.now(detect_timezone(tz_name)).date()


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date (use YYYY-MM-DD): {value}") from exc


def isoformat(dt: datetime | None) -> str:
    return dt.isoformat() if dt else ""


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid timestamp (RFC 3339): {value}") from exc


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def end_of_month(day: date) -> date:
    last = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, last)


def end_of_year(day: date) -> date:
    return date(day.year, 12, 31)


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def daterange(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


@dataclass(slots=True)
class ViewWindow:
    """The days currently displayed on the grid."""

    start: date
    days: int = 5

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days - 1)

    def contains(self, target: date) -> bool:
        return self.start <= target <= self.end


def build_window(start: str | None, days: int, today: date) -> ViewWindow:
    if days not in (5, 7):
        raise ValidationError("View must span 5 or 7 days.")
    anchor = parse_iso_date(start) if start else week_start(today)
    return ViewWindow(start=anchor, days=days)

