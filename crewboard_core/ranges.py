from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Optional

from .errors import InvalidRange
from .utils import ViewWindow, add_months, end_of_month, end_of_year, is_weekday, week_start

logger = logging.getLogger(__name__)

MAX_RANGE_DATES = 365
WEEKDAYS_PER_YEAR = 260

SCOPE_KINDS: tuple[str, ...] = ("single", "custom", "week", "following_week", "month", "year", "months")
COUNTED_KINDS = {"custom", "months"}


@dataclass(slots=True, frozen=True)
class RangeScope:
    kind: str
    count: int = 0

    def __post_init__(self) -> None:
        if self.kind not in SCOPE_KINDS:
            raise InvalidRange(f"Unknown scope: {self.kind}")
        if self.kind in COUNTED_KINDS and self.count < 1:
            raise InvalidRange(f"Scope {self.kind} needs a positive count")

    @classmethod
    def single(cls) -> "RangeScope":
        return cls("single")

    @classmethod
    def custom_days(cls, count: int) -> "RangeScope":
        return cls("custom", count)

    @classmethod
    def remainder_of_week(cls) -> "RangeScope":
        return cls("week")

    @classmethod
    def following_week(cls) -> "RangeScope":
        return cls("following_week")

    @classmethod
    def remainder_of_month(cls) -> "RangeScope":
        return cls("month")

    @classmethod
    def remainder_of_year(cls) -> "RangeScope":
        return cls("year")

    @classmethod
    def next_months(cls, count: int) -> "RangeScope":
        return cls("months", count)

    @classmethod
    def parse(cls, token: str) -> "RangeScope":
        """Accepts ``single``, ``week``, ``following_week``, ``month``, ``year``,
        ``custom:N`` and ``months:N`` (also ``next_N_months``)."""
        raw = token.strip().lower()
        if raw.startswith("next_") and raw.endswith("_months"):
            raw = f"months:{raw[5:-7]}"
        if ":" in raw:
            kind, _, count = raw.partition(":")
            try:
                return cls(kind, int(count))
            except ValueError as exc:
                raise InvalidRange(f"Invalid scope count: {token}") from exc
        return cls(raw)

    def __str__(self) -> str:
        if self.kind in COUNTED_KINDS:
            return f"{self.kind}:{self.count}"
        return self.kind


def _days_after(anchor: date) -> Iterator[date]:
    current = anchor
    while True:
        current += timedelta(days=1)
        yield current


def _collect(
    candidates: Iterator[date],
    *,
    end: Optional[date] = None,
    target: Optional[int] = None,
    weekdays_only: bool,
    limit: int,
) -> List[date]:
    out: List[date] = []
    for day in candidates:
        if end is not None and day > end:
            break
        if weekdays_only and not is_weekday(day):
            continue
        out.append(day)
        if len(out) >= limit or (target is not None and len(out) >= target):
            break
    return out


def expand_range(
    anchor: date,
    scope: RangeScope,
    window: Optional[ViewWindow] = None,
    *,
    today: date,
    weekdays_only: bool = False,
    limit: int = MAX_RANGE_DATES,
) -> List[date]:
    """Ordered target dates for an operation anchored on ``anchor``.

    The anchor itself is only part of the result for ``single``. Dates before
    ``today`` are dropped. With ``weekdays_only`` Saturdays and Sundays are
    skipped and counted scopes count weekdays only.
    """
    kind = scope.kind
    if kind == "single":
        dates = [anchor]
    elif kind == "custom":
        dates = _collect(_days_after(anchor), target=scope.count, weekdays_only=weekdays_only, limit=limit)
    elif kind == "week":
        if window is None:
            raise InvalidRange("Remainder of week needs the displayed window")
        if window.end < anchor:
            raise InvalidRange("Displayed window ends before the anchor date")
        dates = _collect(_days_after(anchor), end=window.end, weekdays_only=weekdays_only, limit=limit)
    elif kind == "following_week":
        span = window.days if window is not None else 7
        start = week_start(anchor) + timedelta(days=7)
        dates = _collect(
            _days_after(start - timedelta(days=1)),
            end=start + timedelta(days=span - 1),
            weekdays_only=weekdays_only,
            limit=limit,
        )
    elif kind == "month":
        dates = _collect(_days_after(anchor), end=end_of_month(anchor), weekdays_only=weekdays_only, limit=limit)
    elif kind == "year":
        dates = _collect(_days_after(anchor), end=end_of_year(anchor), weekdays_only=weekdays_only, limit=limit)
    else:
        if weekdays_only:
            target = scope.count * WEEKDAYS_PER_YEAR // 12
            dates = _collect(_days_after(anchor), target=target, weekdays_only=True, limit=limit)
        else:
            end = add_months(anchor, scope.count)
            dates = _collect(_days_after(anchor), end=end, weekdays_only=False, limit=limit)
    kept = [day for day in dates if day >= today]
    if len(kept) != len(dates):
        logger.debug("dropped %d past date(s) from %s", len(dates) - len(kept), scope)
    return kept


def expand_between(
    start: date,
    end: date,
    *,
    today: date,
    weekdays_only: bool = False,
    limit: int = MAX_RANGE_DATES,
) -> List[date]:
    """Inclusive explicit period."""
    if end < start:
        raise InvalidRange("Range end is before its start")
    dates = _collect(_days_after(start - timedelta(days=1)), end=end, weekdays_only=weekdays_only, limit=limit)
    return [day for day in dates if day >= today]
