"""Employee time off: which assignments a holiday or sickness clears from the grid."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from .diff import ItemDiff
from .errors import InvalidRange, ValidationError
from .freetime import linked_free_jobs
from .models import ABSENCE_TYPES, Absence, Crew, ScheduleItem
from .ranges import MAX_RANGE_DATES, expand_between

RECORDED_ABSENCES = {"holiday", "sick"}
UNKNOWN_CREW = "Unknown crew"


@dataclass(slots=True)
class TimeOffImpact:
    item_id: str
    day: date
    crew_id: str
    crew_name: str
    shift: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "date": self.day.isoformat(),
            "crew_id": self.crew_id,
            "crew_name": self.crew_name,
            "shift": self.shift,
        }


@dataclass(slots=True)
class TimeOffPlan:
    employee_id: str
    absence_type: str
    start: date
    end: date
    impacted: List[TimeOffImpact] = field(default_factory=list)
    diff: ItemDiff = field(default_factory=ItemDiff)
    absence: Optional[Absence] = None

    @property
    def records_absence(self) -> bool:
        return self.absence_type in RECORDED_ABSENCES

    @property
    def marks_sick(self) -> bool:
        return self.absence_type == "sick"


def _impact(item: ScheduleItem, crews: Mapping[str, Crew]) -> TimeOffImpact:
    crew = crews.get(item.crew_id)
    return TimeOffImpact(
        item_id=item.id,
        day=item.day,
        crew_id=item.crew_id,
        crew_name=crew.name if crew else UNKNOWN_CREW,
        shift=crew.shift if crew else "unknown",
    )


def plan_time_off(
    items: Mapping[str, ScheduleItem],
    crews: Mapping[str, Crew],
    employee_id: str,
    absence_type: str,
    start: date,
    end: Optional[date] = None,
    *,
    today: date,
    limit: int = MAX_RANGE_DATES,
) -> TimeOffPlan:
    """Assignments of ``employee_id`` from ``start`` through ``end`` that the absence removes.

    Past dates are never touched. Each removed assignment takes its
    auto-linked free jobs with it. Impacts are sorted by date, then crew name.
    """
    if absence_type not in ABSENCE_TYPES:
        raise ValidationError(f"Unknown absence type: {absence_type}")
    end = end or start
    if (end - start).days + 1 > limit:
        raise InvalidRange(f"Time off cannot span more than {limit} days")
    days = set(expand_between(start, end, today=today, limit=limit))
    hits = [
        item
        for item in items.values()
        if item.is_assignment and item.employee_id == employee_id and item.day in days
    ]
    impacted = sorted((_impact(item, crews) for item in hits), key=lambda entry: (entry.day, entry.crew_name.lower()))
    removed: Dict[str, None] = {}
    for item in hits:
        removed[item.id] = None
        for job in linked_free_jobs(items.values(), item):
            removed[job.id] = None
    return TimeOffPlan(
        employee_id=employee_id,
        absence_type=absence_type,
        start=start,
        end=end,
        impacted=impacted,
        diff=ItemDiff(to_delete=list(removed)),
    )
