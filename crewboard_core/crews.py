from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Mapping, Optional

from .diff import ItemDiff
from .errors import ConflictError
from .models import Crew, ScheduleItem
from .utils import ViewWindow


def shift_order(crews: Iterable[Crew], shift: str) -> List[Crew]:
    active = [crew for crew in crews if crew.shift == shift and not crew.is_archived]
    return sorted(active, key=lambda crew: (crew.position, crew.name.lower()))


def previous_crew(crews: Iterable[Crew], crew: Crew) -> Optional[Crew]:
    ordered = shift_order(crews, crew.shift)
    ids = [entry.id for entry in ordered]
    if crew.id not in ids:
        return None
    index = ids.index(crew.id)
    return ordered[index - 1] if index > 0 else None


def future_items(items: Iterable[ScheduleItem], crew_id: str, window: ViewWindow) -> List[ScheduleItem]:
    """Assignments and jobs on the crew dated after the displayed window. Notes stay put."""
    return sorted(
        (
            item
            for item in items
            if item.crew_id == crew_id and item.day > window.end and not item.is_note
        ),
        key=lambda item: (item.day, item.kind),
    )


@dataclass(slots=True)
class ArchivePlan:
    crew: Crew
    future: List[ScheduleItem] = field(default_factory=list)
    target: Optional[Crew] = None
    diff: ItemDiff = field(default_factory=ItemDiff)

    @property
    def needs_choice(self) -> bool:
        return bool(self.future)


def plan_archive(
    crews: Mapping[str, Crew],
    items: Iterable[ScheduleItem],
    crew: Crew,
    window: ViewWindow,
    *,
    move_to_previous: bool,
) -> ArchivePlan:
    plan = ArchivePlan(crew=crew, future=future_items(items, crew.id, window))
    if not move_to_previous or not plan.future:
        return plan
    target = previous_crew(crews.values(), crew)
    if target is None:
        raise ConflictError(f"Crew {crew.name} has no previous {crew.shift} crew to take its future items")
    plan.target = target
    plan.diff.to_update.extend(
        replace(item, crew_id=target.id, depot_id=target.depot_id or item.depot_id) for item in plan.future
    )
    return plan
