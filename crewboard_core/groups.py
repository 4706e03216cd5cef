from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List

from .models import ScheduleItem


def group_by_job_number(items: Iterable[ScheduleItem], item: ScheduleItem) -> List[ScheduleItem]:
    """All jobs sharing ``item``'s job number, or ``[item]`` when it has none."""
    if not item.is_job or not item.job_number:
        return [item]
    return [entry for entry in items if entry.is_job and entry.job_number == item.job_number]


@dataclass(slots=True)
class GroupChoice:
    """What the operator is offered before a colour change or delete on a job."""

    item: ScheduleItem
    group: List[ScheduleItem] = field(default_factory=list)

    @property
    def group_count(self) -> int:
        return len(self.group)

    @property
    def needs_choice(self) -> bool:
        return self.group_count > 1


def group_choice(items: Iterable[ScheduleItem], item: ScheduleItem) -> GroupChoice:
    return GroupChoice(item=item, group=group_by_job_number(items, item))


def resolve_targets(
    items: Iterable[ScheduleItem],
    item: ScheduleItem,
    *,
    apply_to_group: bool,
    today: date,
) -> List[ScheduleItem]:
    """Items an operation touches. Past-dated members are left alone."""
    targets = group_by_job_number(items, item) if apply_to_group else [item]
    return [entry for entry in targets if entry.day >= today]
