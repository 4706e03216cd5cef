from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Protocol, Set

from .models import CellKey, ScheduleItem


@dataclass(slots=True, frozen=True)
class OrphanReference:
    """An item pointing at a catalog entry that does not exist. Reported, never raised."""

    item_id: str
    field: str
    reference: str


@dataclass(slots=True)
class ItemDiff:
    to_create: List[ScheduleItem] = field(default_factory=list)
    to_update: List[ScheduleItem] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)
    orphans: List[OrphanReference] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)

    def __len__(self) -> int:
        return len(self.to_create) + len(self.to_update) + len(self.to_delete)

    def then(self, other: "ItemDiff") -> "ItemDiff":
        """Compose two diffs, ``other`` computed against the result of applying ``self``."""
        creates: Dict[str, ScheduleItem] = {item.id: item for item in self.to_create}
        updates: Dict[str, ScheduleItem] = {item.id: item for item in self.to_update}
        deletes: List[str] = list(self.to_delete)
        for item in other.to_create:
            creates[item.id] = item
        for item in other.to_update:
            if item.id in creates:
                creates[item.id] = item
            else:
                updates[item.id] = item
        for item_id in other.to_delete:
            if item_id in creates:
                del creates[item_id]
                continue
            updates.pop(item_id, None)
            if item_id not in deletes:
                deletes.append(item_id)
        orphans = list(self.orphans)
        orphans.extend(entry for entry in other.orphans if entry not in orphans)
        return ItemDiff(
            to_create=list(creates.values()),
            to_update=list(updates.values()),
            to_delete=deletes,
            orphans=orphans,
        )

    def apply_to(self, items: Mapping[str, ScheduleItem]) -> Dict[str, ScheduleItem]:
        result = dict(items)
        for item_id in self.to_delete:
            result.pop(item_id, None)
        for item in self.to_update:
            if item.id in result:
                result[item.id] = item
        for item in self.to_create:
            result[item.id] = item
        return result

    def touched_cells(self, before: Mapping[str, ScheduleItem]) -> Set[CellKey]:
        cells: Set[CellKey] = set()
        for item in self.to_create:
            cells.add(item.cell_key)
        for item in self.to_update:
            cells.add(item.cell_key)
            previous = before.get(item.id)
            if previous is not None:
                cells.add(previous.cell_key)
        for item_id in self.to_delete:
            previous = before.get(item_id)
            if previous is not None:
                cells.add(previous.cell_key)
        return cells


class MutationSink(Protocol):
    def on_item_create(self, item: ScheduleItem) -> None: ...

    def on_item_update(self, item: ScheduleItem) -> None: ...

    def on_item_delete(self, item_id: str) -> None: ...


class RecordingSink:
    """Keeps every notification in order. Handy for callers that batch writes."""

    def __init__(self) -> None:
        self.events: List[tuple[str, str]] = []

    def on_item_create(self, item: ScheduleItem) -> None:
        self.events.append(("create", item.id))

    def on_item_update(self, item: ScheduleItem) -> None:
        self.events.append(("update", item.id))

    def on_item_delete(self, item_id: str) -> None:
        self.events.append(("delete", item_id))
