from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Mapping, Sequence

from .models import CellKey, ScheduleItem

KIND_PRIORITY: Mapping[str, int] = {"note": 0, "assignment": 1, "job": 2}


def index_items(items: Iterable[ScheduleItem]) -> Dict[CellKey, List[ScheduleItem]]:
    """Group items by (crew, day). Insertion order is preserved within a cell."""
    index: Dict[CellKey, List[ScheduleItem]] = defaultdict(list)
    for item in items:
        index[item.cell_key].append(item)
    return dict(index)


def items_in_cell(items: Iterable[ScheduleItem], crew_id: str, day: date) -> List[ScheduleItem]:
    return [item for item in items if item.crew_id == crew_id and item.day == day]


def _priority(item: ScheduleItem) -> tuple[int, str]:
    return (KIND_PRIORITY.get(item.kind, 9), item.start_time or "")


def ordered_cell_items(items: Sequence[ScheduleItem], overlay: Sequence[str] | None = None) -> List[ScheduleItem]:
    """Canonical sort (notes, assignments, jobs) followed by the manual order overlay.

    Ids listed in the overlay come first in overlay order; the rest keep the
    canonical order. Overlay ids that no longer exist in the cell are ignored.
    """
    canonical = sorted(items, key=_priority)
    if not overlay:
        return canonical
    by_id = {item.id: item for item in canonical}
    ordered = [by_id[item_id] for item_id in overlay if item_id in by_id]
    seen = {item.id for item in ordered}
    ordered.extend(item for item in canonical if item.id not in seen)
    return ordered


def reorder(order: Sequence[str], active_id: str, over_id: str) -> List[str]:
    """Move ``active_id`` to the position currently held by ``over_id``."""
    ids = list(order)
    if active_id not in ids or over_id not in ids or active_id == over_id:
        return ids
    source = ids.index(active_id)
    target = ids.index(over_id)
    ids.insert(target, ids.pop(source))
    return ids
