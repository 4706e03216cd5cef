"""Drag gestures over the grid: move, duplicate and same-cell reorder.

A gesture goes ``idle -> dragging -> dropped_on_cell | dropped_on_item | cancelled``.
Every drop produces a :class:`MoveOutcome` carrying a diff that already
includes the free-time re-sync of the touched cells; nothing is mutated here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from .cells import index_items, ordered_cell_items, reorder
from .config import Config
from .diff import ItemDiff
from .errors import InvalidRange, NotFoundError, PastDateRejected, UsageError
from .freetime import linked_free_jobs, sync_cells
from .models import Catalog, CellKey, PairingDecision, ScheduleItem, new_id
from .pairing import CellPairing, evaluate_cell, vehicle_signature
from .utils import ViewWindow

logger = logging.getLogger(__name__)

IDLE = "idle"
DRAGGING = "dragging"
DROPPED_ON_CELL = "dropped_on_cell"
DROPPED_ON_ITEM = "dropped_on_item"
CANCELLED = "cancelled"

MOVE_SCOPES = ("day", "week")


@dataclass(slots=True)
class DropTarget:
    crew_id: Optional[str] = None
    day: Optional[date] = None
    item_id: Optional[str] = None

    @classmethod
    def cell(cls, crew_id: str, day: date) -> "DropTarget":
        return cls(crew_id=crew_id, day=day)

    @classmethod
    def on_item(cls, item_id: str) -> "DropTarget":
        return cls(item_id=item_id)


@dataclass(slots=True)
class MoveContext:
    items: Mapping[str, ScheduleItem]
    catalog: Catalog
    config: Config
    decisions: Mapping[str, PairingDecision]
    today: date
    window: Optional[ViewWindow] = None
    cell_order: Mapping[str, List[str]] = field(default_factory=dict)


@dataclass(slots=True)
class MoveOutcome:
    phase: str
    action: str
    diff: ItemDiff = field(default_factory=ItemDiff)
    cell_order: Optional[tuple[str, List[str]]] = None
    prompts: List[CellPairing] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def changed(self) -> bool:
        return not self.diff.is_empty() or self.cell_order is not None


# pure move helpers ------------------------------------------------------

def relocate(items: Mapping[str, ScheduleItem], item: ScheduleItem, crew_id: str, day: date) -> ItemDiff:
    """Move one item. An assignment takes its linked free jobs with it."""
    diff = ItemDiff()
    diff.to_update.append(replace(item, crew_id=crew_id, day=day))
    if item.is_assignment:
        for job in linked_free_jobs(items.values(), item):
            diff.to_update.append(replace(job, crew_id=crew_id, day=day))
    return diff


def duplicate_to(item: ScheduleItem, crew_id: str, day: date) -> ScheduleItem:
    copy = replace(item, id=new_id(), crew_id=crew_id, day=day)
    if copy.is_auto_linked:
        # a copied placeholder becomes a manual free slot
        copy.employee_id = None
        copy.vehicle_id = None
    return copy


def week_instances(
    items: Mapping[str, ScheduleItem],
    item: ScheduleItem,
    window: Optional[ViewWindow],
) -> List[ScheduleItem]:
    """The dragged instance plus the same employee on the same crew through the end of the window.

    A dragged date beyond the window still moves on its own.
    """
    if window is None:
        raise InvalidRange("Week scope needs the displayed window")
    last = max(item.day, window.end)
    found = {item.id: item}
    for entry in items.values():
        if (
            entry.is_assignment
            and entry.employee_id == item.employee_id
            and entry.crew_id == item.crew_id
            and item.day <= entry.day <= last
        ):
            found.setdefault(entry.id, entry)
    return sorted(found.values(), key=lambda entry: entry.day)


def move_assignment(
    context: MoveContext,
    item: ScheduleItem,
    crew_id: str,
    day: date,
    *,
    scope: str = "day",
) -> ItemDiff:
    if scope not in MOVE_SCOPES:
        raise UsageError(f"Unknown move scope: {scope}")
    if day < context.today:
        raise PastDateRejected(f"Cannot move onto {day.isoformat()}, it is in the past")
    if scope == "day" or not item.employee_id:
        return relocate(context.items, item, crew_id, day)
    delta = day - item.day
    diff = ItemDiff()
    for entry in week_instances(context.items, item, context.window):
        target = entry.day + delta
        if target < context.today:
            continue
        diff = diff.then(relocate(context.items, entry, crew_id, target))
    return diff


def resync(context: MoveContext, diff: ItemDiff) -> ItemDiff:
    touched = diff.touched_cells(context.items)
    after = diff.apply_to(context.items)
    follow_up = sync_cells(
        after,
        touched,
        catalog=context.catalog,
        config=context.config,
        decisions=context.decisions,
    )
    return diff.then(follow_up)


def pairing_prompts(context: MoveContext, diff: ItemDiff, destinations: Sequence[CellKey]) -> List[CellPairing]:
    """Destination cells whose vehicle mix changed into an undecided actionable pairing."""
    before = index_items(context.items.values())
    after = index_items(diff.apply_to(context.items).values())
    prompts: List[CellPairing] = []
    for key in dict.fromkeys(destinations):
        old_signature = vehicle_signature(before.get(key, []))
        evaluation = evaluate_cell(key, after.get(key, []), context.catalog, context.config, context.decisions)
        if evaluation.signature == old_signature:
            continue
        if evaluation.needs_prompt:
            prompts.append(evaluation)
    return prompts


# gesture ----------------------------------------------------------------

class DragGesture:
    def __init__(self, context: MoveContext) -> None:
        self.context = context
        self.phase = IDLE
        self.item_ids: List[str] = []
        self.duplicate = False

    def _item(self, item_id: str) -> ScheduleItem:
        item = self.context.items.get(item_id)
        if item is None:
            raise NotFoundError(f"Item not found: {item_id}")
        return item

    def start(self, item_ids: Sequence[str], *, duplicate: bool = False) -> bool:
        if self.phase != IDLE:
            raise UsageError("Gesture already started")
        if not item_ids:
            raise UsageError("Nothing selected to drag")
        selection = [self._item(item_id) for item_id in item_ids]
        if any(item.day < self.context.today for item in selection):
            logger.info("drag rejected: selection contains past items")
            self.phase = CANCELLED
            return False
        self.item_ids = [item.id for item in selection]
        self.duplicate = duplicate
        self.phase = DRAGGING
        return True

    def cancel(self) -> MoveOutcome:
        self.phase = CANCELLED
        return MoveOutcome(phase=CANCELLED, action="cancelled")

    def drop(self, target: DropTarget | None, *, scope: str = "day") -> MoveOutcome:
        if self.phase != DRAGGING:
            raise UsageError(f"Cannot drop from phase {self.phase}")
        destination, over_item = self._resolve(target)
        if destination is None:
            self.phase = CANCELLED
            return MoveOutcome(phase=CANCELLED, action="noop", reason="no target")
        if destination.day < self.context.today:
            self.phase = CANCELLED
            return MoveOutcome(phase=CANCELLED, action="rejected", reason="past date")
        self.phase = DROPPED_ON_ITEM if over_item is not None else DROPPED_ON_CELL

        selection = [self._item(item_id) for item_id in self.item_ids]
        if self.duplicate:
            return self._duplicate(selection, destination)
        same_cell = all(item.cell_key == destination for item in selection)
        if same_cell:
            if over_item is None or len(selection) != 1:
                return MoveOutcome(phase=self.phase, action="noop")
            return self._reorder(selection[0], over_item)
        return self._move(selection, destination, scope)

    def _resolve(self, target: DropTarget | None) -> tuple[Optional[CellKey], Optional[ScheduleItem]]:
        if target is None:
            return None, None
        if target.item_id:
            over = self.context.items.get(target.item_id)
            if over is None:
                return None, None
            return over.cell_key, over
        if target.crew_id and target.day:
            return CellKey(target.crew_id, target.day), None
        return None, None

    def _reorder(self, item: ScheduleItem, over: ScheduleItem) -> MoveOutcome:
        key = item.cell_key
        token = key.token()
        cell = [entry for entry in self.context.items.values() if entry.cell_key == key]
        current = [entry.id for entry in ordered_cell_items(cell, self.context.cell_order.get(token))]
        new_order = reorder(current, item.id, over.id)
        if new_order == current:
            return MoveOutcome(phase=self.phase, action="noop")
        return MoveOutcome(phase=self.phase, action="reorder", cell_order=(token, new_order))

    def _duplicate(self, selection: Sequence[ScheduleItem], destination: CellKey) -> MoveOutcome:
        diff = ItemDiff()
        for item in selection:
            diff.to_create.append(duplicate_to(item, destination.crew_id, destination.day))
        diff = resync(self.context, diff)
        prompts = pairing_prompts(self.context, diff, [destination])
        logger.info("duplicated %d item(s) to %s", len(selection), destination.token())
        return MoveOutcome(phase=self.phase, action="duplicate", diff=diff, prompts=prompts)

    def _move(self, selection: Sequence[ScheduleItem], destination: CellKey, scope: str) -> MoveOutcome:
        diff = ItemDiff()
        destinations: List[CellKey] = [destination]
        if len(selection) == 1 and selection[0].is_assignment:
            item = selection[0]
            diff = move_assignment(self.context, item, destination.crew_id, destination.day, scope=scope)
            destinations = [entry.cell_key for entry in diff.to_update if entry.is_assignment] or destinations
        else:
            moved: Dict[str, ScheduleItem] = {}
            for item in selection:
                step = relocate(self.context.items, item, destination.crew_id, destination.day)
                for entry in step.to_update:
                    moved[entry.id] = entry
            diff.to_update.extend(moved.values())
        if diff.is_empty():
            return MoveOutcome(phase=self.phase, action="noop", reason="nothing to move")
        diff = resync(self.context, diff)
        prompts = pairing_prompts(self.context, diff, destinations)
        logger.info("moved %d item(s) to %s (scope=%s)", len(selection), destination.token(), scope)
        return MoveOutcome(phase=self.phase, action="move", diff=diff, prompts=prompts)
