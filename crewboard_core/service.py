from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .cells import index_items, ordered_cell_items, reorder
from .config import Config
from .crews import ArchivePlan, plan_archive, previous_crew, shift_order
from .diff import ItemDiff, MutationSink
from .errors import ConflictError, NotFoundError, PastDateRejected, UsageError, ValidationError
from .freetime import linked_free_jobs, sync_cells
from .groups import GroupChoice, group_choice, resolve_targets
from .models import (
    DECISIONS,
    Absence,
    CellKey,
    Crew,
    Employee,
    ScheduleItem,
    State,
    Vehicle,
    new_id,
)
from .moves import DragGesture, DropTarget, MoveContext, MoveOutcome, duplicate_to, relocate
from .pairing import CellPairing, evaluate_cell, prune_stale_decisions, record_decision
from .ranges import RangeScope, expand_range
from .repository import StateRepository
from .timeoff import TimeOffPlan, plan_time_off
from .utils import ViewWindow, daterange, today_in, week_start

logger = logging.getLogger(__name__)

LONG_SCOPES = {"month", "year", "months"}
PAIRING_PERIODS: Mapping[str, Optional[RangeScope]] = {
    "none": None,
    "week": RangeScope.remainder_of_week(),
    "month": RangeScope.remainder_of_month(),
    "6months": RangeScope.next_months(6),
    "12months": RangeScope.next_months(12),
}
# fields still editable once an item's date has passed
PAST_EDITABLE = {"color", "job_status"}
IMMUTABLE_FIELDS = {"id", "kind"}
ITEM_FIELDS = {f.name for f in fields(ScheduleItem)}


@dataclass(slots=True)
class CellRow:
    crew: Crew
    day: date
    items: List[ScheduleItem]
    pairing: CellPairing


def _same_series(anchor: ScheduleItem, candidate: ScheduleItem) -> bool:
    """Whether ``candidate`` is another day of the same recurring entry as ``anchor``."""
    if candidate.kind != anchor.kind or candidate.crew_id != anchor.crew_id:
        return False
    if anchor.is_assignment:
        return candidate.employee_id == anchor.employee_id
    if anchor.is_job:
        return (
            candidate.customer_name == anchor.customer_name
            and candidate.address == anchor.address
            and candidate.is_free_job == anchor.is_free_job
        )
    return candidate.note_content == anchor.note_content


class CoreService:
    def __init__(
        self,
        repository: StateRepository,
        config: Config,
        sinks: Iterable[MutationSink] | None = None,
    ) -> None:
        self.repository = repository
        self.config = config
        self.sinks: List[MutationSink] = list(sinks or [])

    # data access -----------------------------------------------------
    @property
    def state(self) -> State:
        return self.repository.state

    def today(self) -> date:
        return today_in(self.config.general.timezone)

    def default_window(self, today: date | None = None) -> ViewWindow:
        return ViewWindow(start=week_start(today or self.today()), days=self.config.general.view_days)

    def add_sink(self, sink: MutationSink) -> None:
        self.sinks.append(sink)

    # commit ----------------------------------------------------------
    def _commit(
        self,
        label: str,
        diff: ItemDiff,
        *,
        extra_cells: Iterable[CellKey] = (),
        history: bool = True,
    ) -> ItemDiff:
        state = self.state
        touched = diff.touched_cells(state.items) | set(extra_cells)
        if diff.is_empty() and not touched:
            return diff
        after = diff.apply_to(state.items)
        follow_up = sync_cells(
            after,
            touched,
            catalog=state.catalog(),
            config=self.config,
            decisions=state.pairing_decisions,
        )
        full = diff.then(follow_up)
        if full.is_empty():
            return full
        if history:
            self.repository.push_history(label)
        state.items = full.apply_to(state.items)
        prune_stale_decisions(state.items.values(), state.pairing_decisions, state.catalog(), self.config)
        self._drop_from_order(full.to_delete)
        self._notify(full)
        logger.info(
            "%s: +%d ~%d -%d",
            label,
            len(full.to_create),
            len(full.to_update),
            len(full.to_delete),
        )
        return full

    def _drop_from_order(self, deleted: Sequence[str]) -> None:
        if not deleted:
            return
        gone = set(deleted)
        for token, ids in list(self.state.cell_order.items()):
            remaining = [item_id for item_id in ids if item_id not in gone]
            if remaining:
                self.state.cell_order[token] = remaining
            else:
                del self.state.cell_order[token]

    def _notify(self, diff: ItemDiff) -> None:
        for sink in self.sinks:
            try:
                for item in diff.to_create:
                    sink.on_item_create(item)
                for item in diff.to_update:
                    sink.on_item_update(item)
                for item_id in diff.to_delete:
                    sink.on_item_delete(item_id)
            except Exception:
                # the store is already consistent at this point
                logger.exception("mutation sink %r failed", sink)

    def _context(self, today: date, window: ViewWindow | None) -> MoveContext:
        state = self.state
        return MoveContext(
            items=dict(state.items),
            catalog=state.catalog(),
            config=self.config,
            decisions=state.pairing_decisions,
            today=today,
            window=window,
            cell_order=state.cell_order,
        )

    # crews -----------------------------------------------------------
    def list_crews(self, *, include_archived: bool = False) -> List[Crew]:
        crews = [crew for crew in self.state.crews.values() if include_archived or not crew.is_archived]
        return sorted(crews, key=lambda crew: (crew.shift != "day", crew.position, crew.name.lower()))

    def get_crew(self, crew_id: str) -> Crew:
        crew = self.state.crews.get(crew_id)
        if crew is None:
            raise NotFoundError(f"Crew not found: {crew_id}")
        return crew

    def add_crew(self, *, name: str, shift: str = "day", depot_id: str | None = None) -> Crew:
        if not name.strip():
            raise ValidationError("Crew name cannot be empty.")
        self.repository.push_history("crew.add")
        in_shift = shift_order(self.state.crews.values(), shift.strip().lower())
        position = max((crew.position for crew in in_shift), default=-1) + 1
        crew = Crew(id=new_id(), name=name, shift=shift, depot_id=depot_id, position=position)
        try:
            crew.normalize()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self.state.crews[crew.id] = crew
        return crew

    def update_crew(
        self,
        crew_id: str,
        *,
        name: str | None = None,
        shift: str | None = None,
        position: int | None = None,
    ) -> Crew:
        crew = self.get_crew(crew_id)
        self.repository.push_history("crew.update")
        updated = replace(
            crew,
            name=name if name is not None else crew.name,
            shift=shift if shift is not None else crew.shift,
            position=position if position is not None else crew.position,
        )
        try:
            updated.normalize()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self.state.crews[crew_id] = updated
        return updated

    def preview_archive(self, crew_id: str, window: ViewWindow | None = None) -> Dict[str, Any]:
        crew = self.get_crew(crew_id)
        window = window or self.default_window()
        plan = plan_archive(self.state.crews, self.state.items.values(), crew, window, move_to_previous=False)
        target = previous_crew(self.state.crews.values(), crew)
        return {
            "crew_id": crew.id,
            "future_items": len(plan.future),
            "previous_crew_id": target.id if target else None,
            "previous_crew_name": target.name if target else None,
        }

    def archive_crew(
        self,
        crew_id: str,
        *,
        window: ViewWindow | None = None,
        move_to_previous: bool = False,
        now: datetime | None = None,
    ) -> ArchivePlan:
        crew = self.get_crew(crew_id)
        if crew.is_archived:
            raise ConflictError(f"Crew {crew.name} is already archived.")
        window = window or self.default_window()
        plan = plan_archive(
            self.state.crews,
            self.state.items.values(),
            crew,
            window,
            move_to_previous=move_to_previous,
        )
        self.repository.push_history("crew.archive")
        if not plan.diff.is_empty():
            self._commit("crew.move_items", plan.diff, history=False)
        archived = replace(crew, archived_at=now or datetime.now(timezone.utc))
        self.state.crews[crew.id] = archived
        plan.crew = archived
        logger.info("archived crew %s (%d future item(s), moved=%s)", crew.name, len(plan.future), bool(plan.target))
        return plan

    # catalog ---------------------------------------------------------
    def list_vehicles(self) -> List[Vehicle]:
        return sorted(self.state.vehicles.values(), key=lambda vehicle: vehicle.name.lower())

    def add_vehicle(
        self,
        *,
        name: str,
        vehicle_type: str | None = None,
        category: str | None = None,
        default_color: str | None = None,
    ) -> Vehicle:
        if not name.strip():
            raise ValidationError("Vehicle name cannot be empty.")
        self.repository.push_history("vehicle.add")
        vehicle = Vehicle(
            id=new_id(),
            name=name.strip(),
            vehicle_type=vehicle_type,
            category=category,
            default_color=default_color,
        )
        self.state.vehicles[vehicle.id] = vehicle
        return vehicle

    def list_employees(self) -> List[Employee]:
        return sorted(self.state.employees.values(), key=lambda employee: employee.name.lower())

    def add_employee(self, *, name: str, job_role: str | None = None) -> Employee:
        if not name.strip():
            raise ValidationError("Employee name cannot be empty.")
        self.repository.push_history("employee.add")
        employee = Employee(id=new_id(), name=name.strip(), job_role=job_role)
        self.state.employees[employee.id] = employee
        return employee

    def get_employee(self, employee_id: str) -> Employee:
        employee = self.state.employees.get(employee_id)
        if employee is None:
            raise NotFoundError(f"Employee not found: {employee_id}")
        return employee

    def update_employee(
        self,
        employee_id: str,
        *,
        name: str | None = None,
        job_role: str | None = None,
        status: str | None = None,
    ) -> Employee:
        employee = self.get_employee(employee_id)
        updated = replace(
            employee,
            name=name if name is not None else employee.name,
            job_role=job_role if job_role is not None else employee.job_role,
            status=status if status is not None else employee.status,
        )
        try:
            updated.normalize()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if not updated.name:
            raise ValidationError("Employee name cannot be empty.")
        self.repository.push_history("employee.update")
        self.state.employees[employee_id] = updated
        return updated

    # time off --------------------------------------------------------
    def preview_time_off(
        self,
        employee_id: str,
        start: date,
        end: date | None = None,
        *,
        absence_type: str = "holiday",
        today: date | None = None,
    ) -> TimeOffPlan:
        self.get_employee(employee_id)
        return plan_time_off(
            self.state.items,
            self.state.crews,
            employee_id,
            absence_type,
            start,
            end,
            today=today or self.today(),
            limit=self.config.general.max_range_dates,
        )

    def apply_time_off(
        self,
        employee_id: str,
        start: date,
        end: date | None = None,
        *,
        absence_type: str = "holiday",
        today: date | None = None,
    ) -> TimeOffPlan:
        """Clear the employee's future assignments in the period and record the absence.

        Holidays and sickness are kept as absence records; sickness also marks
        the employee unavailable until their status is set back to active.
        """
        plan = self.preview_time_off(employee_id, start, end, absence_type=absence_type, today=today)
        self.repository.push_history("employee.time_off")
        if not plan.diff.is_empty():
            plan.diff = self._commit("employee.time_off", plan.diff, history=False)
        if plan.records_absence:
            absence = Absence(
                id=new_id(),
                employee_id=employee_id,
                absence_type=absence_type,
                start=plan.start,
                end=plan.end,
            )
            self.state.absences[absence.id] = absence
            plan.absence = absence
        if plan.marks_sick:
            self.state.employees[employee_id] = replace(self.state.employees[employee_id], status="sick")
        logger.info(
            "time off (%s) for %s: %d assignment(s) cleared",
            absence_type,
            employee_id,
            len(plan.impacted),
        )
        return plan

    def list_absences(self, employee_id: str | None = None) -> List[Absence]:
        absences = [
            absence
            for absence in self.state.absences.values()
            if employee_id is None or absence.employee_id == employee_id
        ]
        return sorted(absences, key=lambda absence: (absence.start, absence.end))

    # items -----------------------------------------------------------
    def get_item(self, item_id: str) -> ScheduleItem:
        item = self.state.items.get(item_id)
        if item is None:
            raise NotFoundError(f"Item not found: {item_id}")
        return item

    def list_items(
        self,
        *,
        start: date | None = None,
        end: date | None = None,
        crew_id: str | None = None,
    ) -> List[ScheduleItem]:
        selected = [
            item
            for item in self.state.items.values()
            if (start is None or item.day >= start)
            and (end is None or item.day <= end)
            and (crew_id is None or item.crew_id == crew_id)
        ]
        rows: List[ScheduleItem] = []
        for key, cell in sorted(index_items(selected).items(), key=lambda entry: (entry[0].day, entry[0].crew_id)):
            rows.extend(ordered_cell_items(cell, self.state.cell_order.get(key.token())))
        return rows

    def _check_crew(self, crew_id: str) -> Crew:
        crew = self.get_crew(crew_id)
        if crew.is_archived:
            raise ValidationError(f"Crew {crew.name} is archived.")
        return crew

    def _replica_dates(
        self,
        item: ScheduleItem,
        scope: RangeScope,
        *,
        today: date,
        window: ViewWindow | None,
        weekdays_only: bool = False,
    ) -> List[date]:
        """Dates that copies of ``item`` land on when replicated over ``scope``.

        Assignments replicated over a month or longer only land on weekdays,
        and never on a day where the employee already works for the crew.
        """
        dates = expand_range(
            item.day,
            scope,
            window or self.default_window(today),
            today=today,
            weekdays_only=weekdays_only or (item.is_assignment and scope.kind in LONG_SCOPES),
            limit=self.config.general.max_range_dates,
        )
        if not item.is_assignment:
            return dates
        taken = {
            entry.day
            for entry in self.state.items.values()
            if entry.is_assignment and entry.crew_id == item.crew_id and entry.employee_id == item.employee_id
        }
        return [target for target in dates if target not in taken]

    def create_item(
        self,
        *,
        kind: str,
        day: date,
        crew_id: str,
        today: date | None = None,
        apply_scope: RangeScope | None = None,
        window: ViewWindow | None = None,
        **values: Any,
    ) -> List[ScheduleItem]:
        """Create an item, optionally replicated forward over ``apply_scope``."""
        today = today or self.today()
        if day < today:
            raise PastDateRejected(f"Cannot create on {day.isoformat()}, it is in the past.")
        crew = self._check_crew(crew_id)
        unknown = set(values) - ITEM_FIELDS
        if unknown:
            raise UsageError(f"Unknown item field(s): {', '.join(sorted(unknown))}")
        values.setdefault("depot_id", crew.depot_id)
        item = ScheduleItem(id=new_id(), kind=kind, day=day, crew_id=crew_id, **values)
        try:
            item.normalize()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        created = [item]
        if apply_scope is not None and apply_scope.kind != "single":
            dates = self._replica_dates(item, apply_scope, today=today, window=window)
            created.extend(duplicate_to(item, crew_id, target) for target in dates)
        self._commit("item.create", ItemDiff(to_create=created))
        return created

    def update_item(self, item_id: str, *, today: date | None = None, **changes: Any) -> ScheduleItem:
        today = today or self.today()
        item = self.get_item(item_id)
        unknown = set(changes) - ITEM_FIELDS
        if unknown or IMMUTABLE_FIELDS & set(changes):
            raise UsageError(f"Field(s) cannot be changed: {', '.join(sorted(unknown | (IMMUTABLE_FIELDS & set(changes))))}")
        if item.day < today and set(changes) - PAST_EDITABLE:
            raise PastDateRejected("Past items only accept colour and status changes.")
        if "day" in changes and changes["day"] < today:
            raise PastDateRejected(f"Cannot move onto {changes['day'].isoformat()}, it is in the past.")
        if "crew_id" in changes and changes["crew_id"] != item.crew_id:
            self._check_crew(changes["crew_id"])
        updated = replace(item, **changes)
        try:
            updated.normalize()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        diff = ItemDiff(to_update=[updated])
        if item.is_assignment and (updated.day != item.day or updated.crew_id != item.crew_id):
            for job in linked_free_jobs(self.state.items.values(), item):
                diff.to_update.append(replace(job, day=updated.day, crew_id=updated.crew_id))
        self._commit("item.update", diff)
        return self.state.items.get(updated.id, updated)

    def group_choice(self, item_id: str) -> GroupChoice:
        return group_choice(self.state.items.values(), self.get_item(item_id))

    def _series(
        self,
        item: ScheduleItem,
        scope: RangeScope,
        window: ViewWindow | None,
        today: date,
    ) -> List[ScheduleItem]:
        dates = set(
            expand_range(
                item.day,
                scope,
                window,
                today=today,
                limit=self.config.general.max_range_dates,
            )
        )
        return [entry for entry in self.state.items.values() if entry.day in dates and _same_series(item, entry)]

    def _with_linked(self, targets: Iterable[ScheduleItem]) -> List[str]:
        ids: Dict[str, None] = {}
        items = list(self.state.items.values())
        for entry in targets:
            ids[entry.id] = None
            for job in linked_free_jobs(items, entry):
                ids[job.id] = None
        return list(ids)

    def delete_item(
        self,
        item_id: str,
        *,
        today: date | None = None,
        scope: RangeScope | None = None,
        window: ViewWindow | None = None,
        apply_to_group: bool = False,
    ) -> ItemDiff:
        today = today or self.today()
        item = self.get_item(item_id)
        if item.day < today:
            raise PastDateRejected("Past items cannot be deleted.")
        scope = scope or RangeScope.single()
        if scope.kind == "single":
            targets = resolve_targets(self.state.items.values(), item, apply_to_group=apply_to_group, today=today)
        else:
            targets = [item, *self._series(item, scope, window or self.default_window(today), today)]
        return self._commit("item.delete", ItemDiff(to_delete=self._with_linked(targets)))

    def duplicate_item(
        self,
        item_id: str,
        scope: RangeScope,
        *,
        today: date | None = None,
        window: ViewWindow | None = None,
        weekdays_only: bool = False,
    ) -> List[ScheduleItem]:
        today = today or self.today()
        item = self.get_item(item_id)
        dates = self._replica_dates(item, scope, today=today, window=window, weekdays_only=weekdays_only)
        copies = [duplicate_to(item, item.crew_id, target) for target in dates]
        self._commit("item.duplicate", ItemDiff(to_create=copies))
        return copies

    def bulk_update(
        self,
        item_id: str,
        scope: RangeScope,
        changes: Mapping[str, Any],
        *,
        today: date | None = None,
        window: ViewWindow | None = None,
    ) -> List[ScheduleItem]:
        today = today or self.today()
        item = self.get_item(item_id)
        blocked = set(changes) & (IMMUTABLE_FIELDS | {"day", "crew_id"})
        if blocked or set(changes) - ITEM_FIELDS:
            raise UsageError("Bulk updates cannot change identity, date or crew.")
        if item.day < today:
            raise PastDateRejected("Past items cannot be bulk-edited.")
        targets = [item, *self._series(item, scope, window or self.default_window(today), today)]
        updated = []
        for entry in dict((target.id, target) for target in targets).values():
            candidate = replace(entry, **changes)
            try:
                candidate.normalize()
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
            updated.append(candidate)
        self._commit("item.bulk_update", ItemDiff(to_update=updated))
        return updated

    def set_color(
        self,
        item_id: str,
        color: str,
        *,
        today: date | None = None,
        apply_to_group: bool = False,
    ) -> List[ScheduleItem]:
        today = today or self.today()
        item = self.get_item(item_id)
        targets = resolve_targets(self.state.items.values(), item, apply_to_group=apply_to_group, today=today)
        if item.day < today and not apply_to_group:
            targets = [item]
        updated = [replace(entry, color=color) for entry in targets if entry.color != color]
        self._commit("item.color", ItemDiff(to_update=updated))
        return updated

    def move_to_date(
        self,
        item_id: str,
        new_day: date,
        *,
        today: date | None = None,
        move_group: bool = False,
    ) -> ItemDiff:
        today = today or self.today()
        item = self.get_item(item_id)
        if new_day < today:
            raise PastDateRejected(f"Cannot move onto {new_day.isoformat()}, it is in the past.")
        if item.day < today:
            raise PastDateRejected("Past items cannot be moved.")
        delta: timedelta = new_day - item.day
        members = resolve_targets(self.state.items.values(), item, apply_to_group=move_group, today=today)
        diff = ItemDiff()
        for entry in members:
            target = entry.day + delta
            if target < today:
                continue
            diff = diff.then(relocate(self.state.items, entry, entry.crew_id, target))
        return self._commit("item.move_date", diff)

    # drag ------------------------------------------------------------
    def begin_drag(
        self,
        item_ids: Sequence[str],
        *,
        today: date | None = None,
        window: ViewWindow | None = None,
        duplicate: bool = False,
    ) -> DragGesture:
        today = today or self.today()
        gesture = DragGesture(self._context(today, window or self.default_window(today)))
        gesture.start(item_ids, duplicate=duplicate)
        return gesture

    def finish_drag(self, gesture: DragGesture, target: DropTarget | None, *, scope: str = "day") -> MoveOutcome:
        if target is not None and target.crew_id:
            self._check_crew(target.crew_id)
        outcome = gesture.drop(target, scope=scope)
        if outcome.cell_order is not None:
            token, order = outcome.cell_order
            self.repository.push_history("cell.reorder")
            self.state.cell_order[token] = order
        if not outcome.diff.is_empty():
            outcome.diff = self._commit(f"drag.{outcome.action}", outcome.diff)
        if outcome.prompts and not self.config.general.prompt_pairing:
            for prompt in outcome.prompts:
                self.decide_pairing(prompt.key.crew_id, prompt.key.day, "combined", today=gesture.context.today)
            outcome.prompts = []
        return outcome

    def drag(
        self,
        item_ids: Sequence[str],
        target: DropTarget | None,
        *,
        today: date | None = None,
        window: ViewWindow | None = None,
        duplicate: bool = False,
        scope: str = "day",
    ) -> MoveOutcome:
        gesture = self.begin_drag(item_ids, today=today, window=window, duplicate=duplicate)
        if gesture.phase != "dragging":
            return MoveOutcome(phase=gesture.phase, action="rejected", reason="past item")
        return self.finish_drag(gesture, target, scope=scope)

    def reorder_cell(self, crew_id: str, day: date, active_id: str, over_id: str) -> List[str]:
        key = CellKey(crew_id, day)
        cell = [item for item in self.state.items.values() if item.cell_key == key]
        current = [item.id for item in ordered_cell_items(cell, self.state.cell_order.get(key.token()))]
        order = reorder(current, active_id, over_id)
        if order != current:
            self.repository.push_history("cell.reorder")
            self.state.cell_order[key.token()] = order
        return order

    # pairing ---------------------------------------------------------
    def evaluate_cell(self, crew_id: str, day: date) -> CellPairing:
        key = CellKey(crew_id, day)
        cell = [item for item in self.state.items.values() if item.cell_key == key]
        return evaluate_cell(key, cell, self.state.catalog(), self.config, self.state.pairing_decisions)

    def decide_pairing(
        self,
        crew_id: str,
        day: date,
        decision: str,
        *,
        today: date | None = None,
        period: str = "none",
        window: ViewWindow | None = None,
    ) -> List[CellPairing]:
        """Record combine/separate for the cell, optionally for the same crew over a period.

        Combining recolours the cell's jobs (bookings first, with their job-number
        groups) to the pairing colour. Cells without an actionable pairing are skipped.
        """
        if decision not in DECISIONS:
            raise UsageError(f"Unknown pairing decision: {decision}")
        if period not in PAIRING_PERIODS:
            raise UsageError(f"Unknown pairing period: {period}")
        today = today or self.today()
        self._check_crew(crew_id)
        scope = PAIRING_PERIODS[period]
        days = [day] if day >= today else []
        if scope is not None:
            days.extend(
                expand_range(
                    day,
                    scope,
                    window or self.default_window(today),
                    today=today,
                    weekdays_only=period != "week",
                    limit=self.config.general.max_range_dates,
                )
            )
        index = index_items(self.state.items.values())
        decided: List[CellPairing] = []
        recolor: Dict[str, ScheduleItem] = {}
        self.repository.push_history("pairing.decide")
        for target in days:
            key = CellKey(crew_id, target)
            cell = index.get(key, [])
            evaluation = evaluate_cell(key, cell, self.state.catalog(), self.config, self.state.pairing_decisions)
            if not evaluation.actionable:
                continue
            record_decision(self.state.pairing_decisions, key, decision, evaluation.signature)
            evaluation.decision = decision
            decided.append(evaluation)
            if decision != "combined" or not evaluation.color:
                continue
            seeds = [item for item in cell if item.is_booked] or [item for item in cell if item.is_job]
            for seed in seeds:
                for entry in resolve_targets(self.state.items.values(), seed, apply_to_group=True, today=today):
                    if entry.color != evaluation.color and not entry.is_auto_linked:
                        recolor[entry.id] = replace(entry, color=evaluation.color)
        self._commit(
            f"pairing.{decision}",
            ItemDiff(to_update=list(recolor.values())),
            extra_cells=[entry.key for entry in decided],
            history=False,
        )
        return decided

    def prune_decisions(self) -> List[str]:
        return prune_stale_decisions(
            self.state.items.values(),
            self.state.pairing_decisions,
            self.state.catalog(),
            self.config,
        )

    # sync ------------------------------------------------------------
    def sync_cell(self, crew_id: str, day: date) -> ItemDiff:
        return self._commit("cell.sync", ItemDiff(), extra_cells=[CellKey(crew_id, day)])

    def sync_all(self) -> ItemDiff:
        keys = {item.cell_key for item in self.state.items.values()}
        return self._commit("cell.sync_all", ItemDiff(), extra_cells=keys)

    def cell_rows(self, window: ViewWindow) -> List[CellRow]:
        index = index_items(self.state.items.values())
        rows: List[CellRow] = []
        for crew in self.list_crews():
            for target in daterange(window.start, window.end):
                key = CellKey(crew.id, target)
                cell = index.get(key, [])
                pairing = evaluate_cell(key, cell, self.state.catalog(), self.config, self.state.pairing_decisions)
                rows.append(
                    CellRow(
                        crew=crew,
                        day=target,
                        items=ordered_cell_items(cell, self.state.cell_order.get(key.token())),
                        pairing=pairing,
                    )
                )
        return rows

    # persistence -----------------------------------------------------
    def save_state(self, path: str | None = None) -> Path:
        target = Path(path) if path else self.repository.path
        self.repository.save(target)
        return target

    def load_state(self, path: str) -> Path:
        target = Path(path)
        self.repository.load(target)
        return target

    def undo(self) -> str:
        return self.repository.undo().label
