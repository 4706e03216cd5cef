from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from .cells import index_items, items_in_cell
from .config import Config
from .diff import ItemDiff, OrphanReference
from .models import FREE_LABEL, Catalog, CellKey, PairingDecision, ScheduleItem, new_id
from .pairing import evaluate_cell, resolve_cell_color, resolve_vehicle_color

logger = logging.getLogger(__name__)


def find_orphans(item: ScheduleItem, catalog: Catalog) -> List[OrphanReference]:
    orphans: List[OrphanReference] = []
    if item.crew_id not in catalog.crews:
        orphans.append(OrphanReference(item.id, "crew_id", item.crew_id))
    if item.employee_id and item.employee_id not in catalog.employees:
        orphans.append(OrphanReference(item.id, "employee_id", item.employee_id))
    if item.vehicle_id and item.vehicle_id not in catalog.vehicles:
        orphans.append(OrphanReference(item.id, "vehicle_id", item.vehicle_id))
    return orphans


def free_placeholder(assignment: ScheduleItem, color: str, config: Config) -> ScheduleItem:
    return ScheduleItem(
        id=new_id(),
        kind="job",
        day=assignment.day,
        crew_id=assignment.crew_id,
        depot_id=assignment.depot_id,
        customer_name=FREE_LABEL,
        address=FREE_LABEL,
        start_time=config.general.free_start_time,
        duration_hours=config.general.free_duration_hours,
        color=color,
        job_status="free",
        employee_id=assignment.employee_id,
        vehicle_id=assignment.vehicle_id,
    )


def linked_free_jobs(items: Iterable[ScheduleItem], assignment: ScheduleItem) -> List[ScheduleItem]:
    """Auto-linked free jobs that belong to ``assignment`` (same cell, same employee)."""
    if not assignment.is_assignment or not assignment.employee_id:
        return []
    return [
        item
        for item in items
        if item.is_auto_linked
        and item.employee_id == assignment.employee_id
        and item.crew_id == assignment.crew_id
        and item.day == assignment.day
    ]


def sync_cell(
    items: Iterable[ScheduleItem],
    crew_id: str,
    day: date,
    *,
    catalog: Catalog,
    config: Config,
    decisions: Mapping[str, PairingDecision],
) -> ItemDiff:
    """Diff that brings the cell's auto-linked free jobs in line with its assignments.

    One free job per assignment carrying both an employee and a vehicle. When
    the cell is combined only a single free job survives, and none survives
    once a booking lands in a combined cell. Employees that already hold a
    booked job in the cell get no free job. Assignments with unknown
    references are skipped and reported in ``ItemDiff.orphans``.
    """
    key = CellKey(crew_id, day)
    cell = items_in_cell(items, crew_id, day)
    pairing = evaluate_cell(key, cell, catalog, config, decisions)
    diff = ItemDiff()

    wanted: Dict[str, ScheduleItem] = {}
    skipped: set[str] = set()
    for item in cell:
        if not item.is_assignment or not item.employee_id or not item.vehicle_id:
            continue
        orphans = find_orphans(item, catalog)
        if orphans:
            diff.orphans.extend(orphans)
            skipped.add(item.employee_id)
            for orphan in orphans:
                logger.warning("skipping %s: unknown %s %s", orphan.item_id, orphan.field, orphan.reference)
            continue
        wanted.setdefault(item.employee_id, item)

    existing: Dict[str, List[ScheduleItem]] = defaultdict(list)
    for item in cell:
        if item.is_auto_linked:
            existing[item.employee_id].append(item)
    booked_employees = {item.employee_id for item in cell if item.is_booked and item.employee_id}
    has_booking = any(item.is_booked for item in cell)

    for employee_id, jobs in existing.items():
        if employee_id not in wanted and employee_id not in skipped:
            diff.to_delete.extend(job.id for job in jobs)

    def desired_color(assignment: ScheduleItem) -> str:
        fallback = resolve_vehicle_color(catalog.vehicles.get(assignment.vehicle_id), config)
        color = resolve_cell_color(pairing.label, pairing.decision, fallback, config)
        return color or config.general.default_color

    def keep(job: ScheduleItem, assignment: ScheduleItem) -> None:
        color = desired_color(assignment)
        if job.vehicle_id != assignment.vehicle_id or job.color != color:
            diff.to_update.append(replace(job, vehicle_id=assignment.vehicle_id, color=color))

    if pairing.combined:
        candidates = [job for emp in wanted for job in existing.get(emp, [])]
        if has_booking:
            diff.to_delete.extend(job.id for job in candidates)
        else:
            keeper: Optional[ScheduleItem] = candidates[0] if candidates else None
            if keeper is None and wanted:
                first = next(iter(wanted.values()))
                diff.to_create.append(free_placeholder(first, desired_color(first), config))
            elif keeper is not None:
                keep(keeper, wanted[keeper.employee_id])
            diff.to_delete.extend(job.id for job in candidates[1:])
    else:
        for employee_id, assignment in wanted.items():
            jobs = existing.get(employee_id, [])
            if employee_id in booked_employees:
                diff.to_delete.extend(job.id for job in jobs)
                continue
            if not jobs:
                diff.to_create.append(free_placeholder(assignment, desired_color(assignment), config))
                continue
            keep(jobs[0], assignment)
            diff.to_delete.extend(job.id for job in jobs[1:])

    if not diff.is_empty():
        logger.debug(
            "sync %s: +%d ~%d -%d",
            key.token(),
            len(diff.to_create),
            len(diff.to_update),
            len(diff.to_delete),
        )
    return diff


def sync_cells(
    items: Mapping[str, ScheduleItem],
    keys: Iterable[CellKey],
    *,
    catalog: Catalog,
    config: Config,
    decisions: Mapping[str, PairingDecision],
) -> ItemDiff:
    """Sync several cells against one index of ``items``, in date then crew order."""
    index = index_items(items.values())
    result = ItemDiff()
    for key in sorted(set(keys), key=lambda k: (k.day, k.crew_id)):
        cell = index.get(key, [])
        step = sync_cell(cell, key.crew_id, key.day, catalog=catalog, config=config, decisions=decisions)
        if not step.is_empty():
            index[key] = list(step.apply_to({item.id: item for item in cell}).values())
        # each step only touches its own cell
        result.to_create.extend(step.to_create)
        result.to_update.extend(step.to_update)
        result.to_delete.extend(step.to_delete)
        result.orphans.extend(entry for entry in step.orphans if entry not in result.orphans)
    return result
