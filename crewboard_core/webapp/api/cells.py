from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ... import errors
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import CellOut, DiffOut, ReorderRequest
from .common import diff_out, item_out, pairing_out

router = APIRouter()


@router.get("/", response_model=List[CellOut])
def list_cells(
    container: ServiceContainer = Depends(get_container),
    today: Optional[date] = Query(default=None),
    week_start: Optional[date] = Query(default=None),
) -> List[CellOut]:
    window = container.window(week_start, container.today(today))
    rows = container.read(container.service.cell_rows, window)
    return [
        CellOut(
            crew_id=row.crew.id,
            crew_name=row.crew.name,
            date=row.day,
            items=[item_out(item) for item in row.items],
            pairing=pairing_out(row.pairing),
        )
        for row in rows
    ]


@router.post("/sync", response_model=DiffOut)
def sync_all(container: ServiceContainer = Depends(get_container)) -> DiffOut:
    return diff_out(container.mutate(container.service.sync_all))


@router.post("/{crew_id}/{day}/sync", response_model=DiffOut)
def sync_cell(crew_id: str, day: date, container: ServiceContainer = Depends(get_container)) -> DiffOut:
    try:
        diff = container.mutate(container.service.sync_cell, crew_id, day)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return diff_out(diff)


@router.post("/{crew_id}/{day}/reorder", response_model=List[str])
def reorder_cell(
    crew_id: str,
    day: date,
    payload: ReorderRequest,
    container: ServiceContainer = Depends(get_container),
) -> List[str]:
    try:
        return container.mutate(container.service.reorder_cell, crew_id, day, payload.active_id, payload.over_id)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
