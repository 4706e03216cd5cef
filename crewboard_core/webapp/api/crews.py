from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ... import errors
from ...models import Crew
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import (
    CrewArchivePreview,
    CrewArchiveRequest,
    CrewArchiveResponse,
    CrewCreate,
    CrewOut,
    CrewUpdate,
)

router = APIRouter()


def _crew_to_schema(crew: Crew) -> CrewOut:
    return CrewOut(
        id=crew.id,
        name=crew.name,
        shift=crew.shift,
        depot_id=crew.depot_id,
        position=crew.position,
        archived_at=crew.archived_at,
    )


@router.get("/", response_model=List[CrewOut])
def list_crews(
    container: ServiceContainer = Depends(get_container),
    include_archived: bool = Query(default=False),
) -> List[CrewOut]:
    crews = container.read(lambda: container.service.list_crews(include_archived=include_archived))
    return [_crew_to_schema(crew) for crew in crews]


@router.post("/", response_model=CrewOut, status_code=status.HTTP_201_CREATED)
def create_crew(payload: CrewCreate, container: ServiceContainer = Depends(get_container)) -> CrewOut:
    try:
        crew = container.mutate(
            container.service.add_crew,
            name=payload.name,
            shift=payload.shift,
            depot_id=payload.depot_id,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return _crew_to_schema(crew)


@router.put("/{crew_id}", response_model=CrewOut)
def update_crew(crew_id: str, payload: CrewUpdate, container: ServiceContainer = Depends(get_container)) -> CrewOut:
    data = payload.model_dump(exclude_unset=True)
    try:
        crew = container.mutate(container.service.update_crew, crew_id, **data)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return _crew_to_schema(crew)


@router.get("/{crew_id}/archive", response_model=CrewArchivePreview)
def preview_archive(
    crew_id: str,
    container: ServiceContainer = Depends(get_container),
    today: Optional[date] = Query(default=None),
    week_start: Optional[date] = Query(default=None),
) -> CrewArchivePreview:
    current = container.today(today)
    try:
        info = container.read(
            lambda: container.service.preview_archive(crew_id, container.window(week_start, current))
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return CrewArchivePreview(**info)


@router.post("/{crew_id}/archive", response_model=CrewArchiveResponse)
def archive_crew(
    crew_id: str,
    payload: CrewArchiveRequest,
    container: ServiceContainer = Depends(get_container),
) -> CrewArchiveResponse:
    current = container.today(payload.today)
    try:
        plan = container.mutate(
            container.service.archive_crew,
            crew_id,
            window=container.window(payload.week_start, current),
            move_to_previous=payload.move_to_previous,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return CrewArchiveResponse(
        crew=_crew_to_schema(plan.crew),
        future_items=len(plan.future),
        moved_to=plan.target.id if plan.target else None,
    )
