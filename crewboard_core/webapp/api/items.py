from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ... import errors
from ...moves import DropTarget
from ...ranges import RangeScope
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import (
    ColorRequest,
    DiffOut,
    DragRequest,
    DragResponse,
    DuplicateRequest,
    GroupInfo,
    ItemCreate,
    ItemFields,
    ItemOut,
    ItemUpdate,
    MoveDateRequest,
)
from .common import diff_out, item_out, pairing_out

router = APIRouter()

VIEW_FIELDS = {"today", "week_start", "scope"}


def _scope(token: Optional[str]) -> Optional[RangeScope]:
    return RangeScope.parse(token) if token else None


@router.get("/", response_model=List[ItemOut])
def list_items(
    container: ServiceContainer = Depends(get_container),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    crew_id: Optional[str] = Query(default=None),
) -> List[ItemOut]:
    items = container.read(lambda: container.service.list_items(start=start, end=end, crew_id=crew_id))
    return [item_out(item) for item in items]


@router.post("/", response_model=List[ItemOut], status_code=status.HTTP_201_CREATED)
def create_item(payload: ItemCreate, container: ServiceContainer = Depends(get_container)) -> List[ItemOut]:
    today = container.today(payload.today)
    values = payload.model_dump(include=set(ItemFields.model_fields), exclude_none=True)
    try:
        created = container.mutate(
            container.service.create_item,
            kind=payload.kind,
            day=payload.date,
            crew_id=payload.crew_id,
            today=today,
            apply_scope=_scope(payload.repeat),
            window=container.window(payload.week_start, today),
            **values,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return [item_out(item) for item in created]


@router.get("/{item_id}", response_model=ItemOut)
def get_item(item_id: str, container: ServiceContainer = Depends(get_container)) -> ItemOut:
    try:
        item = container.read(container.service.get_item, item_id)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return item_out(item)


@router.put("/{item_id}", response_model=List[ItemOut])
def update_item(item_id: str, payload: ItemUpdate, container: ServiceContainer = Depends(get_container)) -> List[ItemOut]:
    today = container.today(payload.today)
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if key not in VIEW_FIELDS}
    if "date" in changes:
        changes["day"] = changes.pop("date")
    try:
        scope = _scope(payload.scope)
        if scope is None or scope.kind == "single":
            updated = [container.mutate(container.service.update_item, item_id, today=today, **changes)]
        else:
            updated = container.mutate(
                container.service.bulk_update,
                item_id,
                scope,
                changes,
                today=today,
                window=container.window(payload.week_start, today),
            )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return [item_out(item) for item in updated]


@router.delete("/{item_id}", response_model=DiffOut)
def delete_item(
    item_id: str,
    container: ServiceContainer = Depends(get_container),
    scope: Optional[str] = Query(default=None),
    apply_to_group: bool = Query(default=False),
    today: Optional[date] = Query(default=None),
    week_start: Optional[date] = Query(default=None),
) -> DiffOut:
    current = container.today(today)
    try:
        diff = container.mutate(
            container.service.delete_item,
            item_id,
            today=current,
            scope=_scope(scope),
            window=container.window(week_start, current),
            apply_to_group=apply_to_group,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return diff_out(diff)


@router.get("/{item_id}/group", response_model=GroupInfo)
def item_group(item_id: str, container: ServiceContainer = Depends(get_container)) -> GroupInfo:
    try:
        choice = container.read(container.service.group_choice, item_id)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return GroupInfo(
        item_id=choice.item.id,
        job_number=choice.item.job_number,
        group_count=choice.group_count,
        needs_choice=choice.needs_choice,
        item_ids=[entry.id for entry in choice.group],
    )


@router.post("/{item_id}/duplicate", response_model=List[ItemOut], status_code=status.HTTP_201_CREATED)
def duplicate_item(
    item_id: str,
    payload: DuplicateRequest,
    container: ServiceContainer = Depends(get_container),
) -> List[ItemOut]:
    today = container.today(payload.today)
    try:
        copies = container.mutate(
            container.service.duplicate_item,
            item_id,
            RangeScope.parse(payload.scope),
            today=today,
            window=container.window(payload.week_start, today),
            weekdays_only=payload.weekdays_only,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return [item_out(item) for item in copies]


@router.post("/{item_id}/color", response_model=List[ItemOut])
def color_item(item_id: str, payload: ColorRequest, container: ServiceContainer = Depends(get_container)) -> List[ItemOut]:
    try:
        updated = container.mutate(
            container.service.set_color,
            item_id,
            payload.color,
            today=container.today(payload.today),
            apply_to_group=payload.apply_to_group,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return [item_out(item) for item in updated]


@router.post("/{item_id}/move-date", response_model=DiffOut)
def move_item_date(
    item_id: str,
    payload: MoveDateRequest,
    container: ServiceContainer = Depends(get_container),
) -> DiffOut:
    try:
        diff = container.mutate(
            container.service.move_to_date,
            item_id,
            payload.date,
            today=container.today(payload.today),
            move_group=payload.move_group,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return diff_out(diff)


@router.post("/drag", response_model=DragResponse)
def drag_items(payload: DragRequest, container: ServiceContainer = Depends(get_container)) -> DragResponse:
    today = container.today(payload.today)
    if payload.over_item_id:
        target: Optional[DropTarget] = DropTarget.on_item(payload.over_item_id)
    elif payload.target_crew_id and payload.target_date:
        target = DropTarget.cell(payload.target_crew_id, payload.target_date)
    else:
        target = None
    try:
        outcome = container.mutate(
            container.service.drag,
            payload.item_ids,
            target,
            today=today,
            window=container.window(payload.week_start, today),
            duplicate=payload.duplicate,
            scope=payload.scope,
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return DragResponse(
        phase=outcome.phase,
        action=outcome.action,
        reason=outcome.reason,
        diff=diff_out(outcome.diff),
        cell_order=outcome.cell_order[1] if outcome.cell_order else None,
        prompts=[pairing_out(prompt) for prompt in outcome.prompts],
    )
