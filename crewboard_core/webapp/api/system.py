from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from ... import errors
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import SaveStateResponse, StateLoadRequest, StateSaveRequest, UndoResponse

router = APIRouter()


@router.get("/today", response_model=date)
def today(container: ServiceContainer = Depends(get_container)) -> date:
    return container.service.today()


@router.post("/save", response_model=SaveStateResponse)
def save_state(payload: StateSaveRequest, container: ServiceContainer = Depends(get_container)) -> SaveStateResponse:
    try:
        target = container.save_state(payload.path)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return SaveStateResponse(path=str(target))


@router.post("/load", response_model=SaveStateResponse)
def load_state(payload: StateLoadRequest, container: ServiceContainer = Depends(get_container)) -> SaveStateResponse:
    try:
        target = container.load_state(payload.path)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return SaveStateResponse(path=str(target))


@router.post("/undo", response_model=UndoResponse)
def undo(container: ServiceContainer = Depends(get_container)) -> UndoResponse:
    try:
        label = container.undo()
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return UndoResponse(message=container.localizer.text("undo.applied", label=label))
