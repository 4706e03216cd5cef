from __future__ import annotations

from datetime import date
from typing import List

from fastapi import APIRouter, Depends

from ... import errors
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import PairingDecisionRequest, PairingOut
from .common import pairing_out

router = APIRouter()


@router.get("/{crew_id}/{day}", response_model=PairingOut)
def evaluate_cell(crew_id: str, day: date, container: ServiceContainer = Depends(get_container)) -> PairingOut:
    return pairing_out(container.read(container.service.evaluate_cell, crew_id, day))


@router.post("/decide", response_model=List[PairingOut])
def decide(payload: PairingDecisionRequest, container: ServiceContainer = Depends(get_container)) -> List[PairingOut]:
    today = container.today(payload.today)
    try:
        decided = container.mutate(
            container.service.decide_pairing,
            payload.crew_id,
            payload.date,
            payload.decision,
            today=today,
            period=payload.period,
            window=container.window(payload.week_start, today),
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return [pairing_out(entry) for entry in decided]


@router.post("/prune", response_model=List[str])
def prune(container: ServiceContainer = Depends(get_container)) -> List[str]:
    return container.mutate(container.service.prune_decisions)
