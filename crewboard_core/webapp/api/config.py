from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ... import errors
from ...config import Config, GeneralConfig, PairingConfig, merge_vehicle_types
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import ConfigPayload, Message

router = APIRouter()


def _payload_from_config(container: ServiceContainer) -> ConfigPayload:
    cfg = container.config
    return ConfigPayload(
        general=asdict(cfg.general),
        pairing=asdict(cfg.pairing),
        vehicle_types=dict(cfg.vehicle_types),
    )


@router.get("/", response_model=ConfigPayload)
def get_config(container: ServiceContainer = Depends(get_container)) -> ConfigPayload:
    return _payload_from_config(container)


@router.put("/", response_model=Message)
def update_config(payload: ConfigPayload, container: ServiceContainer = Depends(get_container)) -> Message:
    try:
        cfg = Config(
            general=GeneralConfig(**payload.general.model_dump()),
            pairing=PairingConfig(**payload.pairing.model_dump()),
            vehicle_types=merge_vehicle_types(payload.vehicle_types),
        )
        cfg.validate()
        container.set_config(cfg, persist=True)
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return Message(detail="Configuration updated.")


@router.post("/reload", response_model=Message)
def reload_config(container: ServiceContainer = Depends(get_container)) -> Message:
    try:
        container.reload_config()
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return Message(detail="Configuration reloaded from file.")
