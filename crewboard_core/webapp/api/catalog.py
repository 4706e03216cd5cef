from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ... import errors
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import VehicleCreate, VehicleOut

router = APIRouter()


@router.get("/vehicles", response_model=List[VehicleOut])
def list_vehicles(container: ServiceContainer = Depends(get_container)) -> List[VehicleOut]:
    vehicles = container.read(container.service.list_vehicles)
    return [VehicleOut(**vehicle.to_dict()) for vehicle in vehicles]


@router.post("/vehicles", response_model=VehicleOut, status_code=status.HTTP_201_CREATED)
def create_vehicle(payload: VehicleCreate, container: ServiceContainer = Depends(get_container)) -> VehicleOut:
    try:
        vehicle = container.mutate(container.service.add_vehicle, **payload.model_dump())
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return VehicleOut(**vehicle.to_dict())
