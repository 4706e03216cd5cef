from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ... import errors
from ...timeoff import TimeOffPlan
from ..container import ServiceContainer
from ..dependencies import get_container, http_error
from ..schemas import (
    AbsenceOut,
    EmployeeCreate,
    EmployeeOut,
    EmployeeUpdate,
    TimeOffImpactOut,
    TimeOffPreview,
    TimeOffRequest,
    TimeOffResponse,
)

router = APIRouter()


def _preview_to_schema(plan: TimeOffPlan) -> TimeOffPreview:
    return TimeOffPreview(
        employee_id=plan.employee_id,
        absence_type=plan.absence_type,
        start=plan.start,
        end=plan.end,
        impacted=[TimeOffImpactOut(**impact.to_dict()) for impact in plan.impacted],
    )


@router.get("/", response_model=List[EmployeeOut])
def list_employees(container: ServiceContainer = Depends(get_container)) -> List[EmployeeOut]:
    employees = container.read(container.service.list_employees)
    return [EmployeeOut(**employee.to_dict()) for employee in employees]


@router.post("/", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def create_employee(payload: EmployeeCreate, container: ServiceContainer = Depends(get_container)) -> EmployeeOut:
    try:
        employee = container.mutate(container.service.add_employee, **payload.model_dump())
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return EmployeeOut(**employee.to_dict())


@router.get("/absences", response_model=List[AbsenceOut])
def list_absences(
    container: ServiceContainer = Depends(get_container),
    employee_id: Optional[str] = Query(default=None),
) -> List[AbsenceOut]:
    absences = container.read(container.service.list_absences, employee_id)
    return [AbsenceOut(**absence.to_dict()) for absence in absences]


@router.put("/{employee_id}", response_model=EmployeeOut)
def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    container: ServiceContainer = Depends(get_container),
) -> EmployeeOut:
    try:
        employee = container.mutate(
            container.service.update_employee,
            employee_id,
            **payload.model_dump(exclude_unset=True),
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return EmployeeOut(**employee.to_dict())


@router.post("/{employee_id}/time-off/preview", response_model=TimeOffPreview)
def preview_time_off(
    employee_id: str,
    payload: TimeOffRequest,
    container: ServiceContainer = Depends(get_container),
) -> TimeOffPreview:
    try:
        plan = container.read(
            container.service.preview_time_off,
            employee_id,
            payload.start,
            payload.end,
            absence_type=payload.absence_type,
            today=container.today(payload.today),
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    return _preview_to_schema(plan)


@router.post("/{employee_id}/time-off", response_model=TimeOffResponse)
def apply_time_off(
    employee_id: str,
    payload: TimeOffRequest,
    container: ServiceContainer = Depends(get_container),
) -> TimeOffResponse:
    try:
        plan = container.mutate(
            container.service.apply_time_off,
            employee_id,
            payload.start,
            payload.end,
            absence_type=payload.absence_type,
            today=container.today(payload.today),
        )
    except errors.CrewboardError as exc:
        raise http_error(exc) from exc
    preview = _preview_to_schema(plan)
    return TimeOffResponse(
        **preview.model_dump(),
        deleted=list(plan.diff.to_delete),
        absence=AbsenceOut(**plan.absence.to_dict()) if plan.absence else None,
    )
