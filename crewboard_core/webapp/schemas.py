from __future__ import annotations

import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ItemKind = Literal["assignment", "job", "note"]
JobStatus = Literal["free", "booked", "cancelled"]
Shift = Literal["day", "night"]
Decision = Literal["combined", "separate"]
EmployeeStatus = Literal["active", "sick"]
AbsenceType = Literal["holiday", "sick", "other"]


class ViewParams(BaseModel):
    """Caller's notion of today and of the displayed window."""

    today: Optional[dt.date] = None
    week_start: Optional[dt.date] = None


class CrewCreate(BaseModel):
    name: str
    shift: Shift = "day"
    depot_id: Optional[str] = None


class CrewUpdate(BaseModel):
    name: Optional[str] = None
    shift: Optional[Shift] = None
    position: Optional[int] = None


class CrewOut(BaseModel):
    id: str
    name: str
    shift: str
    depot_id: Optional[str] = None
    position: int
    archived_at: Optional[dt.datetime] = None


class CrewArchiveRequest(ViewParams):
    move_to_previous: bool = False


class CrewArchivePreview(BaseModel):
    crew_id: str
    future_items: int
    previous_crew_id: Optional[str] = None
    previous_crew_name: Optional[str] = None


class CrewArchiveResponse(BaseModel):
    crew: CrewOut
    future_items: int
    moved_to: Optional[str] = None


class VehicleCreate(BaseModel):
    name: str
    vehicle_type: Optional[str] = None
    category: Optional[str] = None
    default_color: Optional[str] = None


class VehicleOut(VehicleCreate):
    id: str
    status: str = "active"


class EmployeeCreate(BaseModel):
    name: str
    job_role: Optional[str] = None


class EmployeeOut(EmployeeCreate):
    id: str
    status: EmployeeStatus = "active"


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    job_role: Optional[str] = None
    status: Optional[EmployeeStatus] = None


class TimeOffRequest(BaseModel):
    start: dt.date
    end: Optional[dt.date] = None
    absence_type: AbsenceType = "holiday"
    today: Optional[dt.date] = None


class TimeOffImpactOut(BaseModel):
    item_id: str
    date: dt.date
    crew_id: str
    crew_name: str
    shift: str


class AbsenceOut(BaseModel):
    id: str
    employee_id: str
    absence_type: str
    start_date: dt.date
    end_date: dt.date


class TimeOffPreview(BaseModel):
    employee_id: str
    absence_type: str
    start: dt.date
    end: dt.date
    impacted: List[TimeOffImpactOut]


class TimeOffResponse(TimeOffPreview):
    deleted: List[str] = Field(default_factory=list)
    absence: Optional[AbsenceOut] = None


class ItemFields(BaseModel):
    depot_id: Optional[str] = None
    customer_name: Optional[str] = None
    job_number: Optional[str] = None
    address: Optional[str] = None
    project_manager: Optional[str] = None
    start_time: Optional[str] = None
    onsite_time: Optional[str] = None
    duration_hours: Optional[float] = None
    color: Optional[str] = None
    job_status: Optional[JobStatus] = None
    employee_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    note_content: Optional[str] = None

    @field_validator("job_number", "customer_name", "address")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ItemCreate(ItemFields, ViewParams):
    kind: ItemKind
    date: dt.date
    crew_id: str
    repeat: Optional[str] = Field(default=None, description="Scope token, e.g. month or months:6")


class ItemUpdate(ItemFields, ViewParams):
    date: Optional[dt.date] = None
    crew_id: Optional[str] = None
    scope: Optional[str] = None


class ItemOut(ItemFields):
    id: str
    kind: str
    date: dt.date
    crew_id: str


class DiffOut(BaseModel):
    created: List[ItemOut] = Field(default_factory=list)
    updated: List[ItemOut] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    orphans: List[Dict[str, str]] = Field(default_factory=list)


class DeleteRequest(ViewParams):
    scope: Optional[str] = None
    apply_to_group: bool = False


class DuplicateRequest(ViewParams):
    scope: str
    weekdays_only: bool = False


class ColorRequest(ViewParams):
    color: str
    apply_to_group: bool = False


class MoveDateRequest(ViewParams):
    date: dt.date
    move_group: bool = False


class GroupInfo(BaseModel):
    item_id: str
    job_number: Optional[str] = None
    group_count: int
    needs_choice: bool
    item_ids: List[str]


class DragRequest(ViewParams):
    item_ids: List[str]
    target_crew_id: Optional[str] = None
    target_date: Optional[dt.date] = None
    over_item_id: Optional[str] = None
    duplicate: bool = False
    scope: Literal["day", "week"] = "day"


class PairingOut(BaseModel):
    cell: str
    crew_id: str
    date: dt.date
    signature: str
    label: Optional[str] = None
    color: Optional[str] = None
    actionable: bool
    decision: Optional[str] = None
    needs_prompt: bool


class DragResponse(BaseModel):
    phase: str
    action: str
    reason: Optional[str] = None
    diff: DiffOut
    cell_order: Optional[List[str]] = None
    prompts: List[PairingOut] = Field(default_factory=list)


class PairingDecisionRequest(ViewParams):
    crew_id: str
    date: dt.date
    decision: Decision
    period: Literal["none", "week", "month", "6months", "12months"] = "none"


class CellOut(BaseModel):
    crew_id: str
    crew_name: str
    date: dt.date
    items: List[ItemOut]
    pairing: PairingOut


class ReorderRequest(BaseModel):
    active_id: str
    over_id: str


class ConfigGeneral(BaseModel):
    timezone: str
    view_days: int
    name_width: int
    default_locale: str
    default_color: str
    free_start_time: str
    free_duration_hours: float
    max_range_dates: int
    prompt_pairing: bool


class ConfigPairing(BaseModel):
    label: str
    color: str
    group_a: List[str]
    group_b: List[str]
    van_pack_aliases: List[str]


class ConfigPayload(BaseModel):
    general: ConfigGeneral
    pairing: ConfigPairing
    vehicle_types: Dict[str, str]


class Message(BaseModel):
    detail: str


class SaveStateResponse(BaseModel):
    path: str


class UndoResponse(BaseModel):
    message: str


class StateSaveRequest(BaseModel):
    path: Optional[str] = None


class StateLoadRequest(BaseModel):
    path: str
