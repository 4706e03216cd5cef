from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, NamedTuple, Optional
from uuid import uuid4

from .utils import isoformat, parse_timestamp

ITEM_KINDS: tuple[str, ...] = ("assignment", "job", "note")
JOB_STATUSES: tuple[str, ...] = ("free", "booked", "cancelled")
SHIFTS: tuple[str, ...] = ("day", "night")
DECISIONS: tuple[str, ...] = ("combined", "separate")
EMPLOYEE_STATUSES: tuple[str, ...] = ("active", "sick")
ABSENCE_TYPES: tuple[str, ...] = ("holiday", "sick", "other")

FREE_LABEL = "Free"


def new_id() -> str:
    return str(uuid4())


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class CellKey(NamedTuple):
    crew_id: str
    day: date

    def token(self) -> str:
        return f"{self.day.isoformat()}-{self.crew_id}"

    @classmethod
    def parse(cls, token: str) -> "CellKey":
        if len(token) < 12 or token[10] != "-":
            raise ValueError(f"Invalid cell token: {token}")
        return cls(crew_id=token[11:], day=date.fromisoformat(token[:10]))


@dataclass(slots=True)
class ScheduleItem:
    id: str
    kind: str
    day: date
    crew_id: str
    depot_id: Optional[str] = None
    customer_name: Optional[str] = None
    job_number: Optional[str] = None
    address: Optional[str] = None
    project_manager: Optional[str] = None
    start_time: Optional[str] = None
    onsite_time: Optional[str] = None
    duration_hours: Optional[float] = None
    color: Optional[str] = None
    job_status: Optional[str] = None
    employee_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    note_content: Optional[str] = None

    def normalize(self) -> None:
        if self.kind not in ITEM_KINDS:
            raise ValueError(f"Unknown item kind: {self.kind}")
        if self.job_status is not None and self.job_status not in JOB_STATUSES:
            raise ValueError(f"Unknown job status: {self.job_status}")
        self.customer_name = _clean(self.customer_name)
        self.job_number = _clean(self.job_number)
        self.address = _clean(self.address)
        self.employee_id = _clean(self.employee_id)
        self.vehicle_id = _clean(self.vehicle_id)
        if self.kind == "job" and self.job_status is None:
            self.job_status = "booked"

    @property
    def is_job(self) -> bool:
        return self.kind == "job"

    @property
    def is_assignment(self) -> bool:
        return self.kind == "assignment"

    @property
    def is_note(self) -> bool:
        return self.kind == "note"

    @property
    def is_free_job(self) -> bool:
        return self.is_job and (self.job_status == "free" or self.customer_name == FREE_LABEL)

    @property
    def is_auto_linked(self) -> bool:
        """Free placeholder derived from an assignment (carries the linked employee)."""
        return self.is_free_job and bool(self.employee_id)

    @property
    def is_booked(self) -> bool:
        return self.is_job and not self.is_free_job and self.job_status != "cancelled"

    @property
    def cell_key(self) -> CellKey:
        return CellKey(self.crew_id, self.day)

    def copy_to(self, crew_id: str, day: date, *, new_identity: bool = False) -> "ScheduleItem":
        item = replace(self, crew_id=crew_id, day=day)
        if new_identity:
            item.id = new_id()
        return item

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "date": self.day.isoformat(),
            "crew_id": self.crew_id,
            "depot_id": self.depot_id,
            "customer_name": self.customer_name,
            "job_number": self.job_number,
            "address": self.address,
            "project_manager": self.project_manager,
            "start_time": self.start_time,
            "onsite_time": self.onsite_time,
            "duration_hours": self.duration_hours,
            "color": self.color,
            "job_status": self.job_status,
            "employee_id": self.employee_id,
            "vehicle_id": self.vehicle_id,
            "note_content": self.note_content,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScheduleItem":
        duration = data.get("duration_hours")
        item = cls(
            id=str(data["id"]),
            kind=str(data["kind"]),
            day=date.fromisoformat(str(data["date"])[:10]),
            crew_id=str(data["crew_id"]),
            depot_id=data.get("depot_id"),
            customer_name=data.get("customer_name"),
            job_number=data.get("job_number"),
            address=data.get("address"),
            project_manager=data.get("project_manager"),
            start_time=data.get("start_time"),
            onsite_time=data.get("onsite_time"),
            duration_hours=float(duration) if duration is not None else None,
            color=data.get("color"),
            job_status=data.get("job_status"),
            employee_id=data.get("employee_id"),
            vehicle_id=data.get("vehicle_id"),
            note_content=data.get("note_content"),
        )
        item.normalize()
        return item


@dataclass(slots=True)
class Crew:
    id: str
    name: str
    shift: str = "day"
    depot_id: Optional[str] = None
    position: int = 0
    archived_at: Optional[datetime] = None

    def normalize(self) -> None:
        self.name = self.name.strip()
        self.shift = self.shift.strip().lower()
        if self.shift not in SHIFTS:
            raise ValueError(f"Unknown shift: {self.shift}")

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "shift": self.shift,
            "depot_id": self.depot_id,
            "position": self.position,
            "archived_at": isoformat(self.archived_at) or None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Crew":
        crew = cls(
            id=str(data["id"]),
            name=str(data["name"]),
            shift=str(data.get("shift", "day")),
            depot_id=data.get("depot_id"),
            position=int(data.get("position", 0)),
            archived_at=parse_timestamp(data.get("archived_at")),
        )
        crew.normalize()
        return crew


@dataclass(slots=True)
class Vehicle:
    id: str
    name: str
    vehicle_type: Optional[str] = None
    category: Optional[str] = None
    default_color: Optional[str] = None
    status: str = "active"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vehicle_type": self.vehicle_type,
            "category": self.category,
            "default_color": self.default_color,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Vehicle":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            vehicle_type=data.get("vehicle_type"),
            category=data.get("category"),
            default_color=data.get("default_color"),
            status=str(data.get("status", "active")),
        )


@dataclass(slots=True)
class Employee:
    id: str
    name: str
    job_role: Optional[str] = None
    status: str = "active"

    def normalize(self) -> None:
        self.name = self.name.strip()
        self.status = self.status.strip().lower()
        if self.status not in EMPLOYEE_STATUSES:
            raise ValueError(f"Unknown employee status: {self.status}")

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "job_role": self.job_role, "status": self.status}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Employee":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            job_role=data.get("job_role"),
            status=str(data.get("status", "active")),
        )


@dataclass(slots=True)
class Absence:
    """A recorded holiday or sickness for one employee, both ends inclusive."""

    id: str
    employee_id: str
    absence_type: str
    start: date
    end: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "absence_type": self.absence_type,
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Absence":
        start = date.fromisoformat(str(data["start_date"]))
        return cls(
            id=str(data["id"]),
            employee_id=str(data["employee_id"]),
            absence_type=str(data["absence_type"]),
            start=start,
            end=date.fromisoformat(str(data.get("end_date") or start.isoformat())),
        )


@dataclass(slots=True)
class PairingDecision:
    decision: str
    signature: str
    crew_id: str
    day: date

    @property
    def cell_key(self) -> CellKey:
        return CellKey(self.crew_id, self.day)

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision,
            "vehicle_signature": self.signature,
            "crew_id": self.crew_id,
            "date": self.day.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PairingDecision":
        decision = str(data["decision"])
        if decision not in DECISIONS:
            raise ValueError(f"Unknown pairing decision: {decision}")
        return cls(
            decision=decision,
            signature=str(data.get("vehicle_signature", "")),
            crew_id=str(data["crew_id"]),
            day=date.fromisoformat(str(data["date"])),
        )


@dataclass(slots=True)
class Catalog:
    """Read-only lookup tables handed to the resolver and the synchronizer."""

    vehicles: Mapping[str, Vehicle] = field(default_factory=dict)
    employees: Mapping[str, Employee] = field(default_factory=dict)
    crews: Mapping[str, Crew] = field(default_factory=dict)


@dataclass(slots=True)
class State:
    items: Dict[str, ScheduleItem] = field(default_factory=dict)
    crews: Dict[str, Crew] = field(default_factory=dict)
    vehicles: Dict[str, Vehicle] = field(default_factory=dict)
    employees: Dict[str, Employee] = field(default_factory=dict)
    pairing_decisions: Dict[str, PairingDecision] = field(default_factory=dict)
    cell_order: Dict[str, List[str]] = field(default_factory=dict)
    absences: Dict[str, Absence] = field(default_factory=dict)

    def clone(self) -> "State":
        return State(
            items={iid: replace(item) for iid, item in self.items.items()},
            crews={cid: replace(crew) for cid, crew in self.crews.items()},
            vehicles={vid: replace(vehicle) for vid, vehicle in self.vehicles.items()},
            employees={eid: replace(employee) for eid, employee in self.employees.items()},
            pairing_decisions={key: replace(entry) for key, entry in self.pairing_decisions.items()},
            cell_order={key: list(ids) for key, ids in self.cell_order.items()},
            absences={aid: replace(absence) for aid, absence in self.absences.items()},
        )

    def catalog(self) -> Catalog:
        return Catalog(vehicles=self.vehicles, employees=self.employees, crews=self.crews)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items.values()],
            "crews": [crew.to_dict() for crew in self.crews.values()],
            "vehicles": [vehicle.to_dict() for vehicle in self.vehicles.values()],
            "employees": [employee.to_dict() for employee in self.employees.values()],
            "pairing_decisions": {key: entry.to_dict() for key, entry in self.pairing_decisions.items()},
            "cell_order": {key: list(ids) for key, ids in self.cell_order.items()},
            "absences": [absence.to_dict() for absence in self.absences.values()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "State":
        items = {item.id: item for item in (ScheduleItem.from_dict(raw) for raw in data.get("items", []))}
        crews = {crew.id: crew for crew in (Crew.from_dict(raw) for raw in data.get("crews", []))}
        vehicles = {veh.id: veh for veh in (Vehicle.from_dict(raw) for raw in data.get("vehicles", []))}
        employees = {emp.id: emp for emp in (Employee.from_dict(raw) for raw in data.get("employees", []))}
        decisions = {
            str(key): PairingDecision.from_dict(raw) for key, raw in dict(data.get("pairing_decisions", {})).items()
        }
        order = {str(key): [str(iid) for iid in ids] for key, ids in dict(data.get("cell_order", {})).items()}
        absences = {entry.id: entry for entry in (Absence.from_dict(raw) for raw in data.get("absences", []))}
        return cls(
            items=items,
            crews=crews,
            vehicles=vehicles,
            employees=employees,
            pairing_decisions=decisions,
            cell_order=order,
            absences=absences,
        )
