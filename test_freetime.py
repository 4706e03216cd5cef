from datetime import date

from crewboard_core.config import Config
from crewboard_core.diff import OrphanReference
from crewboard_core.freetime import find_orphans, sync_cell, sync_cells
from crewboard_core.models import (
    Catalog,
    CellKey,
    Crew,
    Employee,
    PairingDecision,
    ScheduleItem,
    Vehicle,
)

DAY = date(2030, 1, 10)
CONFIG = Config()
CATALOG = Catalog(
    vehicles={
        "V1": Vehicle(id="V1", name="CCTV 1", vehicle_type="CCTV"),
        "V2": Vehicle(id="V2", name="Jetter 4", vehicle_type="Jet Vac"),
    },
    employees={"E1": Employee(id="E1", name="Alice"), "E2": Employee(id="E2", name="Bob")},
    crews={"C1": Crew(id="C1", name="Alpha")},
)


def _assignment(item_id: str, employee_id: str, vehicle_id: str) -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        kind="assignment",
        day=DAY,
        crew_id="C1",
        employee_id=employee_id,
        vehicle_id=vehicle_id,
    )


def _free(item_id: str, employee_id: str, vehicle_id: str = "V1", color: str = "blue") -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        kind="job",
        day=DAY,
        crew_id="C1",
        customer_name="Free",
        address="Free",
        job_status="free",
        color=color,
        employee_id=employee_id,
        vehicle_id=vehicle_id,
    )


def _booked(item_id: str, employee_id: str | None = None) -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        kind="job",
        day=DAY,
        crew_id="C1",
        customer_name="ACME",
        job_number="J-100",
        job_status="booked",
        employee_id=employee_id,
    )


def _sync(items, decisions=None):
    return sync_cell(items, "C1", DAY, catalog=CATALOG, config=CONFIG, decisions=decisions or {})


def test_new_assignment_creates_one_free_job():
    diff = _sync([_assignment("a1", "E1", "V1")])
    assert diff.to_update == [] and diff.to_delete == []
    [job] = diff.to_create
    assert job.is_auto_linked
    assert (job.employee_id, job.vehicle_id, job.color) == ("E1", "V1", "blue")
    assert job.job_status == "free"
    assert job.start_time == CONFIG.general.free_start_time
    assert job.duration_hours == CONFIG.general.free_duration_hours


def test_sync_is_idempotent():
    items = {"a1": _assignment("a1", "E1", "V1"), "a2": _assignment("a2", "E2", "V2")}
    first = _sync(items.values())
    after = first.apply_to(items)
    assert _sync(after.values()).is_empty()


def test_free_job_without_assignment_is_deleted():
    diff = _sync([_free("f1", "E2")])
    assert diff.to_delete == ["f1"]


def test_duplicates_collapse_to_one():
    diff = _sync([_assignment("a1", "E1", "V1"), _free("f1", "E1"), _free("f2", "E1")])
    assert diff.to_create == []
    assert diff.to_delete == ["f2"]


def test_vehicle_change_updates_free_job():
    diff = _sync([_assignment("a1", "E1", "V2"), _free("f1", "E1", "V1", "blue")])
    [updated] = diff.to_update
    assert updated.id == "f1"
    assert (updated.vehicle_id, updated.color) == ("V2", "teal")


def test_employee_with_booking_gets_no_free_job():
    diff = _sync([_assignment("a1", "E1", "V1"), _booked("b1", "E1"), _free("f1", "E1")])
    assert diff.to_create == []
    assert diff.to_delete == ["f1"]


def test_orphan_assignment_is_reported_and_skipped():
    orphan = _assignment("a1", "E1", "V9")
    diff = _sync([orphan, _free("f1", "E1")])
    assert diff.is_empty()
    assert diff.orphans == [OrphanReference("a1", "vehicle_id", "V9")]
    assert find_orphans(_assignment("a2", "E7", "V1"), CATALOG) == [OrphanReference("a2", "employee_id", "E7")]


def test_combined_cell_keeps_a_single_free_job():
    key = CellKey("C1", DAY)
    decisions = {key.token(): PairingDecision("combined", "V1,V2", "C1", DAY)}
    diff = _sync([_assignment("a1", "E1", "V1"), _assignment("a2", "E2", "V2")], decisions)
    [job] = diff.to_create
    assert job.color == "pink"

    existing = [_assignment("a1", "E1", "V1"), _assignment("a2", "E2", "V2"), _free("f1", "E1"), _free("f2", "E2", "V2")]
    diff = _sync(existing, decisions)
    assert diff.to_delete == ["f2"]
    assert [(item.id, item.color) for item in diff.to_update] == [("f1", "pink")]


def test_booking_in_combined_cell_removes_free_jobs():
    key = CellKey("C1", DAY)
    decisions = {key.token(): PairingDecision("combined", "V1,V2", "C1", DAY)}
    items = [_assignment("a1", "E1", "V1"), _assignment("a2", "E2", "V2"), _free("f1", "E1"), _booked("b1")]
    diff = _sync(items, decisions)
    assert diff.to_create == []
    assert diff.to_delete == ["f1"]


def test_sync_cells_walks_every_key():
    other = ScheduleItem(id="a9", kind="assignment", day=date(2030, 1, 11), crew_id="C1", employee_id="E1", vehicle_id="V1")
    items = {"a1": _assignment("a1", "E1", "V1"), "a9": other}
    diff = sync_cells(items, [CellKey("C1", DAY), other.cell_key], catalog=CATALOG, config=CONFIG, decisions={})
    assert sorted(job.day for job in diff.to_create) == [DAY, date(2030, 1, 11)]


def test_sync_cells_syncs_each_listed_cell_once():
    other = ScheduleItem(id="a9", kind="assignment", day=date(2030, 1, 11), crew_id="C1", employee_id="E1", vehicle_id="V1")
    items = {"a1": _assignment("a1", "E1", "V1"), "a9": other}
    key = CellKey("C1", DAY)
    diff = sync_cells(items, [key, key], catalog=CATALOG, config=CONFIG, decisions={})
    [job] = diff.to_create
    assert job.cell_key == key
    assert set(items) == {"a1", "a9"}
    assert diff.apply_to(items) == {**items, job.id: job}
