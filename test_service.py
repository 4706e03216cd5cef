from datetime import date, datetime, timezone

import pytest

from conftest import TODAY, WINDOW, assert_one_free_job_per_employee
from crewboard_core.diff import RecordingSink
from crewboard_core.errors import (
    ConflictError,
    InvalidRange,
    NotFoundError,
    PastDateRejected,
    UsageError,
    ValidationError,
)
from crewboard_core.models import ScheduleItem
from crewboard_core.ranges import RangeScope
from crewboard_core.repository import StateRepository
from crewboard_core.service import CoreService


def jan(day: int) -> date:
    return date(2030, 1, day)


def _pair(board, day: date = jan(10)):
    board.assign(board.alice, board.cctv, day)
    board.assign(board.bob, board.jet, day)


# free time -------------------------------------------------------------

def test_assignment_creates_linked_free_job(board):
    assignment = board.assign(board.alice, board.cctv, jan(10))
    [free] = board.free_jobs(board.crew, jan(10))
    assert free.employee_id == assignment.employee_id
    assert free.vehicle_id == board.cctv
    assert free.color == "blue"


def test_deleting_assignment_removes_its_free_job(board):
    assignment = board.assign(board.alice, board.cctv, jan(10))
    diff = board.service.delete_item(assignment.id, today=TODAY)
    assert len(diff.to_delete) == 2
    assert board.cell(board.crew, jan(10)) == []


def test_booking_for_employee_replaces_free_job(board):
    board.assign(board.alice, board.cctv, jan(10))
    board.add("job", jan(10), customer_name="ACME", employee_id=board.alice)
    assert board.free_jobs(board.crew, jan(10)) == []


# pairing ---------------------------------------------------------------

def test_combining_a_pair_collapses_free_jobs(board):
    svc = board.service
    _pair(board)
    pending = svc.evaluate_cell(board.crew, jan(10))
    assert pending.label == "CCTV/Jet Vac" and pending.needs_prompt
    assert sorted(job.color for job in board.free_jobs(board.crew, jan(10))) == ["blue", "teal"]

    [decided] = svc.decide_pairing(board.crew, jan(10), "combined", today=TODAY)

    assert decided.decision == "combined"
    [free] = board.free_jobs(board.crew, jan(10))
    assert free.color == "pink"
    assert svc.evaluate_cell(board.crew, jan(10)).combined


def test_combining_recolours_booked_job_group(board):
    svc = board.service
    _pair(board)
    [booked] = board.add("job", jan(10), customer_name="ACME", job_number="J-1", color="green")
    [later] = board.add("job", jan(15), board.crew3, customer_name="ACME", job_number="J-1", color="green")

    svc.decide_pairing(board.crew, jan(10), "combined", today=TODAY)

    assert svc.get_item(booked.id).color == "pink"
    assert svc.get_item(later.id).color == "pink"
    assert board.free_jobs(board.crew, jan(10)) == []


def test_separate_keeps_one_free_job_each(board):
    svc = board.service
    _pair(board)
    svc.decide_pairing(board.crew, jan(10), "separate", today=TODAY)
    evaluation = svc.evaluate_cell(board.crew, jan(10))
    assert evaluation.decision == "separate" and not evaluation.needs_prompt
    assert len(board.free_jobs(board.crew, jan(10))) == 2


def test_decision_invalidated_when_vehicles_change(board):
    svc = board.service
    _pair(board)
    svc.decide_pairing(board.crew, jan(10), "combined", today=TODAY)

    board.assign(board.carol, board.recycler, jan(10))

    evaluation = svc.evaluate_cell(board.crew, jan(10))
    assert evaluation.decision is None
    assert evaluation.needs_prompt
    assert svc.state.pairing_decisions == {}
    assert len(board.free_jobs(board.crew, jan(10))) == 3
    assert_one_free_job_per_employee(svc)


def test_decision_skips_cells_without_a_pair(board):
    svc = board.service
    board.assign(board.alice, board.cctv, jan(10))
    assert svc.decide_pairing(board.crew, jan(10), "combined", today=TODAY) == []
    assert svc.state.pairing_decisions == {}


def test_decision_over_a_week(board):
    svc = board.service
    board.add("assignment", jan(8), employee_id=board.alice, vehicle_id=board.cctv, apply_scope=RangeScope.remainder_of_week())
    board.add("assignment", jan(8), employee_id=board.bob, vehicle_id=board.jet, apply_scope=RangeScope.remainder_of_week())

    decided = svc.decide_pairing(board.crew, jan(8), "combined", today=TODAY, period="week", window=WINDOW)

    assert [entry.key.day for entry in decided] == [jan(8), jan(9), jan(10), jan(11)]
    assert_one_free_job_per_employee(svc)
    for day in (8, 9, 10, 11):
        assert len(board.free_jobs(board.crew, jan(day))) == 1


def test_unknown_decision_is_a_usage_error(board):
    with pytest.raises(UsageError):
        board.service.decide_pairing(board.crew, jan(10), "maybe", today=TODAY)


# items -----------------------------------------------------------------

def test_past_creation_is_rejected(board):
    with pytest.raises(PastDateRejected):
        board.add("note", jan(3), note_content="late")


def test_long_assignment_repeat_lands_on_free_weekdays(board):
    board.assign(board.alice, board.cctv, jan(14))
    created = board.add(
        "assignment",
        jan(10),
        employee_id=board.alice,
        vehicle_id=board.cctv,
        apply_scope=RangeScope.remainder_of_month(),
    )
    days = [item.day for item in created]
    assert days[0] == jan(10)
    assert all(day.weekday() < 5 for day in days)
    assert jan(14) not in days
    assert len(days) == 15
    assert_one_free_job_per_employee(board.service)


def test_duplicate_booked_job_for_rest_of_month(board):
    [job] = board.add("job", jan(10), customer_name="ACME", job_number="J-9")
    copies = board.service.duplicate_item(job.id, RangeScope.remainder_of_month(), today=TODAY, window=WINDOW)
    assert [copy.day for copy in copies] == [jan(day) for day in range(11, 32)]
    assert len({copy.id for copy in copies}) == 21


def test_duplicate_assignment_for_rest_of_month_skips_weekends_and_working_days(board):
    assignment = board.assign(board.alice, board.cctv, jan(10))
    board.assign(board.alice, board.cctv, jan(14))
    copies = board.service.duplicate_item(assignment.id, RangeScope.remainder_of_month(), today=TODAY, window=WINDOW)
    days = [copy.day for copy in copies]
    assert all(day.weekday() < 5 for day in days)
    assert jan(14) not in days
    assert len(days) == 14
    assert_one_free_job_per_employee(board.service)


def test_past_item_only_accepts_colour_and_status(board):
    svc = board.service
    past = ScheduleItem(id="old", kind="job", day=jan(3), crew_id=board.crew, customer_name="ACME", job_status="booked")
    svc.state.items[past.id] = past
    assert svc.update_item("old", today=TODAY, color="red").color == "red"
    with pytest.raises(PastDateRejected):
        svc.update_item("old", today=TODAY, customer_name="Other")
    with pytest.raises(PastDateRejected):
        svc.delete_item("old", today=TODAY)


def test_update_rejects_identity_fields(board):
    [note] = board.add("note", jan(10), note_content="x")
    with pytest.raises(UsageError):
        board.service.update_item(note.id, today=TODAY, kind="job")


def test_group_colour_and_delete(board):
    svc = board.service
    [first] = board.add("job", jan(10), customer_name="ACME", job_number="J-1")
    [second] = board.add("job", jan(11), board.crew2, customer_name="ACME", job_number="J-1")
    assert svc.group_choice(first.id).needs_choice

    assert len(svc.set_color(first.id, "red", today=TODAY)) == 1
    assert svc.get_item(second.id).color != "red"
    svc.set_color(first.id, "red", today=TODAY, apply_to_group=True)
    assert svc.get_item(second.id).color == "red"

    svc.delete_item(first.id, today=TODAY, apply_to_group=True)
    assert svc.list_items() == []


def test_move_group_to_new_date(board):
    svc = board.service
    [first] = board.add("job", jan(10), customer_name="ACME", job_number="J-1")
    [second] = board.add("job", jan(11), customer_name="ACME", job_number="J-1")
    svc.move_to_date(first.id, jan(14), today=TODAY, move_group=True)
    assert svc.get_item(first.id).day == jan(14)
    assert svc.get_item(second.id).day == jan(15)


def test_bulk_update_over_series(board):
    svc = board.service
    created = board.add(
        "job",
        jan(8),
        customer_name="ACME",
        address="1 High St",
        apply_scope=RangeScope.remainder_of_week(),
    )
    assert len(created) == 4
    updated = svc.bulk_update(created[0].id, RangeScope.remainder_of_week(), {"start_time": "07:00"}, today=TODAY, window=WINDOW)
    assert len(updated) == 4
    assert all(svc.get_item(item.id).start_time == "07:00" for item in created)


def test_delete_range_removes_series(board):
    svc = board.service
    created = board.add("note", jan(8), note_content="yard", apply_scope=RangeScope.remainder_of_week())
    svc.delete_item(created[0].id, today=TODAY, scope=RangeScope.remainder_of_week(), window=WINDOW)
    assert svc.list_items() == []


# crews -----------------------------------------------------------------

def test_archive_keeps_future_items_in_place(board):
    svc = board.service
    first = board.assign(board.alice, board.cctv, jan(15))
    second = board.assign(board.bob, board.jet, jan(16))
    before = len(svc.state.items)

    plan = svc.archive_crew(board.crew, window=WINDOW, move_to_previous=False)

    assert plan.crew.is_archived
    assert {item.id for item in plan.future} >= {first.id, second.id}
    assert len(svc.state.items) == before
    assert svc.get_item(first.id).crew_id == board.crew
    assert svc.get_item(second.id).crew_id == board.crew
    assert board.crew not in [crew.id for crew in svc.list_crews()]
    assert board.crew in [crew.id for crew in svc.list_crews(include_archived=True)]


def test_archive_moves_future_items_up(board):
    svc = board.service
    future = board.assign(board.alice, board.cctv, jan(15), board.crew2)
    inside = board.assign(board.bob, board.jet, jan(10), board.crew2)

    plan = svc.archive_crew(
        board.crew2,
        window=WINDOW,
        move_to_previous=True,
        now=datetime(2030, 1, 7, tzinfo=timezone.utc),
    )

    assert plan.target.id == board.crew
    assert svc.get_item(future.id).crew_id == board.crew
    assert len(board.free_jobs(board.crew, jan(15))) == 1
    assert svc.get_item(inside.id).crew_id == board.crew2


def test_first_crew_has_nowhere_to_move(board):
    board.assign(board.alice, board.cctv, jan(15))
    with pytest.raises(ConflictError):
        board.service.archive_crew(board.crew, window=WINDOW, move_to_previous=True)
    assert not board.service.get_crew(board.crew).is_archived


def test_archived_crew_rejects_new_items(board):
    board.service.archive_crew(board.crew, window=WINDOW)
    with pytest.raises(ValidationError):
        board.add("note", jan(10), note_content="x")


# plumbing --------------------------------------------------------------

def test_sinks_see_every_mutation(board):
    sink = RecordingSink()
    board.service.add_sink(sink)
    assignment = board.assign(board.alice, board.cctv, jan(10))
    [free] = board.free_jobs(board.crew, jan(10))
    assert ("create", assignment.id) in sink.events
    assert ("create", free.id) in sink.events


def test_failing_sink_does_not_block_commit(board):
    class Broken:
        def on_item_create(self, item):
            raise RuntimeError("backend down")

        def on_item_update(self, item):
            pass

        def on_item_delete(self, item_id):
            pass

    board.service.add_sink(Broken())
    assignment = board.assign(board.alice, board.cctv, jan(10))
    assert board.service.get_item(assignment.id)


def test_undo_restores_previous_state(board):
    svc = board.service
    board.assign(board.alice, board.cctv, jan(10))
    assert svc.undo() == "item.create"
    assert svc.list_items() == []


def test_state_round_trips_through_disk(board, tmp_path):
    svc = board.service
    _pair(board)
    svc.decide_pairing(board.crew, jan(10), "combined", today=TODAY)
    target = svc.save_state(str(tmp_path / "saved.json"))

    reloaded = CoreService(StateRepository(target), svc.config)
    assert len(reloaded.state.items) == len(svc.state.items)
    assert reloaded.evaluate_cell(board.crew, jan(10)).decision == "combined"


def test_sync_all_repairs_missing_free_jobs(board):
    svc = board.service
    assignment = ScheduleItem(
        id="raw",
        kind="assignment",
        day=jan(10),
        crew_id=board.crew,
        employee_id=board.alice,
        vehicle_id=board.cctv,
    )
    svc.state.items[assignment.id] = assignment
    diff = svc.sync_all()
    assert len(diff.to_create) == 1
    assert svc.sync_all().is_empty()


# time off ---------------------------------------------------------------

def test_time_off_preview_lists_future_assignments_by_date(board):
    svc = board.service
    past = ScheduleItem(id="old", kind="assignment", day=jan(3), crew_id=board.crew, employee_id=board.alice)
    svc.state.items[past.id] = past
    later = board.assign(board.alice, board.cctv, jan(11), board.crew2)
    first = board.assign(board.alice, board.cctv, jan(9))
    board.assign(board.bob, board.jet, jan(9))

    plan = svc.preview_time_off(board.alice, jan(1), jan(11), today=TODAY)

    assert [impact.item_id for impact in plan.impacted] == [first.id, later.id]
    assert [impact.crew_name for impact in plan.impacted] == ["Alpha", "Bravo"]
    assert plan.impacted[0].shift == "day"
    assert len(svc.state.items) == 7


def test_holiday_clears_assignments_and_their_free_jobs(board):
    svc = board.service
    past = ScheduleItem(id="old", kind="assignment", day=jan(3), crew_id=board.crew, employee_id=board.alice)
    svc.state.items[past.id] = past
    board.assign(board.alice, board.cctv, jan(9))
    board.assign(board.alice, board.cctv, jan(10))
    kept = board.assign(board.alice, board.cctv, jan(14))
    bob = board.assign(board.bob, board.jet, jan(9))

    plan = svc.apply_time_off(board.alice, jan(1), jan(10), today=TODAY)

    assert len(plan.diff.to_delete) == 4
    remaining = {item.id for item in svc.state.items.values() if item.is_assignment}
    assert remaining == {"old", kept.id, bob.id}
    assert board.free_jobs(board.crew, jan(9))[0].employee_id == board.bob
    assert board.free_jobs(board.crew, jan(10)) == []
    [absence] = svc.list_absences(board.alice)
    assert (absence.absence_type, absence.start, absence.end) == ("holiday", jan(1), jan(10))
    assert svc.get_employee(board.alice).status == "active"
    assert_one_free_job_per_employee(svc)


def test_sickness_marks_employee_until_cleared(board):
    svc = board.service
    board.assign(board.alice, board.cctv, jan(10))
    plan = svc.apply_time_off(board.alice, jan(10), absence_type="sick", today=TODAY)
    assert plan.end == jan(10)
    assert svc.get_employee(board.alice).status == "sick"
    assert svc.update_employee(board.alice, status="active").status == "active"


def test_other_time_off_records_no_absence(board):
    svc = board.service
    board.assign(board.alice, board.cctv, jan(10))
    plan = svc.apply_time_off(board.alice, jan(10), jan(10), absence_type="other", today=TODAY)
    assert plan.absence is None
    assert svc.list_absences() == []
    assert board.cell(board.crew, jan(10)) == []


def test_time_off_rejects_bad_input(board):
    svc = board.service
    with pytest.raises(InvalidRange):
        svc.preview_time_off(board.alice, jan(10), jan(8), today=TODAY)
    with pytest.raises(ValidationError):
        svc.preview_time_off(board.alice, jan(10), absence_type="vacation", today=TODAY)
    with pytest.raises(NotFoundError):
        svc.apply_time_off("nobody", jan(10), today=TODAY)


def test_time_off_is_one_undo_step_and_persists(board, tmp_path):
    svc = board.service
    board.assign(board.alice, board.cctv, jan(10))
    svc.apply_time_off(board.alice, jan(10), absence_type="sick", today=TODAY)
    target = svc.save_state(str(tmp_path / "saved.json"))
    reloaded = CoreService(StateRepository(target), svc.config)
    assert len(reloaded.list_absences(board.alice)) == 1
    assert reloaded.get_employee(board.alice).status == "sick"

    assert svc.undo() == "employee.time_off"
    assert len(board.cell(board.crew, jan(10))) == 2
    assert svc.list_absences() == []
    assert svc.get_employee(board.alice).status == "active"
