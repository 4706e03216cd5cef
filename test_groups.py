from datetime import date

from crewboard_core.groups import group_by_job_number, group_choice, resolve_targets
from crewboard_core.models import ScheduleItem

TODAY = date(2030, 1, 7)


def _job(item_id: str, day: date, job_number: str | None) -> ScheduleItem:
    return ScheduleItem(id=item_id, kind="job", day=day, crew_id="C1", customer_name="ACME", job_number=job_number)


ITEMS = [
    _job("j1", date(2030, 1, 8), "J-1"),
    _job("j2", date(2030, 1, 9), "J-1"),
    _job("j3", date(2030, 1, 5), "J-1"),
    _job("k1", date(2030, 1, 8), "K-7"),
    _job("n1", date(2030, 1, 8), None),
]


def test_group_is_the_same_from_every_member():
    groups = [{item.id for item in group_by_job_number(ITEMS, member)} for member in ITEMS[:3]]
    assert groups[0] == groups[1] == groups[2] == {"j1", "j2", "j3"}


def test_job_without_number_is_its_own_group():
    assert group_by_job_number(ITEMS, ITEMS[4]) == [ITEMS[4]]
    assignment = ScheduleItem(id="a1", kind="assignment", day=TODAY, crew_id="C1", job_number="J-1")
    assert group_by_job_number(ITEMS, assignment) == [assignment]


def test_choice_only_offered_for_real_groups():
    assert group_choice(ITEMS, ITEMS[0]).needs_choice
    assert group_choice(ITEMS, ITEMS[0]).group_count == 3
    assert not group_choice(ITEMS, ITEMS[3]).needs_choice


def test_targets_skip_past_members():
    targets = resolve_targets(ITEMS, ITEMS[0], apply_to_group=True, today=TODAY)
    assert {item.id for item in targets} == {"j1", "j2"}
    assert resolve_targets(ITEMS, ITEMS[0], apply_to_group=False, today=TODAY) == [ITEMS[0]]
