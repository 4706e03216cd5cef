from datetime import date

from crewboard_core.cells import index_items, ordered_cell_items, reorder
from crewboard_core.models import CellKey, ScheduleItem

DAY = date(2030, 1, 10)


def _item(item_id: str, kind: str, **values) -> ScheduleItem:
    return ScheduleItem(id=item_id, kind=kind, day=DAY, crew_id="C1", **values)


def test_canonical_order_is_notes_then_assignments_then_jobs():
    items = [
        _item("j1", "job", start_time="09:00"),
        _item("a1", "assignment"),
        _item("j0", "job", start_time="07:30"),
        _item("n1", "note"),
    ]
    assert [item.id for item in ordered_cell_items(items)] == ["n1", "a1", "j0", "j1"]


def test_overlay_goes_first_and_ignores_missing_ids():
    items = [_item("n1", "note"), _item("a1", "assignment"), _item("j1", "job")]
    ordered = ordered_cell_items(items, ["j1", "gone", "n1"])
    assert [item.id for item in ordered] == ["j1", "n1", "a1"]


def test_reorder_moves_active_into_target_slot():
    assert reorder(["a", "b", "c"], "c", "a") == ["c", "a", "b"]
    assert reorder(["a", "b", "c"], "a", "c") == ["b", "c", "a"]
    assert reorder(["a", "b"], "a", "zzz") == ["a", "b"]


def test_index_groups_by_crew_and_day():
    items = [_item("a", "note"), _item("b", "job"), ScheduleItem(id="c", kind="note", day=DAY, crew_id="C2")]
    index = index_items(items)
    assert [item.id for item in index[CellKey("C1", DAY)]] == ["a", "b"]
    assert [item.id for item in index[CellKey("C2", DAY)]] == ["c"]


def test_cell_token_keeps_hyphenated_crew_ids():
    key = CellKey("6f1c-22aa", DAY)
    assert key.token() == "2030-01-10-6f1c-22aa"
    assert CellKey.parse(key.token()) == key
