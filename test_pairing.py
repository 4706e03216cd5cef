from datetime import date

from crewboard_core.config import Config
from crewboard_core.models import Catalog, CellKey, PairingDecision, ScheduleItem, Vehicle
from crewboard_core.pairing import (
    classify_cell_vehicles,
    decision_for,
    evaluate_cell,
    prune_stale_decisions,
    resolve_cell_color,
    resolve_vehicle_color,
    vehicle_signature,
)

DAY = date(2030, 1, 10)
CONFIG = Config()

CCTV = Vehicle(id="V1", name="CCTV 1", vehicle_type="CCTV")
JET = Vehicle(id="V2", name="Jetter 4", vehicle_type="Jet Vac")
RECYCLER = Vehicle(id="V3", name="Rec 2", vehicle_type="Recyclers")
VAN_PACK = Vehicle(id="V4", name="BJJ 12")
CRANE = Vehicle(id="V5", name="Crane", vehicle_type="Crane", default_color="grey")


def _assignment(item_id: str, vehicle_id: str, employee_id: str = "E1") -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        kind="assignment",
        day=DAY,
        crew_id="C1",
        employee_id=employee_id,
        vehicle_id=vehicle_id,
    )


def _catalog(*vehicles: Vehicle) -> Catalog:
    return Catalog(vehicles={vehicle.id: vehicle for vehicle in vehicles})


def test_signature_is_sorted_and_distinct():
    items = [_assignment("a", "V2"), _assignment("b", "V1"), _assignment("c", "V2")]
    assert vehicle_signature(items) == "V1,V2"
    assert vehicle_signature(list(reversed(items))) == "V1,V2"
    assert vehicle_signature([]) == ""


def test_classification_labels():
    assert classify_cell_vehicles([CCTV, JET], CONFIG) == "CCTV/Jet Vac"
    assert classify_cell_vehicles([RECYCLER, CCTV], CONFIG) == "CCTV/Jet Vac"
    assert classify_cell_vehicles([CCTV], CONFIG) == "CCTV"
    assert classify_cell_vehicles([JET], CONFIG) == "Jet Vac"
    assert classify_cell_vehicles([RECYCLER], CONFIG) == "Recycler"
    assert classify_cell_vehicles([CRANE], CONFIG) == "Crane"
    assert classify_cell_vehicles([], CONFIG) is None


def test_van_pack_alias_counts_as_cctv_but_never_as_jet():
    assert classify_cell_vehicles([VAN_PACK], CONFIG) == "CCTV/Van Pack"
    assert classify_cell_vehicles([VAN_PACK, JET], CONFIG) == "CCTV/Jet Vac"
    assert resolve_vehicle_color(VAN_PACK, CONFIG) == "indigo"


def test_vehicle_color_prefers_type_table_then_default():
    assert resolve_vehicle_color(CCTV, CONFIG) == "blue"
    assert resolve_vehicle_color(RECYCLER, CONFIG) == "orange"
    assert resolve_vehicle_color(CRANE, CONFIG) == "grey"
    assert resolve_vehicle_color(None, CONFIG) is None


def test_cell_color_only_uses_pairing_colour_when_combined():
    assert resolve_cell_color("CCTV/Jet Vac", "combined", "blue", CONFIG) == "pink"
    assert resolve_cell_color("CCTV/Jet Vac", "separate", "blue", CONFIG) == "blue"
    assert resolve_cell_color("CCTV/Jet Vac", None, "blue", CONFIG) == "blue"
    assert resolve_cell_color("CCTV", "combined", "blue", CONFIG) == "blue"


def test_decision_is_ignored_once_vehicles_change():
    key = CellKey("C1", DAY)
    decisions = {key.token(): PairingDecision("combined", "V1,V2", "C1", DAY)}
    assert decision_for(decisions, key, "V1,V2") == "combined"
    assert decision_for(decisions, key, "V1,V2,V3") is None
    assert decision_for({}, key, "V1,V2") is None


def test_evaluate_cell_prompts_until_decided():
    key = CellKey("C1", DAY)
    cell = [_assignment("a", "V1"), _assignment("b", "V2", "E2")]
    catalog = _catalog(CCTV, JET)
    pending = evaluate_cell(key, cell, catalog, CONFIG, {})
    assert pending.actionable and pending.needs_prompt
    assert pending.color == "pink"

    decisions = {key.token(): PairingDecision("separate", "V1,V2", "C1", DAY)}
    decided = evaluate_cell(key, cell, catalog, CONFIG, decisions)
    assert not decided.needs_prompt and not decided.combined


def test_single_unit_is_not_actionable():
    key = CellKey("C1", DAY)
    evaluation = evaluate_cell(key, [_assignment("a", "V1")], _catalog(CCTV), CONFIG, {})
    assert evaluation.label == "CCTV"
    assert not evaluation.actionable


def test_prune_drops_decisions_for_changed_cells():
    key = CellKey("C1", DAY)
    decisions = {key.token(): PairingDecision("combined", "V1,V2", "C1", DAY)}
    cell = [_assignment("a", "V1"), _assignment("b", "V2", "E2"), _assignment("c", "V3", "E3")]
    removed = prune_stale_decisions(cell, decisions, _catalog(CCTV, JET, RECYCLER), CONFIG)
    assert removed == [key.token()]
    assert decisions == {}


def test_prune_keeps_matching_decisions():
    key = CellKey("C1", DAY)
    decisions = {key.token(): PairingDecision("combined", "V1,V2", "C1", DAY)}
    cell = [_assignment("a", "V1"), _assignment("b", "V2", "E2")]
    assert prune_stale_decisions(cell, decisions, _catalog(CCTV, JET), CONFIG) == []
    assert key.token() in decisions
