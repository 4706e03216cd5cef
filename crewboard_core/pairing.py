"""Vehicle signature, pairing classification and per-cell decision memory.

A cell is "pairable" when it holds a CCTV-class unit together with a jet or
recycler unit. The operator may combine the pair (both units bill and display
as one) or keep them separate. The decision is remembered per cell together
with the vehicle signature it was taken for, and is only honoured while that
signature still matches the live cell.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, MutableMapping, Optional, Sequence

from .cells import index_items
from .config import VAN_PACK_TYPE, Config
from .models import Catalog, CellKey, PairingDecision, ScheduleItem, Vehicle

logger = logging.getLogger(__name__)

SIGNATURE_DELIMITER = ","


def normalize_vehicle_text(value: str | None) -> str:
    if not value:
        return ""
    return "".join(ch for ch in value.lower() if not ch.isspace() and ch not in "-/")


def vehicle_signature(assignments: Iterable[ScheduleItem]) -> str:
    ids = {item.vehicle_id for item in assignments if item.is_assignment and item.vehicle_id}
    return SIGNATURE_DELIMITER.join(sorted(ids))


def cell_vehicles(items: Iterable[ScheduleItem], catalog: Catalog) -> List[Vehicle]:
    """Catalog vehicles for the cell's assignments, first-seen order, unknown ids skipped."""
    seen: set[str] = set()
    vehicles: List[Vehicle] = []
    for item in items:
        if not item.is_assignment or not item.vehicle_id or item.vehicle_id in seen:
            continue
        seen.add(item.vehicle_id)
        vehicle = catalog.vehicles.get(item.vehicle_id)
        if vehicle is not None:
            vehicles.append(vehicle)
    return vehicles


@dataclass(slots=True)
class _Traits:
    van_pack: bool
    cctv: bool
    jet: bool
    recycler: bool


def _fields(vehicle: Vehicle) -> tuple[str, str, str]:
    return (
        normalize_vehicle_text(vehicle.name),
        normalize_vehicle_text(vehicle.category),
        normalize_vehicle_text(vehicle.vehicle_type),
    )


def is_van_pack_alias(vehicle: Vehicle, config: Config) -> bool:
    aliases = [normalize_vehicle_text(alias) for alias in config.pairing.van_pack_aliases]
    return any(alias and alias in text for alias in aliases for text in _fields(vehicle))


def _traits(vehicle: Vehicle, config: Config) -> _Traits:
    texts = _fields(vehicle)
    raw = " ".join(filter(None, [vehicle.name, vehicle.category, vehicle.vehicle_type])).lower()
    alias = is_van_pack_alias(vehicle, config)
    van_pack = alias or any("cctvvanpack" in text or "cctvvan" in text for text in texts)
    van_pack = van_pack or "cctv/van pack" in raw or "cctv/vanpack" in raw
    cctv = alias or any("cctv" in text for text in texts)
    jet = not alias and any("jet" in text for text in texts)
    recycler = not alias and any("recycl" in text for text in texts)
    return _Traits(van_pack=van_pack, cctv=cctv, jet=jet, recycler=recycler)


def _matches_any(vehicle: Vehicle, names: Sequence[str]) -> bool:
    targets = {normalize_vehicle_text(name) for name in names}
    return any(text and text in targets for text in _fields(vehicle))


def classify_cell_vehicles(vehicles: Sequence[Vehicle], config: Config) -> Optional[str]:
    """Return the display label for the set of vehicles sharing a cell."""
    if not vehicles:
        return None
    pairing = config.pairing
    has_a = any(_matches_any(vehicle, pairing.group_a) for vehicle in vehicles)
    has_b = any(_matches_any(vehicle, pairing.group_b) for vehicle in vehicles)
    if has_a and has_b:
        return pairing.label

    traits = [_traits(vehicle, config) for vehicle in vehicles]
    van_pack = any(t.van_pack for t in traits)
    cctv = any(t.cctv for t in traits)
    jet = any(t.jet for t in traits)
    recycler = any(t.recycler for t in traits)

    if (van_pack or cctv) and (jet or recycler):
        label = pairing.label
    elif van_pack:
        label = VAN_PACK_TYPE
    elif cctv:
        label = "CCTV"
    elif jet:
        label = "Jet Vac"
    elif recycler:
        label = "Recycler"
    else:
        first = vehicles[0]
        label = first.vehicle_type or first.category or None
        if not label:
            return None
    return config.display_type_name(label)


# colour pipeline --------------------------------------------------------

def resolve_vehicle_color(vehicle: Vehicle | None, config: Config) -> Optional[str]:
    if vehicle is None:
        return None
    if is_van_pack_alias(vehicle, config) or _traits(vehicle, config).van_pack:
        return config.type_color(VAN_PACK_TYPE) or vehicle.default_color
    return config.type_color(vehicle.vehicle_type) or vehicle.default_color


def pairing_color(label: str | None, config: Config) -> Optional[str]:
    if not label:
        return None
    if label == config.pairing.label:
        return config.pairing.color or None
    return config.type_color(label)


def is_actionable_pairing(label: str | None, color: str | None, config: Config) -> bool:
    return bool(label) and label == config.pairing.label and bool(color)


def resolve_cell_color(
    label: str | None,
    decision: str | None,
    fallback_vehicle_color: str | None,
    config: Config,
) -> Optional[str]:
    color = pairing_color(label, config)
    if decision == "combined" and is_actionable_pairing(label, color, config):
        return color
    return fallback_vehicle_color


# decision memory --------------------------------------------------------

def decision_for(
    decisions: Mapping[str, PairingDecision],
    key: CellKey,
    signature: str,
) -> Optional[str]:
    """Stored decision for the cell, or ``None`` when absent or taken for other vehicles."""
    entry = decisions.get(key.token())
    if entry is None:
        return None
    if entry.signature != signature:
        logger.debug("stale pairing decision for %s (%s != %s)", key.token(), entry.signature, signature)
        return None
    return entry.decision


def record_decision(
    decisions: MutableMapping[str, PairingDecision],
    key: CellKey,
    decision: str,
    signature: str,
) -> PairingDecision:
    entry = PairingDecision(decision=decision, signature=signature, crew_id=key.crew_id, day=key.day)
    decisions[key.token()] = entry
    return entry


@dataclass(slots=True)
class CellPairing:
    key: CellKey
    signature: str
    label: Optional[str]
    color: Optional[str]
    actionable: bool
    decision: Optional[str]

    @property
    def needs_prompt(self) -> bool:
        return self.actionable and self.decision is None

    @property
    def combined(self) -> bool:
        return self.actionable and self.decision == "combined"

    def to_dict(self) -> dict:
        return {
            "cell": self.key.token(),
            "crew_id": self.key.crew_id,
            "date": self.key.day.isoformat(),
            "signature": self.signature,
            "label": self.label,
            "color": self.color,
            "actionable": self.actionable,
            "decision": self.decision,
            "needs_prompt": self.needs_prompt,
        }


def evaluate_cell(
    key: CellKey,
    cell_items: Sequence[ScheduleItem],
    catalog: Catalog,
    config: Config,
    decisions: Mapping[str, PairingDecision],
) -> CellPairing:
    signature = vehicle_signature(cell_items)
    label = classify_cell_vehicles(cell_vehicles(cell_items, catalog), config)
    color = pairing_color(label, config)
    actionable = is_actionable_pairing(label, color, config)
    return CellPairing(
        key=key,
        signature=signature,
        label=label,
        color=color,
        actionable=actionable,
        decision=decision_for(decisions, key, signature),
    )


def prune_stale_decisions(
    items: Iterable[ScheduleItem],
    decisions: MutableMapping[str, PairingDecision],
    catalog: Catalog,
    config: Config,
) -> List[str]:
    """Drop decisions whose cell no longer shows the vehicles they were taken for."""
    index = index_items(items)
    removed: List[str] = []
    for token, entry in list(decisions.items()):
        key = entry.cell_key
        cell = index.get(key, [])
        evaluation = evaluate_cell(key, cell, catalog, config, decisions)
        if evaluation.signature != entry.signature or not evaluation.actionable:
            del decisions[token]
            removed.append(token)
    if removed:
        logger.info("pruned %d stale pairing decision(s)", len(removed))
    return removed
