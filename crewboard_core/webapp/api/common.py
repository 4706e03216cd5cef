from __future__ import annotations

from ...diff import ItemDiff
from ...models import ScheduleItem
from ...pairing import CellPairing
from ..schemas import DiffOut, ItemOut, PairingOut


def item_out(item: ScheduleItem) -> ItemOut:
    data = item.to_dict()
    return ItemOut(**data)


def diff_out(diff: ItemDiff) -> DiffOut:
    return DiffOut(
        created=[item_out(item) for item in diff.to_create],
        updated=[item_out(item) for item in diff.to_update],
        deleted=list(diff.to_delete),
        orphans=[
            {"item_id": entry.item_id, "field": entry.field, "reference": entry.reference}
            for entry in diff.orphans
        ],
    )


def pairing_out(evaluation: CellPairing) -> PairingOut:
    return PairingOut(**evaluation.to_dict())
