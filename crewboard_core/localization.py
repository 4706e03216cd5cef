from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

DEFAULT_LOCALE = "en-GB"


MESSAGES: Mapping[str, Mapping[str, str]] = {
    "en-GB": {
        "crew.added": "[OK] Crew added.",
        "crew.updated": "[EDIT] Crew updated.",
        "crew.archived": "[ARCHIVE] Crew archived ({count} future item(s) left in place).",
        "crew.archived_moved": "[ARCHIVE] Crew archived, {count} future item(s) moved to {target}.",
        "employee.updated": "[EDIT] Employee updated.",
        "employee.time_off": "[OFF] {count} assignment(s) cleared for {name}.",
        "employee.time_off_preview": "[?] {count} assignment(s) would be cleared for {name}.",
        "item.created": "[OK] {count} item(s) created.",
        "item.updated": "[EDIT] Item updated.",
        "item.deleted": "[DEL] {count} item(s) deleted.",
        "item.duplicated": "[OK] {count} copy(ies) created.",
        "item.colour": "[EDIT] Colour applied to {count} item(s).",
        "item.moved": "[MOVE] {count} item(s) moved.",
        "drag.rejected": "[ERR] Drop rejected ({reason}).",
        "drag.noop": "[--] Nothing to do.",
        "pairing.prompt": "[?] {cell}: {label} can be combined. Run 'pairing decide'.",
        "pairing.recorded": "[OK] Decision '{decision}' stored for {count} cell(s).",
        "cell.synced": "[SYNC] {count} change(s) applied.",
        "group.prompt": "[?] Job {number} belongs to a group of {count}. Use --group to apply to all.",
        "state.saved": "[SAVE] State saved to {path}.",
        "state.loaded": "[LOAD] State loaded from {path}.",
        "undo.applied": "[UNDO] Restored ({label}).",
        "undo.empty": "[ERR] Nothing to undo.",
    },
    "en-US": {
        "crew.added": "[OK] Crew added.",
        "crew.updated": "[EDIT] Crew updated.",
        "crew.archived": "[ARCHIVE] Crew archived ({count} future item(s) left in place).",
        "crew.archived_moved": "[ARCHIVE] Crew archived, {count} future item(s) moved to {target}.",
        "employee.updated": "[EDIT] Employee updated.",
        "employee.time_off": "[OFF] {count} assignment(s) cleared for {name}.",
        "employee.time_off_preview": "[?] {count} assignment(s) would be cleared for {name}.",
        "item.created": "[OK] {count} item(s) created.",
        "item.updated": "[EDIT] Item updated.",
        "item.deleted": "[DEL] {count} item(s) deleted.",
        "item.duplicated": "[OK] {count} copy(ies) created.",
        "item.colour": "[EDIT] Color applied to {count} item(s).",
        "item.moved": "[MOVE] {count} item(s) moved.",
        "drag.rejected": "[ERR] Drop rejected ({reason}).",
        "drag.noop": "[--] Nothing to do.",
        "pairing.prompt": "[?] {cell}: {label} can be combined. Run 'pairing decide'.",
        "pairing.recorded": "[OK] Decision '{decision}' stored for {count} cell(s).",
        "cell.synced": "[SYNC] {count} change(s) applied.",
        "group.prompt": "[?] Job {number} belongs to a group of {count}. Use --group to apply to all.",
        "state.saved": "[SAVE] State saved to {path}.",
        "state.loaded": "[LOAD] State loaded from {path}.",
        "undo.applied": "[UNDO] Restored ({label}).",
        "undo.empty": "[ERR] Nothing to undo.",
    },
}


@dataclass(slots=True)
class Localizer:
    locale: str = DEFAULT_LOCALE

    def text(self, key: str, **kwargs) -> str:
        table = MESSAGES.get(self.locale, MESSAGES[DEFAULT_LOCALE])
        template = table.get(key, key)
        if kwargs:
            return template.format(**kwargs)
        return template
