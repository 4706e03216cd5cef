from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from .errors import IOErrorWithCode, ValidationError
from .models import State

STATE_FILE_DEFAULT = Path("state.json")
HISTORY_LIMIT = 64

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Snapshot:
    label: str
    timestamp: datetime
    state: State


class StateRepository:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or STATE_FILE_DEFAULT
        self.state: State = State()
        self.history: List[Snapshot] = []
        if self.path.exists():
            self.load()

    def load(self, path: Path | None = None) -> None:
        target = path or self.path
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise IOErrorWithCode(f"File not found: {target}") from exc
        except json.JSONDecodeError as exc:
            raise IOErrorWithCode(f"Invalid JSON in {target}: {exc}") from exc
        try:
            self.state = State.from_dict(payload)
        except (KeyError, ValueError) as exc:
            raise ValidationError(f"Malformed state file {target}: {exc}") from exc
        self.path = target
        logger.info("loaded %d item(s) from %s", len(self.state.items), target)

    def save(self, path: Path | None = None) -> None:
        target = path or self.path
        target.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(self.state.to_dict(), indent=2, ensure_ascii=False)
        target.write_text(data, encoding="utf-8")
        self.path = target

    def push_history(self, label: str) -> None:
        snapshot = Snapshot(label=label, timestamp=datetime.now(timezone.utc), state=self.state.clone())
        self.history.append(snapshot)
        if len(self.history) > HISTORY_LIMIT:
            self.history.pop(0)

    def undo(self) -> Snapshot:
        if not self.history:
            raise ValidationError("Nothing to undo.")
        snapshot = self.history.pop()
        self.state = snapshot.state.clone()
        return snapshot
