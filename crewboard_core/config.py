from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from .errors import ValidationError

CONFIG_ENV_PREFIX = "CREWBOARD_"
DEFAULT_CONFIG_PATH = Path("config.toml")

CANONICAL_VEHICLE_TYPES: Dict[str, str] = {
    "Lining": "purple",
    "Recycler": "orange",
    "CCTV": "blue",
    "CCTV/Van Pack": "indigo",
    "Jet Vac": "teal",
}
VAN_PACK_TYPE = "CCTV/Van Pack"


def normalize_vehicle_type_name(name: str) -> str:
    token = "".join(ch for ch in name.strip().lower() if not ch.isspace() and ch not in "-/")
    if token.endswith("s") and len(token) > 1:
        token = token[:-1]
    return token


def merge_vehicle_types(custom: Mapping[str, Optional[str]] | None) -> Dict[str, str]:
    """Canonical types first, then custom types alphabetically.

    Later entries for the same normalized name replace the colour but keep the
    first spelling of the name. Missing colours fall back to the defaults.
    """
    by_key: Dict[str, tuple[str, Optional[str]]] = {}
    for name, color in (custom or {}).items():
        key = normalize_vehicle_type_name(name)
        if not key:
            continue
        if key in by_key:
            by_key[key] = (by_key[key][0], color or by_key[key][1])
        else:
            by_key[key] = (name.strip(), color)
    merged: Dict[str, str] = {}
    for name, default in CANONICAL_VEHICLE_TYPES.items():
        key = normalize_vehicle_type_name(name)
        _, color = by_key.pop(key, (name, None))
        merged[name] = color or default
    for name, color in sorted(by_key.values(), key=lambda entry: entry[0].lower()):
        merged[name] = color or "blue"
    return merged


@dataclass(slots=True)
class GeneralConfig:
    timezone: str = "Europe/London"
    view_days: int = 5
    name_width: int = 18
    default_locale: str = "en-GB"
    default_color: str = "blue"
    free_start_time: str = "08:00"
    free_duration_hours: float = 8.0
    max_range_dates: int = 365
    prompt_pairing: bool = True


@dataclass(slots=True)
class PairingConfig:
    label: str = "CCTV/Jet Vac"
    color: str = "pink"
    group_a: list[str] = field(default_factory=lambda: ["CCTV", "CCTV/Van Pack"])
    group_b: list[str] = field(default_factory=lambda: ["Jet Vac", "Recycler"])
    van_pack_aliases: list[str] = field(default_factory=lambda: ["bjj"])


@dataclass(slots=True)
class Config:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    pairing: PairingConfig = field(default_factory=PairingConfig)
    vehicle_types: Dict[str, str] = field(default_factory=lambda: dict(CANONICAL_VEHICLE_TYPES))

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "Config":
        cfg = cls()
        cfg_path = path or DEFAULT_CONFIG_PATH
        if cfg_path.exists():
            try:
                data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise ValidationError(f"Invalid TOML in {cfg_path}: {exc}") from exc
            cfg = cfg.merge_dict(data)
        if env:
            cfg = cfg.apply_env(env)
        if overrides:
            cfg = cfg.apply_overrides(overrides)
        cfg.validate()
        return cfg

    def merge_dict(self, data: Mapping[str, Any]) -> "Config":
        cfg = deepcopy(self)
        if "general" in data:
            cfg._assign_dataclass(cfg.general, data["general"])
        if "pairing" in data:
            cfg._assign_dataclass(cfg.pairing, data["pairing"])
        if "vehicle_types" in data:
            combined = dict(cfg.vehicle_types)
            combined.update({str(name): str(color) for name, color in data["vehicle_types"].items()})
            cfg.vehicle_types = merge_vehicle_types(combined)
        return cfg

    def apply_env(self, env: Mapping[str, str]) -> "Config":
        payload: Dict[str, Dict[str, str]] = {}
        for key, value in env.items():
            if not key.startswith(CONFIG_ENV_PREFIX):
                continue
            remainder = key[len(CONFIG_ENV_PREFIX) :]
            pieces = [part for part in remainder.split("__") if part]
            if len(pieces) != 2:
                continue
            section, field_name = pieces
            payload.setdefault(section.lower(), {})[field_name.lower()] = value
        return self.merge_dict(payload)

    def apply_overrides(self, overrides: Mapping[str, Any]) -> "Config":
        cfg = deepcopy(self)
        for key, value in overrides.items():
            if key.startswith("general."):
                cfg._set_with_prefix(cfg.general, key, value)
            elif key.startswith("pairing."):
                cfg._set_with_prefix(cfg.pairing, key, value)
            elif key.startswith("vehicle_types."):
                _, type_name = key.split(".", 1)
                combined = dict(cfg.vehicle_types)
                combined[type_name] = str(value)
                cfg.vehicle_types = merge_vehicle_types(combined)
            else:
                raise ValidationError(f"Unknown override: {key}")
        return cfg

    def _assign_dataclass(self, instance: Any, data: Mapping[str, Any]) -> None:
        for field_obj in fields(instance):
            name = field_obj.name
            if name not in data:
                continue
            setattr(instance, name, self._convert_value(field_obj.type, data[name]))

    def _set_with_prefix(self, instance: Any, dotted_key: str, value: Any) -> None:
        _, field_name = dotted_key.split(".", 1)
        field_obj = next((f for f in fields(instance) if f.name == field_name), None)
        if field_obj is None:
            raise ValidationError(f"Unknown field: {dotted_key}")
        setattr(instance, field_name, self._convert_value(field_obj.type, value))

    @staticmethod
    def _convert_value(expected_type: Any, value: Any) -> Any:
        # annotations arrive as strings under postponed evaluation
        type_name = expected_type if isinstance(expected_type, str) else getattr(expected_type, "__name__", "")
        if type_name == "bool":
            if isinstance(value, str):
                return value.strip().lower() in {"1", "true", "yes", "on"}
            return bool(value)
        if type_name == "int":
            return int(value)
        if type_name == "float":
            return float(value)
        if type_name == "str":
            return str(value)
        if type_name.startswith("list"):
            if isinstance(value, str):
                return [token.strip() for token in value.split(",") if token.strip()]
            return [str(token) for token in value]
        return value

    def validate(self) -> None:
        if self.general.view_days not in (5, 7):
            raise ValidationError("view_days must be 5 or 7")
        if self.general.name_width < 8:
            raise ValidationError("name_width must be at least 8")
        if self.general.free_duration_hours <= 0:
            raise ValidationError("free_duration_hours must be positive")
        if self.general.max_range_dates < 1:
            raise ValidationError("max_range_dates must be >= 1")
        if not self.pairing.label.strip():
            raise ValidationError("pairing.label cannot be empty")
        if not self.pairing.group_a or not self.pairing.group_b:
            raise ValidationError("pairing groups cannot be empty")

    def type_color(self, type_name: str | None) -> Optional[str]:
        if not type_name:
            return None
        target = normalize_vehicle_type_name(type_name)
        for name, color in self.vehicle_types.items():
            if normalize_vehicle_type_name(name) == target:
                return color
        return None

    def display_type_name(self, type_name: str) -> str:
        target = normalize_vehicle_type_name(type_name)
        for name in self.vehicle_types:
            if normalize_vehicle_type_name(name) == target:
                return name
        return type_name

    def to_toml(self) -> str:
        def quoted(items: list[str]) -> str:
            return ", ".join(f'"{item}"' for item in items)

        lines: list[str] = []
        lines.append("[general]")
        lines.append(f"timezone = \"{self.general.timezone}\"")
        lines.append(f"view_days = {self.general.view_days}")
        lines.append(f"name_width = {self.general.name_width}")
        lines.append(f"default_locale = \"{self.general.default_locale}\"")
        lines.append(f"default_color = \"{self.general.default_color}\"")
        lines.append(f"free_start_time = \"{self.general.free_start_time}\"")
        lines.append(f"free_duration_hours = {self.general.free_duration_hours}")
        lines.append(f"max_range_dates = {self.general.max_range_dates}")
        lines.append(f"prompt_pairing = {str(self.general.prompt_pairing).lower()}")
        lines.append("")
        lines.append("[pairing]")
        lines.append(f"label = \"{self.pairing.label}\"")
        lines.append(f"color = \"{self.pairing.color}\"")
        lines.append(f"group_a = [{quoted(self.pairing.group_a)}]")
        lines.append(f"group_b = [{quoted(self.pairing.group_b)}]")
        lines.append(f"van_pack_aliases = [{quoted(self.pairing.van_pack_aliases)}]")
        lines.append("")
        lines.append("[vehicle_types]")
        for name, color in self.vehicle_types.items():
            lines.append(f"\"{name}\" = \"{color}\"")
        lines.append("")
        return "\n".join(lines)
