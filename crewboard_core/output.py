from __future__ import annotations

import csv
import io
import json
from typing import Any, Mapping, Sequence

import yaml

from .models import Crew, ScheduleItem

ELLIPSIS = "..."

ITEM_COLUMNS = ("id", "date", "crew", "kind", "summary", "status", "color")
CELL_COLUMNS = ("date", "crew", "items", "label", "decision", "prompt")
TIME_OFF_COLUMNS = ("date", "crew_name", "shift", "item_id")
ABSENCE_COLUMNS = ("id", "employee_id", "absence_type", "start_date", "end_date")


def truncate(value: str, width: int) -> str:
    if width <= 0 or len(value) <= width:
        return value
    if width <= len(ELLIPSIS):
        return value[:width]
    return value[: width - len(ELLIPSIS)] + ELLIPSIS


def format_cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:.2f}".rstrip("0").rstrip(".")
    return str(value)


def item_summary(item: ScheduleItem) -> str:
    if item.is_note:
        return item.note_content or ""
    if item.is_assignment:
        vehicle = f" @ {item.vehicle_id}" if item.vehicle_id else ""
        return f"{item.employee_id or '?'}{vehicle}"
    parts = [item.customer_name or "", item.job_number or ""]
    return " ".join(part for part in parts if part)


def item_row(item: ScheduleItem, crews: Mapping[str, Crew]) -> dict[str, Any]:
    crew = crews.get(item.crew_id)
    return {
        "id": item.id,
        "date": item.day.isoformat(),
        "crew": crew.name if crew else item.crew_id,
        "kind": item.kind,
        "summary": item_summary(item),
        "status": item.job_status,
        "color": item.color,
    }


def render_table(rows: Sequence[Mapping[str, Any]], columns: Sequence[str], widths: Mapping[str, int] | None = None) -> str:
    widths = widths or {}
    col_widths: list[int] = []
    for column in columns:
        base = max(len(column), *(len(format_cell(row.get(column))) for row in rows)) if rows else len(column)
        limit = widths.get(column)
        col_widths.append(min(base, limit) if limit else base)
    header = " | ".join(column.ljust(col_widths[idx]) for idx, column in enumerate(columns))
    divider = "-+-".join("-" * width for width in col_widths)
    body_lines = []
    for row in rows:
        cells = [
            truncate(format_cell(row.get(column)), col_widths[idx]).ljust(col_widths[idx])
            for idx, column in enumerate(columns)
        ]
        body_lines.append(" | ".join(cells))
    if not body_lines:
        body_lines.append("(no rows)")
    return "\n".join([header, divider, *body_lines])


def render_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


def render_yaml(data: Any) -> str:
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)


def render_csv(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: row.get(column, "") for column in columns})
    return buffer.getvalue()


def render_output(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    fmt: str,
    *,
    width_overrides: Mapping[str, int] | None = None,
) -> str:
    fmt = fmt.lower()
    if fmt == "table":
        return render_table(rows, columns, widths=width_overrides)
    data = [dict(row) for row in rows]
    if fmt == "json":
        return render_json(data)
    if fmt == "yaml":
        return render_yaml(data)
    if fmt == "csv":
        return render_csv(data, columns)
    raise ValueError(f"Unsupported format: {fmt}")
