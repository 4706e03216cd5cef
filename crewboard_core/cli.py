from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

import typer

from .config import Config, DEFAULT_CONFIG_PATH
from .errors import CrewboardError, UsageError, ValidationError
from .localization import Localizer
from .models import State
from .moves import DropTarget
from .output import ABSENCE_COLUMNS, CELL_COLUMNS, ITEM_COLUMNS, TIME_OFF_COLUMNS, item_row, render_output
from .ranges import RangeScope
from .repository import StateRepository
from .service import CoreService
from .utils import ViewWindow, build_window, detect_timezone, parse_iso_date

APP_NAME = "crewboard"
DEFAULT_STATE_PATH = Path("state.json")
SUPPORTED_FORMATS = {"table", "json", "csv", "yaml"}

app = typer.Typer(name=APP_NAME, add_completion=False, context_settings={"help_option_names": ["-h", "--help"]})

crew_app = typer.Typer(help="Crews and their lifecycle.")
vehicle_app = typer.Typer(help="Vehicle catalog.")
employee_app = typer.Typer(help="Employee catalog.")
item_app = typer.Typer(help="Assignments, jobs and notes on the grid.")
cell_app = typer.Typer(help="Grid cells, free-time sync and ordering.")
pairing_app = typer.Typer(help="Vehicle pairing decisions.")
file_app = typer.Typer(help="Persistence.")
config_app = typer.Typer(help="System configuration.")
system_app = typer.Typer(help="General utilities.")

app.add_typer(crew_app, name="crew")
app.add_typer(vehicle_app, name="vehicle")
app.add_typer(employee_app, name="employee")
app.add_typer(item_app, name="item")
app.add_typer(cell_app, name="cell")
app.add_typer(pairing_app, name="pairing")
app.add_typer(file_app, name="file")
app.add_typer(config_app, name="config")
app.add_typer(system_app, name="system")


@dataclass
class AppContext:
    config: Config
    config_path: Path
    state_path: Path
    repo: StateRepository
    service: CoreService
    formatter: str
    localizer: Localizer
    today: date
    window: ViewWindow
    auto_save: bool = True


def _ensure_format(value: str) -> str:
    fmt = value.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise UsageError(f"Unsupported format: {value}")
    return fmt


def get_ctx(ctx: typer.Context) -> AppContext:
    if not isinstance(ctx.obj, AppContext):
        raise RuntimeError("Context not initialised")
    return ctx.obj


def print_rows(ctx: AppContext, rows: Sequence[dict], columns: Sequence[str], *, fmt: Optional[str] = None) -> None:
    formatter = _ensure_format(fmt or ctx.formatter)
    widths = {"summary": ctx.config.general.name_width * 2, "crew": ctx.config.general.name_width}
    typer.echo(render_output(rows, columns, formatter, width_overrides=widths))


def persist(ctx: AppContext) -> None:
    if ctx.auto_save:
        ctx.repo.save(ctx.state_path)


def parse_scope(raw: Optional[str]) -> Optional[RangeScope]:
    if not raw:
        return None
    return RangeScope.parse(raw)


def parse_changes(pairs: Optional[List[str]]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise UsageError(f"Use key=value in --set: {pair}")
        key, value = pair.split("=", 1)
        key = key.strip().replace("-", "_")
        if key == "duration_hours":
            changes[key] = float(value) if value else None
        elif key == "day":
            changes[key] = parse_iso_date(value)
        else:
            changes[key] = value or None
    return changes


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Config TOML path."),
    state_path: Path = typer.Option(DEFAULT_STATE_PATH, "--state", help="JSON state file."),
    tz: Optional[str] = typer.Option(None, "--tz", help="Default timezone."),
    locale: Optional[str] = typer.Option(None, "--locale", help="Message locale."),
    formatter: str = typer.Option("table", "--format", help="table|json|csv|yaml"),
    today: Optional[str] = typer.Option(None, "--today", help="Treat this date as today (YYYY-MM-DD)."),
    week_start: Optional[str] = typer.Option(None, "--week-start", help="First day of the displayed window."),
    save: bool = typer.Option(True, "--save/--no-save", help="Write the state file after changes."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine activity."),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    overrides: dict[str, Any] = {}
    if tz:
        overrides["general.timezone"] = tz
    if locale:
        overrides["general.default_locale"] = locale
    config = Config.load(path=config_path, env=os.environ, overrides=overrides)
    repo = StateRepository(state_path)
    service = CoreService(repo, config)
    current = parse_iso_date(today) if today else service.today()
    ctx.obj = AppContext(
        config=config,
        config_path=config_path,
        state_path=state_path,
        repo=repo,
        service=service,
        formatter=_ensure_format(formatter),
        localizer=Localizer(locale or config.general.default_locale),
        today=current,
        window=build_window(week_start, config.general.view_days, current),
        auto_save=save,
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


# crews --------------------------------------------------------------

def _crew_rows(crews) -> list[dict]:
    return [
        {
            "id": crew.id,
            "name": crew.name,
            "shift": crew.shift,
            "position": crew.position,
            "archived": crew.archived_at.isoformat() if crew.archived_at else None,
        }
        for crew in crews
    ]


@crew_app.command("add")
def crew_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name"),
    shift: str = typer.Option("day", "--shift", help="day|night"),
    depot: Optional[str] = typer.Option(None, "--depot"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    crew = app_ctx.service.add_crew(name=name, shift=shift, depot_id=depot)
    persist(app_ctx)
    print_rows(app_ctx, _crew_rows([crew]), ["id", "name", "shift", "position"], fmt=format)


@crew_app.command("list")
def crew_list(
    ctx: typer.Context,
    all_: bool = typer.Option(False, "--all", help="Include archived crews."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    crews = app_ctx.service.list_crews(include_archived=all_)
    print_rows(app_ctx, _crew_rows(crews), ["id", "name", "shift", "position", "archived"], fmt=format)


@crew_app.command("update")
def crew_update(
    ctx: typer.Context,
    crew_id: str = typer.Argument(...),
    name: Optional[str] = typer.Option(None, "--name"),
    shift: Optional[str] = typer.Option(None, "--shift"),
    position: Optional[int] = typer.Option(None, "--position"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.update_crew(crew_id, name=name, shift=shift, position=position)
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("crew.updated"))


@crew_app.command("archive")
def crew_archive(
    ctx: typer.Context,
    crew_id: str = typer.Argument(...),
    move_up: bool = typer.Option(False, "--move-up/--keep", help="Move future items to the previous crew."),
) -> None:
    app_ctx = get_ctx(ctx)
    plan = app_ctx.service.archive_crew(crew_id, window=app_ctx.window, move_to_previous=move_up)
    persist(app_ctx)
    if plan.target is not None:
        typer.echo(app_ctx.localizer.text("crew.archived_moved", count=len(plan.future), target=plan.target.name))
    else:
        typer.echo(app_ctx.localizer.text("crew.archived", count=len(plan.future)))


# catalog ------------------------------------------------------------

@vehicle_app.command("add")
def vehicle_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name"),
    vehicle_type: Optional[str] = typer.Option(None, "--type"),
    category: Optional[str] = typer.Option(None, "--category"),
    color: Optional[str] = typer.Option(None, "--color"),
) -> None:
    app_ctx = get_ctx(ctx)
    vehicle = app_ctx.service.add_vehicle(name=name, vehicle_type=vehicle_type, category=category, default_color=color)
    persist(app_ctx)
    typer.echo(vehicle.id)


@vehicle_app.command("list")
def vehicle_list(ctx: typer.Context, format: Optional[str] = typer.Option(None, "--format")) -> None:
    app_ctx = get_ctx(ctx)
    rows = [vehicle.to_dict() for vehicle in app_ctx.service.list_vehicles()]
    print_rows(app_ctx, rows, ["id", "name", "vehicle_type", "category", "default_color"], fmt=format)


@employee_app.command("add")
def employee_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name"),
    role: Optional[str] = typer.Option(None, "--role"),
) -> None:
    app_ctx = get_ctx(ctx)
    employee = app_ctx.service.add_employee(name=name, job_role=role)
    persist(app_ctx)
    typer.echo(employee.id)


@employee_app.command("list")
def employee_list(ctx: typer.Context, format: Optional[str] = typer.Option(None, "--format")) -> None:
    app_ctx = get_ctx(ctx)
    rows = [employee.to_dict() for employee in app_ctx.service.list_employees()]
    print_rows(app_ctx, rows, ["id", "name", "job_role", "status"], fmt=format)


@employee_app.command("update")
def employee_update(
    ctx: typer.Context,
    employee_id: str = typer.Argument(...),
    name: Optional[str] = typer.Option(None, "--name"),
    role: Optional[str] = typer.Option(None, "--role"),
    status: Optional[str] = typer.Option(None, "--status", help="active|sick"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.update_employee(employee_id, name=name, job_role=role, status=status)
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("employee.updated"))


@employee_app.command("time-off")
def employee_time_off(
    ctx: typer.Context,
    employee_id: str = typer.Argument(...),
    start: str = typer.Option(..., "--from", help="First day off (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--to", help="Last day off; defaults to --from."),
    absence_type: str = typer.Option("holiday", "--type", help="holiday|sick|other"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list the assignments that would be cleared."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    service = app_ctx.service
    name = service.get_employee(employee_id).name
    first = parse_iso_date(start)
    last = parse_iso_date(end) if end else None
    if dry_run:
        plan = service.preview_time_off(employee_id, first, last, absence_type=absence_type, today=app_ctx.today)
    else:
        plan = service.apply_time_off(employee_id, first, last, absence_type=absence_type, today=app_ctx.today)
        persist(app_ctx)
    print_rows(app_ctx, [impact.to_dict() for impact in plan.impacted], TIME_OFF_COLUMNS, fmt=format)
    key = "employee.time_off_preview" if dry_run else "employee.time_off"
    typer.echo(app_ctx.localizer.text(key, count=len(plan.impacted), name=name))


@employee_app.command("absences")
def employee_absences(
    ctx: typer.Context,
    employee_id: Optional[str] = typer.Argument(None),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    rows = [absence.to_dict() for absence in app_ctx.service.list_absences(employee_id)]
    print_rows(app_ctx, rows, ABSENCE_COLUMNS, fmt=format)


# items --------------------------------------------------------------

@item_app.command("add")
def item_add(
    ctx: typer.Context,
    kind: str = typer.Option(..., "--kind", help="assignment|job|note"),
    day: str = typer.Option(..., "--date"),
    crew: str = typer.Option(..., "--crew"),
    employee: Optional[str] = typer.Option(None, "--employee"),
    vehicle: Optional[str] = typer.Option(None, "--vehicle"),
    customer: Optional[str] = typer.Option(None, "--customer"),
    job_number: Optional[str] = typer.Option(None, "--job-number"),
    address: Optional[str] = typer.Option(None, "--address"),
    start: Optional[str] = typer.Option(None, "--start"),
    duration: Optional[float] = typer.Option(None, "--duration"),
    color: Optional[str] = typer.Option(None, "--color"),
    status: Optional[str] = typer.Option(None, "--status"),
    note: Optional[str] = typer.Option(None, "--note"),
    repeat: Optional[str] = typer.Option(None, "--repeat", help="Scope to replicate over, e.g. month or months:6."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    created = app_ctx.service.create_item(
        kind=kind,
        day=parse_iso_date(day),
        crew_id=crew,
        today=app_ctx.today,
        apply_scope=parse_scope(repeat),
        window=app_ctx.window,
        employee_id=employee,
        vehicle_id=vehicle,
        customer_name=customer,
        job_number=job_number,
        address=address,
        start_time=start,
        duration_hours=duration,
        color=color,
        job_status=status,
        note_content=note,
    )
    persist(app_ctx)
    crews = app_ctx.service.state.crews
    print_rows(app_ctx, [item_row(item, crews) for item in created], ITEM_COLUMNS, fmt=format)


@item_app.command("list")
def item_list(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--from"),
    end: Optional[str] = typer.Option(None, "--to"),
    crew: Optional[str] = typer.Option(None, "--crew"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    items = app_ctx.service.list_items(
        start=parse_iso_date(start) if start else app_ctx.window.start,
        end=parse_iso_date(end) if end else app_ctx.window.end,
        crew_id=crew,
    )
    crews = app_ctx.service.state.crews
    print_rows(app_ctx, [item_row(item, crews) for item in items], ITEM_COLUMNS, fmt=format)


@item_app.command("update")
def item_update(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    values: Optional[List[str]] = typer.Option(None, "--set", help="field=value, repeatable."),
    scope: Optional[str] = typer.Option(None, "--scope", help="Apply to the same entry over a range."),
) -> None:
    app_ctx = get_ctx(ctx)
    changes = parse_changes(values)
    if not changes:
        raise UsageError("Nothing to update; use --set field=value.")
    range_scope = parse_scope(scope)
    if range_scope is None or range_scope.kind == "single":
        app_ctx.service.update_item(item_id, today=app_ctx.today, **changes)
    else:
        app_ctx.service.bulk_update(item_id, range_scope, changes, today=app_ctx.today, window=app_ctx.window)
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("item.updated"))


@item_app.command("delete")
def item_delete(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    scope: Optional[str] = typer.Option(None, "--scope"),
    group: bool = typer.Option(False, "--group", help="Apply to every job sharing the job number."),
) -> None:
    app_ctx = get_ctx(ctx)
    choice = app_ctx.service.group_choice(item_id)
    if choice.needs_choice and not group:
        typer.echo(app_ctx.localizer.text("group.prompt", number=choice.item.job_number, count=choice.group_count))
    diff = app_ctx.service.delete_item(
        item_id,
        today=app_ctx.today,
        scope=parse_scope(scope),
        window=app_ctx.window,
        apply_to_group=group,
    )
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("item.deleted", count=len(diff.to_delete)))


@item_app.command("duplicate")
def item_duplicate(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    scope: str = typer.Option(..., "--scope"),
    weekdays: bool = typer.Option(False, "--weekdays", help="Skip Saturdays and Sundays."),
) -> None:
    app_ctx = get_ctx(ctx)
    copies = app_ctx.service.duplicate_item(
        item_id,
        RangeScope.parse(scope),
        today=app_ctx.today,
        window=app_ctx.window,
        weekdays_only=weekdays,
    )
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("item.duplicated", count=len(copies)))


@item_app.command("color")
def item_color(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    color: str = typer.Argument(...),
    group: bool = typer.Option(False, "--group"),
) -> None:
    app_ctx = get_ctx(ctx)
    choice = app_ctx.service.group_choice(item_id)
    if choice.needs_choice and not group:
        typer.echo(app_ctx.localizer.text("group.prompt", number=choice.item.job_number, count=choice.group_count))
    updated = app_ctx.service.set_color(item_id, color, today=app_ctx.today, apply_to_group=group)
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("item.colour", count=len(updated)))


@item_app.command("move-date")
def item_move_date(
    ctx: typer.Context,
    item_id: str = typer.Argument(...),
    new_date: str = typer.Argument(...),
    group: bool = typer.Option(False, "--group"),
) -> None:
    app_ctx = get_ctx(ctx)
    diff = app_ctx.service.move_to_date(item_id, parse_iso_date(new_date), today=app_ctx.today, move_group=group)
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("item.moved", count=len(diff.to_update)))


@item_app.command("drag")
def item_drag(
    ctx: typer.Context,
    item_ids: List[str] = typer.Argument(...),
    to_crew: Optional[str] = typer.Option(None, "--to-crew"),
    to_date: Optional[str] = typer.Option(None, "--to-date"),
    over: Optional[str] = typer.Option(None, "--over", help="Drop on this item."),
    copy: bool = typer.Option(False, "--copy", help="Duplicate instead of moving."),
    scope: str = typer.Option("day", "--scope", help="day|week for assignments."),
) -> None:
    app_ctx = get_ctx(ctx)
    if over:
        target: Optional[DropTarget] = DropTarget.on_item(over)
    elif to_crew and to_date:
        target = DropTarget.cell(to_crew, parse_iso_date(to_date))
    else:
        target = None
    outcome = app_ctx.service.drag(
        item_ids,
        target,
        today=app_ctx.today,
        window=app_ctx.window,
        duplicate=copy,
        scope=scope,
    )
    persist(app_ctx)
    if outcome.action == "rejected":
        typer.echo(app_ctx.localizer.text("drag.rejected", reason=outcome.reason))
    elif not outcome.changed:
        typer.echo(app_ctx.localizer.text("drag.noop"))
    else:
        typer.echo(app_ctx.localizer.text("item.moved", count=len(outcome.diff)))
    for prompt in outcome.prompts:
        typer.echo(app_ctx.localizer.text("pairing.prompt", cell=prompt.key.token(), label=prompt.label))


# cells --------------------------------------------------------------

@cell_app.command("list")
def cell_list(ctx: typer.Context, format: Optional[str] = typer.Option(None, "--format")) -> None:
    app_ctx = get_ctx(ctx)
    rows = [
        {
            "date": row.day.isoformat(),
            "crew": row.crew.name,
            "items": len(row.items),
            "label": row.pairing.label,
            "decision": row.pairing.decision,
            "prompt": row.pairing.needs_prompt,
        }
        for row in app_ctx.service.cell_rows(app_ctx.window)
    ]
    print_rows(app_ctx, rows, CELL_COLUMNS, fmt=format)


@cell_app.command("sync")
def cell_sync(
    ctx: typer.Context,
    crew: Optional[str] = typer.Option(None, "--crew"),
    day: Optional[str] = typer.Option(None, "--date"),
) -> None:
    app_ctx = get_ctx(ctx)
    if crew and day:
        diff = app_ctx.service.sync_cell(crew, parse_iso_date(day))
    elif crew or day:
        raise UsageError("Use --crew and --date together, or neither to sync every cell.")
    else:
        diff = app_ctx.service.sync_all()
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("cell.synced", count=len(diff)))


@cell_app.command("reorder")
def cell_reorder(
    ctx: typer.Context,
    crew: str = typer.Argument(...),
    day: str = typer.Argument(...),
    active: str = typer.Argument(...),
    over: str = typer.Argument(...),
) -> None:
    app_ctx = get_ctx(ctx)
    order = app_ctx.service.reorder_cell(crew, parse_iso_date(day), active, over)
    persist(app_ctx)
    typer.echo(", ".join(order))


# pairing ------------------------------------------------------------

@pairing_app.command("show")
def pairing_show(
    ctx: typer.Context,
    crew: str = typer.Argument(...),
    day: str = typer.Argument(...),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    evaluation = app_ctx.service.evaluate_cell(crew, parse_iso_date(day))
    row = evaluation.to_dict()
    print_rows(app_ctx, [row], ["cell", "signature", "label", "color", "actionable", "decision", "needs_prompt"], fmt=format)


@pairing_app.command("decide")
def pairing_decide(
    ctx: typer.Context,
    crew: str = typer.Argument(...),
    day: str = typer.Argument(...),
    decision: str = typer.Argument(..., help="combined|separate"),
    period: str = typer.Option("none", "--period", help="none|week|month|6months|12months"),
) -> None:
    app_ctx = get_ctx(ctx)
    decided = app_ctx.service.decide_pairing(
        crew,
        parse_iso_date(day),
        decision,
        today=app_ctx.today,
        period=period,
        window=app_ctx.window,
    )
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("pairing.recorded", decision=decision, count=len(decided)))


@pairing_app.command("prune")
def pairing_prune(ctx: typer.Context) -> None:
    app_ctx = get_ctx(ctx)
    removed = app_ctx.service.prune_decisions()
    persist(app_ctx)
    typer.echo(str(len(removed)))


# file ---------------------------------------------------------------

@file_app.command("save")
def file_save(ctx: typer.Context, path: Optional[Path] = typer.Option(None, "--path")) -> None:
    app_ctx = get_ctx(ctx)
    target = app_ctx.service.save_state(str(path) if path else None)
    typer.echo(app_ctx.localizer.text("state.saved", path=target))


@file_app.command("load")
def file_load(ctx: typer.Context, path: Path = typer.Option(..., "--path")) -> None:
    app_ctx = get_ctx(ctx)
    target = app_ctx.service.load_state(str(path))
    typer.echo(app_ctx.localizer.text("state.loaded", path=target))


# config -------------------------------------------------------------

@config_app.command("show")
def config_show(ctx: typer.Context, format: Optional[str] = typer.Option(None, "--format")) -> None:
    app_ctx = get_ctx(ctx)
    cfg = app_ctx.config
    rows = [
        {"section": "general", "key": "timezone", "value": cfg.general.timezone},
        {"section": "general", "key": "view_days", "value": cfg.general.view_days},
        {"section": "general", "key": "default_locale", "value": cfg.general.default_locale},
        {"section": "general", "key": "default_color", "value": cfg.general.default_color},
        {"section": "general", "key": "free_start_time", "value": cfg.general.free_start_time},
        {"section": "general", "key": "free_duration_hours", "value": cfg.general.free_duration_hours},
        {"section": "general", "key": "max_range_dates", "value": cfg.general.max_range_dates},
        {"section": "general", "key": "prompt_pairing", "value": cfg.general.prompt_pairing},
        {"section": "pairing", "key": "label", "value": cfg.pairing.label},
        {"section": "pairing", "key": "color", "value": cfg.pairing.color},
        {"section": "pairing", "key": "group_a", "value": ", ".join(cfg.pairing.group_a)},
        {"section": "pairing", "key": "group_b", "value": ", ".join(cfg.pairing.group_b)},
    ]
    rows.extend({"section": "vehicle_types", "key": name, "value": color} for name, color in cfg.vehicle_types.items())
    print_rows(app_ctx, rows, ["section", "key", "value"], fmt=format)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    values: List[str] = typer.Argument(..., help="section.field=value pairs."),
) -> None:
    app_ctx = get_ctx(ctx)
    overrides: dict[str, str] = {}
    for pair in values:
        if "=" not in pair:
            raise UsageError(f"Use section.field=value: {pair}")
        key, value = pair.split("=", 1)
        overrides[key.strip()] = value.strip()
    cfg = app_ctx.config.apply_overrides(overrides)
    cfg.validate()
    app_ctx.config_path.write_text(cfg.to_toml(), encoding="utf-8")
    typer.echo(f"Config written to {app_ctx.config_path}.")


# system -------------------------------------------------------------

@system_app.command("now")
def system_now(ctx: typer.Context) -> None:
    app_ctx = get_ctx(ctx)
    tz = detect_timezone(app_ctx.config.general.timezone)
    typer.echo(datetime.now(tz).isoformat())


@system_app.command("clear")
def system_clear(ctx: typer.Context) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.repo.push_history("system.clear")
    app_ctx.repo.state = State()
    persist(app_ctx)
    typer.echo("State cleared.")


@system_app.command("undo")
def system_undo(ctx: typer.Context) -> None:
    app_ctx = get_ctx(ctx)
    try:
        snapshot = app_ctx.repo.undo()
    except ValidationError:
        typer.echo(app_ctx.localizer.text("undo.empty"))
        return
    persist(app_ctx)
    typer.echo(app_ctx.localizer.text("undo.applied", label=snapshot.label))


def main_entry() -> None:
    try:
        app()
    except UsageError as exc:
        typer.secho(str(exc), err=True)
        raise typer.Exit(2)
    except ValidationError as exc:
        typer.secho(str(exc), err=True)
        raise typer.Exit(3)
    except CrewboardError as exc:
        typer.secho(str(exc), err=True)
        raise typer.Exit(exc.code)
    except Exception as exc:  # pragma: no cover
        typer.secho(f"Internal error: {exc}", err=True)
        raise typer.Exit(6)


if __name__ == "__main__":  # pragma: no cover
    main_entry()
