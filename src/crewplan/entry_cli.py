import typer
from typing import List, Optional
from rich.markup import escape
from rich.table import Table

from .conflicts import detect_conflicts
from .errors import SchedulingError
from .models import EntryType, ScheduleEntry
from .session import get_controller
from .utils import console, fail, format_day, parse_date, parse_time, prompt_for_date, prompt_for_time

entry_app = typer.Typer(help="Create, edit and delete schedule entries")

# --- HELPERS ---

def _describe(e: ScheduleEntry) -> str:
    if e.all_day:
        span = format_day(e.start.date())
        if e.end.date() != e.start.date(): span += f" - {format_day(e.end.date())}"
        return f"{span} (all day)"
    return f"{format_day(e.start.date())} {e.start:%H:%M}-{e.end:%H:%M}"

def print_conflicts(conflicts: List[ScheduleEntry], title: str = "⚠️ Overlapping entries") -> None:
    table = Table(title=title, header_style="bold yellow")
    table.add_column("ID", style="bold yellow"); table.add_column("Title"); table.add_column("When", style="cyan"); table.add_column("Status")
    for c in conflicts:
        table.add_row(c.id, escape(c.title), _describe(c), c.status.value)
    console.print(table)

def _confirm_and_save(controller, yes: bool):
    """Show draft overlaps, ask before saving over them, then send the draft."""
    conflicts = controller.draft_conflicts()
    if conflicts:
        print_conflicts(conflicts)
        if not yes and not typer.confirm("Save anyway?", default=False):
            controller.discard_draft()
            typer.secho("Cancelled, nothing was saved.", fg="yellow")
            raise typer.Exit()
    return controller.save_draft(confirm_conflicts=True)

def _apply_times(draft, start: Optional[str], end: Optional[str], all_day: Optional[bool], until: Optional[str]):
    if all_day is not None: draft.all_day = all_day
    if start: draft.start_time = parse_time(start)
    if end: draft.end_time = parse_time(end)
    if until: draft.end_day = parse_date(until)

# --- COMMANDS ---

@entry_app.command(name="add")
def add_entry(
    member: Optional[str] = typer.Option(None, "--member", "-m", help="Member ID"),
    on: Optional[str] = typer.Option(None, "--date", "-d"),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="HH:MM"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="HH:MM"),
    all_day: bool = typer.Option(False, "--all-day", help="Block whole days"),
    until: Optional[str] = typer.Option(None, "--until", help="Last day of an all-day entry"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    entry_type: str = typer.Option("project", "--type", help="project, internal, time_off or travel"),
    project_id: Optional[str] = typer.Option(None, "--project", "-p", help="Project ID"),
    project_name: Optional[str] = typer.Option(None, "--project-name", help="Used as the title when none is given"),
    description: Optional[str] = typer.Option(None, "--description"),
    color: Optional[str] = typer.Option(None, "--color", "-c"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Save even when the entry overlaps others"),
):
    try:
        day = parse_date(on) if on else prompt_for_date("Date")
        controller = get_controller(load=False)
        controller.anchor = day
        if member: controller.selected = {member}
        controller.load()

        draft = controller.open_create(day, parse_time(start).hour if start else None)
        draft.member_id = member or typer.prompt("Member ID", default=draft.member_id or None)
        draft.type = EntryType(entry_type)
        if not all_day and not start:
            draft.start_time = prompt_for_time("Start", draft.start_time.strftime("%H:%M"))
            draft.end_time = prompt_for_time("End", (end or draft.end_time.strftime("%H:%M")))
        _apply_times(draft, start, end, all_day, until)
        draft.title = title or ""
        draft.description = description or ""
        draft.color = color
        controller.set_project(project_id, project_name)
        if not draft.title.strip():
            draft.title = typer.prompt("Title")

        result = _confirm_and_save(controller, yes)
    except (ValueError, SchedulingError) as e:
        fail(e)

    typer.secho(f"\n✅ Scheduled '{result.entry.title}' ({result.entry.id}) on {_describe(result.entry)}", fg="green", bold=True)
    if result.conflicts:
        print_conflicts(result.conflicts, "⚠️ Saved alongside overlapping entries")

@entry_app.command(name="edit")
def edit_entry(
    entry_id: str,
    member: Optional[str] = typer.Option(None, "--member", "-m"),
    on: Optional[str] = typer.Option(None, "--date", "-d"),
    start: Optional[str] = typer.Option(None, "--start", "-s"),
    end: Optional[str] = typer.Option(None, "--end", "-e"),
    all_day: Optional[bool] = typer.Option(None, "--all-day/--timed"),
    until: Optional[str] = typer.Option(None, "--until"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    entry_type: Optional[str] = typer.Option(None, "--type"),
    project_id: Optional[str] = typer.Option(None, "--project", "-p"),
    description: Optional[str] = typer.Option(None, "--description"),
    color: Optional[str] = typer.Option(None, "--color", "-c"),
    yes: bool = typer.Option(False, "--yes", "-y"),
):
    try:
        controller = get_controller()
        controller.locate_entry(entry_id)
        draft = controller.open_edit(entry_id)

        flags = (member, on, start, end, all_day, until, title, entry_type, project_id, description, color)
        if all(v is None for v in flags):
            # No flags given: walk through the main fields like the add wizard
            draft.title = typer.prompt("Title", default=draft.title)
            draft.day = prompt_for_date("Date", default=draft.day)
            if not draft.all_day:
                draft.start_time = prompt_for_time("Start", draft.start_time.strftime("%H:%M"))
                draft.end_time = prompt_for_time("End", draft.end_time.strftime("%H:%M"))
        else:
            if member: draft.member_id = member
            if on:
                moved = parse_date(on)
                if draft.end_day: draft.end_day = moved + (draft.end_day - draft.day)
                draft.day = moved
            _apply_times(draft, start, end, all_day, until)
            if title is not None: draft.title = title
            if entry_type: draft.type = EntryType(entry_type)
            if project_id is not None: draft.project_id = project_id or None
            if description is not None: draft.description = description
            if color is not None: draft.color = color or None

        updated = _confirm_and_save(controller, yes)
    except (ValueError, SchedulingError) as e:
        fail(e)
    typer.secho(f"✅ Updated '{updated.title}' ({_describe(updated)})", fg="green")

@entry_app.command(name="status")
def set_status(entry_id: str, status: str = typer.Argument(..., help="scheduled, completed or cancelled")):
    try:
        controller = get_controller()
        controller.locate_entry(entry_id)
        updated = controller.update_entry(entry_id, status=status)
    except (ValueError, SchedulingError) as e:
        fail(e)
    typer.secho(f"✅ '{updated.title}' is now {updated.status.value}.", fg="green")

@entry_app.command(name="delete")
def delete_entry(entry_id: str, yes: bool = typer.Option(False, "--yes", "-y", help="Confirm without prompting")):
    try:
        controller = get_controller()
        controller.locate_entry(entry_id)
        entry = controller.request_delete(entry_id)
    except SchedulingError as e:
        fail(e)

    console.print(f"[bold]{escape(entry.title)}[/bold] [cyan]{_describe(entry)}[/cyan]")
    if not yes and not typer.confirm("Are you sure you want to delete this entry?", default=False):
        controller.cancel_delete()
        typer.secho("Deletion cancelled.", fg="yellow")
        return
    try:
        controller.confirm_delete(entry_id)
    except SchedulingError as e:
        fail(e)
    typer.secho("✅ Entry deleted.", fg="green")

@entry_app.command(name="conflicts")
def check_conflicts(
    member: str = typer.Option(..., "--member", "-m"),
    on: str = typer.Option(..., "--date", "-d"),
    start: str = typer.Option("08:00", "--start", "-s"),
    end: str = typer.Option("09:00", "--end", "-e"),
    all_day: bool = typer.Option(False, "--all-day"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Entry ID being edited"),
):
    """Check a proposed slot against a member's schedule without saving anything."""
    try:
        day = parse_date(on)
        controller = get_controller(load=False)
        controller.anchor = day
        controller.selected = {member}
        controller.load()
        found = detect_conflicts(controller.entries, member, day, parse_time(start), parse_time(end), all_day, exclude)
    except (ValueError, SchedulingError) as e:
        fail(e)
    if not found:
        return typer.secho(f"✅ {format_day(day)} {start}-{end} is free.", fg="green")
    print_conflicts(found)
    raise typer.Exit(code=2)
