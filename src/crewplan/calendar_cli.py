import typer
from typing import List, Optional
from rich.markup import escape
from rich.table import Table

from .errors import SchedulingError
from .layout import EntryBlock, TimeGrid
from .models import Granularity
from .session import get_controller
from .utils import console, fail, initials, parse_date

calendar_app = typer.Typer(help="View the team schedule by day, week or month")

# --- RENDER HELPERS ---

def _chip(block: EntryBlock, names: dict, show_time: bool = True) -> str:
    e = block.entry
    label = escape(e.title)
    if show_time and not e.all_day:
        label = f"{e.start:%H:%M} {label}"
    if not block.interactive:
        return f"[dim italic]🔒 {label}[/]"
    who = initials(names.get(e.member_id, "?"))
    style = "strike dim" if e.is_cancelled else "white"
    return f"[{block.color}]■[/] [{style}]{label}[/] [dim]{who}[/]"

def _block_rows(block: EntryBlock, grid: TimeGrid) -> range:
    """Hour rows a timed block covers on the terminal grid."""
    cfg = grid.config
    bottom = cfg.total_hours - 1
    first = min(int(block.top // cfg.hour_height), bottom)
    last = min(int((block.top + block.height - 0.001) // cfg.hour_height), bottom)
    return range(first, max(first, last) + 1)

def render_time_grid(controller) -> None:
    grid = controller.time_grid()
    names = {m.id: m.name for m in controller.roster}
    table = Table(title=controller.window.label, header_style="bold magenta", show_lines=True)
    table.add_column("", style="dim", justify="right")
    for col in grid.columns:
        style = "dim" if col.day.weekday() >= 5 else None
        table.add_column(f"{col.day:%a %d}", style=style, overflow="fold")

    if grid.has_all_day:
        table.add_row("All day", *["\n".join(_chip(b, names) for b in col.all_day) for col in grid.columns])

    cells = [[[] for _ in grid.columns] for _ in range(grid.config.total_hours)]
    for c, col in enumerate(grid.columns):
        for block in col.timed:
            rows = _block_rows(block, grid)
            for i, r in enumerate(rows):
                cells[r][c].append(_chip(block, names) if i == 0 else f"[{block.color}]┆[/]")
    for label, row in zip(grid.config.hour_labels(), cells):
        table.add_row(label, *["\n".join(chips) for chips in row])
    console.print(table)

def render_month(controller) -> None:
    weeks = controller.month_grid()
    names = {m.id: m.name for m in controller.roster}
    table = Table(title=controller.window.label, header_style="bold magenta", show_lines=True)
    for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"):
        table.add_column(name, overflow="fold")
    for week in weeks:
        row = []
        for cell in week:
            lines = [f"[bold]{cell.day.day}[/]" if cell.in_focus else f"[dim]{cell.day.day}[/]"]
            lines += [_chip(b, names, show_time=False) for b in cell.visible]
            if cell.more_count:
                lines.append(f"[cyan]+{cell.more_count} more[/]")
            row.append("\n".join(lines))
        table.add_row(*row)
    console.print(table)
    console.print("[dim]Tip: open a single day with 'crewplan calendar show --view day --date YYYY-MM-DD'.[/dim]")

def _prepare(view: Optional[str], on: Optional[str], members: List[str]):
    controller = get_controller(load=False)
    if view:
        controller.granularity = Granularity(view)
    if on:
        controller.anchor = parse_date(on)
    if members:
        controller.selected = set(members)
    controller.load()
    return controller

# --- COMMANDS ---

@calendar_app.command(name="show")
def show(
    view: Optional[str] = typer.Option(None, "--view", "-v", help="day, week or month"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Any date inside the window"),
    members: List[str] = typer.Option([], "--member", "-m", help="Member ID to include (repeatable)"),
):
    try:
        controller = _prepare(view, on, members)
    except (ValueError, SchedulingError) as e:
        fail(e)
    if not controller.visible_members:
        console.print("[yellow]No schedulable members selected. Add some with 'crewplan team add'.[/yellow]")
    if controller.granularity == Granularity.MONTH:
        render_month(controller)
    else:
        render_time_grid(controller)

@calendar_app.command(name="agenda")
def agenda(
    view: Optional[str] = typer.Option(None, "--view", "-v", help="day, week or month"),
    on: Optional[str] = typer.Option(None, "--date", "-d"),
    members: List[str] = typer.Option([], "--member", "-m"),
):
    """List the entries in the window with their IDs."""
    try:
        controller = _prepare(view, on, members)
    except (ValueError, SchedulingError) as e:
        fail(e)
    if not controller.entries:
        return console.print("[yellow]Nothing scheduled in this window.[/yellow]")

    names = {m.id: m.name for m in controller.roster}
    table = Table(title=f"Agenda: {controller.window.label}", header_style="bold magenta")
    table.add_column("ID", style="bold yellow"); table.add_column("When", style="cyan")
    table.add_column("Member"); table.add_column("Title"); table.add_column("Type", style="blue"); table.add_column("Status")
    for e in controller.entries:
        if e.all_day:
            when = f"{e.start:%a %d %b}" + (f" - {e.end:%a %d %b}" if e.end.date() != e.start.date() else "") + " (all day)"
        else:
            when = f"{e.start:%a %d %b %H:%M}-{e.end:%H:%M}"
        title = f"[dim italic]🔒 {escape(e.title)}[/]" if e.is_external else escape(e.title)
        table.add_row(e.id, when, names.get(e.member_id, e.member_id), title, e.type.value, e.status.value)
    console.print(table)
