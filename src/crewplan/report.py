import typer
from datetime import datetime, time, timedelta
from typing import List, Optional
from rich.markup import escape
from rich.table import Table

from .errors import SchedulingError
from .models import Granularity
from .session import get_controller, get_store
from .utils import console, fail, format_day, format_hours, get_utilization_color, parse_date

report_app = typer.Typer(help="Generate utilization and availability reports")

@report_app.command(name="utilization")
def report_utilization(
    view: str = typer.Option("week", "--view", "-v", help="week or month"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Any date inside the period"),
    members: List[str] = typer.Option([], "--member", "-m"),
):
    try:
        granularity = Granularity(view)
        if granularity == Granularity.DAY:
            raise ValueError("Utilization is reported per week or month")
        controller = get_controller(load=False)
        controller.granularity = granularity
        if on: controller.anchor = parse_date(on)
        if members: controller.selected = set(members)
        controller.load()
        report = controller.utilization()
    except (ValueError, SchedulingError) as e:
        fail(e)
    if not report.members: return console.print("[yellow]No schedulable members to report on.[/yellow]")

    cap = report.capacity_hours_per_day
    table = Table(title=f"Team Utilization: {controller.window.label} ({format_hours(cap)}/day)", header_style="bold magenta")
    table.add_column("Name", style="cyan")
    for d in report.days:
        header = f"{d:%a}\n{d.day}" if granularity == Granularity.WEEK else str(d.day)
        table.add_column(header, justify="center", style="dim" if d.weekday() >= 5 else None)
    table.add_column("Hours", justify="right", style="dim"); table.add_column("Avg.", justify="right")

    for row in report.members:
        cells = []
        for d in row.days:
            color = get_utilization_color(d.utilization_percent, d.is_time_off, d.is_weekend)
            if d.is_time_off: cells.append(f"[{color}]OFF[/]")
            elif d.is_weekend and d.hours == 0: cells.append("[dim]-[/dim]")
            else: cells.append(f"[{color}]{d.utilization_percent:.0f}%[/]")
        avg_color = get_utilization_color(row.average)
        table.add_row(row.member.name, *cells, format_hours(row.total_hours), f"[{avg_color}]{row.average:.0f}%[/]")
    console.print(table)

    team_color = get_utilization_color(report.team_average)
    console.print(f"[bold]Team average:[/bold] [{team_color}]{report.team_average:.0f}%[/]")

@report_app.command(name="availability")
def report_availability(
    members: List[str] = typer.Option([], "--member", "-m", help="Member ID (repeatable, default everyone)"),
    start: Optional[str] = typer.Option(None, "--start", "-s"),
    end: Optional[str] = typer.Option(None, "--end", "-e"),
):
    try:
        store = get_store()
        first = parse_date(start) if start else datetime.now().date()
        last = parse_date(end) if end else first + timedelta(days=6)
        member_ids = members or [m.id for m in store.list_roster() if m.can_schedule]
        rows = store.availability(member_ids, datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min))
    except (ValueError, SchedulingError) as e:
        fail(e)

    table = Table(title=f"Availability ({format_day(first)} - {format_day(last)})", header_style="bold magenta")
    table.add_column("Name", style="cyan"); table.add_column("Booked", justify="right")
    table.add_column("Entries", style="blue")
    for row in rows:
        booked = ", ".join(escape(e.title) for e in row.entries) or "[italic green]Free[/italic green]"
        table.add_row(row.member.name, format_hours(row.total_hours), booked)
    console.print(table)
