import typer
from typing import Optional
from rich.markup import escape
from rich.table import Table

from .errors import SchedulingError
from .models import TimeOffCategory, TimeOffStatus
from .session import get_controller, get_store
from .utils import console, fail, format_day, parse_date, prompt_for_date

timeoff_app = typer.Typer(help="Request, review and withdraw time off")

STATUS_STYLES = {
    TimeOffStatus.PENDING: "[yellow]Pending[/yellow]",
    TimeOffStatus.APPROVED: "[green]Approved[/green]",
    TimeOffStatus.REJECTED: "[red]Rejected[/red]",
}

@timeoff_app.command(name="request")
def request_time_off(
    start: Optional[str] = typer.Option(None, "--start", "-s"),
    end: Optional[str] = typer.Option(None, "--end", "-e"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="vacation, sick, parental or other"),
    note: Optional[str] = typer.Option(None, "--note", "-n"),
    member: Optional[str] = typer.Option(None, "--member", "-m", help="Request on behalf of another member"),
):
    try:
        start_date = parse_date(start) if start else prompt_for_date("First day off")
        end_date = parse_date(end) if end else prompt_for_date("Last day off", default=start_date)
        if not category:
            console.print("\n[bold]Category:[/bold]")
            for i, c in enumerate(TimeOffCategory, 1):
                console.print(f"{i}: {c.value.capitalize()}")
            choice = typer.prompt("Choose category", default="1")
            options = list(TimeOffCategory)
            category = options[int(choice) - 1].value if choice.isdigit() and 0 < int(choice) <= len(options) else choice
        controller = get_controller(member_id=member)
        request = controller.submit_time_off(start_date, end_date, category, note)
    except (ValueError, SchedulingError) as e:
        fail(e)
    typer.secho(f"\n✅ {request.title} requested for {format_day(request.start_date)} - {format_day(request.end_date)} ({request.id}).", fg="green", bold=True)
    typer.secho("It appears on the calendar once an admin approves it.", fg="cyan")

@timeoff_app.command(name="list")
def list_requests(status: Optional[str] = typer.Option(None, "--status", help="pending, approved or rejected")):
    try:
        store = get_store()
        roster = store.list_roster()
        requests = store.list_time_off_requests(status)
    except SchedulingError as e:
        fail(e)
    if not requests: return console.print("[yellow]No time-off requests found.[/yellow]")

    names = {m.id: m.name for m in roster}
    table = Table(title="Time-Off Requests", header_style="bold magenta")
    table.add_column("ID", style="bold yellow"); table.add_column("Member", style="cyan")
    table.add_column("From"); table.add_column("To"); table.add_column("Days", justify="right")
    table.add_column("Category", style="blue"); table.add_column("Note"); table.add_column("Status", justify="center")
    for r in requests:
        days = (r.end_date - r.start_date).days + 1
        table.add_row(r.id, names.get(r.member_id, r.member_id), format_day(r.start_date), format_day(r.end_date),
                      str(days), r.title, escape(r.note or ""), STATUS_STYLES[r.status])
    console.print(table)

@timeoff_app.command(name="approve")
def approve(request_id: str):
    try:
        decided = get_controller().approve_time_off(request_id)
    except SchedulingError as e:
        fail(e)
    typer.secho(f"✅ Approved {decided.id}; the time off is now on the calendar.", fg="green")

@timeoff_app.command(name="reject")
def reject(request_id: str):
    try:
        decided = get_controller().reject_time_off(request_id)
    except SchedulingError as e:
        fail(e)
    typer.secho(f"✅ Rejected {decided.id}.", fg="green")

@timeoff_app.command(name="withdraw")
def withdraw(request_id: str, yes: bool = typer.Option(False, "--yes", "-y")):
    if not yes and not typer.confirm(f"Withdraw request {request_id}?", default=False):
        return typer.secho("Nothing withdrawn.", fg="yellow")
    try:
        get_controller().withdraw_time_off(request_id)
    except SchedulingError as e:
        fail(e)
    typer.secho("✅ Request withdrawn.", fg="green")
