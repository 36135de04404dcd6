import typer
from pathlib import Path
from typing import Optional

from .errors import SchedulingError
from .session import get_controller
from .sync import load_foreign_events
from .utils import console, fail

sync_app = typer.Typer(help="Import a member's external calendar")

@sync_app.command(name="run")
def run_sync(
    file: Path = typer.Option(..., "--file", "-f", exists=True, dir_okay=False, help="Calendar export (JSON)"),
    member: Optional[str] = typer.Option(None, "--member", "-m", help="Defaults to the configured member"),
):
    try:
        events = load_foreign_events(file)
        controller = get_controller(member_id=member, load=False)
        summary = controller.trigger_sync(events, member)
    except (ValueError, SchedulingError) as e:
        fail(e)
    typer.secho(f"✅ Sync finished: {summary.created} created, {summary.updated} updated, {summary.removed} removed.", fg="green")

@sync_app.command(name="status")
def sync_status(member: Optional[str] = typer.Option(None, "--member", "-m")):
    try:
        status = get_controller(member_id=member, load=False).sync_status()
    except SchedulingError as e:
        fail(e)
    state = "[green]Connected[/green]" if status.connected else "[red]Not connected[/red]"
    console.print(f"[bold]Status:[/bold] {state}")
    console.print(f"[bold]Direction:[/bold] {status.direction.value}")
    console.print(f"[bold]Last sync:[/bold] {status.last_sync_at or 'never'}")
    if status.last_error:
        console.print(f"[bold]Last error:[/bold] [red]{status.last_error}[/red]")
