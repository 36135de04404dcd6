import typer
from typing import Optional
from rich.table import Table

from .errors import SchedulingError
from .session import get_store
from .utils import console

team_app = typer.Typer(help="Maintain the roster used for scheduling")

COLOR_OPTIONS = ["#8b5cf6", "#d946ef", "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#06b6d4", "#ec4899"]

@team_app.command(name="add")
def add_member(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Full name"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="Calendar colour (hex)"),
    invited: bool = typer.Option(False, "--invited", help="Invitation sent but not yet accepted"),
):
    store = get_store()
    if not name:
        name = typer.prompt("Enter Full Name")
    if not color:
        used = {m.color for m in store.list_roster()}
        color = next((c for c in COLOR_OPTIONS if c not in used), COLOR_OPTIONS[0])
        typer.secho(f"🎨 Auto-assigned colour: {color}", fg="cyan")
    try:
        member = store.add_member(name, color=color, accepted_invitation=not invited)
    except SchedulingError as e:
        typer.secho(f"❌ Error: {e}", fg="red", bold=True); raise typer.Exit(code=1)
    typer.secho(f"\n✅ Added {member.name} ({member.id}) to the roster!", fg="green", bold=True)

@team_app.command(name="list")
def list_members(show_all: bool = typer.Option(False, "--all", "-a", help="Include inactive members")):
    roster = get_store().list_roster()
    if not roster: return console.print("[yellow]The roster is currently empty.[/yellow]")

    table = Table(title="Team Roster", header_style="bold magenta")
    table.add_column("ID", style="bold yellow")
    table.add_column("Name", style="white")
    table.add_column("Colour")
    table.add_column("Status", justify="center")

    for m in roster:
        if not m.active and not show_all: continue
        if not m.active: status = "[dim]Inactive[/dim]"
        elif not m.accepted_invitation: status = "[yellow]Invited[/yellow]"
        else: status = "[green]Active[/green]"
        table.add_row(m.id, m.name, f"[{m.color}]■[/] {m.color}", status)
    console.print(table)

@team_app.command(name="edit")
def edit_member(member_id: str):
    store = get_store()
    current = next((m for m in store.list_roster() if m.id == member_id), None)
    if current is None:
        typer.secho("❌ Error: Member not found.", fg="red"); raise typer.Exit(1)

    name = typer.prompt("Full Name", default=current.name)
    color = typer.prompt("Colour", default=current.color)
    accepted = typer.confirm("Invitation accepted?", default=current.accepted_invitation)
    store.edit_member(member_id, name=name, color=color, accepted_invitation=accepted)
    typer.secho(f"✅ Successfully updated {name}!", fg="green")

@team_app.command(name="deactivate")
def deactivate_member(member_id: str):
    store = get_store()
    current = next((m for m in store.list_roster() if m.id == member_id), None)
    if current is None:
        typer.secho("❌ Error: Member not found.", fg="red"); raise typer.Exit(1)
    if typer.confirm(f"Are you sure you want to deactivate {current.name}?"):
        store.deactivate_member(member_id)
        typer.secho("✅ Deactivated successfully.", fg="green")
