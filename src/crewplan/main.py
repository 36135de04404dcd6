import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from .calendar_cli import calendar_app
from .config import run_setup_wizard
from .entry_cli import entry_app
from .report import report_app
from .sync_cli import sync_app
from .team import team_app
from .timeoff_cli import timeoff_app

# Initialize the Main App and Sub-Apps
app = typer.Typer(help="Crewplan: team scheduling and utilization CLI", add_completion=False)

app.add_typer(team_app, name="team")
app.add_typer(calendar_app, name="calendar")
app.add_typer(entry_app, name="entry")
app.add_typer(timeoff_app, name="timeoff")
app.add_typer(report_app, name="report")
app.add_typer(sync_app, name="sync")

@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", help="Show debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=verbose)],
        force=True,
    )

@app.command()
def setup():
    """Run the interactive configuration wizard."""
    run_setup_wizard()

if __name__ == "__main__":
    app()
