import json
import os
from pathlib import Path
import typer
from rich.console import Console

# Config lives next to the ledger files so a single directory holds a workspace
DATA_DIR = Path(os.environ.get("CREWPLAN_HOME", Path.home() / ".crewplan"))
CONFIG_FILE = DATA_DIR / "config.json"

DEFAULT_CONFIG = {
    "capacity_hours_per_day": 8.0,
    "grid_start_hour": 6,
    "grid_end_hour": 20,
    "hour_height": 60,
    "min_block_height": 20,
    "all_day_lane_height": 28,
    "month_max_visible": 3,
    "default_view": "week",
    "sync_direction": "both",
    "sync_days_back": 30,
    "sync_days_forward": 90,
    "count_external_hours": False,
    "date_format": "%Y-%m-%d",
    "current_member": "",
    "role": "admin"
}

def load_config(config_file: Path = None) -> dict:
    config_file = config_file or CONFIG_FILE
    if not config_file.exists():
        return DEFAULT_CONFIG.copy()
    try:
        with config_file.open("r") as f:
            return {**DEFAULT_CONFIG, **json.load(f)}
    except json.JSONDecodeError:
        return DEFAULT_CONFIG.copy()

def save_config(config_data: dict, config_file: Path = None):
    config_file = config_file or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with config_file.open("w") as f:
        json.dump(config_data, f, indent=2)

def run_setup_wizard():
    console = Console()
    console.print("\n[bold cyan]🛠️  Welcome to Crewplan Setup![/bold cyan]")
    console.print("Let's configure your schedule board. You can change these anytime with 'crewplan setup'.\n")

    config = load_config()

    config["capacity_hours_per_day"] = typer.prompt("Daily capacity per person (hours)", default=config["capacity_hours_per_day"], type=float)
    config["grid_start_hour"] = typer.prompt("First visible hour on the day/week grid", default=config["grid_start_hour"], type=int)
    config["grid_end_hour"] = typer.prompt("Last visible hour on the day/week grid", default=config["grid_end_hour"], type=int)
    if config["grid_end_hour"] <= config["grid_start_hour"]:
        console.print("[yellow]⚠️ End hour must be after start hour, keeping defaults.[/yellow]")
        config["grid_start_hour"], config["grid_end_hour"] = DEFAULT_CONFIG["grid_start_hour"], DEFAULT_CONFIG["grid_end_hour"]
    config["month_max_visible"] = typer.prompt("Entries listed per month cell before '+N more'", default=config["month_max_visible"], type=int)

    console.print("\n[bold]Default calendar view:[/bold]")
    console.print("1: Day")
    console.print("2: Week")
    console.print("3: Month")
    current_view = {"day": "1", "week": "2", "month": "3"}.get(config["default_view"], "2")
    view_choice = typer.prompt("Choose default view", default=current_view, type=str)
    config["default_view"] = {"1": "day", "3": "month"}.get(view_choice, "week")

    console.print("\n[bold]External calendar sync direction:[/bold]")
    console.print("1: Import only")
    console.print("2: Export only")
    console.print("3: Both directions")
    current_sync = {"import": "1", "export": "2"}.get(config["sync_direction"], "3")
    sync_choice = typer.prompt("Choose sync direction", default=current_sync, type=str)
    config["sync_direction"] = {"1": "import", "2": "export"}.get(sync_choice, "both")

    config["current_member"] = typer.prompt("Your member ID (see 'crewplan team list')", default=config["current_member"], show_default=bool(config["current_member"]))
    config["role"] = "admin" if typer.confirm("Can you approve time off (owner/admin)?", default=config["role"] == "admin") else "member"

    config["count_external_hours"] = typer.confirm("Count synced external events in utilization?", default=config["count_external_hours"])

    save_config(config)
    console.print("\n[bold green]✅ Configuration saved successfully![/bold green]\n")
