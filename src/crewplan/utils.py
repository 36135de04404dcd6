import uuid
from datetime import date, datetime, time
from typing import Optional
import typer
from rich.console import Console

from .config import load_config

# Initialize a single console to be imported across all apps
console = Console()

def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"

def parse_date(value: str, date_format: Optional[str] = None) -> date:
    """Accepts ISO dates and the configured display format."""
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.strptime(value, date_format or load_config()["date_format"]).date()

def parse_time(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()

def format_day(d: date) -> str:
    return d.strftime(load_config()["date_format"])

def prompt_for_date(prompt_text: str, allow_empty: bool = False, default: Optional[date] = None) -> Optional[date]:
    prompt_str = f"{prompt_text} (YYYY-MM-DD)"
    if allow_empty:
        prompt_str += typer.style(" [Press Enter to skip]", fg=typer.colors.CYAN)
    while True:
        date_str = typer.prompt(prompt_str, default=default.isoformat() if default else "", show_default=bool(default)).strip()
        if allow_empty and not date_str: return None
        try:
            return parse_date(date_str)
        except ValueError:
            typer.secho("⚠️ Invalid format. Please use YYYY-MM-DD (e.g., 2025-12-31).", fg="yellow")

def prompt_for_time(prompt_text: str, default: str) -> time:
    while True:
        raw = typer.prompt(f"{prompt_text} (HH:MM)", default=default)
        try:
            return parse_time(raw)
        except ValueError:
            typer.secho("⚠️ Invalid time. Please use HH:MM (e.g., 08:30).", fg="yellow")

def get_utilization_color(utilization_pct: float, is_time_off: bool = False, is_weekend: bool = False) -> str:
    if is_weekend or is_time_off or utilization_pct <= 0: return "dim"
    if utilization_pct < 50: return "green"
    if utilization_pct < 80: return "yellow"
    return "red"

def format_hours(hours: float) -> str:
    return f"{hours:.1f}h".replace(".0h", "h")

def fail(exc: Exception):
    typer.secho(f"❌ Error: {exc}", fg="red", bold=True)
    raise typer.Exit(code=1)

def initials(name: str) -> str:
    return "".join(w[0] for w in name.split() if w)[:2].upper()
