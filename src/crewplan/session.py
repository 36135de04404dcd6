"""Wiring shared by the CLI commands: config, store, caller and controller."""

from typing import Optional

from .config import DATA_DIR, load_config
from .controller import ScheduleController
from .models import Caller
from .store import LedgerStore


def get_store(cfg: Optional[dict] = None) -> LedgerStore:
    cfg = cfg or load_config()
    return LedgerStore(DATA_DIR, sync_direction=cfg["sync_direction"])


def get_caller(cfg: Optional[dict] = None, member_id: Optional[str] = None) -> Caller:
    cfg = cfg or load_config()
    return Caller(member_id=member_id or cfg["current_member"], elevated=cfg["role"] == "admin")


def get_controller(member_id: Optional[str] = None, load: bool = True) -> ScheduleController:
    cfg = load_config()
    controller = ScheduleController(get_store(cfg), get_caller(cfg, member_id), cfg)
    if load:
        controller.load()
    return controller
