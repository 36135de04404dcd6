import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Tuple

from .config import DATA_DIR

# Event types written to the journal
MEMBER_ADDED = "MEMBER_ADDED"
MEMBER_EDITED = "MEMBER_EDITED"
MEMBER_DEACTIVATED = "MEMBER_DEACTIVATED"
ENTRY_CREATED = "ENTRY_CREATED"
ENTRY_UPDATED = "ENTRY_UPDATED"
ENTRY_DELETED = "ENTRY_DELETED"
TIMEOFF_SUBMITTED = "TIMEOFF_SUBMITTED"
TIMEOFF_DECIDED = "TIMEOFF_DECIDED"
TIMEOFF_WITHDRAWN = "TIMEOFF_WITHDRAWN"
SYNC_COMPLETED = "SYNC_COMPLETED"
SYNC_FAILED = "SYNC_FAILED"


class Ledger:
    """
    Append-only journal plus the compiled state files it reduces to.

    Every change is recorded as an event line; the state files are a cache
    rebuilt from the whole journal after each write.
    """

    def __init__(self, data_dir: Path = None):
        self.data_dir = Path(data_dir or DATA_DIR)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.journal_file = self.data_dir / "crewplan_journal.jsonl"
        self.members_file = self.data_dir / "crewplan_members.json"
        self.entries_file = self.data_dir / "crewplan_entries.json"
        self.timeoff_file = self.data_dir / "crewplan_timeoff.json"
        self.sync_file = self.data_dir / "crewplan_sync.json"

    # --- THE WRITER (Append-Only) ---
    def append_event(self, event_type: str, payload: dict):
        self.append_events([(event_type, payload)])

    def append_events(self, events: Iterable[Tuple[str, dict]]):
        """Writes several events in one go and rebuilds the state once."""
        lines = []
        for event_type, payload in events:
            lines.append(json.dumps({
                "event_id": str(uuid.uuid4()),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "payload": payload
            }))
        if not lines:
            return
        with self.journal_file.open("a") as f:
            f.write("\n".join(lines) + "\n")
        self.rebuild_state()

    # --- THE REDUCER (Rebuilds current reality) ---
    def rebuild_state(self):
        state_members, state_entries, state_timeoff, state_sync = {}, {}, {}, {}

        if self.journal_file.exists():
            with self.journal_file.open("r") as f:
                for line in f:
                    if not line.strip():
                        continue
                    event = json.loads(line)
                    self._apply(event["event_type"], event["payload"], state_members, state_entries, state_timeoff, state_sync)

        self._save_state(self.members_file, state_members)
        self._save_state(self.entries_file, state_entries)
        self._save_state(self.timeoff_file, state_timeoff)
        self._save_state(self.sync_file, state_sync)

    @staticmethod
    def _apply(e_type: str, data: dict, members: dict, entries: dict, timeoff: dict, sync: dict):
        # --- ROSTER ---
        if e_type == MEMBER_ADDED:
            members[data["id"]] = data
        elif e_type == MEMBER_EDITED:
            if data["id"] in members:
                members[data["id"]].update(data)
        elif e_type == MEMBER_DEACTIVATED:
            if data["id"] in members:
                members[data["id"]]["active"] = False  # Deactivate, never delete

        # --- SCHEDULE ENTRIES ---
        elif e_type == ENTRY_CREATED:
            entries[data["id"]] = data
        elif e_type == ENTRY_UPDATED:
            if data["id"] in entries:
                entries[data["id"]].update(data)
        elif e_type == ENTRY_DELETED:
            entries.pop(data["id"], None)

        # --- TIME OFF ---
        elif e_type == TIMEOFF_SUBMITTED:
            timeoff[data["id"]] = data
        elif e_type == TIMEOFF_DECIDED:
            if data["id"] in timeoff:
                timeoff[data["id"]].update(data)
        elif e_type == TIMEOFF_WITHDRAWN:
            timeoff.pop(data["id"], None)

        # --- EXTERNAL SYNC ---
        elif e_type == SYNC_COMPLETED:
            sync[data["member_id"]] = {"member_id": data["member_id"], "last_sync_at": data["at"], "last_error": None}
        elif e_type == SYNC_FAILED:
            prev = sync.get(data["member_id"], {"member_id": data["member_id"], "last_sync_at": None})
            sync[data["member_id"]] = {**prev, "last_error": data["error"]}

    # --- HELPERS ---
    @staticmethod
    def _save_state(filepath: Path, data: dict):
        with filepath.open("w") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def load_state(filepath: Path) -> dict:
        try:
            with filepath.open("r") as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return {}
