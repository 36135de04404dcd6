"""
Data model for schedule entries, roster members and time-off requests.

All timestamps are naive local wall-clock values. Records round-trip through
the ledger as plain dicts (ISO strings for dates and times).
"""

from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Optional

DEFAULT_MEMBER_COLOR = "#8b5cf6"
NEUTRAL_COLOR = "#6b7280"


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class EntryType(str, Enum):
    PROJECT = "project"
    INTERNAL = "internal"
    TIME_OFF = "time_off"
    TRAVEL = "travel"
    EXTERNAL = "external"


class EntryStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EntrySource(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class TimeOffStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeOffCategory(str, Enum):
    VACATION = "vacation"
    SICK = "sick"
    PARENTAL = "parental"
    OTHER = "other"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class SyncDirection(str, Enum):
    IMPORT = "import"
    EXPORT = "export"
    BOTH = "both"


TIME_OFF_TITLES = {
    TimeOffCategory.VACATION: "Vacation",
    TimeOffCategory.SICK: "Sick leave",
    TimeOffCategory.PARENTAL: "Parental leave",
    TimeOffCategory.OTHER: "Time off",
}


@dataclass
class TeamMember:
    id: str
    name: str
    color: str = DEFAULT_MEMBER_COLOR
    active: bool = True
    accepted_invitation: bool = True

    @property
    def can_schedule(self) -> bool:
        """Only active members who accepted their invitation are scheduled."""
        return self.active and self.accepted_invitation

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamMember":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ScheduleEntry:
    id: str
    member_id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    type: EntryType = EntryType.PROJECT
    status: EntryStatus = EntryStatus.SCHEDULED
    source: EntrySource = EntrySource.LOCAL
    project_id: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    external_id: Optional[str] = None
    time_off_request_id: Optional[str] = None

    @property
    def is_external(self) -> bool:
        return self.source == EntrySource.EXTERNAL

    @property
    def is_cancelled(self) -> bool:
        return self.status == EntryStatus.CANCELLED

    @property
    def effective_start(self) -> datetime:
        if self.all_day:
            return datetime.combine(self.start.date(), time.min)
        return self.start

    @property
    def effective_end(self) -> datetime:
        # All-day spans cover whole calendar days whatever clock values were stored
        if self.all_day:
            return datetime.combine(self.end.date() + timedelta(days=1), time.min)
        return self.end

    def occurs_on(self, day: date) -> bool:
        """All-day entries show on every date they span; timed entries on their start date."""
        if self.all_day:
            return self.start.date() <= day <= self.end.date()
        return self.start.date() == day

    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        data["type"] = self.type.value
        data["status"] = self.status.value
        data["source"] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleEntry":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["start"] = _as_datetime(values["start"])
        values["end"] = _as_datetime(values["end"])
        values["type"] = EntryType(values.get("type", EntryType.PROJECT))
        values["status"] = EntryStatus(values.get("status", EntryStatus.SCHEDULED))
        values["source"] = EntrySource(values.get("source", EntrySource.LOCAL))
        return cls(**values)


@dataclass
class TimeOffRequest:
    id: str
    member_id: str
    start_date: date
    end_date: date
    category: TimeOffCategory = TimeOffCategory.OTHER
    note: Optional[str] = None
    status: TimeOffStatus = TimeOffStatus.PENDING
    created_at: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TimeOffStatus.PENDING

    @property
    def title(self) -> str:
        return TIME_OFF_TITLES.get(self.category, "Time off")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat()
        data["end_date"] = self.end_date.isoformat()
        data["category"] = self.category.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeOffRequest":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["start_date"] = _as_date(values["start_date"])
        values["end_date"] = _as_date(values["end_date"])
        values["category"] = TimeOffCategory(values.get("category", TimeOffCategory.OTHER))
        values["status"] = TimeOffStatus(values.get("status", TimeOffStatus.PENDING))
        return cls(**values)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(frozen=True)
class Caller:
    """Who issues a command; roles come from the authentication layer."""
    member_id: str
    elevated: bool = False
