"""
Time-off request workflow.

    pending --approve--> approved   (materializes one all-day time_off entry)
    pending --reject---> rejected

Both outcomes are terminal. Only pending requests can be withdrawn.
"""

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional, Tuple

from .errors import InvalidStateTransition, ValidationError
from .models import (Decision, EntrySource, EntryStatus, EntryType, ScheduleEntry,
                     TimeOffCategory, TimeOffRequest, TimeOffStatus)

END_OF_DAY = time(23, 59, 59)


def new_request(
    request_id: str,
    member_id: str,
    start_date: Optional[date],
    end_date: Optional[date],
    category,
    note: Optional[str] = None,
    created_at: Optional[str] = None,
) -> TimeOffRequest:
    if not member_id: raise ValidationError("member_id")
    if not start_date: raise ValidationError("start_date")
    if not end_date: raise ValidationError("end_date")
    if not category: raise ValidationError("category")
    try:
        category = TimeOffCategory(category)
    except ValueError:
        valid = ", ".join(c.value for c in TimeOffCategory)
        raise ValidationError("category", f"Invalid category '{category}'. Valid: {valid}") from None
    if start_date > end_date:
        raise ValidationError("end_date", "start_date cannot be after end_date")

    return TimeOffRequest(
        id=request_id, member_id=member_id, start_date=start_date, end_date=end_date,
        category=category, note=(note or "").strip() or None,
        status=TimeOffStatus.PENDING, created_at=created_at,
    )


def materialize(request: TimeOffRequest, entry_id: str) -> ScheduleEntry:
    """The single all-day blocking entry covering the whole request range."""
    return ScheduleEntry(
        id=entry_id,
        member_id=request.member_id,
        title=request.title,
        description=request.note,
        start=datetime.combine(request.start_date, time.min),
        end=datetime.combine(request.end_date, END_OF_DAY),
        all_day=True,
        type=EntryType.TIME_OFF,
        status=EntryStatus.SCHEDULED,
        source=EntrySource.LOCAL,
        time_off_request_id=request.id,
    )


def decide(
    request: TimeOffRequest,
    decision,
    entry_id: str,
    decided_by: Optional[str] = None,
    decided_at: Optional[str] = None,
) -> Tuple[TimeOffRequest, Optional[ScheduleEntry]]:
    """
    Apply an approve/reject decision.

    Returns the decided request and, for approvals, the time_off entry to
    persist. Raises InvalidStateTransition unless the request is pending.
    """
    decision = Decision(decision)
    if not request.is_pending:
        raise InvalidStateTransition(request.id, request.status.value, decision.value)

    status = TimeOffStatus.APPROVED if decision == Decision.APPROVE else TimeOffStatus.REJECTED
    decided = replace(request, status=status, decided_by=decided_by, decided_at=decided_at)
    entry = materialize(decided, entry_id) if status == TimeOffStatus.APPROVED else None
    return decided, entry


def check_withdrawable(request: TimeOffRequest):
    if not request.is_pending:
        raise InvalidStateTransition(request.id, request.status.value, "withdraw")
