# Overview: Staff shift attendance per business date: clock in, logout marks, clock out.

"""
Attendance Service (Shift-Based)

WHY: Managers need to see who was on shift and for how long. A staff member
opens one shift at a time; logouts during the shift are recorded without
closing it. Shifts are keyed by business date, so a shift started at 02:00
belongs to the previous day's report.
"""

from __future__ import annotations

import uuid

from ..models import AttendanceRecord, StaffUser
from ..time_utils import business_date_for, now_ms
from .hall_data import HallData


class AttendanceError(ValueError):
    """Raised for invalid attendance operations."""
    pass


def _open_record(records: list[AttendanceRecord], user_id: str) -> AttendanceRecord | None:
    for record in records:
        if record.user_id == user_id and record.is_open:
            return record
    return None


def clock_in(data: HallData, user: StaffUser, *, now: int | None = None, tz: str = "UTC", start_hour: int = 8) -> AttendanceRecord:
    records = data.load_attendance()
    if _open_record(records, user.id):
        raise AttendanceError("User is already clocked in")

    started = now if now is not None else now_ms()
    record = AttendanceRecord(
        id=uuid.uuid4().hex,
        user_id=user.id,
        username=user.username,
        clock_in=started,
        date=business_date_for(started, tz, start_hour).isoformat(),
    )
    records.insert(0, record)
    data.save_attendance(records)
    return record


def record_logout(data: HallData, user: StaffUser, *, now: int | None = None) -> AttendanceRecord:
    records = data.load_attendance()
    record = _open_record(records, user.id)
    if not record:
        raise AttendanceError("User is not clocked in")

    record.logouts.append(now if now is not None else now_ms())
    data.save_attendance(records)
    return record


def clock_out(data: HallData, user: StaffUser, *, now: int | None = None) -> AttendanceRecord:
    records = data.load_attendance()
    record = _open_record(records, user.id)
    if not record:
        raise AttendanceError("User is not clocked in")

    ended = now if now is not None else now_ms()
    if ended < record.clock_in:
        raise AttendanceError("Clock-out cannot be before clock-in")
    record.clock_out = ended
    data.save_attendance(records)
    return record


def current_status(data: HallData, user: StaffUser, *, now: int | None = None) -> dict:
    record = _open_record(data.load_attendance(), user.id)
    now = now if now is not None else now_ms()
    return {
        "clockedIn": record is not None,
        "record": record.to_dict() if record else None,
        "workedMinutes": record.worked_minutes(now) if record else 0,
    }


def list_records(records: list[AttendanceRecord], viewer: StaffUser, name_filter: str | None = None) -> list[AttendanceRecord]:
    """Privileged viewers see everyone; staff see their own shifts. Newest first."""
    needle = (name_filter or "").strip().lower()
    visible = [
        r for r in records
        if (viewer.is_privileged or r.user_id == viewer.id) and needle in r.username.lower()
    ]
    visible.sort(key=lambda r: r.clock_in, reverse=True)
    return visible
