from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cuemaster.validation import as_int, as_int_list, as_mapping, as_str


ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_STAFF = "STAFF"

VALID_ROLES = [ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF]

# Roles allowed to undo games, force-remove sessions and correct the ledger
PRIVILEGED_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})

STATUS_ACTIVE = "ACTIVE"
STATUS_LOCKED = "LOCKED"


@dataclass
class StaffUser:
    """
    Hall staff member from the global registry.

    WHY: Every checkout records who collected the money, and a handful of
    corrections (undo a game, delete a transaction) are limited to
    privileged roles.
    """
    id: str
    username: str
    role: str = ROLE_STAFF
    hall_id: str | None = None
    status: str = STATUS_ACTIVE

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "hallId": self.hall_id,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "StaffUser":
        raw = as_mapping(raw)
        role = as_str(raw.get("role"), ROLE_STAFF)
        return cls(
            id=as_str(raw.get("id")),
            username=as_str(raw.get("username")),
            role=role if role in VALID_ROLES else ROLE_STAFF,
            hall_id=raw.get("hallId") or None,
            status=as_str(raw.get("status"), STATUS_ACTIVE),
        )


@dataclass
class AttendanceRecord:
    """
    One staff shift on one business date.

    LIFECYCLE:
    - OPEN: clock_in set, clock_out None; logouts accumulate while on shift
    - CLOSED: clock_out set
    """
    id: str
    user_id: str
    username: str
    clock_in: int
    date: str
    clock_out: int | None = None
    logouts: list[int] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def worked_minutes(self, now: int) -> int:
        end = self.clock_out if self.clock_out is not None else now
        return max(0, (end - self.clock_in) // 60_000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "clockIn": self.clock_in,
            "clockOut": self.clock_out,
            "logouts": list(self.logouts),
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "AttendanceRecord":
        raw = as_mapping(raw)
        clock_out = raw.get("clockOut")
        return cls(
            id=as_str(raw.get("id")),
            user_id=as_str(raw.get("userId")),
            username=as_str(raw.get("username")),
            clock_in=as_int(raw.get("clockIn")),
            date=as_str(raw.get("date")),
            clock_out=as_int(clock_out) if clock_out is not None else None,
            logouts=as_int_list(raw.get("logouts")),
        )
