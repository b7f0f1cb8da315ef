# Overview: Read-only reports over the transaction ledger: daily business report and table usage.

"""
Reporting Service

All figures are recomputed from transactions on every call. Income counts
settled rows only; settled DEBT rows carry the settlement time as their
timestamp, so collected debt lands on the day it was paid.
"""

from __future__ import annotations

from datetime import date, timedelta

from ..models import StaffUser, Transaction, PAYMENT_DEBT
from ..models.staff import ROLE_STAFF
from ..time_utils import business_date_for, business_day_window, ms_to_datetime, ms_to_utc_z, datetime_to_ms
from .debt_service import total_outstanding


MS_PER_HOUR = 3_600_000
MS_PER_DAY = 24 * MS_PER_HOUR

PERIOD_TODAY = "TODAY"
PERIOD_WEEKLY = "WEEKLY"
PERIOD_MONTHLY = "MONTHLY"

VALID_PERIODS = [PERIOD_TODAY, PERIOD_WEEKLY, PERIOD_MONTHLY]


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _in_window(transactions: list[Transaction], start_ms: int, end_ms: int) -> list[Transaction]:
    return [t for t in transactions if start_ms <= t.timestamp < end_ms]


def daily_report(
    transactions: list[Transaction],
    users: list[StaffUser],
    *,
    hall_id: str,
    day: date,
    tz: str = "UTC",
    start_hour: int = 8,
) -> dict:
    """
    Business-day summary.

    Staff rows cover users of this hall; anyone with activity or with the
    STAFF role is listed, highest collection first.
    """
    start_ms, end_ms = business_day_window(day, tz, start_hour)
    daily = _in_window(transactions, start_ms, end_ms)
    daily_settled = [t for t in daily if t.is_settled]

    staff_rows = []
    for user in users:
        if user.hall_id != hall_id:
            continue
        shift_total = sum(t.total_paid for t in daily_settled if t.collected_by == user.id)
        shift_debt = sum(
            t.total_paid for t in daily
            if t.collected_by == user.id and t.payment_method == PAYMENT_DEBT and not t.is_settled
        )
        if shift_total > 0 or shift_debt > 0 or user.role == ROLE_STAFF:
            staff_rows.append({
                "userId": user.id,
                "username": user.username,
                "role": user.role,
                "shiftTotal": shift_total,
                "shiftDebt": shift_debt,
            })
    staff_rows.sort(key=lambda row: row["shiftTotal"], reverse=True)

    hourly = []
    for slot in range(24):
        slot_start = start_ms + slot * MS_PER_HOUR
        slot_rows = _in_window(daily_settled, slot_start, slot_start + MS_PER_HOUR)
        hourly.append({
            "label": ms_to_datetime(slot_start, tz).strftime("%H:%M"),
            "timestamp": slot_start,
            "revenue": sum(t.total_paid for t in slot_rows),
            "games": sum(t.games_count for t in slot_rows),
        })

    return {
        "date": day.isoformat(),
        "windowStart": start_ms,
        "windowEnd": end_ms,
        "dailyIncome": sum(t.total_paid for t in daily_settled),
        "dailyCount": len(daily_settled),
        "totalRevenue": sum(t.total_paid for t in transactions if t.is_settled),
        "totalDebt": total_outstanding(transactions),
        "staff": staff_rows,
        "activeStaffCount": sum(1 for u in users if u.hall_id == hall_id and u.role == ROLE_STAFF),
        "hourly": hourly,
        "maxHourlyRevenue": max((h["revenue"] for h in hourly), default=0),
    }


def period_start(period: str, now: int, *, tz: str = "UTC", start_hour: int = 8) -> int:
    if period == PERIOD_TODAY:
        return business_day_window(business_date_for(now, tz, start_hour), tz, start_hour)[0]
    if period == PERIOD_WEEKLY:
        days = 7
    elif period == PERIOD_MONTHLY:
        days = 30
    else:
        raise ReportError(f"Invalid period: {period}. Must be one of {VALID_PERIODS}")
    local_now = ms_to_datetime(now, tz)
    return datetime_to_ms(local_now - timedelta(days=days))


def table_stats(
    transactions: list[Transaction],
    table_count: int,
    *,
    period: str,
    now: int,
    tz: str = "UTC",
    start_hour: int = 8,
) -> list[dict]:
    """
    Games and revenue per table since the period start (settled rows only).

    A transaction's paid amount is spread evenly over its games.
    """
    since = period_start(period, now, tz=tz, start_hour=start_hour)
    stats = {n: {"tableNumber": n, "games": 0, "revenue": 0.0} for n in range(1, max(1, table_count) + 1)}

    for t in transactions:
        if t.timestamp < since or not t.is_settled or not t.game_tables:
            continue
        share = t.total_paid / len(t.game_tables)
        for table in t.game_tables:
            if table in stats:
                stats[table]["games"] += 1
                stats[table]["revenue"] += share

    rows = list(stats.values())
    for row in rows:
        row["revenue"] = round(row["revenue"])
    return rows


def hall_totals(transactions: list[Transaction], *, now: int) -> dict:
    """Rolling 24h / 7d / 30d settled income plus outstanding debt."""
    settled = [t for t in transactions if t.is_settled]

    def since(ms: int) -> int:
        return sum(t.total_paid for t in settled if now - t.timestamp < ms)

    return {
        "daily": since(MS_PER_DAY),
        "weekly": since(7 * MS_PER_DAY),
        "monthly": since(30 * MS_PER_DAY),
        "totalDebt": total_outstanding(transactions),
        "generatedAt": ms_to_utc_z(now),
    }
