"""
Reporting tests: daily business report, table stats and rolling totals.
"""

from datetime import date

import pytest

from cuemaster.models import StaffUser
from cuemaster.services import reporting_service
from cuemaster.services.reporting_service import ReportError

from conftest import DAY_START_MS, MINUTE, make_transaction


HOUR = 60 * MINUTE


@pytest.fixture
def users():
    return [
        StaffUser(id="u-staff", username="sara", role="STAFF", hall_id="HALL-1"),
        StaffUser(id="u-idle", username="idle", role="STAFF", hall_id="HALL-1"),
        StaffUser(id="u-manager", username="manager", role="MANAGER", hall_id="HALL-1"),
        StaffUser(id="u-admin", username="admin", role="ADMIN", hall_id="HALL-1"),
        StaffUser(id="u-other", username="omar", role="STAFF", hall_id="HALL-2"),
    ]


@pytest.fixture
def ledger():
    return [
        make_transaction("a", timestamp=DAY_START_MS + 10 * MINUTE, total_paid=3000,
                         games=[(DAY_START_MS, 1), (DAY_START_MS + 5 * MINUTE, 2), (DAY_START_MS + 9 * MINUTE, 2)]),
        make_transaction("b", timestamp=DAY_START_MS + 2 * HOUR, total_paid=1000, collected_by="u-manager",
                         games=[(DAY_START_MS + HOUR, 1)]),
        make_transaction("c", timestamp=DAY_START_MS + 3 * HOUR, total_paid=2000, method="DEBT",
                         games=[(DAY_START_MS + 2 * HOUR, 3)]),
        # Previous business day
        make_transaction("d", timestamp=DAY_START_MS - HOUR, total_paid=500),
    ]


class TestDailyReport:

    def test_totals(self, ledger, users):
        report = reporting_service.daily_report(ledger, users, hall_id="HALL-1", day=date(2024, 5, 1))
        assert report["dailyIncome"] == 4000
        assert report["dailyCount"] == 2
        assert report["totalRevenue"] == 4500
        assert report["totalDebt"] == 2000

    def test_staff_rows(self, ledger, users):
        report = reporting_service.daily_report(ledger, users, hall_id="HALL-1", day=date(2024, 5, 1))
        rows = {row["userId"]: row for row in report["staff"]}

        assert rows["u-staff"]["shiftTotal"] == 3000
        assert rows["u-staff"]["shiftDebt"] == 2000
        assert rows["u-manager"]["shiftTotal"] == 1000
        # Idle STAFF is listed; an ADMIN with no activity is not; other halls never
        assert rows["u-idle"]["shiftTotal"] == 0
        assert "u-admin" not in rows
        assert "u-other" not in rows
        assert report["staff"][0]["userId"] == "u-staff"
        assert report["activeStaffCount"] == 2

    def test_hourly_slots(self, ledger, users):
        report = reporting_service.daily_report(ledger, users, hall_id="HALL-1", day=date(2024, 5, 1))
        hourly = report["hourly"]
        assert len(hourly) == 24
        assert hourly[0]["label"] == "08:00"
        assert hourly[0]["revenue"] == 3000
        assert hourly[0]["games"] == 3
        assert hourly[2]["revenue"] == 1000
        assert hourly[3]["revenue"] == 0
        assert report["maxHourlyRevenue"] == 3000


class TestTableStats:

    def test_revenue_spread_over_games(self, ledger):
        rows = reporting_service.table_stats(
            ledger, 3, period="TODAY", now=DAY_START_MS + 5 * HOUR
        )
        by_table = {row["tableNumber"]: row for row in rows}
        assert by_table[1] == {"tableNumber": 1, "games": 2, "revenue": 2000}
        assert by_table[2] == {"tableNumber": 2, "games": 2, "revenue": 2000}
        # DEBT row is unsettled
        assert by_table[3]["games"] == 0

    def test_weekly_includes_previous_day(self, ledger):
        rows = reporting_service.table_stats(
            ledger, 3, period="WEEKLY", now=DAY_START_MS + 5 * HOUR
        )
        assert sum(row["games"] for row in rows) == 4

    def test_invalid_period(self, ledger):
        with pytest.raises(ReportError):
            reporting_service.table_stats(ledger, 3, period="YEARLY", now=DAY_START_MS)


def test_hall_totals(ledger):
    totals = reporting_service.hall_totals(ledger, now=DAY_START_MS + 5 * HOUR)
    assert totals["daily"] == 4500
    assert totals["totalDebt"] == 2000
    assert totals["generatedAt"] == "2024-05-01T13:00:00Z"
