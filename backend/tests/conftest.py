"""
Pytest fixtures for CueMaster backend tests.

Provides a fresh app per test (in-memory database, temp cache directory,
synchronous snapshot writes), seeded staff and request headers.
"""

import pytest

from cuemaster import create_app
from cuemaster.extensions import db
from cuemaster.models import HallSettings, MarketOrder, Session, StaffUser, Transaction
from cuemaster.models.settings import CatalogItem
from cuemaster.services.hall_data import hall_data, save_users


HALL_ID = "HALL-1"
OTHER_HALL_ID = "HALL-2"

# 2024-05-01 08:00:00 UTC, the start of a business day
DAY_START_MS = 1714550400000
MINUTE = 60_000


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CUEMASTER_CACHE_DIR': str(tmp_path / 'cache'),
        'SYNC_DEBOUNCE_SECONDS': 0,
        'HALL_TIMEZONE': 'UTC',
        'BUSINESS_DAY_START_HOUR': 8,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def staff_users(app):
    """Seed the global registry: one user per role plus a locked account."""
    users = [
        StaffUser(id="u-admin", username="admin", role="ADMIN", hall_id=HALL_ID),
        StaffUser(id="u-manager", username="manager", role="MANAGER", hall_id=HALL_ID),
        StaffUser(id="u-staff", username="sara", role="STAFF", hall_id=HALL_ID),
        StaffUser(id="u-other", username="omar", role="STAFF", hall_id=OTHER_HALL_ID),
        StaffUser(id="u-locked", username="locked", role="STAFF", hall_id=HALL_ID, status="LOCKED"),
    ]
    save_users(users)
    return {u.username: u for u in users}


@pytest.fixture(scope='function')
def hall(app, staff_users):
    """HallData for HALL-1 with default settings and a small market catalog."""
    data = hall_data(HALL_ID)
    data.save_settings(HallSettings(
        price_per_game=1000,
        market_items=(
            CatalogItem(id="cola", name="Cola", price=500),
            CatalogItem(id="chips", name="Chips", price=750),
        ),
    ))
    return data


@pytest.fixture
def admin(staff_users):
    return staff_users["admin"]


@pytest.fixture
def manager(staff_users):
    return staff_users["manager"]


@pytest.fixture
def staff(staff_users):
    return staff_users["sara"]


def headers_for(user_id: str, hall_id: str | None = None) -> dict:
    headers = {"X-Staff-Id": user_id}
    if hall_id:
        headers["X-Hall-Id"] = hall_id
    return headers


@pytest.fixture
def admin_headers(hall):
    return headers_for("u-admin")


@pytest.fixture
def manager_headers(hall):
    return headers_for("u-manager")


@pytest.fixture
def staff_headers(hall):
    return headers_for("u-staff")


def make_session(
    name: str = "Ali",
    *,
    games: int = 0,
    price: int = 1000,
    start: int = DAY_START_MS,
    table: int = 1,
    market: dict | None = None,
) -> Session:
    """In-memory session with `games` games one minute apart."""
    session = Session(
        id=f"s-{name}",
        player_name=name,
        start_time=start,
        price_per_game=price,
        game_start_times=[start + i * MINUTE for i in range(games)],
        game_tables=[table] * games,
        market_items={
            item: MarketOrder(name=item, price=p, quantity=q)
            for item, (p, q) in (market or {}).items()
        },
    )
    session.refresh_state()
    return session


def make_transaction(
    tx_id: str,
    *,
    player: str = "Ali",
    timestamp: int = DAY_START_MS,
    total_paid: int = 1000,
    method: str = "CASH",
    settled: bool | None = None,
    games: list[tuple[int, int]] | None = None,
    collected_by: str = "u-staff",
) -> Transaction:
    """games is a list of (start_ms, table)."""
    games = games or []
    return Transaction(
        id=tx_id,
        session_id=f"s-{player}",
        player_name=player,
        timestamp=timestamp,
        amount=total_paid,
        market_total=0,
        discount=0,
        expected_total=total_paid,
        total_paid=total_paid,
        payment_method=method,
        is_settled=(method != "DEBT") if settled is None else settled,
        collected_by=collected_by,
        game_start_times=[g[0] for g in games],
        game_tables=[g[1] for g in games],
    )
