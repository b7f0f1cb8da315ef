# Overview: Typed load/save of hall collections on top of the sync layer.

"""
Hall Data Access

WHY: Services work with dataclasses; the sync layer moves raw JSON
snapshots. This module is the single translation point. Every read goes
through from_dict(), which coerces drifted snapshot shapes, and every write
replaces the whole collection.

Collection keys (per hall unless noted):
- sessions, transactions, settings, players, attendance
- users (global partition)
- market_items (global partition, shared catalog fallback)
"""

from __future__ import annotations

from flask import current_app

from ..models import AttendanceRecord, CatalogItem, HallSettings, Session, StaffUser, Transaction
from ..validation import as_int, as_list, as_mapping, as_str
from .sync_service import HallSync, SyncRegistry


SESSIONS = "sessions"
TRANSACTIONS = "transactions"
SETTINGS = "settings"
PLAYERS = "players"
ATTENDANCE = "attendance"
USERS = "users"
MARKET_ITEMS = "market_items"

SYNC_EXTENSION_KEY = "cuemaster.sync"


def get_registry(app=None) -> SyncRegistry:
    app = app or current_app
    return app.extensions[SYNC_EXTENSION_KEY]


def global_hall_id(app=None) -> str:
    app = app or current_app
    return app.config.get("GLOBAL_HALL_ID", "MAIN")


class HallData:
    """Typed view of one hall partition."""

    def __init__(self, sync: HallSync, global_sync: HallSync, default_price: int = 1000):
        self.sync = sync
        self.global_sync = global_sync
        self.default_price = default_price

    @property
    def hall_id(self) -> str:
        return self.sync.hall_id

    # -- sessions -----------------------------------------------------------

    def load_sessions(self) -> list[Session]:
        rows = as_list(self.sync.get(SESSIONS, []))
        return [Session.from_dict(row) for row in rows if isinstance(row, dict)]

    def save_sessions(self, sessions: list[Session]) -> None:
        self.sync.put(SESSIONS, [s.to_dict() for s in sessions])

    # -- transactions --------------------------------------------------------

    def load_transactions(self) -> list[Transaction]:
        rows = as_list(self.sync.get(TRANSACTIONS, []))
        return [Transaction.from_dict(row) for row in rows if isinstance(row, dict)]

    def save_transactions(self, transactions: list[Transaction]) -> None:
        self.sync.put(TRANSACTIONS, [t.to_dict() for t in transactions])

    # -- settings -----------------------------------------------------------

    def load_settings(self) -> HallSettings:
        return HallSettings.from_dict(self.sync.get(SETTINGS, {}), default_price=self.default_price)

    def save_settings(self, settings: HallSettings) -> None:
        self.sync.put(SETTINGS, settings.to_dict())

    def market_catalog(self, settings: HallSettings | None = None) -> dict[str, int]:
        """
        Item name -> current price.

        The hall's own catalog wins; the shared global catalog fills in
        anything the hall has not configured.
        """
        settings = settings or self.load_settings()
        catalog: dict[str, int] = {}
        for row in as_list(self.global_sync.get(MARKET_ITEMS, [])):
            row = as_mapping(row)
            name = as_str(row.get("name")).strip()
            if name:
                catalog[name] = as_int(row.get("price"))
        for item in settings.market_items:
            catalog[item.name] = item.price
        return catalog

    def load_global_catalog(self) -> list[CatalogItem]:
        items = []
        for row in as_list(self.global_sync.get(MARKET_ITEMS, [])):
            row = as_mapping(row)
            name = as_str(row.get("name")).strip()
            if name:
                items.append(CatalogItem(id=as_str(row.get("id"), name), name=name, price=as_int(row.get("price"))))
        return items

    # -- players ------------------------------------------------------------

    def load_players(self) -> list[str]:
        return [as_str(p) for p in as_list(self.sync.get(PLAYERS, [])) if as_str(p).strip()]

    def save_players(self, players: list[str]) -> None:
        self.sync.put(PLAYERS, list(players))

    # -- attendance ---------------------------------------------------------

    def load_attendance(self) -> list[AttendanceRecord]:
        rows = as_list(self.sync.get(ATTENDANCE, []))
        return [AttendanceRecord.from_dict(row) for row in rows if isinstance(row, dict)]

    def save_attendance(self, records: list[AttendanceRecord]) -> None:
        self.sync.put(ATTENDANCE, [r.to_dict() for r in records])

    # -- staff (global) -----------------------------------------------------

    def load_users(self) -> list[StaffUser]:
        rows = as_list(self.global_sync.get(USERS, []))
        return [StaffUser.from_dict(row) for row in rows if isinstance(row, dict)]


def load_users(app=None) -> list[StaffUser]:
    app = app or current_app
    sync = get_registry(app).for_hall(global_hall_id(app))
    rows = as_list(sync.get(USERS, []))
    return [StaffUser.from_dict(row) for row in rows if isinstance(row, dict)]


def save_users(users: list[StaffUser], app=None) -> None:
    app = app or current_app
    sync = get_registry(app).for_hall(global_hall_id(app))
    sync.put(USERS, [u.to_dict() for u in users])


def save_global_catalog(items: list[CatalogItem], app=None) -> None:
    app = app or current_app
    sync = get_registry(app).for_hall(global_hall_id(app))
    sync.put(MARKET_ITEMS, [i.to_dict() for i in items])


def hall_data(hall_id: str, app=None) -> HallData:
    app = app or current_app
    registry = get_registry(app)
    return HallData(
        registry.for_hall(hall_id),
        registry.for_hall(global_hall_id(app)),
        default_price=app.config.get("DEFAULT_PRICE_PER_GAME", 1000),
    )


def business_clock(app=None) -> tuple[str, int]:
    """(timezone name, business day start hour) of this deployment."""
    app = app or current_app
    return app.config.get("HALL_TIMEZONE", "UTC"), int(app.config.get("BUSINESS_DAY_START_HOUR", 8))
