# Overview: Session ledger operations: check-in, two-phase game add, undo, purchases, removal.

"""
Session Ledger Service

WHY: A session is the running tab of one checked-in player. It collects
games (start time + table) and market purchases until checkout, then is
reset and reused so the player stays on the board.

DESIGN PRINCIPLES:
- playerName is the natural key: at most one session per name per hall
- Adding a game is two-phase: request -> table choice -> commit
- Undo and forced removal are for privileged callers; anyone else gets a
  silent no-op, not an error
- Every mutation recomputes the ACTIVE/IDLE state
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Union

from ..models import MarketOrder, Session, SessionState, StaffUser
from ..time_utils import now_ms
from ..validation import MAX_AMOUNT
from .hall_data import HallData


class SessionError(ValueError):
    """Raised for invalid session operations."""
    pass


class SessionNotFoundError(SessionError):
    """Raised when a session id does not exist in the hall."""
    pass


# =============================================================================
# PENDING GAME REQUESTS
# =============================================================================

@dataclass(frozen=True)
class NoPendingRequest:
    """Nothing is waiting for a table choice."""

    def to_dict(self) -> dict:
        return {"status": "NONE"}


@dataclass(frozen=True)
class AwaitingTableChoice:
    """A game add was requested; it is applied once a table is chosen."""
    session_id: str
    delta: int

    def to_dict(self) -> dict:
        return {"status": "AWAITING_TABLE", "sessionId": self.session_id, "delta": self.delta}


PendingRequest = Union[NoPendingRequest, AwaitingTableChoice]


# =============================================================================
# HELPERS
# =============================================================================

def _find(sessions: list[Session], session_id: str) -> Session:
    for session in sessions:
        if session.id == session_id:
            return session
    raise SessionNotFoundError("Session not found")


def get_session(data: HallData, session_id: str) -> Session:
    return _find(data.load_sessions(), session_id)


def sort_sessions(sessions: list[Session]) -> list[Session]:
    """
    Board order.

    ACTIVE first, oldest first game first; then IDLE, newest check-in first.
    """
    active = [s for s in sessions if s.is_active]
    idle = [s for s in sessions if not s.is_active]
    active.sort(key=lambda s: s.first_game_time)
    idle.sort(key=lambda s: s.start_time, reverse=True)
    return active + idle


def list_sessions(data: HallData) -> list[Session]:
    return sort_sessions(data.load_sessions())


# =============================================================================
# CHECK-IN
# =============================================================================

def start_session(
    data: HallData,
    *,
    player_name: str,
    price_per_game: int | None = None,
    now: int | None = None,
) -> Session:
    name = (player_name or "").strip()
    if not name:
        raise SessionError("Player name is required")

    sessions = data.load_sessions()
    if any(s.player_name == name for s in sessions):
        raise SessionError(f"A session for {name} already exists")

    if price_per_game is None:
        price_per_game = data.load_settings().price_per_game
    if price_per_game < 0 or price_per_game > MAX_AMOUNT:
        raise SessionError("Invalid price per game")

    session = Session(
        id=uuid.uuid4().hex,
        player_name=name,
        start_time=now if now is not None else now_ms(),
        price_per_game=price_per_game,
    )
    session.refresh_state()
    sessions.append(session)
    data.save_sessions(sessions)

    players = data.load_players()
    if name not in players:
        players.append(name)
        data.save_players(players)

    return session


# =============================================================================
# GAMES
# =============================================================================

def request_game_change(data: HallData, session_id: str, delta: int, actor: StaffUser | None) -> PendingRequest:
    """
    First phase of a game count change.

    A negative delta is an undo and is executed right away (it needs no
    table); a positive delta returns the pending request the caller must
    commit with a table number.
    """
    if delta == 0:
        raise SessionError("delta must be non-zero")

    session = get_session(data, session_id)
    if delta < 0:
        for _ in range(-delta):
            if not undo_game(data, session.id, actor):
                break
        return NoPendingRequest()
    return AwaitingTableChoice(session_id=session.id, delta=delta)


def commit_game(data: HallData, pending: PendingRequest, table_number: int, *, now: int | None = None) -> Session:
    if not isinstance(pending, AwaitingTableChoice):
        raise SessionError("No game request is waiting for a table")

    settings = data.load_settings()
    if table_number < 1 or table_number > settings.table_count:
        raise SessionError(f"Table must be between 1 and {settings.table_count}")

    sessions = data.load_sessions()
    session = _find(sessions, pending.session_id)

    started = now if now is not None else now_ms()
    for _ in range(pending.delta):
        session.game_start_times.append(started)
        session.game_tables.append(table_number)
    session.refresh_state()

    data.save_sessions(sessions)
    return session


def undo_game(data: HallData, session_id: str, actor: StaffUser | None) -> bool:
    """
    Remove the most recent game.

    Returns False without changing anything for non-privileged callers or
    when the session has no games.
    """
    if actor is None or not actor.is_privileged:
        return False

    sessions = data.load_sessions()
    session = _find(sessions, session_id)
    if session.games_played == 0:
        return False

    session.game_start_times.pop()
    session.game_tables.pop()
    session.refresh_state()
    data.save_sessions(sessions)
    return True


# =============================================================================
# PURCHASES
# =============================================================================

def adjust_purchase(data: HallData, session_id: str, item_name: str, delta_qty: int) -> Session:
    name = (item_name or "").strip()
    if not name:
        raise SessionError("Item name is required")
    if delta_qty == 0:
        raise SessionError("Quantity change must be non-zero")

    sessions = data.load_sessions()
    session = _find(sessions, session_id)

    line = session.market_items.get(name)
    if line is None:
        if delta_qty < 0:
            return session
        price = data.market_catalog().get(name)
        if price is None:
            raise SessionError(f"Unknown market item: {name}")
        session.market_items[name] = MarketOrder(name=name, price=price, quantity=delta_qty)
    else:
        line.quantity += delta_qty
        if line.quantity <= 0:
            del session.market_items[name]

    session.refresh_state()
    data.save_sessions(sessions)
    return session


# =============================================================================
# RESET / REMOVE
# =============================================================================

def reset_after_checkout(session: Session) -> Session:
    """Clear games and purchases; id, name and check-in time stay."""
    session.game_start_times = []
    session.game_tables = []
    session.market_items = {}
    session.state = SessionState.IDLE
    return session


def remove_session(data: HallData, session_id: str, actor: StaffUser | None) -> bool:
    """
    Delete a session.

    Privileged callers may remove any session; others only IDLE ones.
    Anything else is a silent no-op (returns False).
    """
    sessions = data.load_sessions()
    session = _find(sessions, session_id)

    privileged = actor is not None and actor.is_privileged
    if not privileged and session.is_active:
        return False

    data.save_sessions([s for s in sessions if s.id != session_id])
    return True
