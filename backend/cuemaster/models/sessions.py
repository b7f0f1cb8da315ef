from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from cuemaster.validation import as_int, as_int_list, as_list, as_mapping, as_str


class SessionState(str, enum.Enum):
    """ACTIVE: has games or purchases to bill. IDLE: checked in and waiting."""
    ACTIVE = "ACTIVE"
    IDLE = "IDLE"


@dataclass
class MarketOrder:
    """One market line on a session. Price is frozen when the line is created."""
    name: str
    price: int
    quantity: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {"name": self.name, "price": self.price, "quantity": self.quantity}

    @classmethod
    def from_dict(cls, raw: Any, name: str | None = None) -> "MarketOrder":
        raw = as_mapping(raw)
        return cls(
            name=as_str(raw.get("name"), name or ""),
            price=as_int(raw.get("price")),
            quantity=as_int(raw.get("quantity")),
        )


def market_orders_from_raw(raw: Any) -> dict[str, MarketOrder]:
    """
    Accept both stored shapes of session market items.

    Older snapshots keep a list of {name, price, quantity}; a mapping keyed by
    item name is accepted too. Lines with quantity <= 0 are dropped.
    """
    orders: dict[str, MarketOrder] = {}
    if isinstance(raw, dict):
        items = [MarketOrder.from_dict(v, name=k) for k, v in raw.items()]
    else:
        items = [MarketOrder.from_dict(v) for v in as_list(raw)]
    for item in items:
        if not item.name or item.quantity <= 0:
            continue
        if item.name in orders:
            orders[item.name].quantity += item.quantity
        else:
            orders[item.name] = item
    return orders


@dataclass
class Session:
    """
    Per-player play session.

    WHY: One row per checked-in player name. Games and purchases accumulate
    here until checkout turns them into a Transaction.

    INVARIANTS:
    - game_start_times and game_tables are index-aligned: entry i means a game
      began at game_start_times[i] on table game_tables[i].
    - games_played == len(game_start_times).
    - market item quantities are > 0; empty lines are removed.
    - price_per_game is a snapshot taken at check-in.

    LIFECYCLE:
    - IDLE -> ACTIVE when a game or purchase is added
    - ACTIVE -> IDLE on checkout (row kept, name and start time kept) or when
      the last game/purchase is undone
    - deleted only by explicit removal
    """
    id: str
    player_name: str
    start_time: int
    price_per_game: int
    game_start_times: list[int] = field(default_factory=list)
    game_tables: list[int] = field(default_factory=list)
    market_items: dict[str, MarketOrder] = field(default_factory=dict)
    state: SessionState = SessionState.IDLE

    @property
    def games_played(self) -> int:
        return len(self.game_start_times)

    @property
    def market_quantity(self) -> int:
        return sum(item.quantity for item in self.market_items.values())

    @property
    def first_game_time(self) -> int:
        return self.game_start_times[0] if self.game_start_times else self.start_time

    def refresh_state(self) -> SessionState:
        if self.games_played > 0 or self.market_quantity > 0:
            self.state = SessionState.ACTIVE
        else:
            self.state = SessionState.IDLE
        return self.state

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "playerName": self.player_name,
            "startTime": self.start_time,
            "gameStartTimes": list(self.game_start_times),
            "gameTables": list(self.game_tables),
            "gamesPlayed": self.games_played,
            "pricePerGame": self.price_per_game,
            "marketItems": [item.to_dict() for item in self.market_items.values()],
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "Session":
        raw = as_mapping(raw)
        times = as_int_list(raw.get("gameStartTimes"))
        tables = as_int_list(raw.get("gameTables"))
        # Older snapshots may carry fewer table entries than timings; those
        # games were never assigned a table (0 = untracked).
        if len(tables) < len(times):
            tables = tables + [0] * (len(times) - len(tables))
        else:
            tables = tables[:len(times)]

        session = cls(
            id=as_str(raw.get("id")),
            player_name=as_str(raw.get("playerName")),
            start_time=as_int(raw.get("startTime")),
            price_per_game=as_int(raw.get("pricePerGame")),
            game_start_times=times,
            game_tables=tables,
            market_items=market_orders_from_raw(raw.get("marketItems")),
        )
        session.refresh_state()
        return session
