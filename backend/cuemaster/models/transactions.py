from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from cuemaster.validation import as_bool, as_int, as_int_list, as_list, as_mapping, as_str
from .sessions import MarketOrder


PAYMENT_CASH = "CASH"
PAYMENT_CREDIT = "CREDIT"
PAYMENT_DEBT = "DEBT"

VALID_PAYMENT_METHODS = [
    PAYMENT_CASH,
    PAYMENT_CREDIT,
    PAYMENT_DEBT,
]


@dataclass
class Transaction:
    """
    One checkout event.

    WHY: Sessions are reset and reused, so the transaction is the durable
    record of what was played, bought and paid. The table audit replays
    game_start_times / game_tables from here.

    IMMUTABLE except for debt settlement, which may:
    - flip is_settled and rewrite timestamp to the settlement moment, or
    - reduce total_paid and spawn a settled sibling holding the paid part.

    For unsettled DEBT rows total_paid is the amount owed (nothing was
    collected yet).
    """
    id: str
    session_id: str
    player_name: str
    timestamp: int
    amount: int
    market_total: int
    discount: int
    expected_total: int
    total_paid: int
    payment_method: str
    is_settled: bool
    collected_by: str
    is_partial_settlement: bool = False
    note: str = ""
    game_start_times: list[int] = field(default_factory=list)
    game_tables: list[int] = field(default_factory=list)
    market_items: list[MarketOrder] = field(default_factory=list)

    @property
    def is_open_debt(self) -> bool:
        return self.payment_method == PAYMENT_DEBT and not self.is_settled

    @property
    def games_count(self) -> int:
        return len(self.game_start_times)

    def clone(self, **changes) -> "Transaction":
        return replace(
            self,
            game_start_times=list(self.game_start_times),
            game_tables=list(self.game_tables),
            market_items=[MarketOrder(i.name, i.price, i.quantity) for i in self.market_items],
            **changes,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "playerName": self.player_name,
            "timestamp": self.timestamp,
            "amount": self.amount,
            "marketTotal": self.market_total,
            "discount": self.discount,
            "expectedTotal": self.expected_total,
            "totalPaid": self.total_paid,
            "paymentMethod": self.payment_method,
            "isSettled": self.is_settled,
            "isPartialSettlement": self.is_partial_settlement,
            "collectedBy": self.collected_by,
            "note": self.note,
            "gameStartTimes": list(self.game_start_times),
            "gameTables": list(self.game_tables),
            "marketItems": [item.to_dict() for item in self.market_items],
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "Transaction":
        raw = as_mapping(raw)
        method = as_str(raw.get("paymentMethod"), PAYMENT_CASH)
        amount = as_int(raw.get("amount"))
        market_total = as_int(raw.get("marketTotal"))
        discount = as_int(raw.get("discount"))
        expected = raw.get("expectedTotal")
        return cls(
            id=as_str(raw.get("id")),
            session_id=as_str(raw.get("sessionId")),
            player_name=as_str(raw.get("playerName")),
            timestamp=as_int(raw.get("timestamp")),
            amount=amount,
            market_total=market_total,
            discount=discount,
            # Rows written before expectedTotal existed get it re-derived
            expected_total=as_int(expected) if expected is not None else max(0, amount + market_total - discount),
            total_paid=as_int(raw.get("totalPaid")),
            payment_method=method,
            # isSettled was optional in early snapshots; only DEBT rows start open
            is_settled=as_bool(raw.get("isSettled"), method != PAYMENT_DEBT),
            is_partial_settlement=as_bool(raw.get("isPartialSettlement")),
            collected_by=as_str(raw.get("collectedBy")),
            note=as_str(raw.get("note")),
            game_start_times=as_int_list(raw.get("gameStartTimes")),
            game_tables=as_int_list(raw.get("gameTables")),
            market_items=[
                MarketOrder.from_dict(item) for item in as_list(raw.get("marketItems"))
                if isinstance(item, dict)
            ],
        )
