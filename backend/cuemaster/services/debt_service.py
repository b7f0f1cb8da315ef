# Overview: Groups open DEBT transactions by payer and settles them oldest-first.

"""
Debt Settlement Service

WHY: A DEBT checkout records what the player owes (totalPaid on an unsettled
DEBT row is the amount owed, nothing was collected). Payments arrive later,
whole or in part, and are applied FIFO so the oldest debt clears first.

SETTLEMENT RULES:
- FULL: amount = the payer's total outstanding
- PARTIAL: operator amount, capped at the payer's total outstanding
- Walk open rows by timestamp ascending while money remains:
  - covers the row: isSettled = True, timestamp rewritten to now so the
    money counts toward the day it was collected
  - partially covers: a settled sibling (new id, isPartialSettlement, now)
    takes the paid part; the original keeps the rest, its timestamp and
    stays open
- Money is conserved exactly; no row's totalPaid goes negative
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from ..models import Transaction
from ..time_utils import now_ms
from .hall_data import HallData


SETTLE_FULL = "FULL"
SETTLE_PARTIAL = "PARTIAL"

VALID_SETTLE_MODES = [SETTLE_FULL, SETTLE_PARTIAL]


class DebtSettlementError(ValueError):
    """Raised for invalid settlement requests."""
    pass


@dataclass
class DebtGroup:
    player_name: str
    total_amount: int = 0
    transaction_ids: list[str] = field(default_factory=list)
    items: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "playerName": self.player_name,
            "totalAmount": self.total_amount,
            "transactionIds": list(self.transaction_ids),
            "items": list(self.items),
        }


@dataclass
class SettlementResult:
    applied_amount: int = 0
    settled_ids: list[str] = field(default_factory=list)
    split_from_id: str | None = None
    new_transaction: Transaction | None = None

    def to_dict(self) -> dict:
        return {
            "appliedAmount": self.applied_amount,
            "settledIds": list(self.settled_ids),
            "splitFromId": self.split_from_id,
            "newTransaction": self.new_transaction.to_dict() if self.new_transaction else None,
        }


def open_debts(transactions: list[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_open_debt]


def total_outstanding(transactions: list[Transaction]) -> int:
    return sum(t.total_paid for t in open_debts(transactions))


def group_debts(transactions: list[Transaction], name_filter: str | None = None) -> list[DebtGroup]:
    """
    One group per payer name; items newest first.

    name_filter is a case-insensitive substring match.
    """
    groups: dict[str, DebtGroup] = {}
    for debt in open_debts(transactions):
        group = groups.setdefault(debt.player_name, DebtGroup(player_name=debt.player_name))
        group.total_amount += debt.total_paid
        group.transaction_ids.append(debt.id)
        group.items.append({"id": debt.id, "timestamp": debt.timestamp, "amount": debt.total_paid})

    for group in groups.values():
        group.items.sort(key=lambda item: item["timestamp"], reverse=True)

    needle = (name_filter or "").strip().lower()
    return [g for g in groups.values() if needle in g.player_name.lower()]


def settle(
    transactions: list[Transaction],
    player_name: str,
    mode: str,
    amount: int | None = None,
    *,
    now: int | None = None,
) -> tuple[list[Transaction], SettlementResult]:
    """
    Apply a settlement to one payer's open debts.

    Pure: returns a new transaction list (split siblings appended at the
    end) and a summary. amount <= 0 returns the input unchanged.
    """
    if mode not in VALID_SETTLE_MODES:
        raise DebtSettlementError(f"Invalid settlement mode: {mode}. Must be one of {VALID_SETTLE_MODES}")

    owed = [t for t in open_debts(transactions) if t.player_name == player_name]
    group_total = sum(t.total_paid for t in owed)

    if mode == SETTLE_FULL:
        remaining = group_total
    else:
        remaining = min(amount or 0, group_total)

    result = SettlementResult()
    if remaining <= 0:
        return list(transactions), result

    settled_at = now if now is not None else now_ms()
    updated = {t.id: t for t in transactions}
    appended: list[Transaction] = []
    result.applied_amount = remaining

    for debt in sorted(owed, key=lambda t: t.timestamp):
        if remaining <= 0:
            break
        if remaining >= debt.total_paid:
            updated[debt.id] = debt.clone(is_settled=True, timestamp=settled_at)
            result.settled_ids.append(debt.id)
            remaining -= debt.total_paid
        else:
            paid_part = debt.clone(
                id=uuid.uuid4().hex,
                total_paid=remaining,
                is_settled=True,
                is_partial_settlement=True,
                timestamp=settled_at,
            )
            updated[debt.id] = debt.clone(total_paid=debt.total_paid - remaining)
            appended.append(paid_part)
            result.split_from_id = debt.id
            result.new_transaction = paid_part
            remaining = 0

    return [updated[t.id] for t in transactions] + appended, result


def settle_for_hall(
    data: HallData,
    player_name: str,
    mode: str,
    amount: int | None = None,
    *,
    now: int | None = None,
) -> SettlementResult:
    """
    Settle and persist.

    Unlike the pure engine, a PARTIAL amount <= 0 is a user error here and
    an unknown payer is rejected.
    """
    if mode == SETTLE_PARTIAL and (amount is None or amount <= 0):
        raise DebtSettlementError("Partial settlement amount must be greater than zero")

    transactions = data.load_transactions()
    if not any(t.player_name == player_name for t in open_debts(transactions)):
        raise DebtSettlementError(f"No outstanding debt for {player_name}")

    updated, result = settle(transactions, player_name, mode, amount, now=now)
    if result.applied_amount > 0:
        data.save_transactions(updated)
    return result
