# Overview: Transaction ledger: checkout finalization, privileged deletes and history filtering.

"""
Checkout / Transaction Ledger Service

WHY: The transaction is the durable record of a visit. Sessions are reset
and reused, so everything the audit and reports need (game times, tables,
market lines, who collected) is copied onto the transaction at checkout.

DESIGN PRINCIPLES:
- Append-only: no update-in-place outside debt settlement
- The operator-entered paid amount is authoritative; a mismatch with the
  expected total is returned as a variance, never blocked
- Hard delete is a privileged audit correction (single id or id set)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

from ..models import MarketOrder, Session, StaffUser, Transaction, PAYMENT_DEBT, VALID_PAYMENT_METHODS
from ..time_utils import business_day_window, now_ms
from ..validation import MAX_AMOUNT
from . import pricing_service
from .hall_data import HallData
from .session_service import get_session, reset_after_checkout


class CheckoutError(ValueError):
    """Raised for invalid checkout operations."""
    pass


class TransactionNotFoundError(CheckoutError):
    pass


@dataclass(frozen=True)
class CheckoutResult:
    transaction: Transaction
    session: Session
    quote: pricing_service.Quote
    variance: int

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "session": self.session.to_dict(),
            "quote": self.quote.to_dict(),
            "variance": self.variance,
            "mismatch": self.variance != 0,
        }


def build_transaction(
    session: Session,
    quote: pricing_service.Quote,
    *,
    total_paid: int,
    note: str,
    collected_by: str,
    timestamp: int,
) -> Transaction:
    return Transaction(
        id=uuid.uuid4().hex,
        session_id=session.id,
        player_name=session.player_name,
        timestamp=timestamp,
        amount=quote.subtotal,
        market_total=quote.market_total,
        discount=quote.discount,
        expected_total=quote.expected_total,
        total_paid=total_paid,
        payment_method=quote.payment_method,
        is_settled=quote.payment_method != PAYMENT_DEBT,
        collected_by=collected_by,
        note=note,
        game_start_times=list(session.game_start_times),
        game_tables=list(session.game_tables),
        market_items=[MarketOrder(i.name, i.price, i.quantity) for i in session.market_items.values()],
    )


def finalize(
    data: HallData,
    session_id: str,
    *,
    payment_method: str,
    actual_paid: int | None = None,
    note: str | None = None,
    collected_by: str,
    now: int | None = None,
) -> CheckoutResult:
    """
    Close a session's tab.

    Appends the transaction, then resets the session to IDLE. For DEBT the
    paid amount is the amount owed.
    """
    session = get_session(data, session_id)
    if not session.is_active:
        raise CheckoutError("Session has nothing to check out")
    if note is not None and not isinstance(note, str):
        raise CheckoutError("note must be text")

    quote = pricing_service.quote(session, payment_method, data.load_settings())

    paid = quote.expected_total if actual_paid is None else actual_paid
    if paid < 0 or paid > MAX_AMOUNT:
        raise CheckoutError("Paid amount must be between 0 and the maximum amount")

    transaction = build_transaction(
        session,
        quote,
        total_paid=paid,
        note=(note or "").strip(),
        collected_by=collected_by,
        timestamp=now if now is not None else now_ms(),
    )

    transactions = data.load_transactions()
    transactions.insert(0, transaction)
    data.save_transactions(transactions)

    sessions = data.load_sessions()
    for candidate in sessions:
        if candidate.id == session.id:
            reset_after_checkout(candidate)
            session = candidate
            break
    data.save_sessions(sessions)

    return CheckoutResult(
        transaction=transaction,
        session=session,
        quote=quote,
        variance=pricing_service.payment_variance(quote.expected_total, paid),
    )


def get_transaction(data: HallData, transaction_id: str) -> Transaction:
    for transaction in data.load_transactions():
        if transaction.id == transaction_id:
            return transaction
    raise TransactionNotFoundError("Transaction not found")


def delete_transactions(data: HallData, transaction_ids, actor: StaffUser | None) -> int:
    """
    Hard delete by id set. Privileged only.

    Returns the number of rows removed; unknown ids are ignored.
    """
    if actor is None or not actor.is_privileged:
        raise CheckoutError("Only managers can delete transactions")

    wanted = set(transaction_ids)
    if not wanted:
        return 0

    transactions = data.load_transactions()
    kept = [t for t in transactions if t.id not in wanted]
    removed = len(transactions) - len(kept)
    if removed:
        data.save_transactions(kept)
    return removed


def delete_transaction(data: HallData, transaction_id: str, actor: StaffUser | None) -> bool:
    return delete_transactions(data, [transaction_id], actor) == 1


def filter_history(
    transactions: list[Transaction],
    *,
    name: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    collected_by: str | None = None,
    payment_method: str | None = None,
    tz: str = "UTC",
    start_hour: int = 8,
) -> list[Transaction]:
    """
    History view filter, newest first.

    Date bounds are business dates (inclusive); the end date covers its
    whole business day up to start_hour the next morning.
    """
    if payment_method and payment_method not in VALID_PAYMENT_METHODS:
        raise CheckoutError(f"Invalid payment method: {payment_method}")

    lower = business_day_window(start_date, tz, start_hour)[0] if start_date else None
    upper = business_day_window(end_date, tz, start_hour)[1] if end_date else None
    needle = (name or "").strip().lower()

    result = []
    for t in transactions:
        if needle and needle not in t.player_name.lower():
            continue
        if lower is not None and t.timestamp < lower:
            continue
        if upper is not None and t.timestamp >= upper:
            continue
        if collected_by and t.collected_by != collected_by:
            continue
        if payment_method and t.payment_method != payment_method:
            continue
        result.append(t)

    result.sort(key=lambda t: t.timestamp, reverse=True)
    return result
