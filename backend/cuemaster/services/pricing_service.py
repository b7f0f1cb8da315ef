# Overview: Pure bill computation for a session snapshot under a given payment method.

"""
Pricing Engine

WHY: The bill shown at checkout, the amount recorded on the transaction and
the CREDIT eligibility check must all come from the same arithmetic. Every
function here is pure and takes the settings snapshot as an argument.

RULES:
- subtotal = games_played * price_per_game (the session's frozen price)
- market_total = sum(quantity * price)
- discount only for CREDIT, only when games >= 4 and subtotal >= 3000,
  and then the discount of the highest tier threshold <= games (not cumulative)
- expected_total = max(0, subtotal + market_total - discount)
- CREDIT below the threshold is rejected, never downgraded to CASH
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..models import HallSettings, Session, PAYMENT_CREDIT, VALID_PAYMENT_METHODS


CREDIT_MIN_GAMES = 4
CREDIT_MIN_SUBTOTAL = 3000


class PricingError(ValueError):
    """Raised for invalid payment method selections."""
    pass


@dataclass(frozen=True)
class Quote:
    payment_method: str
    games_played: int
    price_per_game: int
    subtotal: int
    market_total: int
    discount: int
    expected_total: int
    credit_eligible: bool

    def to_dict(self) -> dict:
        return {
            "paymentMethod": self.payment_method,
            "gamesPlayed": self.games_played,
            "pricePerGame": self.price_per_game,
            "amount": self.subtotal,
            "marketTotal": self.market_total,
            "discount": self.discount,
            "expectedTotal": self.expected_total,
            "creditEligible": self.credit_eligible,
        }


def subtotal(session: Session) -> int:
    return session.games_played * session.price_per_game


def market_total(session: Session) -> int:
    return sum(item.line_total for item in session.market_items.values())


def is_credit_eligible(games_played: int, games_subtotal: int) -> bool:
    return games_played >= CREDIT_MIN_GAMES and games_subtotal >= CREDIT_MIN_SUBTOTAL


def tiered_discount(games_played: int, games_subtotal: int, tiers: Mapping[int, int]) -> int:
    """Discount of the largest tier threshold <= games_played, or 0."""
    if not is_credit_eligible(games_played, games_subtotal):
        return 0
    qualifying = [threshold for threshold in tiers if threshold <= games_played]
    if not qualifying:
        return 0
    return tiers[max(qualifying)]


def expected_total(session: Session, method: str, settings: HallSettings) -> int:
    return quote(session, method, settings).expected_total


def quote(session: Session, method: str, settings: HallSettings) -> Quote:
    """
    Full bill breakdown for checkout.

    Raises PricingError for an unknown method or for CREDIT below the
    eligibility threshold.
    """
    if method not in VALID_PAYMENT_METHODS:
        raise PricingError(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")

    games_subtotal = subtotal(session)
    eligible = is_credit_eligible(session.games_played, games_subtotal)
    if method == PAYMENT_CREDIT and not eligible:
        raise PricingError(
            f"CREDIT requires at least {CREDIT_MIN_GAMES} games and a subtotal of {CREDIT_MIN_SUBTOTAL}"
        )

    market = market_total(session)
    discount = 0
    if method == PAYMENT_CREDIT:
        discount = tiered_discount(session.games_played, games_subtotal, settings.discount_tiers)

    return Quote(
        payment_method=method,
        games_played=session.games_played,
        price_per_game=session.price_per_game,
        subtotal=games_subtotal,
        market_total=market,
        discount=discount,
        expected_total=max(0, games_subtotal + market - discount),
        credit_eligible=eligible,
    )


def payment_variance(expected: int, paid: int) -> int:
    """paid - expected; positive is overpayment. Never blocks checkout."""
    return paid - expected
