"""
Checkout and transaction ledger tests.
"""

from datetime import date

import pytest

from cuemaster.models import HallSettings, SessionState
from cuemaster.services import checkout_service, session_service
from cuemaster.services.checkout_service import CheckoutError, TransactionNotFoundError

from conftest import DAY_START_MS, MINUTE, make_transaction


def _session_with_games(hall, name="Ali", games=2, table=1):
    session = session_service.start_session(hall, player_name=name, now=DAY_START_MS)
    pending = session_service.request_game_change(hall, session.id, games, None)
    session_service.commit_game(hall, pending, table, now=DAY_START_MS + MINUTE)
    return session


class TestFinalize:

    def test_cash_checkout(self, hall, staff):
        session = _session_with_games(hall)
        session_service.adjust_purchase(hall, session.id, "Cola", 1)

        result = checkout_service.finalize(
            hall, session.id, payment_method="CASH", collected_by=staff.id, now=DAY_START_MS + 30 * MINUTE
        )
        tx = result.transaction
        assert tx.amount == 2000
        assert tx.market_total == 500
        assert tx.total_paid == 2500
        assert tx.is_settled is True
        assert tx.collected_by == staff.id
        assert tx.game_tables == [1, 1]
        assert result.variance == 0

    def test_session_reset_and_reused(self, hall, staff):
        session = _session_with_games(hall)
        checkout_service.finalize(hall, session.id, payment_method="CASH", collected_by=staff.id)

        reused = session_service.get_session(hall, session.id)
        assert reused.state is SessionState.IDLE
        assert reused.games_played == 0
        assert reused.market_items == {}
        assert reused.player_name == "Ali"
        assert reused.start_time == DAY_START_MS

    def test_newest_transaction_first(self, hall, staff):
        first = _session_with_games(hall, name="Ali")
        second = _session_with_games(hall, name="Omar")
        checkout_service.finalize(hall, first.id, payment_method="CASH", collected_by=staff.id)
        checkout_service.finalize(hall, second.id, payment_method="CASH", collected_by=staff.id)
        assert [t.player_name for t in hall.load_transactions()] == ["Omar", "Ali"]

    def test_debt_is_open(self, hall, staff):
        session = _session_with_games(hall, games=3)
        result = checkout_service.finalize(hall, session.id, payment_method="DEBT", collected_by=staff.id)
        assert result.transaction.is_settled is False
        assert result.transaction.total_paid == 3000

    def test_mismatch_is_reported_not_blocked(self, hall, staff):
        session = _session_with_games(hall, games=2)
        result = checkout_service.finalize(
            hall, session.id, payment_method="CASH", actual_paid=1500, note="short", collected_by=staff.id
        )
        assert result.variance == -500
        assert result.to_dict()["mismatch"] is True
        assert result.transaction.total_paid == 1500
        assert result.transaction.expected_total == 2000
        assert result.transaction.note == "short"

    def test_credit_below_threshold_rejected(self, hall, staff):
        session = _session_with_games(hall, games=2)
        with pytest.raises(ValueError):
            checkout_service.finalize(hall, session.id, payment_method="CREDIT", collected_by=staff.id)
        # Nothing written, session untouched
        assert hall.load_transactions() == []
        assert session_service.get_session(hall, session.id).games_played == 2

    def test_idle_session_rejected(self, hall, staff):
        session = session_service.start_session(hall, player_name="Ali")
        with pytest.raises(CheckoutError):
            checkout_service.finalize(hall, session.id, payment_method="CASH", collected_by=staff.id)

    def test_negative_paid_rejected(self, hall, staff):
        session = _session_with_games(hall)
        with pytest.raises(CheckoutError):
            checkout_service.finalize(hall, session.id, payment_method="CASH", actual_paid=-1, collected_by=staff.id)


    def test_non_text_note_rejected(self, hall, staff):
        session = _session_with_games(hall)
        with pytest.raises(CheckoutError):
            checkout_service.finalize(hall, session.id, payment_method="CASH", note=123, collected_by=staff.id)
        assert hall.load_transactions() == []


class TestDelete:

    def test_manager_deletes(self, hall, manager):
        hall.save_transactions([make_transaction("t1"), make_transaction("t2")])
        assert checkout_service.delete_transaction(hall, "t1", manager) is True
        assert [t.id for t in hall.load_transactions()] == ["t2"]

    def test_bulk_delete_ignores_unknown(self, hall, admin):
        hall.save_transactions([make_transaction("t1"), make_transaction("t2"), make_transaction("t3")])
        assert checkout_service.delete_transactions(hall, ["t1", "t3", "zz"], admin) == 2

    def test_staff_cannot_delete(self, hall, staff):
        hall.save_transactions([make_transaction("t1")])
        with pytest.raises(CheckoutError):
            checkout_service.delete_transaction(hall, "t1", staff)
        assert len(hall.load_transactions()) == 1

    def test_get_missing(self, hall):
        with pytest.raises(TransactionNotFoundError):
            checkout_service.get_transaction(hall, "missing")


class TestFilterHistory:

    @pytest.fixture
    def ledger(self):
        day = 24 * 60 * MINUTE
        return [
            make_transaction("a", player="Ali", timestamp=DAY_START_MS + MINUTE),
            make_transaction("b", player="Omar", timestamp=DAY_START_MS + 20 * 60 * MINUTE, method="DEBT"),
            make_transaction("c", player="alia", timestamp=DAY_START_MS + day + MINUTE, collected_by="u-manager"),
            make_transaction("d", player="Zed", timestamp=DAY_START_MS - MINUTE),
        ]

    def test_newest_first(self, ledger):
        assert [t.id for t in checkout_service.filter_history(ledger)] == ["c", "b", "a", "d"]

    def test_name_substring_case_insensitive(self, ledger):
        assert {t.id for t in checkout_service.filter_history(ledger, name="ALI")} == {"a", "c"}

    def test_business_date_bounds(self, ledger):
        # 2024-05-01 runs 08:00 to 08:00 next morning; "d" was at 07:59
        result = checkout_service.filter_history(ledger, start_date=date(2024, 5, 1), end_date=date(2024, 5, 1))
        assert [t.id for t in result] == ["b", "a"]

    def test_collector_and_method(self, ledger):
        assert [t.id for t in checkout_service.filter_history(ledger, collected_by="u-manager")] == ["c"]
        assert [t.id for t in checkout_service.filter_history(ledger, payment_method="DEBT")] == ["b"]

    def test_invalid_method(self, ledger):
        with pytest.raises(CheckoutError):
            checkout_service.filter_history(ledger, payment_method="GOLD")


class TestEndToEnd:
    """5 games at 1000, two 500 drinks, tiers {4: 500}."""

    @pytest.fixture
    def tiered_hall(self, hall):
        settings = hall.load_settings()
        hall.save_settings(HallSettings(
            price_per_game=1000,
            discount_tiers={4: 500},
            market_items=settings.market_items,
        ))
        return hall

    def _play(self, hall):
        session = _session_with_games(hall, games=5)
        session_service.adjust_purchase(hall, session.id, "Cola", 2)
        return session

    def test_credit(self, tiered_hall, staff):
        session = self._play(tiered_hall)
        result = checkout_service.finalize(tiered_hall, session.id, payment_method="CREDIT", collected_by=staff.id)
        assert result.transaction.expected_total == 5500
        assert result.transaction.is_settled is True

    def test_debt(self, tiered_hall, staff):
        session = self._play(tiered_hall)
        result = checkout_service.finalize(tiered_hall, session.id, payment_method="DEBT", collected_by=staff.id)
        assert result.transaction.expected_total == 6000
        assert result.transaction.discount == 0
        assert result.transaction.is_settled is False
