"""
Debt settlement tests.

Verifies:
- FIFO application by timestamp
- Partial cover splits off a settled sibling; money is conserved
- amount <= 0 never touches the ledger
"""

import pytest

from cuemaster.services import debt_service
from cuemaster.services.debt_service import DebtSettlementError, SETTLE_FULL, SETTLE_PARTIAL

from conftest import DAY_START_MS, MINUTE, make_transaction


NOW = DAY_START_MS + 48 * 60 * MINUTE


@pytest.fixture
def debts():
    return [
        make_transaction("t1", player="Ali", timestamp=DAY_START_MS, total_paid=500, method="DEBT"),
        make_transaction("t2", player="Ali", timestamp=DAY_START_MS + MINUTE, total_paid=300, method="DEBT"),
        make_transaction("t3", player="Ali", timestamp=DAY_START_MS + 2 * MINUTE, total_paid=200, method="DEBT"),
        make_transaction("o1", player="Omar", timestamp=DAY_START_MS, total_paid=1000, method="DEBT"),
        make_transaction("c1", player="Ali", timestamp=DAY_START_MS, total_paid=700, method="CASH"),
    ]


def _by_id(transactions):
    return {t.id: t for t in transactions}


class TestGrouping:

    def test_groups_and_totals(self, debts):
        groups = {g.player_name: g for g in debt_service.group_debts(debts)}
        assert groups["Ali"].total_amount == 1000
        assert groups["Omar"].total_amount == 1000
        assert [i["id"] for i in groups["Ali"].items] == ["t3", "t2", "t1"]
        assert debt_service.total_outstanding(debts) == 2000

    def test_name_filter(self, debts):
        groups = debt_service.group_debts(debts, "om")
        assert [g.player_name for g in groups] == ["Omar"]


class TestSettle:

    def test_partial_fifo_split(self, debts):
        updated, result = debt_service.settle(debts, "Ali", SETTLE_PARTIAL, 600, now=NOW)
        rows = _by_id(updated)

        assert rows["t1"].is_settled is True
        assert rows["t1"].timestamp == NOW
        assert rows["t2"].is_settled is False
        assert rows["t2"].total_paid == 200
        assert rows["t2"].timestamp == DAY_START_MS + MINUTE
        assert rows["t3"] == debts[2]

        sibling = result.new_transaction
        assert sibling is not None
        assert sibling.id not in {t.id for t in debts}
        assert sibling.total_paid == 100
        assert sibling.is_settled is True
        assert sibling.is_partial_settlement is True
        assert sibling.timestamp == NOW
        assert updated[-1].id == sibling.id

        assert result.applied_amount == 600
        assert result.settled_ids == ["t1"]
        assert result.split_from_id == "t2"

    def test_money_is_conserved(self, debts):
        before = sum(t.total_paid for t in debts)
        updated, _ = debt_service.settle(debts, "Ali", SETTLE_PARTIAL, 650, now=NOW)
        assert sum(t.total_paid for t in updated) == before
        assert debt_service.total_outstanding(updated) == debt_service.total_outstanding(debts) - 650
        assert all(t.total_paid >= 0 for t in updated)

    @pytest.mark.parametrize("partials", [[100, 450], [500, 300, 150], [299, 1, 1, 650], [1200]])
    def test_money_is_conserved_across_settlements(self, debts, partials):
        before = sum(t.total_paid for t in debts)
        owed = debt_service.total_outstanding(debts)
        updated = debts
        for step, amount in enumerate(partials):
            updated, result = debt_service.settle(updated, "Ali", SETTLE_PARTIAL, amount, now=NOW + step)
            owed -= result.applied_amount
            assert sum(t.total_paid for t in updated) == before
            assert debt_service.total_outstanding(updated) == owed
            assert all(t.total_paid >= 0 for t in updated)

        updated, _ = debt_service.settle(updated, "Ali", SETTLE_FULL, now=NOW + len(partials))
        assert sum(t.total_paid for t in updated) == before
        assert all(t.total_paid >= 0 for t in updated)
        assert debt_service.total_outstanding(updated) == 1000

    def test_full_settles_everything(self, debts):
        updated, result = debt_service.settle(debts, "Ali", SETTLE_FULL, now=NOW)
        rows = _by_id(updated)
        assert all(rows[i].is_settled for i in ("t1", "t2", "t3"))
        assert rows["o1"].is_settled is False
        assert result.applied_amount == 1000
        assert result.new_transaction is None
        assert len(updated) == len(debts)

    def test_partial_capped_at_total(self, debts):
        updated, result = debt_service.settle(debts, "Ali", SETTLE_PARTIAL, 5000, now=NOW)
        assert result.applied_amount == 1000
        assert len(updated) == len(debts)

    @pytest.mark.parametrize("amount", [0, -100, None])
    def test_non_positive_amount_is_noop(self, debts, amount):
        updated, result = debt_service.settle(debts, "Ali", SETTLE_PARTIAL, amount, now=NOW)
        assert updated == debts
        assert result.applied_amount == 0

    def test_input_not_mutated(self, debts):
        debt_service.settle(debts, "Ali", SETTLE_FULL, now=NOW)
        assert debts[0].is_settled is False

    def test_invalid_mode(self, debts):
        with pytest.raises(DebtSettlementError):
            debt_service.settle(debts, "Ali", "HALF")


class TestSettleForHall:

    def test_persists(self, hall, debts):
        hall.save_transactions(debts)
        debt_service.settle_for_hall(hall, "Omar", SETTLE_FULL, now=NOW)
        assert _by_id(hall.load_transactions())["o1"].is_settled is True

    def test_partial_requires_positive_amount(self, hall, debts):
        hall.save_transactions(debts)
        with pytest.raises(DebtSettlementError):
            debt_service.settle_for_hall(hall, "Ali", SETTLE_PARTIAL, 0)

    def test_unknown_payer(self, hall, debts):
        hall.save_transactions(debts)
        with pytest.raises(DebtSettlementError):
            debt_service.settle_for_hall(hall, "Nobody", SETTLE_FULL)
