"""
Snapshot read tests.

Verifies:
- Lenient integer reads fall back on NaN, Infinity and junk strings
- Drifted transaction rows still load instead of failing the whole list
"""

import json

import pytest

from cuemaster.models import Transaction
from cuemaster.services.local_cache import LocalCache
from cuemaster.validation import as_int


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), "NaN", "1e999", "abc", None])
def test_non_finite_values_use_default(value):
    assert as_int(value, 7) == 7


def test_finite_values_truncate():
    assert as_int(12.9) == 12
    assert as_int(" 40 ") == 40
    assert as_int("2.5e3") == 2500


def test_transaction_row_with_non_finite_amounts():
    raw = json.loads(
        '{"id": "t1", "playerName": "Ali", "amount": NaN, "totalPaid": Infinity,'
        ' "timestamp": -Infinity, "gameTables": [1, NaN], "paymentMethod": "CASH"}'
    )
    tx = Transaction.from_dict(raw)
    assert tx.amount == 0
    assert tx.total_paid == 0
    assert tx.timestamp == 0
    assert tx.game_tables == [1, 0]
    assert tx.player_name == "Ali"


def test_cached_snapshot_with_nan_loads(tmp_path):
    cache_dir = tmp_path / "cache"
    cache = LocalCache(cache_dir)
    cache.write("transactions", "HALL-1", [])
    for path in cache_dir.rglob("*.json"):
        path.write_text('[{"id": "t1", "amount": NaN, "totalPaid": 1500, "paymentMethod": "DEBT"}]')

    rows = [Transaction.from_dict(r) for r in cache.read("transactions", "HALL-1", [])]
    assert [t.id for t in rows] == ["t1"]
    assert rows[0].amount == 0
    assert rows[0].total_paid == 1500
    assert rows[0].is_settled is False
