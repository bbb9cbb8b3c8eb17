"""Tests for balance derivation from the transaction ledger."""

from __future__ import annotations

import itertools
import logging

import pytest

from conftest import make_transaction
from crypto_trader.core.broker_api import TransactionStatus, TransactionType
from crypto_trader.core.exceptions import LedgerInconsistencyError
from crypto_trader.data.ledger import BalanceLedger, replay
from crypto_trader.data.memory_store import InMemoryTransactionStore

BUY = TransactionType.BUY
SELL = TransactionType.SELL


class TestBalance:
    """Tests for BalanceLedger.balance()."""

    def test_no_transactions_is_zero(self, ledger):
        assert ledger.balance("user-1", "BTC") == 0.0

    def test_buys_minus_sells(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 2.0, 100.0))
        transaction_store.add(make_transaction("BTC", BUY, 1.5, 120.0))
        transaction_store.add(make_transaction("BTC", SELL, 0.5, 130.0))
        assert ledger.balance("user-1", "BTC") == pytest.approx(3.0)

    @pytest.mark.parametrize(
        "status",
        [TransactionStatus.PENDING, TransactionStatus.FAILED, TransactionStatus.CANCELLED],
    )
    def test_only_completed_transactions_count(self, transaction_store, ledger, status):
        transaction_store.add(make_transaction("BTC", BUY, 1.0, 100.0))
        transaction_store.add(make_transaction("BTC", BUY, 5.0, 100.0, status=status))
        transaction_store.add(make_transaction("BTC", SELL, 0.4, 100.0, status=status))
        assert ledger.balance("user-1", "BTC") == pytest.approx(1.0)

    def test_other_users_and_symbols_are_ignored(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 1.0, 100.0))
        transaction_store.add(make_transaction("BTC", BUY, 7.0, 100.0, user_id="user-2"))
        transaction_store.add(make_transaction("ETH", BUY, 3.0, 10.0))
        assert ledger.balance("user-1", "BTC") == pytest.approx(1.0)

    def test_fractional_round_trip_settles_at_zero(self, transaction_store, ledger):
        for i in range(10):
            transaction_store.add(make_transaction("BTC", BUY, 0.1, 100.0, txn_id=f"b{i}"))
        transaction_store.add(make_transaction("BTC", SELL, 1.0, 100.0))
        assert ledger.balance("user-1", "BTC") == 0.0

    def test_negative_balance_raises(self, transaction_store, ledger, caplog):
        transaction_store.add(make_transaction("BTC", BUY, 1.0, 100.0))
        transaction_store.add(make_transaction("BTC", SELL, 2.0, 100.0))

        with caplog.at_level(logging.CRITICAL, logger="crypto_trader.ledger"):
            with pytest.raises(LedgerInconsistencyError) as exc_info:
                ledger.balance("user-1", "BTC")

        assert exc_info.value.details["symbol"] == "BTC"
        assert exc_info.value.details["balance"] == pytest.approx(-1.0)
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)


class TestReplay:
    """Tests for replay() ordering."""

    def test_order_independent(self):
        transactions = [
            make_transaction("BTC", BUY, 0.1, 100.0, txn_id="a"),
            make_transaction("BTC", BUY, 0.2, 100.0, txn_id="b"),
            make_transaction("BTC", SELL, 0.3, 100.0, txn_id="c"),
            make_transaction("BTC", BUY, 1e-8, 100.0, txn_id="d"),
            make_transaction("BTC", SELL, 0.7, 100.0, status=TransactionStatus.PENDING, txn_id="e"),
        ]
        results = {replay(p) for p in itertools.permutations(transactions)}
        assert len(results) == 1

    def test_ledger_result_does_not_depend_on_insertion_order(self):
        transactions = [
            make_transaction("ETH", BUY, 0.3, 10.0, txn_id="a"),
            make_transaction("ETH", SELL, 0.1, 10.0, txn_id="b"),
            make_transaction("ETH", BUY, 0.7, 10.0, txn_id="c"),
        ]
        forward = BalanceLedger(InMemoryTransactionStore(transactions))
        backward = BalanceLedger(InMemoryTransactionStore(reversed(transactions)))
        assert forward.balance("user-1", "ETH") == backward.balance("user-1", "ETH")


class TestAverageBuyPrice:
    """Tests for BalanceLedger.average_buy_price()."""

    def test_weighted_average(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 1.0, 100.0))
        transaction_store.add(make_transaction("BTC", BUY, 3.0, 200.0))
        assert ledger.average_buy_price("user-1", "BTC") == pytest.approx(175.0)

    def test_sells_do_not_change_average(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 2.0, 100.0))
        transaction_store.add(make_transaction("BTC", SELL, 1.0, 300.0))
        assert ledger.average_buy_price("user-1", "BTC") == pytest.approx(100.0)

    def test_no_buys_is_none(self, ledger):
        assert ledger.average_buy_price("user-1", "BTC") is None

    def test_pending_buys_are_excluded(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 1.0, 100.0))
        transaction_store.add(
            make_transaction("BTC", BUY, 1.0, 500.0, status=TransactionStatus.PENDING)
        )
        assert ledger.average_buy_price("user-1", "BTC") == pytest.approx(100.0)


class TestSnapshotAndPortfolio:
    """Tests for snapshot(), balances() and portfolio()."""

    def test_snapshot(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 2.0, 100.0))
        snapshot = ledger.snapshot("user-1", ["BTC", "ETH"])

        assert snapshot.balance("BTC") == pytest.approx(2.0)
        assert snapshot.average_buy_price("BTC") == pytest.approx(100.0)
        assert snapshot.balance("ETH") == 0.0
        assert snapshot.average_buy_price("ETH") is None
        assert snapshot.balance("SOL") == 0.0

    def test_balances_by_symbol(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 2.0, 100.0))
        transaction_store.add(make_transaction("ETH", BUY, 1.0, 10.0))
        transaction_store.add(make_transaction("ETH", SELL, 1.0, 12.0))
        assert ledger.balances("user-1") == {"BTC": pytest.approx(2.0), "ETH": 0.0}

    def test_portfolio_values_positive_holdings(self, transaction_store, ledger):
        transaction_store.add(make_transaction("BTC", BUY, 2.0, 100.0))
        transaction_store.add(make_transaction("ETH", BUY, 1.0, 10.0))
        transaction_store.add(make_transaction("ETH", SELL, 1.0, 12.0))
        transaction_store.add(make_transaction("SOL", BUY, 5.0, 2.0))

        positions = ledger.portfolio("user-1", {"BTC": 150.0, "ETH": 20.0})

        assert [p.symbol for p in positions] == ["BTC"]
        btc = positions[0]
        assert btc.value == pytest.approx(300.0)
        assert btc.unrealized_profit == pytest.approx(100.0)
        assert btc.unrealized_profit_rate == pytest.approx(50.0)
