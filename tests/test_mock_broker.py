"""Tests for the mock exchange and market data provider."""

from __future__ import annotations

import numpy as np
import pytest

from conftest import make_frame
from crypto_trader.brokers.mock_broker import MockBroker, MockMarketDataProvider
from crypto_trader.core.broker_api import TransactionStatus, TransactionType
from crypto_trader.core.exceptions import ExternalServiceError, NotFoundError


class TestMockBroker:
    """Tests for MockBroker fills."""

    def test_buy_applies_slippage_and_fee(self):
        broker = MockBroker(commission_rate=0.01, slippage_rate=0.02, prices={"BTC": 100.0})
        txn = broker.place_buy("user-1", "BTC", 2.0)

        assert txn.type == TransactionType.BUY
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.price == pytest.approx(102.0)
        assert txn.total_amount == pytest.approx(204.0)
        assert txn.fee == pytest.approx(2.04)
        assert txn.exchange_transaction_id.startswith("MOCK-")

    def test_sell_slippage_is_unfavorable(self):
        broker = MockBroker(slippage_rate=0.02, prices={"BTC": 100.0})
        assert broker.place_sell("user-1", "BTC", 1.0).price == pytest.approx(98.0)

    def test_unique_ids(self):
        broker = MockBroker(prices={"BTC": 100.0})
        ids = {broker.place_buy("user-1", "BTC", 1.0).id for _ in range(5)}
        assert len(ids) == 5
        assert len(broker.orders) == 5

    def test_failing_symbol(self):
        broker = MockBroker(prices={"BTC": 100.0}, fail_symbols=["BTC"])
        with pytest.raises(ExternalServiceError):
            broker.place_buy("user-1", "BTC", 1.0)

    def test_missing_price(self):
        with pytest.raises(ExternalServiceError):
            MockBroker().place_buy("user-1", "DOGE", 1.0)


class TestMockMarketDataProvider:
    """Tests for MockMarketDataProvider."""

    def test_load_data_creates_asset_from_last_close(self):
        provider = MockMarketDataProvider()
        provider.load_data("BTC", make_frame([10.0, 20.0, 30.0]))

        asset = provider.get_current_price("BTC")
        assert asset.current_price == 30.0
        assert asset.volume_24h == 1000.0

    def test_history_limit_keeps_latest(self):
        provider = MockMarketDataProvider()
        provider.load_data("BTC", make_frame(np.arange(1.0, 51.0)))

        history = provider.get_price_history("BTC", "day", 10)

        assert [p.close for p in history] == list(np.arange(41.0, 51.0))
        assert history[0].timestamp < history[-1].timestamp

    def test_date_column_is_accepted(self):
        df = make_frame([1.0, 2.0]).rename(columns={"timestamp": "date"})
        provider = MockMarketDataProvider()
        provider.load_data("ETH", df)
        assert len(provider.get_price_history("ETH", "day", 10)) == 2

    def test_set_price(self, market_data):
        market_data.set_price("BTC", 123.0)
        assert market_data.get_current_price("BTC").current_price == 123.0

    def test_unknown_symbol(self, market_data):
        with pytest.raises(NotFoundError):
            market_data.get_current_price("DOGE")
        assert market_data.get_price_history("DOGE", "day", 10) == []

    def test_fail_symbols(self, market_data):
        market_data.fail_symbols.add("BTC")
        with pytest.raises(ExternalServiceError):
            market_data.get_current_price("BTC")
        with pytest.raises(ExternalServiceError):
            market_data.get_price_history("BTC", "day", 10)
