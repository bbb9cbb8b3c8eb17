"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from crypto_trader.brokers.mock_broker import MockBroker, MockMarketDataProvider
from crypto_trader.core.broker_api import Transaction, TransactionStatus, TransactionType
from crypto_trader.core.market_data import Asset, PricePoint
from crypto_trader.data.ledger import BalanceLedger
from crypto_trader.data.memory_store import InMemoryStrategyStore, InMemoryTransactionStore
from crypto_trader.engine.orders import OrderService

NOW = datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)   # 수요일


def make_points(closes, start: datetime = NOW, spread: float = 1.0) -> list[PricePoint]:
    """종가 목록 → 일봉 PricePoint (high/low = close ± spread)."""
    first = start - timedelta(days=len(closes) - 1)
    return [
        PricePoint(
            timestamp=first + timedelta(days=i),
            open=float(c),
            high=float(c) + spread,
            low=float(c) - spread,
            close=float(c),
            volume=1000.0,
        )
        for i, c in enumerate(closes)
    ]


def make_frame(closes, start: datetime = NOW) -> pd.DataFrame:
    closes = np.asarray(closes, dtype=float)
    return pd.DataFrame({
        "timestamp": pd.date_range(end=start, periods=len(closes), freq="D"),
        "open": closes,
        "high": closes + 1,
        "low": closes - 1,
        "close": closes,
        "volume": np.full(len(closes), 1000.0),
    })


def make_transaction(
    symbol: str,
    side: TransactionType,
    quantity: float,
    price: float,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    user_id: str = "user-1",
    txn_id: str | None = None,
) -> Transaction:
    return Transaction(
        id=txn_id or f"{symbol}-{side.value}-{quantity}-{price}-{status.value}",
        user_id=user_id,
        symbol=symbol,
        type=side,
        quantity=quantity,
        price=price,
        total_amount=quantity * price,
        status=status,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def transaction_store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture
def strategy_store() -> InMemoryStrategyStore:
    return InMemoryStrategyStore()


@pytest.fixture
def ledger(transaction_store) -> BalanceLedger:
    return BalanceLedger(transaction_store)


@pytest.fixture
def broker() -> MockBroker:
    return MockBroker(commission_rate=0.0, prices={"BTC": 100.0, "ETH": 50.0, "SOL": 10.0})


@pytest.fixture
def orders(broker, transaction_store, ledger) -> OrderService:
    return OrderService(broker, transaction_store, ledger)


@pytest.fixture
def market_data() -> MockMarketDataProvider:
    provider = MockMarketDataProvider()
    provider.load_data(
        "BTC", make_frame(np.linspace(80, 100, 60)),
        Asset(symbol="BTC", name="Bitcoin", current_price=100.0, market_cap=3e9,
              price_change_percentage_24h=1.0, volume_24h=5e6),
    )
    provider.load_data(
        "ETH", make_frame(np.linspace(60, 50, 60)),
        Asset(symbol="ETH", name="Ethereum", current_price=50.0, market_cap=2e9,
              price_change_percentage_24h=-3.0, volume_24h=9e6),
    )
    provider.load_data(
        "SOL", make_frame(np.linspace(5, 10, 60)),
        Asset(symbol="SOL", name="Solana", current_price=10.0, market_cap=1e9,
              price_change_percentage_24h=7.5, volume_24h=1e6),
    )
    return provider
