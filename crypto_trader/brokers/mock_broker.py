"""
테스트/샘플 실행용 Mock 거래소 및 시세 제공자 구현.

[ 역할 ]
    실제 거래소 API 없이 시세 조회와 매매 체결을 시뮬레이션.
    수수료, 슬리피지를 적용하여 체결가를 모사.

[ 포함 클래스 ]
    MockMarketDataProvider - core/market_data.py::MarketDataProvider 구현체
                             미리 로드된 OHLCV DataFrame에서 시세 제공

    MockBroker             - core/broker_api.py::BrokerAPI 구현체
                             설정된 현재가로 즉시 COMPLETED 거래 생성

[ 호출하는 곳 ]
    - run_engine.py에서 샘플 데이터로 엔진 실행
    - 단위 테스트에서 MockBroker/MockMarketDataProvider 활용

[ 실전 교체 ]
    실제 거래소 연동 시 BrokerAPI 구현체를 새로 작성 (예: coinbase_broker.py)
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

import pandas as pd

from crypto_trader.core.broker_api import (
    BrokerAPI,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from crypto_trader.core.exceptions import ExternalServiceError, NotFoundError
from crypto_trader.core.market_data import (
    Asset,
    MarketDataProvider,
    PricePoint,
    to_frame,
    to_price_points,
)


# ─── Mock 시세 제공자 ───────────────────────────────────────────────────────

class MockMarketDataProvider(MarketDataProvider):
    """DataFrame 기반 Mock 시세 제공자.

    사용법:
        provider = MockMarketDataProvider()
        provider.load_data("BTC-USD", btc_df)     # OHLCV DataFrame 로드
        provider.set_price("BTC-USD", 65000.0)    # 현재가 직접 지정 (선택)
        asset = provider.get_current_price("BTC-USD")

    timeframe은 구분하지 않고 로드된 데이터의 마지막 limit개 봉을 반환한다.
    """

    def __init__(self):
        self._data: dict[str, pd.DataFrame] = {}   # symbol → OHLCV DataFrame
        self._assets: dict[str, Asset] = {}        # symbol → Asset
        self.fail_symbols: set[str] = set()        # 조회 시 장애를 낼 종목

    def load_data(self, symbol: str, df: pd.DataFrame, asset: Optional[Asset] = None) -> None:
        """데이터 로드. asset이 없으면 마지막 종가로 Asset 생성.

        Args:
            symbol: 종목 심볼
            df: OHLCV DataFrame (columns: timestamp 또는 date, open, high, low, close, volume)
            asset: 종목 정보 (시가총액 등)
        """
        frame = to_frame(df)
        self._data[symbol] = frame

        if asset is None:
            last_close = float(frame["close"].iloc[-1]) if not frame.empty else 0.0
            volume = float(frame["volume"].iloc[-1]) if not frame.empty else 0.0
            asset = Asset(symbol=symbol, name=symbol, current_price=last_close, volume_24h=volume)
        self._assets[symbol] = asset

    def add_asset(self, asset: Asset) -> None:
        """가격 이력 없이 종목 정보만 등록."""
        self._assets[asset.symbol] = asset

    def set_price(self, symbol: str, price: float) -> None:
        """현재가 설정 (시뮬레이션용)."""
        asset = self._assets.setdefault(symbol, Asset(symbol=symbol, name=symbol))
        asset.current_price = price
        asset.last_updated = datetime.now(timezone.utc)

    def get_current_price(self, symbol: str) -> Asset:
        if symbol in self.fail_symbols:
            raise ExternalServiceError(f"{symbol} 시세 조회 실패")
        if symbol not in self._assets:
            raise NotFoundError("asset", symbol)
        return self._assets[symbol]

    def get_price_history(self, symbol: str, timeframe: str, limit: int) -> list[PricePoint]:
        if symbol in self.fail_symbols:
            raise ExternalServiceError(f"{symbol} 가격 이력 조회 실패")
        if symbol not in self._data:
            return []
        return to_price_points(self._data[symbol].tail(limit))

    def get_assets(self) -> list[Asset]:
        return list(self._assets.values())


# ─── Mock 거래소 ────────────────────────────────────────────────────────────

class MockBroker(BrokerAPI):
    """Mock 거래소. 실제 주문 없이 설정된 현재가로 즉시 체결.

    매수 시: 가격 * (1 + slippage) 로 불리하게 체결
    매도 시: 가격 * (1 - slippage) 로 불리하게 체결
    수수료: 체결금액 * commission_rate (매수/매도 모두)

    잔고는 관리하지 않는다 (거래 원장에서 계산).
    """

    def __init__(
        self,
        commission_rate: float = 0.005,    # 0.5%
        slippage_rate: float = 0.0,
        prices: Optional[dict[str, float]] = None,
        fail_symbols: Iterable[str] = (),
    ):
        self.commission_rate = commission_rate
        self.slippage_rate = slippage_rate

        self._prices: dict[str, float] = dict(prices or {})   # symbol → 현재가
        self.fail_symbols: set[str] = set(fail_symbols)       # 주문 시 장애를 낼 종목
        self._lock = threading.Lock()
        self.orders: list[Transaction] = []                   # 체결 내역

    def set_price(self, symbol: str, price: float) -> None:
        """종목 현재가 설정 (시뮬레이션용)."""
        self._prices[symbol] = price

    def get_current_price(self, symbol: str) -> float:
        return self._prices.get(symbol, 0.0)

    def place_buy(self, user_id: str, symbol: str, quantity: float) -> Transaction:
        return self._fill(user_id, symbol, quantity, TransactionType.BUY)

    def place_sell(self, user_id: str, symbol: str, quantity: float) -> Transaction:
        return self._fill(user_id, symbol, quantity, TransactionType.SELL)

    def _fill(
        self,
        user_id: str,
        symbol: str,
        quantity: float,
        side: TransactionType,
    ) -> Transaction:
        if symbol in self.fail_symbols:
            raise ExternalServiceError(
                f"{symbol} 주문 전송 실패",
                details={"symbol": symbol, "side": side.value},
            )

        price = self._prices.get(symbol)
        if price is None or price <= 0:
            raise ExternalServiceError(f"{symbol} 현재가 없음", details={"symbol": symbol})

        # 슬리피지 적용 (매수 시 가격 상승, 매도 시 가격 하락)
        if side == TransactionType.BUY:
            exec_price = price * (1 + self.slippage_rate)
        else:
            exec_price = price * (1 - self.slippage_rate)

        total_amount = exec_price * quantity
        transaction = Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            symbol=symbol,
            type=side,
            quantity=quantity,
            price=exec_price,
            total_amount=total_amount,
            fee=total_amount * self.commission_rate,
            exchange_transaction_id=f"MOCK-{uuid.uuid4().hex[:8]}",
            status=TransactionStatus.COMPLETED,
        )
        with self._lock:
            self.orders.append(transaction)
        return transaction
