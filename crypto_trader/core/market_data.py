"""
시세 데이터 제공 추상 클래스 정의.

[ 역할 ]
    종목 정보(Asset)와 OHLCV 가격 이력(PricePoint)을 제공하는 인터페이스.
    데이터 소스(거래소 API, yfinance, 테스트용 DataFrame)에 독립적으로
    지표 계산/전략 실행에 데이터 공급.

[ 구현체 ]
    - brokers/mock_broker.py::MockMarketDataProvider  (DataFrame 기반, 테스트용)
    - data/yahoo_provider.py::YahooFinanceDataProvider (yfinance)

[ 호출하는 곳 ]
    - engine/executor.py::StrategyEngine이 전략 대상 종목의 현재가 조회
    - analysis/recommendation.py::RecommendationService가 가격 이력 조회
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

import pandas as pd

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class PricePoint:
    """단일 봉(캔들) 데이터. 생성 후 변경 불가."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass
class Asset:
    """거래 가능 종목. 시세 갱신 시에만 변경됨."""
    symbol: str
    name: str = ""
    current_price: float = 0.0
    price_change_percentage_24h: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0
    circulating_supply: float = 0.0
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


PriceSeries = Union[Sequence[PricePoint], pd.DataFrame]


def to_frame(history: PriceSeries) -> pd.DataFrame:
    """PricePoint 목록 또는 DataFrame을 시간순 정렬된 OHLCV DataFrame으로 변환.

    Returns:
        DataFrame with columns: [timestamp, open, high, low, close, volume]
    """
    if isinstance(history, pd.DataFrame):
        df = history.copy()
        if "timestamp" not in df.columns and "date" in df.columns:
            df = df.rename(columns={"date": "timestamp"})
    else:
        df = pd.DataFrame(
            [
                {
                    "timestamp": p.timestamp,
                    "open": p.open,
                    "high": p.high,
                    "low": p.low,
                    "close": p.close,
                    "volume": p.volume,
                }
                for p in history
            ],
            columns=OHLCV_COLUMNS,
        )

    if df.empty:
        return pd.DataFrame(columns=OHLCV_COLUMNS)

    if "timestamp" in df.columns:
        df = df.sort_values("timestamp", kind="stable")
    return df.reset_index(drop=True)


def to_price_points(df: pd.DataFrame) -> list[PricePoint]:
    """OHLCV DataFrame → PricePoint 목록."""
    return [
        PricePoint(
            timestamp=pd.Timestamp(row["timestamp"]).to_pydatetime(),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=float(row["volume"]),
        )
        for _, row in df.iterrows()
    ]


class MarketDataProvider(ABC):
    """시세 데이터 제공 추상 클래스.

    모든 데이터 제공자 구현체는 이 클래스를 상속받아 아래 메서드를 구현해야 한다.
    일시적인 네트워크 오류는 ExternalServiceError로 전달한다.
    """

    @abstractmethod
    def get_current_price(self, symbol: str) -> Asset:
        """현재가 및 종목 정보 조회."""
        ...

    @abstractmethod
    def get_price_history(self, symbol: str, timeframe: str, limit: int) -> list[PricePoint]:
        """가격 이력 조회.

        Args:
            symbol: 종목 심볼 (예: 'BTC-USD')
            timeframe: 조회 구간 ("day", "week", "month", "year")
            limit: 최대 봉 개수 (최근 것부터)

        Returns:
            시간 오름차순 PricePoint 목록
        """
        ...

    @abstractmethod
    def get_assets(self) -> list[Asset]:
        """조회 가능한 종목 목록 (랭킹용)."""
        ...
