"""
Yahoo Finance 시세 제공자.

[ 역할 ]
    core/market_data.py::MarketDataProvider의 yfinance 구현체.
    암호화폐 종목은 Yahoo 심볼(예: 'BTC-USD', 'ETH-USD')로 조회한다.

[ timeframe → yfinance (period, interval) ]
    day   → ("5d", "15m")
    week  → ("1mo", "1h")
    month → ("1y", "1d")
    year  → ("5y", "1wk")

[ 재시도 ]
    조회 실패 시 retry_delay초 대기 후 max_retries회까지 재시도.
    모두 실패하면 ExternalServiceError.

[ 호출하는 곳 ]
    - run_engine.py --source yahoo
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, TypeVar

import pandas as pd
import yfinance as yf

from crypto_trader.core.exceptions import ExternalServiceError, NotFoundError
from crypto_trader.core.market_data import Asset, MarketDataProvider, PricePoint, to_price_points
from crypto_trader.utils.config import DataSourceConfig

logger = logging.getLogger("crypto_trader.yahoo")

T = TypeVar("T")

TIMEFRAMES = {
    "day": ("5d", "15m"),
    "week": ("1mo", "1h"),
    "month": ("1y", "1d"),
    "year": ("5y", "1wk"),
}

DEFAULT_SYMBOLS = ["BTC-USD", "ETH-USD", "SOL-USD", "XRP-USD", "ADA-USD"]


def _safe_float(value: Any) -> Optional[float]:
    """float 변환. None/NaN/inf는 None."""
    if value is None:
        return None
    try:
        f = float(value)
    except (ValueError, TypeError):
        return None
    if f != f or f in (float("inf"), float("-inf")):
        return None
    return f


class YahooFinanceDataProvider(MarketDataProvider):
    """yfinance 기반 시세 제공자."""

    def __init__(
        self,
        symbols: Iterable[str] = DEFAULT_SYMBOLS,
        config: Optional[DataSourceConfig] = None,
    ):
        self.symbols = list(symbols)
        self.config = config or DataSourceConfig()

    def _with_retries(self, description: str, fetch: Callable[[], T]) -> T:
        max_retries = self.config.max_retries
        for attempt in range(max_retries):
            try:
                logger.info(f"Fetching {description} (attempt {attempt + 1}/{max_retries})")
                return fetch()
            except NotFoundError:
                raise
            except Exception as e:
                logger.error(f"Error fetching {description} (attempt {attempt + 1}/{max_retries}): {e}")
                if attempt < max_retries - 1:
                    logger.info(f"Retrying in {self.config.retry_delay} seconds...")
                    time.sleep(self.config.retry_delay)
                else:
                    raise ExternalServiceError(
                        f"{description} 조회 실패: {e}",
                        details={"attempts": max_retries},
                    ) from e
        raise ExternalServiceError(f"{description} 조회 실패")

    def get_current_price(self, symbol: str) -> Asset:
        def fetch() -> Asset:
            info = yf.Ticker(symbol).info or {}
            if not info.get("symbol") and not info.get("regularMarketPrice"):
                raise NotFoundError("asset", symbol)
            return self._to_asset(symbol, info)

        return self._with_retries(f"{symbol} quote", fetch)

    def get_price_history(self, symbol: str, timeframe: str, limit: int) -> list[PricePoint]:
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"지원하지 않는 timeframe: '{timeframe}'. 사용 가능: {', '.join(TIMEFRAMES)}")
        period, interval = TIMEFRAMES[timeframe]

        def fetch() -> list[PricePoint]:
            df = yf.Ticker(symbol).history(period=period, interval=interval, actions=False)
            if df.empty:
                logger.warning(f"No data found for {symbol}")
                return []
            return to_price_points(self._normalize(df).tail(limit))

        return self._with_retries(f"{symbol} {timeframe} history", fetch)

    def get_assets(self) -> list[Asset]:
        """설정된 종목 목록의 시세. 조회 실패 종목은 제외."""
        assets = []
        for symbol in self.symbols:
            try:
                assets.append(self.get_current_price(symbol))
            except (ExternalServiceError, NotFoundError) as e:
                logger.warning(f"{symbol} 종목 정보 조회 실패, 제외: {e.message}")
        return assets

    @staticmethod
    def _normalize(df: pd.DataFrame) -> pd.DataFrame:
        """yfinance history → [timestamp, open, high, low, close, volume]."""
        df = df.reset_index()
        df = df.rename(columns={
            "Date": "timestamp",
            "Datetime": "timestamp",
            "Open": "open",
            "High": "high",
            "Low": "low",
            "Close": "close",
            "Volume": "volume",
        })
        df = df[["timestamp", "open", "high", "low", "close", "volume"]]
        df = df.dropna(subset=["close"])
        return df.sort_values("timestamp", kind="stable").reset_index(drop=True)

    @staticmethod
    def _to_asset(symbol: str, info: dict[str, Any]) -> Asset:
        price = _safe_float(info.get("regularMarketPrice") or info.get("previousClose")) or 0.0
        change = _safe_float(info.get("regularMarketChangePercent"))
        if change is None:
            previous = _safe_float(info.get("previousClose"))
            change = (price - previous) / previous * 100 if previous else 0.0

        return Asset(
            symbol=symbol,
            name=info.get("shortName") or info.get("longName") or symbol,
            current_price=price,
            price_change_percentage_24h=change,
            market_cap=_safe_float(info.get("marketCap")) or 0.0,
            volume_24h=_safe_float(info.get("volume24Hr") or info.get("volume")) or 0.0,
            circulating_supply=_safe_float(info.get("circulatingSupply")) or 0.0,
            total_supply=_safe_float(info.get("totalSupply")),
            max_supply=_safe_float(info.get("maxSupply")),
            last_updated=datetime.now(timezone.utc),
        )
