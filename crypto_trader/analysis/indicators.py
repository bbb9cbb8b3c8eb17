"""
기술적 지표 계산 모듈.

[ 역할 ]
    가격 이력(OHLCV)을 받아 이동평균/RSI/MACD/교차/지지·저항을 계산.
    모든 함수는 순수 함수(I/O 없음, 입력 변경 없음)이며 빈 입력에도 예외를 던지지 않는다.

[ 계산하는 지표 ]
    - SMA(n)   : 최근 n개 종가 평균 (데이터가 n개 미만이면 전체 평균)
    - EMA(n)   : 처음 n개 평균을 시드로, 이후 종가마다 (close - ema) * 2/(n+1) + ema
    - RSI(n)   : 최근 n개 변화량의 평균 상승/평균 하락 (데이터 n개 이하면 50)
    - MACD     : EMA12 - EMA26, 시그널은 최근 MACD 값들의 EMA9
    - 골든/데드 크로스 : SMA50/SMA200 대소 관계가 직전 시점 대비 뒤집혔는지
    - 지지/저항 : 최근 14개 봉의 최저가 / 최고가

[ 호출하는 곳 ]
    - analysis/recommendation.py::RecommendationService.evaluate_asset()
      → compute_indicators() → analysis/signal.py로 전달

[ 단일 봉 입력 ]
    SMA/EMA = 해당 종가, RSI = 50, MACD = 0, 교차 없음, 지지/저항 = 해당 저가/고가
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from crypto_trader.core.market_data import PriceSeries, to_frame
from crypto_trader.utils.config import IndicatorConfig

NEUTRAL_RSI = 50.0


@dataclass
class IndicatorValues:
    """compute_indicators()의 반환값. 한 시점의 지표 스냅샷."""
    last_close: float = 0.0
    sma_short: float = 0.0        # SMA(50)
    sma_long: float = 0.0         # SMA(200)
    ema: float = 0.0              # EMA(20)
    golden_cross: bool = False
    death_cross: bool = False
    rsi: float = NEUTRAL_RSI
    macd: float = 0.0
    macd_signal: float = 0.0
    macd_histogram: float = 0.0
    support_level: float = 0.0
    resistance_level: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_array(values: Sequence[float] | np.ndarray | pd.Series) -> np.ndarray:
    return np.asarray(values, dtype=float)


def sma(values: Sequence[float] | np.ndarray | pd.Series, period: int) -> float:
    """단순 이동평균. 데이터가 period개 미만이면 전체 평균."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    period = max(int(period), 1)
    if arr.size < period:
        return float(arr.mean())
    return float(arr[-period:].mean())


def ema(values: Sequence[float] | np.ndarray | pd.Series, period: int) -> float:
    """지수 이동평균. 시간순으로 한 번만 순회한다."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    period = max(int(period), 1)
    if arr.size < period:
        return float(arr.mean())

    value = float(arr[:period].mean())
    multiplier = 2.0 / (period + 1)
    for close in arr[period:]:
        value = (float(close) - value) * multiplier + value
    return value


def rsi(values: Sequence[float] | np.ndarray | pd.Series, period: int = 14) -> float:
    """상대강도지수. 결과는 항상 [0, 100]."""
    arr = _as_array(values)
    period = max(int(period), 1)
    if arr.size <= period:
        return NEUTRAL_RSI

    deltas = np.diff(arr)[-period:]
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas > 0, 0.0, np.abs(deltas))

    avg_gain = float(gains.mean())
    avg_loss = float(losses.mean())
    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    values: Sequence[float] | np.ndarray | pd.Series,
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
) -> tuple[float, float, float]:
    """MACD 라인, 시그널 라인, 히스토그램.

    시그널 라인은 마지막 signal_period개 시점(데이터가 짧으면 가능한 만큼)의
    MACD 값에 ema()를 적용한 값이다. 길이가 signal_period 이하이므로
    결과적으로 최근 MACD 값들의 평균과 같다.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0, 0.0, 0.0

    line = ema(arr, fast) - ema(arr, slow)

    start = max(1, arr.size - signal_period + 1)
    history = [ema(arr[:end], fast) - ema(arr[:end], slow) for end in range(start, arr.size + 1)]
    signal = ema(history, signal_period)
    return line, signal, line - signal


def detect_cross(
    values: Sequence[float] | np.ndarray | pd.Series,
    short_period: int = 50,
    long_period: int = 200,
) -> tuple[bool, bool]:
    """(골든 크로스, 데드 크로스). 둘이 동시에 True가 되는 경우는 없다."""
    arr = _as_array(values)
    if arr.size < 2:
        return False, False

    current_short, current_long = sma(arr, short_period), sma(arr, long_period)
    previous = arr[:-1]
    previous_short, previous_long = sma(previous, short_period), sma(previous, long_period)

    golden = current_short > current_long and previous_short <= previous_long
    death = current_short < current_long and previous_short >= previous_long
    return golden, death


def support_level(df: pd.DataFrame, window: int = 14) -> float:
    """최근 window개 봉의 최저가."""
    if df.empty:
        return 0.0
    return float(df["low"].astype(float).tail(window).min())


def resistance_level(df: pd.DataFrame, window: int = 14) -> float:
    """최근 window개 봉의 최고가."""
    if df.empty:
        return 0.0
    return float(df["high"].astype(float).tail(window).max())


def compute_indicators(
    history: PriceSeries,
    config: Optional[IndicatorConfig] = None,
) -> IndicatorValues:
    """가격 이력 전체에서 지표 스냅샷 계산.

    Args:
        history: PricePoint 목록 또는 OHLCV DataFrame (시간 오름차순)
        config: 지표 기간 설정 (None이면 기본값)
    """
    config = config or IndicatorConfig()
    df = to_frame(history)
    if df.empty:
        return IndicatorValues()

    closes = df["close"].to_numpy(dtype=float)
    golden, death = detect_cross(closes, config.sma_short_period, config.sma_long_period)
    macd_line, macd_signal, macd_hist = macd(
        closes, config.macd_fast, config.macd_slow, config.macd_signal
    )

    return IndicatorValues(
        last_close=float(closes[-1]),
        sma_short=sma(closes, config.sma_short_period),
        sma_long=sma(closes, config.sma_long_period),
        ema=ema(closes, config.ema_period),
        golden_cross=golden,
        death_cross=death,
        rsi=rsi(closes, config.rsi_period),
        macd=macd_line,
        macd_signal=macd_signal,
        macd_histogram=macd_hist,
        support_level=support_level(df, config.support_resistance_window),
        resistance_level=resistance_level(df, config.support_resistance_window),
    )
