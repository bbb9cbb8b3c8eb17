"""
시그널 합성 모듈.

[ 역할 ]
    지표 스냅샷(IndicatorValues)을 종합 시그널(TechnicalSignals)로 바꾸고,
    종목 현재가와 합쳐 매매 추천(AssetRecommendation)을 만든다.
    규칙 테이블 기반이며 같은 입력이면 항상 같은 결과가 나온다.

[ 종합 시그널 규칙 (위에서부터 먼저 맞는 규칙 적용) ]
    1. 골든 크로스 + RSI < 70 + MACD > 시그널  → STRONG_BUY
    2. MACD > 시그널 + RSI < 60                → BUY
    3. 데드 크로스 또는 (RSI > 70 + MACD < 시그널) → STRONG_SELL
    4. MACD < 시그널 + RSI > 60                → SELL
    5. 그 외                                   → HOLD

[ 추천 값 계산 ]
    신뢰도     : 0.5 + RSI 극단(+0.1) + MACD 괴리(+0.1) + 교차(+0.2), [0.3, 0.9]
    기대 수익률 : 매수 → 저항선까지, 매도 → 지지선까지 (%)
    위험도     : 0.5 + 2 × 지지/저항까지 거리, [0.2, 0.9]
    보유 기간   : STRONG_BUY 90/30일, BUY 30/14일, HOLD 7일, 매도 1일
    진입가     : 매수 → 지지 × 1.02, 매도 → 저항 × 0.98, HOLD → 현재가
    목표가     : 매수 계열만 진입가 × (1 + 기대수익률/100)

[ 호출하는 곳 ]
    - analysis/recommendation.py::RecommendationService
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from crypto_trader.analysis.indicators import IndicatorValues
from crypto_trader.core.market_data import Asset

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
RSI_MOMENTUM_LIMIT = 60.0
DEFAULT_MACD_DIVERGENCE = 0.5


class RecommendationType(Enum):
    """종합 시그널 / 추천 종류."""
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"

    @property
    def is_buy_side(self) -> bool:
        return self in (RecommendationType.STRONG_BUY, RecommendationType.BUY)

    @property
    def is_sell_side(self) -> bool:
        return self in (RecommendationType.SELL, RecommendationType.STRONG_SELL)


@dataclass
class TechnicalSignals:
    """종목별 기술적 시그널. 요청마다 다시 계산되며 저장하지 않는다."""
    symbol: str
    timestamp: datetime
    sma50: float
    sma200: float
    ema20: float
    golden_cross: bool
    death_cross: bool
    rsi: float
    macd: float
    macd_signal: float
    macd_histogram: float
    support_level: float
    resistance_level: float
    overall_signal: RecommendationType
    signal_description: str
    last_close: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AssetRecommendation:
    """종목 매매 추천. 조회마다 새로 생성된다."""
    asset: Asset
    type: RecommendationType
    reasoning: str
    confidence_score: float
    potential_return: float        # %
    risk_level: float
    suggested_holding_period: timedelta
    suggested_entry_price: float
    suggested_exit_price: Optional[float] = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def determine_overall_signal(
    rsi: float,
    macd: float,
    macd_signal: float,
    golden_cross: bool,
    death_cross: bool,
) -> RecommendationType:
    """규칙 순서대로 평가하여 첫 번째로 맞는 시그널 반환."""
    if golden_cross and rsi < RSI_OVERBOUGHT and macd > macd_signal:
        return RecommendationType.STRONG_BUY

    if macd > macd_signal and rsi < RSI_MOMENTUM_LIMIT:
        return RecommendationType.BUY

    if death_cross or (rsi > RSI_OVERBOUGHT and macd < macd_signal):
        return RecommendationType.STRONG_SELL

    if macd < macd_signal and rsi > RSI_MOMENTUM_LIMIT:
        return RecommendationType.SELL

    return RecommendationType.HOLD


_SIGNAL_HEADLINES = {
    RecommendationType.STRONG_BUY: "강한 매수 신호: 여러 기술적 지표가 함께 긍정적입니다.",
    RecommendationType.BUY: "보통 매수 신호: 기술적 지표가 대체로 긍정적입니다.",
    RecommendationType.HOLD: "중립 신호: 지표가 엇갈리거나 뚜렷한 추세가 없습니다.",
    RecommendationType.SELL: "보통 매도 신호: 기술적 지표가 대체로 부정적입니다.",
    RecommendationType.STRONG_SELL: "강한 매도 신호: 여러 기술적 지표가 함께 부정적입니다.",
}


def describe_signal(
    overall: RecommendationType,
    rsi: float,
    macd: float,
    macd_signal: float,
    golden_cross: bool,
    death_cross: bool,
) -> str:
    """발생한 규칙 요소들로 설명 문장 조립. 첫 문장은 신호 강도."""
    parts = [_SIGNAL_HEADLINES[overall]]

    if golden_cross:
        parts.append("골든 크로스 발생 (SMA50이 SMA200 상향 돌파), 상승 추세 시작 가능성.")
    if death_cross:
        parts.append("데드 크로스 발생 (SMA50이 SMA200 하향 돌파), 하락 추세 시작 가능성.")

    if rsi < RSI_OVERSOLD:
        parts.append(f"RSI 낮음 ({rsi:.2f}), 과매도 구간.")
    elif rsi > RSI_OVERBOUGHT:
        parts.append(f"RSI 높음 ({rsi:.2f}), 과매수 구간.")

    if macd > macd_signal:
        parts.append("MACD가 시그널선 위, 상승 모멘텀.")
    else:
        parts.append("MACD가 시그널선 아래, 하락 모멘텀.")

    return " ".join(parts)


def build_technical_signals(
    symbol: str,
    values: IndicatorValues,
    now: Optional[datetime] = None,
) -> TechnicalSignals:
    """지표 스냅샷에 종합 시그널과 설명을 붙인다."""
    overall = determine_overall_signal(
        values.rsi, values.macd, values.macd_signal, values.golden_cross, values.death_cross
    )
    return TechnicalSignals(
        symbol=symbol,
        timestamp=now or datetime.now(timezone.utc),
        sma50=values.sma_short,
        sma200=values.sma_long,
        ema20=values.ema,
        golden_cross=values.golden_cross,
        death_cross=values.death_cross,
        rsi=values.rsi,
        macd=values.macd,
        macd_signal=values.macd_signal,
        macd_histogram=values.macd_histogram,
        support_level=values.support_level,
        resistance_level=values.resistance_level,
        overall_signal=overall,
        signal_description=describe_signal(
            overall, values.rsi, values.macd, values.macd_signal,
            values.golden_cross, values.death_cross,
        ),
        last_close=values.last_close,
    )


def confidence_score(
    signals: TechnicalSignals,
    macd_divergence_threshold: float = DEFAULT_MACD_DIVERGENCE,
) -> float:
    """신호 강도 기반 신뢰도."""
    score = 0.5

    if signals.rsi < RSI_OVERSOLD or signals.rsi > RSI_OVERBOUGHT:
        score += 0.1

    if abs(signals.macd - signals.macd_signal) > macd_divergence_threshold:
        score += 0.1

    if signals.golden_cross or signals.death_cross:
        score += 0.2

    return _clamp(score, 0.3, 0.9)


def potential_return(signals: TechnicalSignals, current_price: float) -> float:
    """지지/저항선까지의 거리로 기대 수익률(%) 추정."""
    if current_price <= 0:
        return 0.0

    if signals.overall_signal.is_buy_side:
        return (signals.resistance_level / current_price - 1) * 100
    if signals.overall_signal.is_sell_side:
        return (1 - signals.support_level / current_price) * 100
    return 0.0


def risk_level(signals: TechnicalSignals, current_price: float) -> float:
    """위험도. 매수는 지지선, 매도는 저항선과의 거리가 멀수록 높다."""
    risk = 0.5

    if signals.overall_signal.is_buy_side and signals.support_level > 0:
        risk += (current_price / signals.support_level - 1) * 2
    elif signals.overall_signal.is_sell_side and current_price > 0:
        risk += (signals.resistance_level / current_price - 1) * 2

    return _clamp(risk, 0.2, 0.9)


def holding_period(recommendation: RecommendationType, risk: float) -> timedelta:
    """추천 보유 기간."""
    if recommendation == RecommendationType.STRONG_BUY:
        return timedelta(days=90 if risk < 0.5 else 30)
    if recommendation == RecommendationType.BUY:
        return timedelta(days=30 if risk < 0.5 else 14)
    if recommendation.is_sell_side:
        return timedelta(days=1)
    return timedelta(days=7)


def entry_price(signals: TechnicalSignals, current_price: float) -> float:
    """추천 진입가."""
    if signals.overall_signal.is_buy_side:
        return signals.support_level * 1.02
    if signals.overall_signal.is_sell_side:
        return signals.resistance_level * 0.98
    return current_price


def exit_price(
    recommendation: RecommendationType,
    entry: float,
    expected_return: float,
) -> Optional[float]:
    """추천 목표가. 매수 계열에만 존재."""
    if not recommendation.is_buy_side:
        return None
    return entry * (1 + expected_return / 100)


def synthesize(
    asset: Asset,
    signals: TechnicalSignals,
    macd_divergence_threshold: float = DEFAULT_MACD_DIVERGENCE,
    now: Optional[datetime] = None,
) -> AssetRecommendation:
    """종목 + 시그널 → 추천. 종목 현재가가 없으면 마지막 종가를 사용."""
    current_price = asset.current_price if asset.current_price > 0 else signals.last_close
    recommendation = signals.overall_signal

    expected_return = potential_return(signals, current_price)
    risk = risk_level(signals, current_price)
    entry = entry_price(signals, current_price)

    return AssetRecommendation(
        asset=asset,
        type=recommendation,
        reasoning=signals.signal_description,
        confidence_score=confidence_score(signals, macd_divergence_threshold),
        potential_return=expected_return,
        risk_level=risk,
        suggested_holding_period=holding_period(recommendation, risk),
        suggested_entry_price=entry,
        suggested_exit_price=exit_price(recommendation, entry, expected_return),
        generated_at=now or datetime.now(timezone.utc),
    )
