"""
매매 추천 서비스.

[ 역할 ]
    지표 계산(indicators.py) → 시그널 합성(signal.py)을 종목 목록에 적용하여
    순위가 매겨진 추천 목록을 만든다. 외부 API 계층이 호출하는 진입점.

[ 제공 기능 ]
    evaluate_asset()   : 가격 이력 → TechnicalSignals (순수 계산)
    analyze_asset()    : 종목 1개 추천 (실패 시 예외를 그대로 전달)
    recommend()        : 순위 목록 일괄 추천 (실패 종목은 스킵, 재시도 없음)
    top_recommendations() / personalized_recommendations()
                       : MarketDataProvider에서 종목을 가져와 기준별 순위 후 추천
    best_buy_timing() / best_sell_timing()
                       : 요일 휴리스틱 + 최근 24개 봉 기반 매매 시점 추천

[ 의존성 ]
    - core/market_data.py::MarketDataProvider (가격 이력이 주어지지 않을 때 조회)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Mapping, Optional

from crypto_trader.analysis.indicators import compute_indicators
from crypto_trader.analysis.signal import (
    AssetRecommendation,
    TechnicalSignals,
    build_technical_signals,
    synthesize,
)
from crypto_trader.core.exceptions import NotFoundError, TradingError
from crypto_trader.core.market_data import Asset, MarketDataProvider, PriceSeries, to_frame
from crypto_trader.utils.config import Config

logger = logging.getLogger("crypto_trader.recommendation")

TIMING_WINDOW = 24   # 시점 추천에 쓰는 최근 봉 개수


class RecommendationCriteria(Enum):
    """종목 순위 기준."""
    MARKET_CAP = "market_cap"
    PERFORMANCE_24H = "performance_24h"
    VOLUME = "volume"


_CRITERIA_KEYS = {
    RecommendationCriteria.MARKET_CAP: lambda a: a.market_cap,
    RecommendationCriteria.PERFORMANCE_24H: lambda a: a.price_change_percentage_24h,
    RecommendationCriteria.VOLUME: lambda a: a.volume_24h,
}


@dataclass
class TimingRecommendation:
    """매수/매도 시점 추천."""
    symbol: str
    optimal_time: datetime
    reasoning: str
    expected_price: float
    confidence_score: float
    supporting_factors: list[str] = field(default_factory=list)


def rank_assets(
    assets: list[Asset],
    criteria: RecommendationCriteria = RecommendationCriteria.MARKET_CAP,
    count: Optional[int] = None,
) -> list[Asset]:
    """기준값 내림차순 정렬 후 상위 count개."""
    ranked = sorted(assets, key=_CRITERIA_KEYS[criteria], reverse=True)
    return ranked if count is None else ranked[:count]


class RecommendationService:
    """추천 서비스.

    사용 예:
        service = RecommendationService(provider, config)
        recs = service.recommend(ranked_assets, {"BTC-USD": history})
    """

    def __init__(
        self,
        market_data: Optional[MarketDataProvider] = None,
        config: Optional[Config] = None,
    ):
        self.market_data = market_data
        self.config = config or Config()

    # ─── 단일 종목 ─────────────────────────────────────────────────────────

    def evaluate_asset(
        self,
        symbol: str,
        history: PriceSeries,
        now: Optional[datetime] = None,
    ) -> TechnicalSignals:
        """가격 이력으로 기술적 시그널 계산."""
        values = compute_indicators(history, self.config.indicators)
        return build_technical_signals(symbol, values, now)

    def analyze_asset(
        self,
        asset: Asset,
        history: PriceSeries,
        now: Optional[datetime] = None,
    ) -> AssetRecommendation:
        """종목 1개 추천 생성."""
        signals = self.evaluate_asset(asset.symbol, history, now)
        return synthesize(
            asset,
            signals,
            macd_divergence_threshold=self.config.recommendation.macd_divergence_threshold,
            now=now,
        )

    def get_technical_signals(self, symbol: str, now: Optional[datetime] = None) -> TechnicalSignals:
        """MarketDataProvider에서 이력을 조회하여 시그널 계산."""
        return self.evaluate_asset(symbol, self._fetch_history(symbol), now)

    # ─── 일괄 추천 ─────────────────────────────────────────────────────────

    def recommend(
        self,
        ranked_assets: list[Asset],
        histories: Optional[Mapping[str, PriceSeries]] = None,
        now: Optional[datetime] = None,
    ) -> list[AssetRecommendation]:
        """순위 순서를 유지한 추천 목록. 실패한 종목은 건너뛴다.

        Args:
            ranked_assets: 외부에서 순위가 매겨진 종목 목록
            histories: {symbol: 가격 이력}. None이면 MarketDataProvider에서 조회
        """
        recommendations: list[AssetRecommendation] = []
        for asset in ranked_assets:
            try:
                if histories is not None:
                    history = histories[asset.symbol]
                else:
                    history = self._fetch_history(asset.symbol)
                recommendations.append(self.analyze_asset(asset, history, now))
            except Exception as e:
                logger.warning(f"{asset.symbol} 추천 생성 실패, 스킵: {e}")
        logger.info(f"추천 생성 완료: {len(recommendations)}/{len(ranked_assets)}개 종목")
        return recommendations

    def top_recommendations(
        self,
        count: Optional[int] = None,
        criteria: RecommendationCriteria = RecommendationCriteria.MARKET_CAP,
        now: Optional[datetime] = None,
    ) -> list[AssetRecommendation]:
        """기준별 상위 종목 추천."""
        provider = self._require_provider()
        count = count or self.config.recommendation.top_count
        ranked = rank_assets(provider.get_assets(), criteria, count)
        return self.recommend(ranked, now=now)

    def personalized_recommendations(
        self,
        user_id: str,
        count: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[AssetRecommendation]:
        """사용자 맞춤 추천. 현재는 시가총액 상위 종목 추천과 같다."""
        logger.debug(f"{user_id} 맞춤 추천: 시가총액 기준 사용")
        return self.top_recommendations(count, RecommendationCriteria.MARKET_CAP, now)

    # ─── 매매 시점 ─────────────────────────────────────────────────────────

    def best_buy_timing(self, symbol: str, now: Optional[datetime] = None) -> TimingRecommendation:
        """다음 월요일 09:00 매수 추천. 기대가 = 최저가 + (평균 - 최저가) * 0.8."""
        now = now or datetime.now(timezone.utc)
        recent = self._recent_window(symbol)
        avg_close = float(recent["close"].mean())
        min_low = float(recent["low"].min())

        days_until_monday = (7 - now.weekday()) % 7
        optimal = now.replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=days_until_monday)

        return TimingRecommendation(
            symbol=symbol,
            optimal_time=optimal,
            reasoning="월요일 오전은 거래가 상대적으로 한산하여 유리한 매수 기회가 생기기 쉽습니다.",
            expected_price=min_low + (avg_close - min_low) * 0.8,
            confidence_score=0.7,
            supporting_factors=[
                "최근 가격 추세 분석",
                "주간 거래 패턴",
                "거래량이 적은 시간대의 낮은 변동성",
            ],
        )

    def best_sell_timing(self, symbol: str, now: Optional[datetime] = None) -> TimingRecommendation:
        """수/목요일 15:00 매도 추천. 기대가 = 평균 + (최고가 - 평균) * 0.7."""
        now = now or datetime.now(timezone.utc)
        recent = self._recent_window(symbol)
        avg_close = float(recent["close"].mean())
        max_high = float(recent["high"].max())

        # 수(2)/목(3)이면 당일, 아니면 다음 수요일
        days_ahead = 0 if now.weekday() in (2, 3) else (2 - now.weekday()) % 7
        optimal = now.replace(hour=15, minute=0, second=0, microsecond=0) + timedelta(days=days_ahead)

        return TimingRecommendation(
            symbol=symbol,
            optimal_time=optimal,
            reasoning="수·목요일 오후는 거래가 활발하여 유리한 매도 기회가 생기기 쉽습니다.",
            expected_price=avg_close + (max_high - avg_close) * 0.7,
            confidence_score=0.65,
            supporting_factors=[
                "최근 가격 추세 분석",
                "주간 거래 패턴",
                "거래량이 많은 시간대의 높은 변동성",
            ],
        )

    # ─── 내부 ─────────────────────────────────────────────────────────────

    def _require_provider(self) -> MarketDataProvider:
        if self.market_data is None:
            raise TradingError("MarketDataProvider가 설정되지 않았습니다")
        return self.market_data

    def _fetch_history(self, symbol: str):
        cfg = self.config.recommendation
        return self._require_provider().get_price_history(
            symbol, cfg.history_timeframe, cfg.history_limit
        )

    def _recent_window(self, symbol: str):
        cfg = self.config.recommendation
        history = self._require_provider().get_price_history(
            symbol, cfg.timing_timeframe, cfg.timing_limit
        )
        df = to_frame(history)
        if df.empty:
            raise NotFoundError("price_history", symbol)
        return df.tail(TIMING_WINDOW)
