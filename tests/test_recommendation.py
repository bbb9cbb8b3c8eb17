"""Tests for the recommendation service."""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pytest

from conftest import NOW, make_frame, make_points
from crypto_trader.analysis.recommendation import (
    TIMING_WINDOW,
    RecommendationCriteria,
    RecommendationService,
    rank_assets,
)
from crypto_trader.analysis.signal import AssetRecommendation, RecommendationType
from crypto_trader.core.exceptions import NotFoundError, TradingError
from crypto_trader.core.market_data import Asset


class TestRankAssets:
    """Tests for rank_assets()."""

    @pytest.mark.parametrize(
        "criteria,expected",
        [
            (RecommendationCriteria.MARKET_CAP, ["BTC", "ETH", "SOL"]),
            (RecommendationCriteria.PERFORMANCE_24H, ["SOL", "BTC", "ETH"]),
            (RecommendationCriteria.VOLUME, ["ETH", "BTC", "SOL"]),
        ],
    )
    def test_ranking(self, market_data, criteria, expected):
        ranked = rank_assets(market_data.get_assets(), criteria)
        assert [a.symbol for a in ranked] == expected

    def test_count_limits_result(self, market_data):
        assert len(rank_assets(market_data.get_assets(), count=2)) == 2


class TestAnalyzeAsset:
    """Tests for evaluate_asset() / analyze_asset()."""

    def test_uptrend_recommendation(self):
        service = RecommendationService()
        closes = np.linspace(100, 130, 60)
        rec = service.analyze_asset(Asset(symbol="BTC", current_price=130.0), make_points(closes), NOW)

        assert isinstance(rec, AssetRecommendation)
        assert rec.asset.symbol == "BTC"
        assert 0.3 <= rec.confidence_score <= 0.9
        assert 0.2 <= rec.risk_level <= 0.9
        assert rec.generated_at == NOW

    def test_deterministic(self):
        service = RecommendationService()
        history = make_points(np.random.default_rng(3).normal(100, 5, 120))
        assert service.evaluate_asset("BTC", history, NOW) == service.evaluate_asset("BTC", history, NOW)

    def test_empty_history_is_hold(self):
        signals = RecommendationService().evaluate_asset("BTC", [], NOW)
        assert signals.rsi == 50.0
        assert signals.overall_signal == RecommendationType.HOLD

    def test_fetches_history_from_provider(self, market_data):
        signals = RecommendationService(market_data).get_technical_signals("BTC", NOW)
        assert signals.symbol == "BTC"
        assert signals.last_close == pytest.approx(100.0)


class TestBatchRecommend:
    """Tests for recommend() / top_recommendations()."""

    def test_failing_asset_is_skipped(self):
        service = RecommendationService()
        assets = [Asset(symbol="BTC", current_price=100.0), Asset(symbol="BAD"), Asset(symbol="ETH", current_price=50.0)]
        histories = {
            "BTC": make_points(np.linspace(90, 100, 30)),
            "ETH": make_points(np.linspace(60, 50, 30)),
        }

        recs = service.recommend(assets, histories, NOW)

        assert [r.asset.symbol for r in recs] == ["BTC", "ETH"]

    def test_provider_failure_is_skipped(self, market_data):
        market_data.fail_symbols.add("ETH")
        recs = RecommendationService(market_data).top_recommendations(3, now=NOW)
        assert [r.asset.symbol for r in recs] == ["BTC", "SOL"]

    def test_top_recommendations_by_volume(self, market_data):
        recs = RecommendationService(market_data).top_recommendations(
            2, RecommendationCriteria.VOLUME, NOW
        )
        assert [r.asset.symbol for r in recs] == ["ETH", "BTC"]

    def test_personalized_uses_market_cap(self, market_data):
        recs = RecommendationService(market_data).personalized_recommendations("user-1", 1, NOW)
        assert [r.asset.symbol for r in recs] == ["BTC"]

    def test_requires_provider(self):
        with pytest.raises(TradingError):
            RecommendationService().top_recommendations()


class TestTiming:
    """Tests for best_buy_timing() / best_sell_timing()."""

    def _recent(self, closes):
        frame = make_frame(closes).tail(TIMING_WINDOW)
        return frame

    def test_buy_timing_next_monday(self, market_data):
        timing = RecommendationService(market_data).best_buy_timing("BTC", NOW)

        recent = self._recent(np.linspace(80, 100, 60))
        avg, low = recent["close"].mean(), recent["low"].min()
        assert timing.optimal_time == datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)
        assert timing.expected_price == pytest.approx(low + (avg - low) * 0.8)
        assert timing.confidence_score == 0.7
        assert timing.supporting_factors

    def test_sell_timing_same_day_on_wednesday(self, market_data):
        timing = RecommendationService(market_data).best_sell_timing("BTC", NOW)

        recent = self._recent(np.linspace(80, 100, 60))
        avg, high = recent["close"].mean(), recent["high"].max()
        assert timing.optimal_time == datetime(2024, 6, 5, 15, 0, tzinfo=timezone.utc)
        assert timing.expected_price == pytest.approx(avg + (high - avg) * 0.7)
        assert timing.confidence_score == 0.65

    def test_sell_timing_on_friday_moves_to_wednesday(self, market_data):
        friday = datetime(2024, 6, 7, 10, 0, tzinfo=timezone.utc)
        timing = RecommendationService(market_data).best_sell_timing("BTC", friday)
        assert timing.optimal_time == datetime(2024, 6, 12, 15, 0, tzinfo=timezone.utc)

    def test_no_history(self, market_data):
        with pytest.raises(NotFoundError):
            RecommendationService(market_data).best_buy_timing("DOGE", NOW)
