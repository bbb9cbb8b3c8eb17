"""Tests for signal synthesis and recommendation values."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW
from crypto_trader.analysis.indicators import IndicatorValues
from crypto_trader.analysis.signal import (
    RecommendationType,
    TechnicalSignals,
    build_technical_signals,
    confidence_score,
    determine_overall_signal,
    potential_return,
    risk_level,
    synthesize,
)
from crypto_trader.core.market_data import Asset


def make_signals(
    overall: RecommendationType = RecommendationType.HOLD,
    rsi: float = 50.0,
    macd: float = 0.0,
    macd_signal: float = 0.0,
    golden_cross: bool = False,
    death_cross: bool = False,
    support: float = 90.0,
    resistance: float = 110.0,
    last_close: float = 100.0,
) -> TechnicalSignals:
    return TechnicalSignals(
        symbol="BTC",
        timestamp=NOW,
        sma50=100.0,
        sma200=100.0,
        ema20=100.0,
        golden_cross=golden_cross,
        death_cross=death_cross,
        rsi=rsi,
        macd=macd,
        macd_signal=macd_signal,
        macd_histogram=macd - macd_signal,
        support_level=support,
        resistance_level=resistance,
        overall_signal=overall,
        signal_description="",
        last_close=last_close,
    )


class TestOverallSignal:
    """Tests for determine_overall_signal() rule order."""

    def test_strong_buy_wins_over_buy(self):
        """Golden cross with bullish MACD also satisfies the buy rule but resolves to strong buy."""
        assert determine_overall_signal(50, 1.0, 0.5, True, False) == RecommendationType.STRONG_BUY

    def test_buy(self):
        assert determine_overall_signal(55, 1.0, 0.5, False, False) == RecommendationType.BUY

    def test_buy_rule_is_checked_before_death_cross(self):
        assert determine_overall_signal(50, 1.0, 0.5, False, True) == RecommendationType.BUY

    def test_death_cross_is_strong_sell(self):
        assert determine_overall_signal(65, 1.0, 0.5, False, True) == RecommendationType.STRONG_SELL

    def test_overbought_with_bearish_macd_is_strong_sell(self):
        assert determine_overall_signal(75, 0.2, 0.5, False, False) == RecommendationType.STRONG_SELL

    def test_sell(self):
        assert determine_overall_signal(65, 0.2, 0.5, False, False) == RecommendationType.SELL

    def test_hold(self):
        assert determine_overall_signal(50, 0.2, 0.5, False, False) == RecommendationType.HOLD

    def test_golden_cross_when_overbought_is_not_strong_buy(self):
        assert determine_overall_signal(72, 1.0, 0.5, True, False) == RecommendationType.HOLD


class TestTechnicalSignals:
    """Tests for build_technical_signals()."""

    def test_maps_indicator_values(self):
        values = IndicatorValues(
            last_close=100.0, sma_short=95.0, sma_long=90.0, ema=98.0,
            golden_cross=True, rsi=25.0, macd=2.0, macd_signal=1.0, macd_histogram=1.0,
            support_level=92.0, resistance_level=105.0,
        )
        signals = build_technical_signals("BTC", values, NOW)

        assert signals.symbol == "BTC"
        assert signals.timestamp == NOW
        assert signals.sma50 == 95.0 and signals.sma200 == 90.0 and signals.ema20 == 98.0
        assert signals.overall_signal == RecommendationType.STRONG_BUY
        assert signals.signal_description.startswith("강한 매수 신호")
        assert "골든 크로스" in signals.signal_description
        assert "과매도" in signals.signal_description

    def test_description_mentions_bearish_momentum(self):
        values = IndicatorValues(rsi=80.0, macd=-1.0, macd_signal=0.0)
        signals = build_technical_signals("ETH", values, NOW)
        assert signals.overall_signal == RecommendationType.STRONG_SELL
        assert "과매수" in signals.signal_description
        assert "하락 모멘텀" in signals.signal_description


class TestConfidence:
    """Tests for confidence_score()."""

    def test_base(self):
        assert confidence_score(make_signals()) == pytest.approx(0.5)

    def test_all_bonuses(self):
        signals = make_signals(rsi=20.0, macd=2.0, macd_signal=0.0, golden_cross=True)
        assert confidence_score(signals) == pytest.approx(0.9)

    def test_divergence_threshold_is_configurable(self):
        signals = make_signals(macd=0.8, macd_signal=0.0)
        assert confidence_score(signals, 0.5) == pytest.approx(0.6)
        assert confidence_score(signals, 1.0) == pytest.approx(0.5)

    def test_rsi_at_boundary_gets_no_bonus(self):
        assert confidence_score(make_signals(rsi=70.0)) == pytest.approx(0.5)
        assert confidence_score(make_signals(rsi=30.0)) == pytest.approx(0.5)


class TestRiskAndReturn:
    """Tests for risk_level() / potential_return()."""

    def test_buy_risk_is_clamped_high(self):
        signals = make_signals(RecommendationType.BUY, support=50.0)
        assert risk_level(signals, 100.0) == pytest.approx(0.9)

    def test_buy_risk_is_clamped_low(self):
        signals = make_signals(RecommendationType.BUY, support=200.0)
        assert risk_level(signals, 100.0) == pytest.approx(0.2)

    def test_sell_risk_uses_resistance(self):
        signals = make_signals(RecommendationType.SELL, resistance=105.0)
        assert risk_level(signals, 100.0) == pytest.approx(0.6)

    def test_hold_risk(self):
        assert risk_level(make_signals(), 100.0) == pytest.approx(0.5)

    def test_buy_return_to_resistance(self):
        signals = make_signals(RecommendationType.BUY, resistance=110.0)
        assert potential_return(signals, 100.0) == pytest.approx(10.0)

    def test_sell_return_to_support(self):
        signals = make_signals(RecommendationType.STRONG_SELL, support=90.0)
        assert potential_return(signals, 100.0) == pytest.approx(10.0)

    def test_zero_price_has_no_return(self):
        assert potential_return(make_signals(RecommendationType.BUY), 0.0) == 0.0


class TestSynthesize:
    """Tests for synthesize()."""

    def test_strong_buy_low_risk(self):
        asset = Asset(symbol="BTC", current_price=100.0)
        signals = make_signals(RecommendationType.STRONG_BUY, support=110.0, resistance=120.0)

        rec = synthesize(asset, signals, now=NOW)

        assert rec.type == RecommendationType.STRONG_BUY
        assert rec.risk_level < 0.5
        assert rec.suggested_holding_period == timedelta(days=90)
        assert rec.suggested_entry_price == pytest.approx(110.0 * 1.02)
        assert rec.potential_return == pytest.approx(20.0)
        assert rec.suggested_exit_price == pytest.approx(110.0 * 1.02 * 1.2)
        assert rec.generated_at == NOW

    def test_buy_high_risk_holds_two_weeks(self):
        asset = Asset(symbol="BTC", current_price=100.0)
        rec = synthesize(asset, make_signals(RecommendationType.BUY, support=80.0), now=NOW)
        assert rec.suggested_holding_period == timedelta(days=14)

    def test_sell_has_no_exit_price(self):
        asset = Asset(symbol="ETH", current_price=100.0)
        rec = synthesize(asset, make_signals(RecommendationType.SELL, resistance=110.0), now=NOW)

        assert rec.suggested_entry_price == pytest.approx(110.0 * 0.98)
        assert rec.suggested_exit_price is None
        assert rec.suggested_holding_period == timedelta(days=1)

    def test_hold_enters_at_current_price(self):
        asset = Asset(symbol="SOL", current_price=100.0)
        rec = synthesize(asset, make_signals(), now=NOW)

        assert rec.suggested_entry_price == 100.0
        assert rec.suggested_exit_price is None
        assert rec.suggested_holding_period == timedelta(days=7)
        assert rec.potential_return == 0.0

    def test_missing_price_uses_last_close(self):
        asset = Asset(symbol="SOL", current_price=0.0)
        rec = synthesize(asset, make_signals(RecommendationType.BUY, resistance=110.0, last_close=100.0))
        assert rec.potential_return == pytest.approx(10.0)
