"""
전략 실행/추천 스크립트 (시스템 진입점).

[ 사용법 ]
    # 등록된 전략 종류 확인
    python run_engine.py --list

    # 샘플 데이터로 매매 추천
    python run_engine.py recommend
    python run_engine.py recommend --criteria volume --count 3

    # Yahoo Finance 시세로 추천
    python run_engine.py recommend --source yahoo

    # 샘플 전략(DCA + 익절/손절)을 실행 주기에 맞춰 반복 실행
    python run_engine.py execute --rounds 3
"""

import argparse
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pandas as pd

from crypto_trader.analysis.recommendation import RecommendationCriteria, RecommendationService
from crypto_trader.brokers.mock_broker import MockBroker, MockMarketDataProvider
from crypto_trader.core.market_data import Asset, MarketDataProvider
from crypto_trader.core.trading_strategy import Strategy, StrategyStatus, StrategyType
from crypto_trader.data.memory_store import InMemoryStrategyStore, InMemoryTransactionStore
from crypto_trader.data.yahoo_provider import YahooFinanceDataProvider
from crypto_trader.engine.executor import StrategyEngine, summarize_results
from crypto_trader.strategies import list_strategy_types
from crypto_trader.utils.config import Config
from crypto_trader.utils.logger import setup_logger

SAMPLE_ASSETS = {
    # symbol: (초기 가격, 시가총액, 변동성)
    "BTC-USD": (60000.0, 1.2e12, 0.03),
    "ETH-USD": (3000.0, 3.6e11, 0.04),
    "SOL-USD": (150.0, 6.5e10, 0.06),
    "XRP-USD": (0.6, 3.3e10, 0.05),
}


def generate_sample_data(
    symbol: str,
    end: datetime,
    periods: int = 250,
    initial_price: float = 60000.0,
    volatility: float = 0.03,
) -> pd.DataFrame:
    """샘플 일봉 데이터 생성 (종목별 고정 시드)."""
    rng = np.random.default_rng(sum(map(ord, symbol)))

    timestamps = pd.date_range(end=end, periods=periods, freq="D")
    returns = rng.normal(0.001, volatility, periods)
    closes = initial_price * np.cumprod(1 + returns)

    return pd.DataFrame({
        "timestamp": timestamps,
        "open": closes * (1 + rng.normal(0, 0.005, periods)),
        "high": closes * (1 + np.abs(rng.normal(0, 0.01, periods))),
        "low": closes * (1 - np.abs(rng.normal(0, 0.01, periods))),
        "close": closes,
        "volume": rng.lognormal(20, 1, periods),
    })


def build_sample_provider(now: datetime) -> MockMarketDataProvider:
    """샘플 종목을 로드한 Mock 시세 제공자."""
    provider = MockMarketDataProvider()
    for symbol, (price, market_cap, volatility) in SAMPLE_ASSETS.items():
        df = generate_sample_data(symbol, now, initial_price=price, volatility=volatility)
        last, prev = df["close"].iloc[-1], df["close"].iloc[-2]
        provider.load_data(symbol, df, Asset(
            symbol=symbol,
            name=symbol.split("-")[0],
            current_price=float(last),
            price_change_percentage_24h=float((last - prev) / prev * 100),
            market_cap=market_cap,
            volume_24h=float(df["volume"].iloc[-1]),
            last_updated=now,
        ))
    return provider


def load_provider(config: Config, source: str, now: datetime) -> MarketDataProvider:
    if source == "yahoo":
        print("Yahoo Finance 시세 사용")
        return YahooFinanceDataProvider(SAMPLE_ASSETS.keys(), config.data_source)
    print("샘플 데이터 생성 중...")
    return build_sample_provider(now)


def run_recommend(config: Config, provider: MarketDataProvider, criteria: str, count: int | None):
    """상위 종목 추천 출력."""
    service = RecommendationService(provider, config)
    recommendations = service.top_recommendations(count, RecommendationCriteria(criteria))

    print(f"\n{'=' * 70}")
    print(f"매매 추천 ({criteria} 기준)")
    print(f"{'=' * 70}")
    for rec in recommendations:
        exit_str = f"{rec.suggested_exit_price:,.2f}" if rec.suggested_exit_price is not None else "-"
        print(
            f"{rec.asset.symbol:<10} {rec.type.value:<12} 신뢰도 {rec.confidence_score:.2f}  "
            f"위험도 {rec.risk_level:.2f}  진입 {rec.suggested_entry_price:,.2f}  "
            f"청산 {exit_str}  보유 {rec.suggested_holding_period.days}일"
        )
        print(f"           {rec.reasoning}")


def sample_strategies(now: datetime) -> list[Strategy]:
    """샘플 전략: 하루 주기 DCA + 한 시간 주기 익절/손절."""
    return [
        Strategy(
            id="dca-1",
            user_id="demo",
            type=StrategyType.DCA,
            name="BTC/ETH 적립",
            status=StrategyStatus.ACTIVE,
            asset_symbols=["BTC-USD", "ETH-USD"],
            max_investment_amount=1000.0,
            execution_frequency_minutes=24 * 60,
        ),
        Strategy(
            id="tpsl-1",
            user_id="demo",
            type=StrategyType.TAKE_PROFIT_STOP_LOSS,
            name="BTC/ETH 익절 5% 손절 3%",
            status=StrategyStatus.ACTIVE,
            asset_symbols=["BTC-USD", "ETH-USD"],
            take_profit_percentage=5.0,
            stop_loss_percentage=3.0,
            execution_frequency_minutes=60,
        ),
    ]


def run_execute(config: Config, provider: MarketDataProvider, rounds: int, now: datetime):
    """샘플 전략을 하루 간격으로 rounds회 실행하고 결과 출력."""
    broker = MockBroker(config.broker.commission_rate, config.broker.slippage_rate)
    transactions = InMemoryTransactionStore()
    strategies = InMemoryStrategyStore(sample_strategies(now))
    engine = StrategyEngine(provider, broker, transactions, strategies, config)

    all_results = []
    for i in range(rounds):
        tick = now + timedelta(days=i)
        for asset in provider.get_assets():
            # 매 라운드 가격을 조금씩 움직인다
            price = asset.current_price * (1 + 0.04 * np.sin(i + len(asset.symbol)))
            broker.set_price(asset.symbol, price)
            if isinstance(provider, MockMarketDataProvider):
                provider.set_price(asset.symbol, price)

        print(f"\n--- 라운드 {i + 1} ({tick:%Y-%m-%d %H:%M}) ---")
        results = engine.run_due_strategies(tick)
        for r in sorted(results, key=lambda r: r.strategy_id):
            print(f"  [{r.strategy_id}] 성공={r.success} 거래={len(r.transactions)} {r.message}")
        all_results.extend(results)

    print()
    print(summarize_results(all_results).summary())

    print("\n보유 현황:")
    prices = {a.symbol: a.current_price for a in provider.get_assets()}
    for p in engine.ledger.portfolio("demo", prices):
        print(
            f"  {p.symbol:<10} {p.quantity:.6f}개  평균 {p.average_buy_price:,.2f}  "
            f"평가 {p.value:,.2f}  손익 {p.unrealized_profit:+,.2f} ({p.unrealized_profit_rate:+.2f}%)"
        )


def main():
    parser = argparse.ArgumentParser(description="암호화폐 전략 실행 / 매매 추천")
    parser.add_argument("mode", nargs="?", default="recommend", choices=["recommend", "execute"], help="실행 모드")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--source", type=str, default="sample", choices=["sample", "yahoo"], help="시세 데이터 소스")
    parser.add_argument("--criteria", type=str, default="market_cap", choices=[c.value for c in RecommendationCriteria], help="추천 순위 기준")
    parser.add_argument("--count", type=int, default=None, help="추천 종목 수")
    parser.add_argument("--rounds", type=int, default=3, help="execute 모드 반복 횟수 (하루 간격)")
    parser.add_argument("--list", action="store_true", help="등록된 전략 종류 출력")
    args = parser.parse_args()

    if args.list:
        print("등록된 전략 종류:")
        for name in list_strategy_types():
            print(f"  - {name}")
        return

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    provider = load_provider(config, args.source, now)

    if args.mode == "recommend":
        run_recommend(config, provider, args.criteria, args.count)
    else:
        if args.source != "sample":
            print("execute 모드는 샘플 데이터만 지원합니다.")
            return
        run_execute(config, provider, args.rounds, now)


if __name__ == "__main__":
    main()
