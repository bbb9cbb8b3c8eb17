"""
전략 실행 엔진 모듈.

[ 역할 ]
    저장소의 전략을 꺼내 실행기(strategies/*)로 실행하고,
    마지막 실행 시각/상태를 저장소에 반영하는 시스템의 핵심 실행 루프.

[ 실행 흐름 ]
    run_due_strategies() 호출 시:
        1. strategy_store.get_active() → scheduler.due_strategies()로 실행 대상 선별
        2. ThreadPoolExecutor(max_workers)로 전략별 execute_strategy() 병렬 실행
           → 대상 종목 현재가 조회 (실패 종목은 스킵)
           → create_executor(strategy.type).execute()
           → 마지막 실행 시각 갱신
        3. 전략 하나의 실패는 실패 결과로 바뀌고 나머지 전략은 계속 실행
        4. summarize_results()로 배치 요약

[ 오류 처리 ]
    - 검증 실패 / 주문 실패        → 실패 결과 또는 스킵 (예외 없음)
    - 원장 불일치                  → 전략 상태 FAILED + CRITICAL 로그
                                     단건 실행은 예외 전파, 배치는 실패 결과로 기록
    - 그 외 예상 못한 예외          → 실패 결과

[ 의존성 ]
    - core/market_data.py::MarketDataProvider (현재가)
    - core/broker_api.py::BrokerAPI           (주문)
    - core/repository.py::TransactionStore, StrategyStore
    - engine/orders.py::OrderService, data/ledger.py::BalanceLedger
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from crypto_trader.core.broker_api import BrokerAPI
from crypto_trader.core.exceptions import LedgerInconsistencyError, NotFoundError
from crypto_trader.core.market_data import Asset, MarketDataProvider
from crypto_trader.core.repository import StrategyStore, TransactionStore
from crypto_trader.core.trading_strategy import (
    ExecutionResult,
    SkippedAsset,
    Strategy,
    StrategyExecutor,
    StrategyStatus,
)
from crypto_trader.data.ledger import BalanceLedger
from crypto_trader.engine.orders import OrderService
from crypto_trader.engine.scheduler import due_strategies
from crypto_trader.strategies import create_executor
from crypto_trader.utils.config import Config

logger = logging.getLogger("crypto_trader.engine")


@dataclass
class BatchSummary:
    """배치 실행 요약. summary()로 포맷된 리포트 출력 가능."""
    total: int = 0                 # 실행한 전략 수
    succeeded: int = 0
    failed: int = 0
    transactions: int = 0          # 기록된 거래 수
    skipped_assets: int = 0        # 스킵된 종목 수

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def summary(self) -> str:
        """요약 문자열."""
        lines = [
            "=" * 50,
            "전략 실행 요약",
            "=" * 50,
            f"실행 전략:       {self.total:>10d}",
            f"성공:            {self.succeeded:>10d}",
            f"실패:            {self.failed:>10d}",
            "-" * 50,
            f"체결 거래:       {self.transactions:>10d}",
            f"스킵 종목:       {self.skipped_assets:>10d}",
            "=" * 50,
        ]
        return "\n".join(lines)


def summarize_results(results: list[ExecutionResult]) -> BatchSummary:
    """실행 결과 목록 → BatchSummary."""
    succeeded = sum(1 for r in results if r.success)
    return BatchSummary(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        transactions=sum(len(r.transactions) for r in results),
        skipped_assets=sum(len(r.skipped) for r in results),
    )


class StrategyEngine:
    """전략 실행 엔진. execute_strategy() 단건 / run_due_strategies() 배치."""

    def __init__(
        self,
        market_data: MarketDataProvider,
        broker: BrokerAPI,
        transaction_store: TransactionStore,
        strategy_store: StrategyStore,
        config: Optional[Config] = None,
    ):
        self.market_data = market_data
        self.strategy_store = strategy_store
        self.config = config or Config()

        self.ledger = BalanceLedger(transaction_store)
        self.orders = OrderService(broker, transaction_store, self.ledger)

    def execute_strategy(self, strategy: Strategy, now: Optional[datetime] = None) -> ExecutionResult:
        """전략 1회 실행.

        Args:
            strategy: 실행할 전략
            now: 평가 시각 (기본: 현재 UTC)

        Returns:
            ExecutionResult: 전체 실패여도 항상 반환

        Raises:
            LedgerInconsistencyError: 원장 불일치 (전략은 FAILED로 변경됨)
        """
        now = now or datetime.now(timezone.utc)
        logger.info(f"[{strategy.id}] {strategy.type.value} 전략 실행 시작: {strategy.name}")

        assets, price_skips = self._resolve_assets(strategy)

        try:
            executor: StrategyExecutor = create_executor(strategy.type, self.orders)
            result = executor.execute(strategy, assets, self.ledger, now)
        except LedgerInconsistencyError as e:
            self.strategy_store.update_status(strategy.id, StrategyStatus.FAILED)
            logger.critical(f"[{strategy.id}] 원장 불일치로 전략 중단: {e.message} {e.details}")
            raise
        except Exception as e:
            logger.exception(f"[{strategy.id}] 전략 실행 중 오류")
            result = StrategyExecutor.build_result(
                strategy, now, success=False, message=f"전략 실행 중 오류 발생: {e}",
            )
        finally:
            self.strategy_store.update_last_execution_time(strategy.id, now)

        result.skipped = price_skips + result.skipped
        logger.info(
            f"[{strategy.id}] 전략 실행 완료. 성공: {result.success}, "
            f"거래 {len(result.transactions)}건, 스킵 {len(result.skipped)}건. {result.message}"
        )
        return result

    def execute_strategy_by_id(self, strategy_id: str, now: Optional[datetime] = None) -> ExecutionResult:
        """ID로 전략을 조회해 실행. 없으면 NotFoundError."""
        strategy = self.strategy_store.get_by_id(strategy_id)
        if strategy is None:
            raise NotFoundError("strategy", strategy_id)
        return self.execute_strategy(strategy, now)

    def run_due_strategies(self, now: Optional[datetime] = None) -> list[ExecutionResult]:
        """실행 주기가 된 활성 전략을 모두 실행. 결과 순서는 보장하지 않는다."""
        now = now or datetime.now(timezone.utc)
        strategies = due_strategies(self.strategy_store.get_active(), now)
        if not strategies:
            logger.info("실행할 전략이 없습니다.")
            return []

        logger.info(f"실행 대상 전략 {len(strategies)}개 (workers={self.config.engine.max_workers})")

        results: list[ExecutionResult] = []
        with ThreadPoolExecutor(
            max_workers=self.config.engine.max_workers,
            thread_name_prefix="strategy",
        ) as pool:
            futures = {pool.submit(self.execute_strategy, s, now): s for s in strategies}
            for future in as_completed(futures):
                strategy = futures[future]
                try:
                    results.append(future.result())
                except LedgerInconsistencyError as e:
                    results.append(StrategyExecutor.build_result(
                        strategy, now, success=False, message=f"원장 불일치로 전략 중단: {e.message}",
                    ))
                except Exception as e:
                    logger.exception(f"[{strategy.id}] 배치 실행 중 오류")
                    results.append(StrategyExecutor.build_result(
                        strategy, now, success=False, message=f"전략 실행 중 오류 발생: {e}",
                    ))

        summary = summarize_results(results)
        logger.info(
            f"배치 실행 완료. 성공 {summary.succeeded}/{summary.total}, "
            f"거래 {summary.transactions}건"
        )
        return results

    def _resolve_assets(self, strategy: Strategy) -> tuple[list[Asset], list[SkippedAsset]]:
        """대상 종목 현재가 조회. 조회 실패 종목은 스킵."""
        assets: list[Asset] = []
        skipped: list[SkippedAsset] = []
        for symbol in strategy.asset_symbols:
            try:
                assets.append(self.market_data.get_current_price(symbol))
            except Exception as e:
                logger.warning(f"[{strategy.id}] {symbol} 현재가 조회 실패, 스킵: {e}")
                skipped.append(SkippedAsset(symbol=symbol, reason=f"현재가 조회 실패: {e}"))
        return assets, skipped
