"""
메모리 기반 저장소 구현.

[ 역할 ]
    core/repository.py의 TransactionStore / StrategyStore 구현체.
    테스트와 샘플 실행(run_engine.py)에서 DB 대신 사용.
    여러 워커 스레드가 동시에 접근하므로 모든 변경은 Lock 안에서 수행.

[ 호출하는 곳 ]
    - run_engine.py, tests/
"""

import copy
import threading
from datetime import datetime, timezone
from typing import Iterable, Optional

from crypto_trader.core.broker_api import Transaction, TransactionStatus
from crypto_trader.core.repository import StrategyStore, TransactionStore
from crypto_trader.core.trading_strategy import Strategy, StrategyStatus


class InMemoryTransactionStore(TransactionStore):
    """리스트 기반 거래 원장."""

    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._lock = threading.Lock()
        self._transactions: list[Transaction] = list(transactions)

    def get_by_user(
        self,
        user_id: str,
        symbol: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        with self._lock:
            return [
                t for t in self._transactions
                if t.user_id == user_id
                and (symbol is None or t.symbol == symbol)
                and (status is None or t.status == status)
            ]

    def add(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self._transactions.append(transaction)
        return transaction

    def all(self) -> list[Transaction]:
        """전체 거래 (추가 순서)."""
        with self._lock:
            return list(self._transactions)


class InMemoryStrategyStore(StrategyStore):
    """딕셔너리 기반 전략 저장소. 조회 결과는 사본을 반환."""

    def __init__(self, strategies: Iterable[Strategy] = ()):
        self._lock = threading.Lock()
        self._strategies: dict[str, Strategy] = {s.id: s for s in strategies}

    def add(self, strategy: Strategy) -> Strategy:
        with self._lock:
            self._strategies[strategy.id] = strategy
        return strategy

    def get_by_id(self, strategy_id: str) -> Optional[Strategy]:
        with self._lock:
            strategy = self._strategies.get(strategy_id)
            return copy.deepcopy(strategy) if strategy else None

    def get_active(self) -> list[Strategy]:
        with self._lock:
            return [
                copy.deepcopy(s) for s in self._strategies.values()
                if s.status == StrategyStatus.ACTIVE
            ]

    def update_last_execution_time(self, strategy_id: str, executed_at: datetime) -> bool:
        with self._lock:
            strategy = self._strategies.get(strategy_id)
            if strategy is None:
                return False
            strategy.last_execution_time = executed_at
            strategy.updated_at = datetime.now(timezone.utc)
            return True

    def update_status(self, strategy_id: str, status: StrategyStatus) -> bool:
        with self._lock:
            strategy = self._strategies.get(strategy_id)
            if strategy is None:
                return False
            strategy.status = status
            strategy.updated_at = datetime.now(timezone.utc)
            return True
