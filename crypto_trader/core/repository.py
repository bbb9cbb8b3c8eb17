"""
거래/전략 저장소 추상 클래스 정의.

[ 역할 ]
    영속화 방식(DB, 파일 등)에 독립적인 저장소 인터페이스.
    엔진은 이 인터페이스로만 거래 원장과 전략 상태를 읽고 쓴다.

[ 구현체 ]
    - data/memory_store.py::InMemoryTransactionStore, InMemoryStrategyStore

[ 호출하는 곳 ]
    - data/ledger.py::BalanceLedger (거래 조회)
    - engine/orders.py::OrderService (거래 추가)
    - engine/executor.py::StrategyEngine (활성 전략 조회, 실행 시각 갱신)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from crypto_trader.core.broker_api import Transaction, TransactionStatus
from crypto_trader.core.trading_strategy import Strategy, StrategyStatus


class TransactionStore(ABC):
    """거래 원장 저장소."""

    @abstractmethod
    def get_by_user(
        self,
        user_id: str,
        symbol: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        """사용자 거래 조회. symbol/status가 주어지면 해당 조건으로 필터."""
        ...

    @abstractmethod
    def add(self, transaction: Transaction) -> Transaction:
        """거래 추가."""
        ...


class StrategyStore(ABC):
    """전략 저장소. 실행 시각/상태 갱신은 원자적이어야 한다."""

    @abstractmethod
    def get_by_id(self, strategy_id: str) -> Optional[Strategy]:
        ...

    @abstractmethod
    def get_active(self) -> list[Strategy]:
        """ACTIVE 상태 전략 목록."""
        ...

    @abstractmethod
    def update_last_execution_time(self, strategy_id: str, executed_at: datetime) -> bool:
        """마지막 실행 시각 갱신. 전략이 없으면 False."""
        ...

    @abstractmethod
    def update_status(self, strategy_id: str, status: StrategyStatus) -> bool:
        """전략 상태 변경. 전략이 없으면 False."""
        ...
