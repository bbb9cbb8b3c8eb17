"""
거래소 주문 API 추상 클래스 정의.

[ 역할 ]
    거래소와의 주문 통신을 추상화하는 인터페이스와 거래(Transaction) 엔티티 정의.
    실제 거래소(Coinbase 등) 교체 시 이 클래스만 구현하면 됨.

[ 구현체 ]
    - brokers/mock_broker.py::MockBroker  (테스트/샘플 실행용)

[ 호출하는 곳 ]
    - engine/orders.py::OrderService가 place_buy/place_sell 호출 후
      반환된 Transaction을 TransactionStore에 기록
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ─── 거래 관련 Enum / Dataclass ─────────────────────────────────────────────

class TransactionType(Enum):
    """거래 종류."""
    BUY = "buy"
    SELL = "sell"


class TransactionStatus(Enum):
    """거래 상태. COMPLETED만 잔고 계산에 포함된다."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Transaction:
    """place_buy(), place_sell()의 반환값. 거래 원장의 한 줄."""
    id: str
    user_id: str
    symbol: str
    type: TransactionType
    quantity: float
    price: float                 # 체결 단가
    total_amount: float = 0.0    # quantity * price
    fee: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    exchange_transaction_id: str = ""
    status: TransactionStatus = TransactionStatus.PENDING
    strategy_id: Optional[str] = None   # 이 거래를 만든 전략 (있을 경우)
    notes: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED


# ─── 추상 클래스 ────────────────────────────────────────────────────────────

class BrokerAPI(ABC):
    """거래소 주문 API 추상 클래스.

    두 메서드 모두 네트워크 장애 시 ExternalServiceError를 던질 수 있다.
    """

    @abstractmethod
    def place_buy(self, user_id: str, symbol: str, quantity: float) -> Transaction:
        """시장가 매수 주문.

        Args:
            user_id: 주문 사용자
            symbol: 종목 심볼
            quantity: 주문 수량 (소수 가능)
        """
        ...

    @abstractmethod
    def place_sell(self, user_id: str, symbol: str, quantity: float) -> Transaction:
        """시장가 매도 주문."""
        ...
