"""
매매 전략 엔티티 및 전략 실행기 추상 클래스 정의.

[ 역할 ]
    사용자가 등록한 전략(Strategy)과, 전략 종류별 실행 로직의 인터페이스를 정의.
    실행기는 대상 종목의 현재가 + 거래 원장을 받아 매매 의도(TradeIntent)를 만들고
    OrderService를 통해 주문/기록한 뒤 ExecutionResult를 반환.

[ 구현체 ]
    - strategies/dca_strategy.py::DCAExecutor                       (분할 적립 매수)
    - strategies/take_profit_stop_loss_strategy.py::TakeProfitStopLossExecutor
    - strategies/placeholder_strategy.py::MarketSignalExecutor, CustomExecutor (미구현)

[ 호출하는 곳 ]
    - engine/executor.py::StrategyEngine.execute_strategy()에서
      strategies.create_executor(strategy.type)로 생성 후 execute() 호출

[ 데이터 흐름 ]
    Strategy + Asset 목록 + BalanceLedger → execute() → ExecutionResult
    종목별 주문 실패는 스킵 목록에 쌓이고 전체 실행은 계속된다.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from crypto_trader.core.broker_api import Transaction, TransactionType
from crypto_trader.core.exceptions import (
    LedgerInconsistencyError,
    StrategyValidationError,
    TradingError,
)
from crypto_trader.core.market_data import Asset

if TYPE_CHECKING:
    from crypto_trader.data.ledger import BalanceLedger
    from crypto_trader.engine.orders import OrderService

logger = logging.getLogger("crypto_trader.strategies")


class StrategyType(Enum):
    """전략 종류."""
    DCA = "dca"
    TAKE_PROFIT_STOP_LOSS = "take_profit_stop_loss"
    MARKET_SIGNAL = "market_signal"
    CUSTOM = "custom"


class StrategyStatus(Enum):
    """전략 상태. 실행 엔진은 ACTIVE인 전략만 실행한다."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class SellTrigger(Enum):
    """익절/손절 중 어떤 임계값에 걸렸는지."""
    TAKE_PROFIT = "take_profit"
    STOP_LOSS = "stop_loss"


@dataclass
class Strategy:
    """사용자 전략. status와 last_execution_time만 실행 엔진이 변경한다."""
    id: str
    user_id: str
    type: StrategyType
    name: str = ""
    description: str = ""
    status: StrategyStatus = StrategyStatus.DRAFT
    asset_symbols: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_execution_time: Optional[datetime] = None
    parameters: dict[str, Any] = field(default_factory=dict)   # 자유 형식 파라미터
    max_investment_amount: Optional[float] = None
    take_profit_percentage: Optional[float] = None
    stop_loss_percentage: Optional[float] = None
    execution_frequency_minutes: Optional[int] = None

    def title(self, kind: str) -> str:
        """주문 메모용 표기. 이름이 비어 있으면 "DCA 전략"처럼 종류만."""
        return f"{kind} 전략 {self.name}" if self.name else f"{kind} 전략"


@dataclass
class TradeIntent:
    """실행기가 만든 매매 의도. 주문 성공 시에만 결과에 포함된다."""
    symbol: str
    side: TransactionType
    quantity: float
    price: float = 0.0                    # 판단 시점 현재가
    trigger: Optional[SellTrigger] = None
    notes: str = ""


@dataclass
class SkippedAsset:
    """실행 중 건너뛴 종목과 사유."""
    symbol: str
    reason: str


@dataclass
class ExecutionResult:
    """execute()의 반환값. 전체 실패여도 항상 success/message를 가진다."""
    strategy_id: str
    executed_at: datetime
    success: bool = False
    message: str = ""
    intents: list[TradeIntent] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    skipped: list[SkippedAsset] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        return asdict(self)


class StrategyExecutor(ABC):
    """전략 실행기 추상 클래스.

    새 전략 종류를 추가하려면 이 클래스를 상속받아 2개 메서드를 구현하면 된다:
    - validate(): 필수 파라미터 확인 (누락 시 StrategyValidationError)
    - run(): 매매 의도 생성 + 주문
    그리고 strategies 패키지에서 @register(StrategyType.X)로 등록.
    """

    def __init__(self, orders: "OrderService"):
        self.orders = orders

    def execute(
        self,
        strategy: Strategy,
        assets: list[Asset],
        ledger: "BalanceLedger",
        now: datetime,
    ) -> ExecutionResult:
        """전략 1회 실행. 검증 실패 시 주문 없이 실패 결과 반환.

        Args:
            strategy: 실행할 전략
            assets: 대상 종목 (현재가 포함)
            ledger: 사용자 잔고 계산용 원장
            now: 평가 시각

        Returns:
            ExecutionResult: 성공 여부, 메시지, 체결된 의도 목록
        """
        try:
            self.validate(strategy, assets)
        except StrategyValidationError as e:
            logger.warning(f"[{strategy.id}] 전략 검증 실패: {e.message}")
            return self.build_result(strategy, now, success=False, message=e.message)
        return self.run(strategy, assets, ledger, now)

    def validate(self, strategy: Strategy, assets: list[Asset]) -> None:
        """필수 파라미터 확인. 기본은 검증 없음."""

    @abstractmethod
    def run(
        self,
        strategy: Strategy,
        assets: list[Asset],
        ledger: "BalanceLedger",
        now: datetime,
    ) -> ExecutionResult:
        """검증을 통과한 전략 실행."""
        ...

    def place_intents(
        self,
        strategy: Strategy,
        intents: list[TradeIntent],
    ) -> tuple[list[tuple[TradeIntent, Transaction]], list[SkippedAsset]]:
        """의도 목록을 순서대로 주문. (체결 목록, 스킵 목록)을 반환.

        한 종목의 주문 실패는 스킵으로 기록하고 다음 종목을 계속 처리한다.
        원장 불일치만은 그대로 전파한다.
        """
        placed: list[tuple[TradeIntent, Transaction]] = []
        skipped: list[SkippedAsset] = []
        for intent in intents:
            try:
                transaction = self.orders.submit(
                    intent,
                    user_id=strategy.user_id,
                    strategy_id=strategy.id,
                )
            except LedgerInconsistencyError:
                raise
            except TradingError as e:
                logger.warning(f"[{strategy.id}] {intent.symbol} 주문 실패, 스킵: {e.message}")
                skipped.append(SkippedAsset(symbol=intent.symbol, reason=e.message))
                continue
            placed.append((intent, transaction))
        return placed, skipped

    @staticmethod
    def build_result(
        strategy: Strategy,
        now: datetime,
        success: bool,
        message: str,
        placed: list[tuple[TradeIntent, Transaction]] | None = None,
        skipped: list[SkippedAsset] | None = None,
    ) -> ExecutionResult:
        """체결/스킵 목록으로 ExecutionResult 구성."""
        placed = placed or []
        return ExecutionResult(
            strategy_id=strategy.id,
            executed_at=now,
            success=success,
            message=message,
            intents=[intent for intent, _ in placed],
            transactions=[txn for _, txn in placed],
            skipped=list(skipped or []),
        )
