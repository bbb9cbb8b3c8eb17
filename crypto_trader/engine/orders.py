"""
주문 실행 서비스.

[ 역할 ]
    BrokerAPI로 주문을 넣고, 반환된 Transaction에 전략 ID/메모를 붙여
    TransactionStore에 기록. 전략 실행과 직접 주문이 모두 이 경로를 사용하므로
    기록되지 않은 체결은 생기지 않는다.

[ 검증 ]
    - 수량 <= 0                  → InvalidTradeError
    - 매도 수량 > 원장 잔고        → InsufficientBalanceError
    - 브로커의 알 수 없는 예외     → ExternalServiceError로 변환

[ 동시성 ]
    배치 실행은 여러 워커 스레드에서 같은 OrderService를 공유한다.
    매도는 (user_id, symbol) 단위 Lock 안에서 잔고 확인 → 주문 → 기록을 수행하므로
    같은 보유분을 두 전략이 동시에 팔 수 없다.

[ 호출하는 곳 ]
    - core/trading_strategy.py::StrategyExecutor.place_intents()
    - 외부 API 계층의 직접 매수/매도
"""

import logging
import threading
from typing import Optional

from crypto_trader.core.broker_api import BrokerAPI, Transaction, TransactionType
from crypto_trader.core.exceptions import (
    ExternalServiceError,
    InsufficientBalanceError,
    InvalidTradeError,
    TradingError,
)
from crypto_trader.core.repository import TransactionStore
from crypto_trader.core.trading_strategy import TradeIntent
from crypto_trader.data.ledger import BALANCE_EPSILON, BalanceLedger

logger = logging.getLogger("crypto_trader.orders")


class OrderService:
    """주문 + 원장 기록."""

    def __init__(
        self,
        broker: BrokerAPI,
        store: TransactionStore,
        ledger: Optional[BalanceLedger] = None,
    ):
        self.broker = broker
        self.store = store
        self.ledger = ledger or BalanceLedger(store)
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _position_lock(self, user_id: str, symbol: str) -> threading.Lock:
        """(user_id, symbol) 보유분 전용 Lock."""
        with self._locks_guard:
            return self._locks.setdefault((user_id, symbol), threading.Lock())

    def buy(
        self,
        user_id: str,
        symbol: str,
        quantity: float,
        strategy_id: Optional[str] = None,
        notes: str = "",
    ) -> Transaction:
        """매수 주문 후 기록."""
        self._validate_quantity(symbol, quantity)
        try:
            transaction = self.broker.place_buy(user_id, symbol, quantity)
        except TradingError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"{symbol} 매수 주문 실패: {e}") from e
        return self._record(transaction, strategy_id, notes)

    def sell(
        self,
        user_id: str,
        symbol: str,
        quantity: float,
        strategy_id: Optional[str] = None,
        notes: str = "",
    ) -> Transaction:
        """매도 주문 후 기록. 잔고를 넘는 매도는 거부."""
        self._validate_quantity(symbol, quantity)
        with self._position_lock(user_id, symbol):
            available = self.ledger.balance(user_id, symbol)
            if quantity > available + BALANCE_EPSILON:
                raise InsufficientBalanceError(user_id, symbol, quantity, available)

            try:
                transaction = self.broker.place_sell(user_id, symbol, quantity)
            except TradingError:
                raise
            except Exception as e:
                raise ExternalServiceError(f"{symbol} 매도 주문 실패: {e}") from e
            return self._record(transaction, strategy_id, notes)

    def submit(
        self,
        intent: TradeIntent,
        user_id: str,
        strategy_id: Optional[str] = None,
    ) -> Transaction:
        """TradeIntent를 주문으로 변환."""
        if intent.side == TransactionType.BUY:
            return self.buy(user_id, intent.symbol, intent.quantity, strategy_id, intent.notes)
        return self.sell(user_id, intent.symbol, intent.quantity, strategy_id, intent.notes)

    @staticmethod
    def _validate_quantity(symbol: str, quantity: float) -> None:
        if not quantity > 0:
            raise InvalidTradeError(
                f"{symbol} 주문 수량은 0보다 커야 합니다 ({quantity})",
                details={"symbol": symbol, "quantity": quantity},
            )

    def _record(
        self,
        transaction: Transaction,
        strategy_id: Optional[str],
        notes: str,
    ) -> Transaction:
        if strategy_id is not None:
            transaction.strategy_id = strategy_id
        if notes:
            transaction.notes = notes

        saved = self.store.add(transaction)
        logger.info(
            f"{saved.type.value} 체결 기록: {saved.user_id} {saved.symbol} "
            f"{saved.quantity:.8f} @ {saved.price:,.2f} ({saved.status.value})"
        )
        return saved
