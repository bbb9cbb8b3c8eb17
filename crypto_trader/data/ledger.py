"""
잔고 원장 모듈.

[ 역할 ]
    사용자의 종목별 보유 수량을 거래 기록(Transaction)을 재생하여 계산.
    잔고는 저장하지 않고 호출할 때마다 TransactionStore에서 다시 계산한다.

[ 계산 규칙 ]
    잔고       = Σ 완료(COMPLETED) 매수 수량 - Σ 완료 매도 수량
    평균 매수가 = Σ(매수 수량 × 매수가) / Σ 매수 수량  (전체 기간 완료 매수 기준)
    PENDING/FAILED/CANCELLED 거래는 포함하지 않는다.
    계산 결과가 음수면 LedgerInconsistencyError (원장 버그).

[ 주요 클래스 ]
    LedgerSnapshot    - 한 번의 전략 실행 동안 반복 조회용 잔고 사본
    PortfolioPosition - 보유 종목 평가 (수량/평가금액/미실현 손익)
    BalanceLedger     - 원장 계산기

[ 호출하는 곳 ]
    - strategies/take_profit_stop_loss_strategy.py (잔고/평균 매수가)
    - engine/orders.py::OrderService (매도 전 잔고 확인)
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from crypto_trader.core.broker_api import Transaction, TransactionStatus, TransactionType
from crypto_trader.core.exceptions import LedgerInconsistencyError
from crypto_trader.core.repository import TransactionStore

logger = logging.getLogger("crypto_trader.ledger")

# 소수 수량 합산 오차 허용치
BALANCE_EPSILON = 1e-9


@dataclass
class LedgerSnapshot:
    """특정 시점의 종목별 잔고/평균 매수가 사본."""
    user_id: str
    taken_at: datetime
    balances: dict[str, float] = field(default_factory=dict)
    average_buy_prices: dict[str, Optional[float]] = field(default_factory=dict)

    def balance(self, symbol: str) -> float:
        return self.balances.get(symbol, 0.0)

    def average_buy_price(self, symbol: str) -> Optional[float]:
        return self.average_buy_prices.get(symbol)


@dataclass
class PortfolioPosition:
    """보유 종목 평가."""
    symbol: str
    quantity: float
    current_price: float
    average_buy_price: float = 0.0
    value: float = 0.0                    # quantity * current_price
    unrealized_profit: float = 0.0
    unrealized_profit_rate: float = 0.0   # %


def replay(transactions: Iterable[Transaction]) -> float:
    """완료 거래만 재생하여 순수량 합계 계산. 순서와 무관하게 같은 값."""
    signed = []
    for t in transactions:
        if not t.is_completed:
            continue
        if t.type == TransactionType.BUY:
            signed.append(t.quantity)
        elif t.type == TransactionType.SELL:
            signed.append(-t.quantity)
    return math.fsum(signed)


class BalanceLedger:
    """거래 원장 기반 잔고 계산기. 내부에 잔고를 캐싱하지 않는다."""

    def __init__(self, store: TransactionStore):
        self.store = store

    def _completed(self, user_id: str, symbol: Optional[str] = None) -> list[Transaction]:
        transactions = self.store.get_by_user(user_id, symbol, TransactionStatus.COMPLETED)
        return [
            t for t in transactions
            if t.is_completed and (symbol is None or t.symbol == symbol)
        ]

    def _verify(self, user_id: str, symbol: str, total: float) -> float:
        """음수 잔고 검증. 허용 오차 이내의 값은 0으로 정리."""
        if total < -BALANCE_EPSILON:
            logger.critical(f"원장 불일치: {user_id} {symbol} 잔고 {total}")
            raise LedgerInconsistencyError(
                f"{user_id}의 {symbol} 잔고가 음수입니다 ({total})",
                details={"user_id": user_id, "symbol": symbol, "balance": total},
            )
        return 0.0 if abs(total) <= BALANCE_EPSILON else total

    def balance(self, user_id: str, symbol: str) -> float:
        """종목 잔고. 거래가 없으면 0."""
        return self._verify(user_id, symbol, replay(self._completed(user_id, symbol)))

    def balances(self, user_id: str) -> dict[str, float]:
        """사용자의 전체 종목 잔고."""
        by_symbol: dict[str, list[Transaction]] = defaultdict(list)
        for t in self._completed(user_id):
            by_symbol[t.symbol].append(t)
        return {
            symbol: self._verify(user_id, symbol, replay(transactions))
            for symbol, transactions in by_symbol.items()
        }

    def average_buy_price(self, user_id: str, symbol: str) -> Optional[float]:
        """완료 매수 거래의 가중 평균 단가. 매수 기록이 없으면 None."""
        buys = [t for t in self._completed(user_id, symbol) if t.type == TransactionType.BUY]
        total_quantity = math.fsum(t.quantity for t in buys)
        if not buys or total_quantity <= 0:
            return None
        total_cost = math.fsum(t.quantity * t.price for t in buys)
        return total_cost / total_quantity

    def snapshot(self, user_id: str, symbols: Iterable[str]) -> LedgerSnapshot:
        """종목들의 잔고/평균 매수가를 한 번에 계산해 둔다."""
        snapshot = LedgerSnapshot(user_id=user_id, taken_at=datetime.now(timezone.utc))
        for symbol in symbols:
            snapshot.balances[symbol] = self.balance(user_id, symbol)
            snapshot.average_buy_prices[symbol] = self.average_buy_price(user_id, symbol)
        return snapshot

    def portfolio(self, user_id: str, prices: Mapping[str, float]) -> list[PortfolioPosition]:
        """보유 수량이 양수인 종목만 현재가로 평가. 가격이 없는 종목은 제외."""
        positions = []
        for symbol, quantity in sorted(self.balances(user_id).items()):
            if quantity <= 0 or symbol not in prices:
                continue

            current_price = float(prices[symbol])
            avg_price = self.average_buy_price(user_id, symbol) or 0.0
            profit = (current_price - avg_price) * quantity
            profit_rate = (current_price - avg_price) / avg_price * 100 if avg_price > 0 else 0.0

            positions.append(PortfolioPosition(
                symbol=symbol,
                quantity=quantity,
                current_price=current_price,
                average_buy_price=avg_price,
                value=quantity * current_price,
                unrealized_profit=profit,
                unrealized_profit_rate=profit_rate,
            ))
        return positions
