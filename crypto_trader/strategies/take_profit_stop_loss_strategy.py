"""
익절/손절(Take-Profit/Stop-Loss) 전략 실행기.

[ 역할 ]
    core/trading_strategy.py::StrategyExecutor의 구현체.
    "평균 매수가 대비 목표 수익률 도달 시 익절, 손절 비율 도달 시 손절 (전량 매도)"

[ 전략 흐름 ]
    실행 주기마다 execute() 호출됨 (← engine/executor.py에서)
        ├── validate(): 대상 종목, 익절/손절 비율 확인
        └── run()
              ├── 원장 스냅샷으로 종목별 잔고/평균 매수가 조회
              │     ├── 잔고 <= 0 → 스킵
              │     └── 매수 기록 없음 → 스킵
              ├── 현재가 >= 평균가 × (1 + 익절%) → SELL (익절)
              ├── 현재가 <= 평균가 × (1 - 손절%) → SELL (손절)
              └── 조건 미도달도 정상 (항상 success=True)

[ 파라미터 (Strategy 필드) ]
    asset_symbols:           대상 종목
    take_profit_percentage:  익절 기준 (%)
    stop_loss_percentage:    손절 기준 (%)

[ 평균 매수가 ]
    전체 기간 완료 매수 기준. 부분 매도 이후에도 이미 팔린 물량의 매수가가 포함된다.
"""

from datetime import datetime

from crypto_trader.core.broker_api import TransactionType
from crypto_trader.core.exceptions import StrategyValidationError
from crypto_trader.core.market_data import Asset
from crypto_trader.core.trading_strategy import (
    ExecutionResult,
    SellTrigger,
    Strategy,
    StrategyExecutor,
    StrategyType,
    TradeIntent,
)
from crypto_trader.data.ledger import BalanceLedger
from crypto_trader.strategies import register


@register(StrategyType.TAKE_PROFIT_STOP_LOSS)
class TakeProfitStopLossExecutor(StrategyExecutor):
    """익절/손절 전략 실행기."""

    def validate(self, strategy: Strategy, assets: list[Asset]) -> None:
        if not strategy.asset_symbols:
            raise StrategyValidationError("익절/손절 전략에 대상 종목이 없습니다")

        if strategy.take_profit_percentage is None or strategy.stop_loss_percentage is None:
            raise StrategyValidationError("익절 및 손절 비율이 모두 설정되어야 합니다")

    def check_thresholds(
        self,
        strategy: Strategy,
        current_price: float,
        avg_buy_price: float,
    ) -> tuple[SellTrigger | None, float]:
        """(발동한 임계값 또는 None, 해당 기준가)."""
        take_profit_price = avg_buy_price * (1 + strategy.take_profit_percentage / 100)
        stop_loss_price = avg_buy_price * (1 - strategy.stop_loss_percentage / 100)

        if current_price >= take_profit_price:
            return SellTrigger.TAKE_PROFIT, take_profit_price
        if current_price <= stop_loss_price:
            return SellTrigger.STOP_LOSS, stop_loss_price
        return None, 0.0

    def run(
        self,
        strategy: Strategy,
        assets: list[Asset],
        ledger: BalanceLedger,
        now: datetime,
    ) -> ExecutionResult:
        """보유 종목별로 임계값을 확인하고 도달 시 전량 매도."""
        snapshot = ledger.snapshot(strategy.user_id, [a.symbol for a in assets])

        intents: list[TradeIntent] = []
        for asset in assets:
            balance = snapshot.balance(asset.symbol)
            if balance <= 0:
                continue

            avg_price = snapshot.average_buy_price(asset.symbol)
            if avg_price is None:
                continue

            trigger, target_price = self.check_thresholds(strategy, asset.current_price, avg_price)
            if trigger is None:
                continue

            label = "익절" if trigger == SellTrigger.TAKE_PROFIT else "손절"
            intents.append(TradeIntent(
                symbol=asset.symbol,
                side=TransactionType.SELL,
                quantity=balance,
                price=asset.current_price,
                trigger=trigger,
                notes=f"{strategy.title(label)} 자동 매도. 기준가: {target_price:,.2f}",
            ))

        placed, skipped = self.place_intents(strategy, intents)

        if placed:
            take_profits = sum(1 for i, _ in placed if i.trigger == SellTrigger.TAKE_PROFIT)
            message = (
                f"익절/손절 전략 실행 완료. {len(placed)}건 매도 "
                f"(익절 {take_profits}, 손절 {len(placed) - take_profits})"
            )
        elif intents:
            message = f"{len(intents)}개 종목이 임계값에 도달했으나 체결된 매도가 없습니다"
        else:
            message = "익절/손절 임계값에 도달한 종목이 없습니다"
        return self.build_result(strategy, now, True, message, placed, skipped)
