"""
분할 적립 매수(DCA) 전략 실행기.

[ 역할 ]
    core/trading_strategy.py::StrategyExecutor의 구현체.
    "설정된 투자 금액을 대상 종목 수로 균등 분배하여 현재가로 매수"

[ 전략 흐름 ]
    실행 주기마다 execute() 호출됨 (← engine/executor.py에서)
        ├── validate(): 대상 종목 >= 1, 투자 금액 > 0 확인
        └── run()
              ├── 종목별 배분액 = max_investment_amount / 대상 종목 수
              ├── 수량 = 배분액 / 현재가 → BUY 의도
              └── 주문 실패 종목은 스킵, 1건 이상 체결되면 성공

[ 파라미터 (Strategy 필드) ]
    asset_symbols:          대상 종목
    max_investment_amount:  1회 실행당 총 투자 금액
"""

from datetime import datetime

from crypto_trader.core.broker_api import TransactionType
from crypto_trader.core.exceptions import StrategyValidationError
from crypto_trader.core.market_data import Asset
from crypto_trader.core.trading_strategy import (
    ExecutionResult,
    SkippedAsset,
    Strategy,
    StrategyExecutor,
    StrategyType,
    TradeIntent,
)
from crypto_trader.data.ledger import BalanceLedger
from crypto_trader.strategies import register


@register(StrategyType.DCA)
class DCAExecutor(StrategyExecutor):
    """DCA 전략 실행기."""

    def validate(self, strategy: Strategy, assets: list[Asset]) -> None:
        if not strategy.asset_symbols:
            raise StrategyValidationError("DCA 전략에 대상 종목이 없습니다")
        if not assets:
            raise StrategyValidationError(
                f"DCA 전략 대상 종목 {len(strategy.asset_symbols)}개의 현재가 조회가 모두 실패했습니다"
            )

        amount = strategy.max_investment_amount
        if amount is None or amount <= 0:
            raise StrategyValidationError("DCA 전략의 투자 금액이 설정되지 않았습니다")

    def run(
        self,
        strategy: Strategy,
        assets: list[Asset],
        ledger: BalanceLedger,
        now: datetime,
    ) -> ExecutionResult:
        """대상 종목마다 균등 금액 매수."""
        allocation = strategy.max_investment_amount / len(strategy.asset_symbols)

        intents: list[TradeIntent] = []
        skipped: list[SkippedAsset] = []
        for asset in assets:
            if asset.current_price <= 0:
                skipped.append(SkippedAsset(symbol=asset.symbol, reason="현재가 없음"))
                continue
            intents.append(TradeIntent(
                symbol=asset.symbol,
                side=TransactionType.BUY,
                quantity=allocation / asset.current_price,
                price=asset.current_price,
                notes=f"{strategy.title('DCA')} 자동 매수",
            ))

        placed, failed = self.place_intents(strategy, intents)
        skipped.extend(failed)

        success = len(placed) > 0
        if success:
            message = f"DCA 전략 실행 완료. {len(placed)}건 매수 (종목당 {allocation:,.2f})"
        else:
            message = "DCA 전략 실행 중 체결된 매수가 없습니다"
        return self.build_result(strategy, now, success, message, placed, skipped)
