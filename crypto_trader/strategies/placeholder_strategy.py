"""
미구현 전략 종류 (시장 시그널, 사용자 정의).

[ 역할 ]
    StrategyType.MARKET_SIGNAL / CUSTOM 전략이 들어왔을 때
    주문 없이 "아직 구현되지 않음" 성공 결과를 반환.
    실제 로직을 붙일 때는 이 파일의 클래스 run()만 바꾸면 된다.
"""

from datetime import datetime

from crypto_trader.core.market_data import Asset
from crypto_trader.core.trading_strategy import (
    ExecutionResult,
    Strategy,
    StrategyExecutor,
    StrategyType,
)
from crypto_trader.data.ledger import BalanceLedger
from crypto_trader.strategies import register


class NotImplementedExecutor(StrategyExecutor):
    """주문 없이 미구현 메시지만 반환하는 실행기."""

    label = "알 수 없는"

    def run(
        self,
        strategy: Strategy,
        assets: list[Asset],
        ledger: BalanceLedger,
        now: datetime,
    ) -> ExecutionResult:
        return self.build_result(
            strategy, now,
            success=True,
            message=f"{self.label} 전략은 아직 구현되지 않았습니다",
        )


@register(StrategyType.MARKET_SIGNAL)
class MarketSignalExecutor(NotImplementedExecutor):
    label = "시장 시그널"


@register(StrategyType.CUSTOM)
class CustomExecutor(NotImplementedExecutor):
    label = "사용자 정의"
