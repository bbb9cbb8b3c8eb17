"""
전략 실행 주기 판정.

[ 역할 ]
    저장된 마지막 실행 시각(last_execution_time)과 실행 주기로
    지금 실행해야 하는 전략을 고른다. 메모리 타이머는 사용하지 않는다.

[ 판정 규칙 ]
    ACTIVE 이면서
        - 한 번도 실행되지 않음                          → 실행
        - 주기 설정됨 && now >= 마지막 실행 + 주기(분)      → 실행
        - 주기 없음 && 이미 실행됨                        → 다시 실행하지 않음 (1회성)

[ 호출하는 곳 ]
    - engine/executor.py::StrategyEngine.run_due_strategies()
"""

from datetime import datetime, timedelta
from typing import Iterable

from crypto_trader.core.trading_strategy import Strategy, StrategyStatus


def is_due(strategy: Strategy, now: datetime) -> bool:
    """전략이 now 시점에 실행 대상인지."""
    if strategy.status != StrategyStatus.ACTIVE:
        return False

    if strategy.last_execution_time is None:
        return True

    if strategy.execution_frequency_minutes is None:
        return False

    next_run = strategy.last_execution_time + timedelta(minutes=strategy.execution_frequency_minutes)
    return now >= next_run


def due_strategies(strategies: Iterable[Strategy], now: datetime) -> list[Strategy]:
    """실행 대상 전략만 입력 순서대로 반환."""
    return [s for s in strategies if is_due(s, now)]
