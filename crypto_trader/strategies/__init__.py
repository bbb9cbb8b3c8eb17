"""
전략 실행기 모듈.

[ 실행기 등록 방식 ]
    @register(StrategyType.X) 데코레이터를 붙이면 EXECUTOR_REGISTRY에 자동 등록.
    engine/executor.py에서 전략 종류만으로 실행기 클래스를 찾아 생성할 수 있다.

[ 새 전략 종류 추가 방법 ]
    1. core/trading_strategy.py::StrategyType에 값 추가
    2. 이 디렉토리에 새 .py 파일 생성
    3. StrategyExecutor를 상속받는 클래스 작성 (validate, run 구현)
    4. @register(StrategyType.X) 데코레이터 추가
    → 끝. engine/executor.py 수정 불필요.
"""

from importlib import import_module
from pathlib import Path
from typing import TYPE_CHECKING

from crypto_trader.core.trading_strategy import StrategyExecutor, StrategyType

if TYPE_CHECKING:
    from crypto_trader.engine.orders import OrderService

# 전략 종류 → 실행기 클래스 매핑
EXECUTOR_REGISTRY: dict[StrategyType, type[StrategyExecutor]] = {}


def register(strategy_type: StrategyType):
    """실행기 클래스를 EXECUTOR_REGISTRY에 등록하는 데코레이터."""
    def decorator(cls: type[StrategyExecutor]):
        EXECUTOR_REGISTRY[strategy_type] = cls
        return cls
    return decorator


def create_executor(strategy_type: StrategyType, orders: "OrderService") -> StrategyExecutor:
    """전략 종류로 실행기 인스턴스를 생성.

    Args:
        strategy_type: 전략 종류
        orders: 주문 실행 서비스

    Raises:
        ValueError: 등록되지 않은 전략 종류
    """
    if strategy_type not in EXECUTOR_REGISTRY:
        available = ", ".join(sorted(t.value for t in EXECUTOR_REGISTRY))
        raise ValueError(f"지원하지 않는 전략 종류: '{strategy_type}'. 사용 가능: {available}")
    return EXECUTOR_REGISTRY[strategy_type](orders)


def list_strategy_types() -> list[str]:
    """등록된 전략 종류 목록 반환."""
    return sorted(t.value for t in EXECUTOR_REGISTRY)


def _auto_discover():
    """이 디렉토리의 모든 실행기 모듈을 자동 임포트하여 @register가 실행되게 한다."""
    strategies_dir = Path(__file__).parent
    for py_file in strategies_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        module_name = f"crypto_trader.strategies.{py_file.stem}"
        import_module(module_name)


# 모듈 로드 시 자동 탐색
_auto_discover()
