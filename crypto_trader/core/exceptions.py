"""
도메인 예외 정의.

[ 역할 ]
    엔진 전체에서 사용하는 예외 계층.
    모든 예외는 TradingError를 상속하며 error_code/details를 가진다.

[ 분류 ]
    StrategyValidationError  - 전략 파라미터 누락 (재시도 없음, 주문 전 중단)
    ExternalServiceError     - 시세 조회/주문 실패 (종목 단위로 스킵)
    LedgerInconsistencyError - 거래 원장 잔고가 음수 (치명적, 중단 + 알림)
    InsufficientBalanceError - 보유 수량보다 많은 매도
    InvalidTradeError        - 잘못된 주문 (수량 <= 0 등)
    NotFoundError            - 존재하지 않는 전략/종목

[ 호출하는 곳 ]
    - engine/orders.py, engine/executor.py, data/ledger.py, strategies/*
"""

from typing import Any


class TradingError(Exception):
    """도메인 예외 베이스 클래스."""

    error_code: str = "TRADING_ERROR"
    message: str = "매매 처리 중 오류 발생"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """로깅/응답용 딕셔너리."""
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class StrategyValidationError(TradingError):
    """전략 필수 파라미터 누락."""

    error_code = "STRATEGY_VALIDATION"
    message = "전략 설정이 올바르지 않습니다"


class ExternalServiceError(TradingError):
    """외부 시세/주문 서비스 일시 장애."""

    error_code = "EXTERNAL_SERVICE"
    message = "외부 서비스 호출 실패"


class LedgerInconsistencyError(TradingError):
    """거래 원장에서 음수 잔고가 계산됨."""

    error_code = "LEDGER_INCONSISTENCY"
    message = "거래 원장 잔고 불일치"


class InsufficientBalanceError(TradingError):
    """보유 수량 부족."""

    error_code = "INSUFFICIENT_BALANCE"

    def __init__(self, user_id: str, symbol: str, required: float, available: float):
        super().__init__(
            message=f"잔고 부족: {user_id} 보유 {available} {symbol}, 매도 요청 {required} {symbol}",
            details={
                "user_id": user_id,
                "symbol": symbol,
                "required": required,
                "available": available,
            },
        )


class InvalidTradeError(TradingError):
    """잘못된 주문 요청."""

    error_code = "INVALID_TRADE"
    message = "잘못된 주문 요청"


class NotFoundError(TradingError):
    """대상 엔티티 없음."""

    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity}(id={entity_id})를 찾을 수 없습니다",
            details={"entity": entity, "id": str(entity_id)},
        )
