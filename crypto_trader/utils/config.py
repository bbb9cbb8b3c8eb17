"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    지표 기간, 추천 파라미터, 실행 엔진, Mock 브로커, 로깅 설정 등을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    indicators:       → IndicatorConfig (지표 기간)
    recommendation:   → RecommendationConfig (가격 이력 조회/추천 개수)
    engine:           → EngineConfig (워커 수 등)
    broker:           → BrokerConfig (Mock 브로커 수수료/슬리피지)
    data_source:      → DataSourceConfig (외부 시세 재시도)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_engine.py에서 Config.from_yaml()로 로드
    - RecommendationService / StrategyEngine 생성 시 각 섹션 전달
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class IndicatorConfig:
    """지표 계산 기간. config.yaml의 indicators 섹션에 대응."""
    sma_short_period: int = 50
    sma_long_period: int = 200
    ema_period: int = 20
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    support_resistance_window: int = 14


@dataclass
class RecommendationConfig:
    """추천 설정. config.yaml의 recommendation 섹션에 대응."""
    history_timeframe: str = "month"
    history_limit: int = 200
    top_count: int = 10
    macd_divergence_threshold: float = 0.5   # 신뢰도 가산 기준 |MACD - 시그널|
    timing_timeframe: str = "week"
    timing_limit: int = 168                  # 7일 x 24시간


@dataclass
class EngineConfig:
    """전략 실행 엔진 설정. config.yaml의 engine 섹션에 대응."""
    max_workers: int = 4          # 동시에 실행할 전략 수 상한
    price_timeframe: str = "day"


@dataclass
class BrokerConfig:
    """Mock 브로커 설정. config.yaml의 broker 섹션에 대응."""
    commission_rate: float = 0.005   # 0.5%
    slippage_rate: float = 0.0


@dataclass
class DataSourceConfig:
    """외부 시세 조회 설정. config.yaml의 data_source 섹션에 대응."""
    max_retries: int = 3
    retry_delay: int = 5


def _section(cls, data: dict[str, Any]):
    """dataclass 필드에 있는 키만 골라 섹션 생성."""
    return cls(**{k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__})


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    data_source: DataSourceConfig = field(default_factory=DataSourceConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성. 모르는 키는 무시."""
        return cls(
            indicators=_section(IndicatorConfig, data.get("indicators", {})),
            recommendation=_section(RecommendationConfig, data.get("recommendation", {})),
            engine=_section(EngineConfig, data.get("engine", {})),
            broker=_section(BrokerConfig, data.get("broker", {})),
            data_source=_section(DataSourceConfig, data.get("data_source", {})),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
