"""
=============================================================================
암호화폐 자동매매 엔진 (Crypto Trader)
=============================================================================

[ 시스템 전체 구조 ]

    run_engine.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         ├── engine/executor.py     ← 전략 실행 엔진 (단건 / 배치)
         │     │
         │     ├── engine/scheduler.py  ← 실행 주기가 된 전략 선별
         │     ├── engine/orders.py     ← 주문 + 거래 원장 기록
         │     ├── data/ledger.py       ← 거래 원장으로 잔고 계산
         │     └── strategies/          ← 전략 종류별 실행기
         │           ├── dca_strategy.py
         │           ├── take_profit_stop_loss_strategy.py
         │           └── placeholder_strategy.py
         │
         └── analysis/recommendation.py ← 매매 추천
               │
               ├── analysis/indicators.py  ← SMA/EMA/RSI/MACD/크로스/지지·저항
               └── analysis/signal.py      ← 시그널 합성, 추천 등급


[ 핵심 추상 클래스 (core/) - 모든 구현체의 부모 ]

    core/broker_api.py       → brokers/mock_broker.py::MockBroker (테스트용 구현)

    core/market_data.py      → brokers/mock_broker.py::MockMarketDataProvider (테스트용)
                             → data/yahoo_provider.py::YahooFinanceDataProvider

    core/repository.py       → data/memory_store.py (메모리 저장소)

    core/trading_strategy.py → strategies/*.py (전략 실행기)


[ 데이터 흐름 ]

    1. config.yaml에서 지표/엔진 설정 로드
    2. 스케줄러가 ACTIVE 전략 중 실행 주기가 된 전략 선별
    3. 실행기가 현재가 + 원장 잔고로 매매 의도 생성
    4. OrderService가 브로커로 주문하고 거래를 원장에 기록
    5. 전략별 ExecutionResult 반환 (실패해도 항상 결과 존재)

    추천은 별도 흐름:
    가격 이력 → 지표 계산 → 시그널 합성 → AssetRecommendation
"""
