"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    LOCAL_CURRENCY: str = "USD"
    EOD_RUN_AT: str = "22:00"

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"
    SCHEDULER_TICK_SEC: int = 30


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    EOD_LOGS_DIR: Path = LOGS_DIR / "eod"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"
    CATALOG_FILE: Path = CONFIG_DIR / "catalog.yaml"

    # DB 파일
    PROD_DB: Path = DATA_DIR / "moneyledger_prod.db"
    SANDBOX_DB: Path = DATA_DIR / "moneyledger_sandbox.db"


class LedgerLimits:
    """원장 계산 허용 오차 및 조회 한도"""

    # 금액 소수 자릿수 (LCY 2자리 고정)
    AMOUNT_QUANT: Decimal = Decimal("0.01")

    # 호출자가 보낸 lcy_amt와 재계산 값의 허용 편차 (반 센트)
    LCY_TOLERANCE: Decimal = Decimal("0.005")

    # 차변/대변 합계 허용 오차
    BALANCE_TOLERANCE: Decimal = Decimal("0.01")

    # 라인 금액(FCY, LCY 환산)과 환율 상한
    MAX_AMOUNT: Decimal = Decimal("999999999999999.99")
    MAX_EXCHANGE_RATE: Decimal = Decimal("1000000")

    # 일할 이자 계산 분모 (연이율 % × 365일)
    DAY_COUNT_DIVISOR: Decimal = Decimal("36500")

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 200

    # 계좌번호 시퀀스 상한
    CUSTOMER_SEQ_MAX: int = 999
    OFFICE_SEQ_MAX: int = 99
