"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
"""

from typing import AsyncGenerator

from fastapi import HTTPException

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings, get_settings
from core.ledger.bootstrap import LedgerComponents


def get_app_settings() -> Settings:
    """애플리케이션 설정 반환"""
    return get_settings()


async def get_db() -> AsyncGenerator[SQLiteAdapter, None]:
    """DB 세션 반환 (읽기 전용)

    요청마다 별도 연결을 열어 커밋된 데이터만 조회.
    전기/개설/EOD는 get_ledger()의 공유 쓰기 연결 사용.
    """
    settings = get_settings()
    async with SQLiteAdapter(settings.db_path, readonly=True) as db:
        yield db


# =========================================================================
# 원장 쓰기 컴포넌트 (프로세스 공유)
# =========================================================================

# lifespan에서 설정되는 전역 인스턴스
# 계좌 락과 EOD 실행 락을 요청 간에 공유하기 위해 하나만 유지
_ledger: LedgerComponents | None = None


def set_ledger(ledger: LedgerComponents | None) -> None:
    """원장 컴포넌트 설정

    앱 시작 시 호출하여 전역 인스턴스 설정, 종료 시 None.

    Args:
        ledger: build_ledger()로 만든 컴포넌트
    """
    global _ledger
    _ledger = ledger


def get_ledger() -> LedgerComponents:
    """원장 컴포넌트 반환

    Raises:
        HTTPException: 503 (초기화 전)
    """
    if _ledger is None:
        raise HTTPException(status_code=503, detail="Ledger is not initialized")
    return _ledger
