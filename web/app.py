"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.ledger.bootstrap import build_ledger
from core.ledger.errors import LedgerError
from core.logging import setup_logging
from web.dependencies import set_ledger
from web.errors import ledger_error_handler
from web.routes import (
    accounts,
    admin,
    health,
    ledger,
    sub_products,
    transactions,
)

# 로깅 설정 (콘솔 + 파일)
setup_logging("web")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리

    시작 시 스키마 초기화 후 공유 쓰기 연결로 원장 컴포넌트 생성.
    """
    settings = get_settings()

    db = SQLiteAdapter(settings.db_path)
    await db.connect()
    await init_schema(db)

    set_ledger(
        build_ledger(
            db,
            local_currency=settings.local_currency,
            interest_expense_account=settings.interest_expense_account,
        )
    )
    logger.info(
        f"Web: 원장 초기화 완료 (mode={settings.mode.value}, db={settings.db_path})"
    )

    try:
        yield
    finally:
        # 종료 시 - 리소스 정리
        set_ledger(None)
        await db.close()
        logger.info("Web: DB 연결 종료 완료")


app = FastAPI(
    title="MoneyLedger API",
    description="복식부기 원장 / 잔액 엔진 API",
    version=health.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (개발용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(LedgerError, ledger_error_handler)

# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(transactions.router)
app.include_router(accounts.router)
app.include_router(sub_products.router)
app.include_router(ledger.router)
app.include_router(admin.router)
