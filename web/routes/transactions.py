"""
거래 라우트

POST /api/transactions/entry       - 거래 입력 (검증 → 전기)
GET  /api/transactions/{tran_id}   - 거래 단건 조회
GET  /api/transactions             - 거래 목록 (페이지)
"""

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import LedgerLimits
from core.ledger.bootstrap import LedgerComponents
from web.dependencies import get_db, get_ledger
from web.models.requests import TransactionEntryRequest
from web.models.responses import (
    ErrorResponse,
    TransactionPageResponse,
    TransactionReceiptResponse,
    TransactionResponse,
)
from web.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.post(
    "/entry",
    response_model=TransactionReceiptResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_entry(
    request: TransactionEntryRequest,
    ledger: LedgerComponents = Depends(get_ledger),
):
    """거래 입력

    검증 실패는 400, 전기 실패(잔액 부족, 계좌 상태 경합 등)는 409.
    """
    service = TransactionService(ledger.db, ledger)
    return await service.post_entry(request)


@router.get(
    "/{tran_id}",
    response_model=TransactionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_transaction(
    tran_id: str,
    db: SQLiteAdapter = Depends(get_db),
):
    """거래 단건 조회 (라인 포함)"""
    service = TransactionService(db)
    return await service.get_transaction(tran_id)


@router.get("", response_model=TransactionPageResponse)
async def list_transactions(
    page: int = Query(default=0, ge=0, description="페이지 (0부터)"),
    size: int = Query(
        default=LedgerLimits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=LedgerLimits.MAX_PAGE_SIZE,
        description="페이지 크기",
    ),
    sort: str | None = Query(default=None, description="정렬 (예: valueDate,desc)"),
    db: SQLiteAdapter = Depends(get_db),
):
    """거래 목록 조회"""
    service = TransactionService(db)
    return await service.list_transactions(page, size, sort)
