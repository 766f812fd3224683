"""
계좌 라우트

GET  /api/accounts                        - 계좌 목록 (페이지, 상태 필터)
GET  /api/accounts/{account_no}           - 계좌 조회 (잔액, 경과 이자)
GET  /api/accounts/{account_no}/statement - 거래 내역
POST /api/accounts/customer               - 고객 계좌 개설
POST /api/accounts/office                 - 사무 계정 개설
POST /api/accounts/{account_no}/close     - 해지
POST /api/accounts/{account_no}/status    - 상태 변경
"""

from fastapi import APIRouter, Body, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import LedgerLimits
from core.ledger.bootstrap import LedgerComponents
from web.dependencies import get_db, get_ledger
from web.models.requests import (
    AccountCloseRequest,
    AccountStatusRequest,
    CustomerAccountOpenRequest,
    OfficeAccountOpenRequest,
)
from web.models.responses import (
    AccountPageResponse,
    AccountResponse,
    ErrorResponse,
    StatementResponse,
)
from web.services.account_service import AccountService

router = APIRouter(prefix="/api/accounts", tags=["Accounts"])


@router.get("", response_model=AccountPageResponse)
async def list_accounts(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=LedgerLimits.DEFAULT_PAGE_SIZE, ge=1, le=LedgerLimits.MAX_PAGE_SIZE),
    sort: str | None = Query(default=None, description="정렬 (예: accountNo,asc)"),
    status: str | None = Query(default=None, description="상태 필터"),
    db: SQLiteAdapter = Depends(get_db),
):
    """계좌 목록 조회"""
    service = AccountService(db)
    return await service.list_accounts(page, size, sort, status)


@router.post(
    "/customer",
    response_model=AccountResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def open_customer_account(
    request: CustomerAccountOpenRequest,
    ledger: LedgerComponents = Depends(get_ledger),
):
    """고객 계좌 개설 (계좌번호 자동 생성)"""
    service = AccountService(ledger.db, ledger)
    return await service.open_customer(request)


@router.post(
    "/office",
    response_model=AccountResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def open_office_account(
    request: OfficeAccountOpenRequest,
    ledger: LedgerComponents = Depends(get_ledger),
):
    """사무 계정 개설 (계좌번호 자동 생성)"""
    service = AccountService(ledger.db, ledger)
    return await service.open_office(request)


@router.get(
    "/{account_no}",
    response_model=AccountResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_account(
    account_no: str,
    db: SQLiteAdapter = Depends(get_db),
):
    """계좌 조회"""
    service = AccountService(db)
    return await service.get_account(account_no)


@router.get(
    "/{account_no}/statement",
    response_model=StatementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_statement(
    account_no: str,
    limit: int = Query(default=100, ge=1, le=LedgerLimits.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: SQLiteAdapter = Depends(get_db),
):
    """계좌 거래 내역 (최신순)"""
    service = AccountService(db)
    return await service.get_statement(account_no, limit, offset)


@router.post(
    "/{account_no}/close",
    response_model=AccountResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def close_account(
    account_no: str,
    request: AccountCloseRequest | None = Body(default=None),
    ledger: LedgerComponents = Depends(get_ledger),
):
    """계좌 해지 (잔액 0인 ACTIVE 계좌만)"""
    service = AccountService(ledger.db, ledger)
    close_date = request.close_date if request else None
    return await service.close(account_no, close_date)


@router.post(
    "/{account_no}/status",
    response_model=AccountResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def change_status(
    account_no: str,
    request: AccountStatusRequest,
    ledger: LedgerComponents = Depends(get_ledger),
):
    """계좌 상태 변경"""
    service = AccountService(ledger.db, ledger)
    return await service.change_status(account_no, request.status, request.effective_date)
