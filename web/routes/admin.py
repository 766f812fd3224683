"""
관리 라우트 (EOD)

POST /api/admin/run-eod?date=YYYY-MM-DD - EOD 수동 실행
POST /api/admin/eod/cancel              - 실행 중인 EOD 취소
GET  /api/admin/eod-runs                - 최근 실행 기록
GET  /api/admin/eod-runs/{run_date}     - 실행 기록 상세 (계좌별 실패 포함)
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.bootstrap import LedgerComponents
from web.dependencies import get_db, get_ledger
from web.models.responses import EodCancelResponse, EodRunResponse, ErrorResponse
from web.services.eod_service import EodService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post(
    "/run-eod",
    response_model=EodRunResponse,
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def run_eod(
    run_date: date | None = Query(default=None, alias="date", description="영업일 (기본: 오늘)"),
    ledger: LedgerComponents = Depends(get_ledger),
):
    """EOD 이자 경과 실행

    이미 완료된 영업일이나 실행 중이면 409.
    """
    service = EodService(ledger.db, ledger)
    return await service.run(run_date)


@router.post("/eod/cancel", response_model=EodCancelResponse)
async def cancel_eod(
    ledger: LedgerComponents = Depends(get_ledger),
):
    """실행 중인 EOD 취소 요청 (다음 계좌 처리 전에 중단)"""
    service = EodService(ledger.db, ledger)
    return service.cancel()


@router.get("/eod-runs", response_model=list[EodRunResponse])
async def list_eod_runs(
    limit: int = Query(default=30, ge=1, le=365),
    db: SQLiteAdapter = Depends(get_db),
):
    """최근 EOD 실행 기록"""
    service = EodService(db)
    return await service.list_runs(limit)


@router.get(
    "/eod-runs/{run_date}",
    response_model=EodRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_eod_run(
    run_date: date,
    db: SQLiteAdapter = Depends(get_db),
):
    """EOD 실행 기록 상세"""
    service = EodService(db)
    return await service.get_run(run_date)
