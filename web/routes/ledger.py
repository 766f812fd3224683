"""
원장 API 라우트

GET /api/ledger/trial-balance - GL별 잔액 시산표
GET /api/ledger/gl/{gl_num}/movements - GL 변동 이력 (최신순)
"""

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import LedgerLimits
from core.ledger.store import LedgerStore
from web.dependencies import get_db
from web.models.responses import GlMovementsResponse, TrialBalanceResponse

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


@router.get("/trial-balance", response_model=TrialBalanceResponse)
async def get_trial_balance(
    db: SQLiteAdapter = Depends(get_db),
):
    """시산표 조회 (합계는 항상 0)"""
    store = LedgerStore(db)
    return await store.get_trial_balance()


@router.get("/gl/{gl_num}/movements", response_model=GlMovementsResponse)
async def get_gl_movements(
    gl_num: str,
    limit: int = Query(default=100, ge=1, le=LedgerLimits.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: SQLiteAdapter = Depends(get_db),
):
    """GL 변동 이력. 라인마다 반영 후 GL 잔액 포함"""
    store = LedgerStore(db)
    movements = await store.get_gl_movements(gl_num, limit, offset)
    return {"gl_num": gl_num, "movements": movements, "limit": limit, "offset": offset}
