"""
EOD 서비스

수동 EOD 실행/취소와 실행 기록 조회
"""

from datetime import date
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.bootstrap import LedgerComponents
from core.ledger.store import LedgerStore


class EodService:
    """EOD 서비스

    Args:
        db: 조회용 연결
        ledger: 쓰기 컴포넌트 (실행/취소 시에만 필요)
    """

    def __init__(self, db: SQLiteAdapter, ledger: LedgerComponents | None = None):
        self.db = db
        self.ledger = ledger
        self.ledger_store = LedgerStore(db)

    async def run(self, as_of: date | None = None) -> dict[str, Any]:
        """EOD 실행 (완료될 때까지 대기)

        Raises:
            EodAlreadyCompletedError / EodInProgressError: 409
            EodRunError: 500
        """
        assert self.ledger is not None
        result = await self.ledger.accrual.run_eod(as_of)
        return result.to_dict()

    def cancel(self) -> dict[str, Any]:
        """실행 중인 EOD 취소 요청"""
        assert self.ledger is not None
        run_date = self.ledger.accrual.current_run_date
        requested = self.ledger.accrual.request_cancel()
        return {
            "cancel_requested": requested,
            "run_date": run_date.isoformat() if run_date else None,
        }

    async def get_run(self, run_date: date) -> dict[str, Any]:
        return await self.ledger_store.get_eod_run(run_date)

    async def list_runs(self, limit: int = 30) -> list[dict[str, Any]]:
        return await self.ledger_store.list_eod_runs(limit)
