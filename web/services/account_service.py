"""
계좌 서비스

계좌 개설/상태 변경(쓰기 연결)과 계좌/거래 내역 조회
"""

from datetime import date
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.bootstrap import LedgerComponents
from core.ledger.store import LedgerStore
from core.types import AccountStatus
from web.models.requests import CustomerAccountOpenRequest, OfficeAccountOpenRequest


class AccountService:
    """계좌 서비스

    Args:
        db: 조회용 연결
        ledger: 쓰기 컴포넌트 (개설/상태 변경 시에만 필요)
    """

    def __init__(self, db: SQLiteAdapter, ledger: LedgerComponents | None = None):
        self.db = db
        self.ledger = ledger
        self.ledger_store = LedgerStore(db)

    async def open_customer(self, request: CustomerAccountOpenRequest) -> dict[str, Any]:
        """고객 계좌 개설 후 계좌 정보 반환"""
        assert self.ledger is not None
        account = await self.ledger.accounts.open_customer_account(
            cust_id=request.cust_id,
            sub_product_code=request.sub_product_code,
            account_name=request.account_name,
            open_date=request.open_date,
            interest_increment=request.interest_increment,
            currency=request.currency,
        )
        return await self.ledger_store.get_account(account.account_no)

    async def open_office(self, request: OfficeAccountOpenRequest) -> dict[str, Any]:
        """사무 계정 개설 후 계좌 정보 반환"""
        assert self.ledger is not None
        account = await self.ledger.accounts.open_office_account(
            gl_num=request.gl_num,
            account_name=request.account_name,
            open_date=request.open_date,
            currency=request.currency,
            reconciliation_required=request.reconciliation_required,
        )
        return await self.ledger_store.get_account(account.account_no)

    async def close(self, account_no: str, close_date: date | None = None) -> dict[str, Any]:
        assert self.ledger is not None
        await self.ledger.balance_store.close_account(account_no, close_date)
        return await self.ledger_store.get_account(account_no)

    async def change_status(
        self,
        account_no: str,
        status: AccountStatus,
        effective_date: date | None = None,
    ) -> dict[str, Any]:
        assert self.ledger is not None
        await self.ledger.accounts.change_status(account_no, status, effective_date)
        return await self.ledger_store.get_account(account_no)

    async def get_account(self, account_no: str) -> dict[str, Any]:
        return await self.ledger_store.get_account(account_no)

    async def list_accounts(
        self,
        page: int,
        size: int,
        sort: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        return await self.ledger_store.list_accounts(page, size, sort, status)

    async def get_statement(
        self,
        account_no: str,
        limit: int,
        offset: int,
    ) -> dict[str, Any]:
        """계좌 거래 내역 (최신순)"""
        lines = await self.ledger_store.get_account_statement(account_no, limit, offset)
        return {
            "account_no": account_no,
            "lines": lines,
            "limit": limit,
            "offset": offset,
        }
