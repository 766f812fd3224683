"""
거래 서비스

거래 입력(검증 → 전기)과 거래 조회
"""

from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.bootstrap import LedgerComponents
from core.ledger.store import LedgerStore
from core.ledger.types import (
    TransactionLineRequest,
    TransactionReceipt,
    TransactionRequest,
)
from web.models.requests import TransactionEntryRequest


def receipt_to_dict(receipt: TransactionReceipt) -> dict[str, Any]:
    """TransactionReceipt → 응답 dict (금액은 문자열)"""
    return {
        "tran_id": receipt.tran_id,
        "value_date": receipt.value_date.isoformat(),
        "entry_date": receipt.entry_date.isoformat(),
        "entry_time": receipt.entry_time.isoformat(),
        "narration": receipt.narration,
        "status": receipt.status.value,
        "tran_type": receipt.tran_type.value,
        "balanced": receipt.balanced,
        "total_amount": str(receipt.total_amount),
        "lines": [
            {
                "line_no": line.line_no,
                "account_no": line.account_no,
                "dr_cr": line.dr_cr.value,
                "tran_ccy": line.tran_ccy,
                "fcy_amt": str(line.fcy_amt),
                "exchange_rate": str(line.exchange_rate),
                "lcy_amt": str(line.lcy_amt),
                "posting_amount": str(line.posting_amount),
                "reference": line.reference,
            }
            for line in receipt.lines
        ],
        "balances": {no: str(balance) for no, balance in receipt.balances.items()},
    }


class TransactionService:
    """거래 서비스

    Args:
        db: 조회용 연결
        ledger: 쓰기 컴포넌트 (거래 입력 시에만 필요)
    """

    def __init__(self, db: SQLiteAdapter, ledger: LedgerComponents | None = None):
        self.db = db
        self.ledger = ledger
        self.ledger_store = LedgerStore(db)

    async def post_entry(self, request: TransactionEntryRequest) -> dict[str, Any]:
        """거래 입력

        Raises:
            ValidationError: 검증 실패 (400)
            PostingError: 전기 실패 (409/503)
        """
        assert self.ledger is not None

        core_request = TransactionRequest(
            value_date=request.value_date,
            narration=request.narration,
            lines=[
                TransactionLineRequest(
                    account_no=line.account_no,
                    dr_cr=line.dr_cr,
                    tran_ccy=line.tran_ccy,
                    fcy_amt=line.fcy_amt,
                    exchange_rate=line.exchange_rate,
                    lcy_amt=line.lcy_amt,
                    reference=line.reference,
                )
                for line in request.lines
            ],
        )

        validated = await self.ledger.validator.validate(core_request)
        receipt = await self.ledger.posting.post(validated)
        return receipt_to_dict(receipt)

    async def get_transaction(self, tran_id: str) -> dict[str, Any]:
        return await self.ledger_store.get_transaction(tran_id)

    async def list_transactions(
        self,
        page: int,
        size: int,
        sort: str | None = None,
    ) -> dict[str, Any]:
        """거래 목록 조회

        Returns:
            content, total_elements, total_pages, page, size 포함 응답
        """
        return await self.ledger_store.list_transactions(page, size, sort)
