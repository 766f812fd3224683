"""
원장 컴포넌트 조립

Web과 EOD 스케줄러가 같은 방식으로 의존성을 구성하도록
쓰기 연결 하나에 BalanceStore/Validator/PostingEngine/EOD 엔진을 묶음.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.ledger.accounts import AccountService
from core.ledger.accrual import EodAccrualEngine
from core.ledger.balance_store import AccountLocks, BalanceStore
from core.ledger.catalog import CatalogStore
from core.ledger.posting import PostingEngine
from core.ledger.validator import TransactionValidator
from core.storage.param_store import ParamStore

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter


@dataclass
class LedgerComponents:
    """쓰기 경로 컴포넌트 묶음"""

    db: "SQLiteAdapter"
    balance_store: BalanceStore
    catalog: CatalogStore
    validator: TransactionValidator
    posting: PostingEngine
    accounts: AccountService
    params: ParamStore
    accrual: EodAccrualEngine


def build_ledger(
    db: "SQLiteAdapter",
    local_currency: str,
    interest_expense_account: str | None,
    locks: AccountLocks | None = None,
) -> LedgerComponents:
    """쓰기 연결 기준으로 원장 컴포넌트 생성

    Args:
        db: 연결된 쓰기용 SQLiteAdapter
        local_currency: 원장 기준 통화
        interest_expense_account: EOD 이자비용 사무 계정
        locks: 공유할 계좌 락 (None이면 새로 생성)
    """
    balance_store = BalanceStore(db, locks)
    catalog = CatalogStore(db)
    validator = TransactionValidator(balance_store, catalog, local_currency)
    posting = PostingEngine(balance_store)
    params = ParamStore(db)

    return LedgerComponents(
        db=db,
        balance_store=balance_store,
        catalog=catalog,
        validator=validator,
        posting=posting,
        accounts=AccountService(balance_store, catalog, local_currency),
        params=params,
        accrual=EodAccrualEngine(
            balance_store=balance_store,
            validator=validator,
            posting=posting,
            params=params,
            interest_expense_account=interest_expense_account,
        ),
    )
