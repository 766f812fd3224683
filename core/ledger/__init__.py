"""
복식부기 원장 (Double-Entry Ledger)

거래 검증 → 전기 → 잔액 반영, EOD 이자 경과, 조회.

사용 예시:
```python
from core.ledger import build_ledger, TransactionRequest, TransactionLineRequest

ledger = build_ledger(db, local_currency="USD", interest_expense_account="914010100101")

validated = await ledger.validator.validate(request)
receipt = await ledger.posting.post(validated)

result = await ledger.accrual.run_eod(date(2026, 1, 15))

# 시산표 조회
trial_balance = await LedgerStore(db).get_trial_balance()
```
"""

from core.ledger.accounts import AccountService
from core.ledger.accrual import EodAccrualEngine, daily_interest
from core.ledger.balance_store import AccountLocks, BalanceStore
from core.ledger.bootstrap import LedgerComponents, build_ledger
from core.ledger.catalog import CatalogStore
from core.ledger.posting import PostingEngine
from core.ledger.store import LedgerStore
from core.ledger.types import (
    Account,
    Balance,
    CustomerDetails,
    EodResult,
    OfficeDetails,
    SubProduct,
    TransactionLineRequest,
    TransactionReceipt,
    TransactionRequest,
    ValidatedTransaction,
)
from core.ledger.validator import TransactionValidator

__all__ = [
    # 핵심 클래스
    "AccountLocks",
    "AccountService",
    "BalanceStore",
    "CatalogStore",
    "EodAccrualEngine",
    "LedgerComponents",
    "LedgerStore",
    "PostingEngine",
    "TransactionValidator",
    "build_ledger",
    "daily_interest",
    # 데이터 모델
    "Account",
    "Balance",
    "CustomerDetails",
    "EodResult",
    "OfficeDetails",
    "SubProduct",
    "TransactionLineRequest",
    "TransactionReceipt",
    "TransactionRequest",
    "ValidatedTransaction",
]
