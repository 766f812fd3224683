"""
거래 검증기

TransactionRequest → ValidatedTransaction.
구조 → 참조 → 산술 → 균형 순서로 검사하고, 첫 오류에서 중단.
DB 조회만 하며 어떤 상태도 변경하지 않음.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from core.constants import LedgerLimits
from core.ledger.balance_store import BalanceStore
from core.ledger.catalog import CatalogStore
from core.ledger.errors import (
    AccountNotPostableError,
    ArithmeticMismatchError,
    CurrencyMismatchError,
    ImbalanceError,
    StructuralError,
    UnknownAccountError,
)
from core.ledger.types import (
    Account,
    AccrualInfo,
    TransactionLineRequest,
    TransactionRequest,
    ValidatedLine,
    ValidatedTransaction,
    round_amount,
)
from core.types import DrCrFlag, SubProductStatus

logger = logging.getLogger(__name__)


class TransactionValidator:
    """거래 검증기

    Args:
        balance_store: 계좌 조회용
        catalog: 서브상품 조회용
        local_currency: 원장 기준 통화 (LCY)
    """

    def __init__(
        self,
        balance_store: BalanceStore,
        catalog: CatalogStore,
        local_currency: str,
    ):
        self.balance_store = balance_store
        self.catalog = catalog
        self.local_currency = local_currency.upper()

    async def validate(
        self,
        request: TransactionRequest,
        accrual: AccrualInfo | None = None,
    ) -> ValidatedTransaction:
        """거래 요청 검증

        Args:
            request: 거래 요청
            accrual: 이자 경과 정보 (EOD 생성 거래만)

        Returns:
            ENTRY 상태의 ValidatedTransaction

        Raises:
            ValidationError: 검증 실패 (하위 클래스로 원인 구분)
        """
        self._check_structure(request)

        accounts = await self._check_references(request)

        lines = [
            self._build_line(line_no, line, accounts[line.account_no])
            for line_no, line in enumerate(request.lines, start=1)
        ]

        self._check_balance(lines)

        return ValidatedTransaction(
            value_date=request.value_date,
            narration=request.narration,
            lines=lines,
            lcy_currency=self.local_currency,
            tran_type=request.tran_type,
            accrual=accrual,
        )

    # -------------------------------------------------------------------------
    # 1. 구조
    # -------------------------------------------------------------------------

    def _check_structure(self, request: TransactionRequest) -> None:
        if len(request.lines) < 2:
            raise StructuralError(
                f"Transaction requires at least 2 lines, got {len(request.lines)}"
            )

        for line_no, line in enumerate(request.lines, start=1):
            if not line.fcy_amt.is_finite() or not line.exchange_rate.is_finite():
                raise StructuralError(f"Line {line_no}: amount and exchange rate must be finite")
            if line.lcy_amt is not None and not line.lcy_amt.is_finite():
                raise StructuralError(f"Line {line_no}: local currency amount must be finite")
            if line.fcy_amt <= 0:
                raise StructuralError(f"Line {line_no}: amount must be positive")
            if line.fcy_amt > LedgerLimits.MAX_AMOUNT:
                raise StructuralError(
                    f"Line {line_no}: amount exceeds {LedgerLimits.MAX_AMOUNT}"
                )
            if line.fcy_amt != round_amount(line.fcy_amt):
                raise StructuralError(
                    f"Line {line_no}: amount must have at most 2 decimal places"
                )
            if line.exchange_rate <= 0:
                raise StructuralError(f"Line {line_no}: exchange rate must be positive")
            if line.exchange_rate > LedgerLimits.MAX_EXCHANGE_RATE:
                raise StructuralError(
                    f"Line {line_no}: exchange rate exceeds {LedgerLimits.MAX_EXCHANGE_RATE}"
                )
            if line.tran_ccy.upper() == self.local_currency and line.exchange_rate != 1:
                raise StructuralError(
                    f"Line {line_no}: exchange rate must be 1 for local currency "
                    f"{self.local_currency}"
                )

    # -------------------------------------------------------------------------
    # 2. 참조
    # -------------------------------------------------------------------------

    async def _check_references(self, request: TransactionRequest) -> dict[str, Account]:
        accounts: dict[str, Account] = {}

        for line_no, line in enumerate(request.lines, start=1):
            account = accounts.get(line.account_no)
            if account is None:
                account = await self._load_postable_account(line.account_no)
                accounts[line.account_no] = account

            tran_ccy = line.tran_ccy.upper()
            if account.currency != tran_ccy and account.currency != self.local_currency:
                raise CurrencyMismatchError(
                    f"Line {line_no}: currency {tran_ccy} does not match account "
                    f"{account.account_no} currency {account.currency}",
                    account_no=account.account_no,
                )

            if request.value_date < account.open_date:
                raise StructuralError(
                    f"Line {line_no}: value date {request.value_date.isoformat()} is before "
                    f"account {account.account_no} open date {account.open_date.isoformat()}"
                )

        return accounts

    async def _load_postable_account(self, account_no: str) -> Account:
        account = await self.balance_store.get_account(account_no)
        if account is None:
            raise UnknownAccountError(f"Account not found: {account_no}", account_no=account_no)

        if not account.is_postable:
            raise AccountNotPostableError(
                f"Account {account_no} is not postable (status={account.status.value})",
                account_no=account_no,
            )

        if account.sub_product_code is not None:
            sub_product = await self.catalog.get_sub_product(account.sub_product_code)
            if sub_product is None or sub_product.status != SubProductStatus.ACTIVE:
                raise AccountNotPostableError(
                    f"Sub-product {account.sub_product_code} of account {account_no} "
                    "is not active",
                    account_no=account_no,
                )

        return account

    # -------------------------------------------------------------------------
    # 3. 산술
    # -------------------------------------------------------------------------

    def _build_line(
        self,
        line_no: int,
        line: TransactionLineRequest,
        account: Account,
    ) -> ValidatedLine:
        tran_ccy = line.tran_ccy.upper()
        lcy_amt = round_amount(line.fcy_amt * line.exchange_rate)

        if lcy_amt <= 0:
            raise StructuralError(f"Line {line_no}: local currency amount rounds to zero")
        if lcy_amt > LedgerLimits.MAX_AMOUNT:
            raise StructuralError(
                f"Line {line_no}: local currency amount exceeds {LedgerLimits.MAX_AMOUNT}"
            )

        if line.lcy_amt is not None and abs(line.lcy_amt - lcy_amt) > LedgerLimits.LCY_TOLERANCE:
            raise ArithmeticMismatchError(
                f"Line {line_no}: supplied LCY amount {line.lcy_amt} does not match "
                f"{line.fcy_amt} x {line.exchange_rate} = {lcy_amt}"
            )

        # 계좌 통화 = 거래 통화면 FCY, 아니면 (LCY 계좌) LCY 금액 반영
        posting_amount = line.fcy_amt if account.currency == tran_ccy else lcy_amt

        return ValidatedLine(
            line_no=line_no,
            account_no=account.account_no,
            dr_cr=line.dr_cr,
            tran_ccy=tran_ccy,
            fcy_amt=line.fcy_amt,
            exchange_rate=line.exchange_rate,
            lcy_amt=lcy_amt,
            posting_amount=posting_amount,
            gl_num=account.gl_num,
            reference=line.reference,
        )

    # -------------------------------------------------------------------------
    # 4. 균형
    # -------------------------------------------------------------------------

    def _check_balance(self, lines: list[ValidatedLine]) -> None:
        # 모든 라인의 lcy_amt는 원장 기준 통화 하나로 환산되어 있음
        total_debit = sum(
            (line.lcy_amt for line in lines if line.dr_cr == DrCrFlag.D), Decimal("0")
        )
        total_credit = sum(
            (line.lcy_amt for line in lines if line.dr_cr == DrCrFlag.C), Decimal("0")
        )

        if abs(total_debit - total_credit) >= LedgerLimits.BALANCE_TOLERANCE:
            raise ImbalanceError(
                f"Transaction is not balanced: debit={total_debit}, credit={total_credit} "
                f"({self.local_currency})"
            )
