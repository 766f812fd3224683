"""
계좌 생명주기

개설(계좌번호 생성), 상태 전이, 해지.

계좌번호 규칙:
- 고객 계좌: 고객번호 8자리 + 상품유형 1자리 + 순번 3자리 (001~999)
  예: 00012345 + 1 + 001 → "000123451001"
- 사무 계정: "9" + GL 번호 9자리 + 순번 2자리 (01~99)
  예: 9 + 140101001 + 01 → "914010100101"
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from core.constants import LedgerLimits
from core.domain.state_machines import AccountStateMachine
from core.ledger.balance_store import BalanceStore
from core.ledger.catalog import CatalogStore
from core.ledger.errors import AccountStateError, CatalogError, NotFoundError, StructuralError
from core.ledger.types import Account, CustomerDetails, OfficeDetails
from core.types import AccountStatus, SubProductStatus

logger = logging.getLogger(__name__)


OFFICE_ACCOUNT_PREFIX = "9"


def customer_account_prefix(cust_id: int, product_type_code: str) -> str:
    """고객 계좌번호 앞 9자리

    Example:
        >>> customer_account_prefix(12345, "1")
        '000123451'
    """
    return f"{cust_id:08d}{product_type_code}"


def office_account_prefix(gl_num: str) -> str:
    """사무 계정번호 앞 10자리

    Example:
        >>> office_account_prefix("140101001")
        '9140101001'
    """
    return f"{OFFICE_ACCOUNT_PREFIX}{gl_num}"


class AccountService:
    """계좌 개설/상태 변경

    Args:
        balance_store: 계좌/잔액 저장소
        catalog: 서브상품 카탈로그
        local_currency: 사무 계정 기본 통화
    """

    def __init__(
        self,
        balance_store: BalanceStore,
        catalog: CatalogStore,
        local_currency: str,
    ):
        self.balance_store = balance_store
        self.catalog = catalog
        self.db = balance_store.db
        self.local_currency = local_currency.upper()

    # =========================================================================
    # 개설
    # =========================================================================

    async def open_customer_account(
        self,
        cust_id: int,
        sub_product_code: str,
        account_name: str,
        open_date: date | None = None,
        interest_increment: Decimal = Decimal("0"),
        currency: str | None = None,
    ) -> Account:
        """고객 계좌 개설

        Raises:
            StructuralError: 고객번호 범위 오류
            CatalogError: 서브상품 미등록/비활성, 통화 불일치, 순번 소진
        """
        if not 0 < cust_id <= 99_999_999:
            raise StructuralError(f"Customer id must be 1..99999999, got {cust_id}")

        sub_product = await self.catalog.get_sub_product(sub_product_code)
        if sub_product is None:
            raise CatalogError(f"Sub-product not found: {sub_product_code}")
        if sub_product.status != SubProductStatus.ACTIVE:
            raise CatalogError(
                f"Sub-product {sub_product_code} is not active ({sub_product.status.value})"
            )
        if currency is not None and currency.upper() != sub_product.currency:
            raise CatalogError(
                f"Account currency {currency.upper()} does not match sub-product "
                f"currency {sub_product.currency}"
            )

        prefix = customer_account_prefix(cust_id, sub_product.product_type_code)

        async with self.db.transaction():
            seq = await self._next_seq(prefix, LedgerLimits.CUSTOMER_SEQ_MAX)
            account = Account(
                account_no=f"{prefix}{seq:03d}",
                account_name=account_name,
                currency=sub_product.currency,
                gl_num=sub_product.cum_gl_num,
                status=AccountStatus.ACTIVE,
                open_date=open_date or date.today(),
                details=CustomerDetails(
                    cust_id=cust_id,
                    sub_product_code=sub_product_code,
                    interest_increment=interest_increment,
                ),
            )
            await self.balance_store.insert_account(account)

        logger.info(
            f"고객 계좌 개설: {account.account_no}",
            extra={"account_no": account.account_no, "sub_product_code": sub_product_code},
        )
        return account

    async def open_office_account(
        self,
        gl_num: str,
        account_name: str,
        open_date: date | None = None,
        currency: str | None = None,
        reconciliation_required: bool = False,
    ) -> Account:
        """사무 계정 개설

        Raises:
            StructuralError: GL 번호 형식 오류 (숫자 9자리)
            CatalogError: 순번 소진
        """
        if len(gl_num) != 9 or not gl_num.isdigit():
            raise StructuralError(f"GL number must be 9 digits, got '{gl_num}'")

        prefix = office_account_prefix(gl_num)

        async with self.db.transaction():
            seq = await self._next_seq(prefix, LedgerLimits.OFFICE_SEQ_MAX)
            account = Account(
                account_no=f"{prefix}{seq:02d}",
                account_name=account_name,
                currency=(currency or self.local_currency).upper(),
                gl_num=gl_num,
                status=AccountStatus.ACTIVE,
                open_date=open_date or date.today(),
                details=OfficeDetails(reconciliation_required=reconciliation_required),
            )
            await self.balance_store.insert_account(account)

        logger.info(
            f"사무 계정 개설: {account.account_no}",
            extra={"account_no": account.account_no, "gl_num": gl_num},
        )
        return account

    async def _next_seq(self, seq_key: str, max_seq: int) -> int:
        """계좌번호 순번 증가 (트랜잭션 안에서 호출)"""
        row = await self.db.fetchone(
            "SELECT last_seq FROM account_seq WHERE seq_key = ?",
            (seq_key,),
        )
        next_seq = (int(row[0]) if row else 0) + 1
        if next_seq > max_seq:
            raise CatalogError(
                f"Account number sequence for {seq_key} has reached its maximum ({max_seq})"
            )

        await self.db.execute(
            """
            INSERT INTO account_seq (seq_key, last_seq) VALUES (?, ?)
            ON CONFLICT(seq_key) DO UPDATE SET
                last_seq = excluded.last_seq,
                updated_at = datetime('now')
            """,
            (seq_key, next_seq),
        )
        return next_seq

    # =========================================================================
    # 상태 변경
    # =========================================================================

    async def change_status(
        self,
        account_no: str,
        new_status: AccountStatus,
        effective_date: date | None = None,
    ) -> Account:
        """계좌 상태 전이

        CLOSED는 잔액 확인이 필요하므로 BalanceStore.close_account로 위임.

        Raises:
            NotFoundError: 계좌 없음
            AccountStateError: 허용되지 않은 전이
            NonZeroBalanceError: 잔액이 남은 계좌 해지
        """
        if new_status == AccountStatus.CLOSED:
            return await self.balance_store.close_account(account_no, effective_date)

        async with self.balance_store.locks.acquire([account_no]):
            async with self.db.transaction():
                account = await self.balance_store.get_account(account_no)
                if account is None:
                    raise NotFoundError("Account", account_no)

                machine = AccountStateMachine(account.status)
                if not machine.can_transition(new_status):
                    raise AccountStateError(
                        f"Account {account_no} cannot move from "
                        f"{account.status.value} to {new_status.value}"
                    )
                await self.balance_store.set_status(account_no, new_status)

        logger.info(
            f"계좌 상태 변경: {account_no} {account.status.value} → {new_status.value}",
            extra={"account_no": account_no},
        )

        updated = await self.balance_store.get_account(account_no)
        assert updated is not None
        return updated
