"""
Balance Store

계좌와 잔액의 단일 진실 원천.

- 잔액 변경은 전기 트랜잭션 안에서만 (apply_delta)
- version 컬럼으로 compare-and-swap (다른 프로세스 쓰기 감지)
- 같은 프로세스 안의 동시 전기는 AccountLocks로 계좌 단위 직렬화
- 금액은 Decimal 문자열로 저장하므로 누적 오차 없음
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable

from core.domain.state_machines import AccountStateMachine
from core.ledger.errors import (
    AccountNotFoundError,
    AccountStateError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    NonZeroBalanceError,
    NotFoundError,
)
from core.ledger.types import Account, Balance, CustomerDetails, OfficeDetails
from core.types import AccountKind, AccountStatus

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


ACCOUNT_COLUMNS = """
    account_no, kind, account_name, currency, gl_num, status, open_date,
    close_date, cust_id, sub_product_code, interest_increment, reconciliation_required
"""


def row_to_account(row: tuple[Any, ...]) -> Account:
    """account 행 → Account (kind 컬럼으로 details 변형 결정)"""
    details: CustomerDetails | OfficeDetails
    if row[1] == AccountKind.CUSTOMER.value:
        details = CustomerDetails(
            cust_id=int(row[8]),
            sub_product_code=row[9],
            interest_increment=Decimal(row[10]),
        )
    else:
        details = OfficeDetails(reconciliation_required=bool(row[11]))

    return Account(
        account_no=row[0],
        account_name=row[2],
        currency=row[3],
        gl_num=row[4],
        status=AccountStatus(row[5]),
        open_date=date.fromisoformat(row[6]),
        close_date=date.fromisoformat(row[7]) if row[7] else None,
        details=details,
    )


class AccountLocks:
    """계좌별 asyncio.Lock 레지스트리

    여러 계좌를 잡을 때는 항상 정렬 순서로 획득하여 교착 방지.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, account_no: str) -> asyncio.Lock:
        lock = self._locks.get(account_no)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_no] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, account_nos: Iterable[str]) -> AsyncIterator[list[str]]:
        """계좌 락 일괄 획득 (정렬 순서)

        사용 예시:
        ```python
        async with locks.acquire(["ACC2", "ACC1"]) as ordered:
            ...  # ordered == ["ACC1", "ACC2"]
        ```
        """
        ordered = sorted(set(account_nos))
        async with AsyncExitStack() as stack:
            for account_no in ordered:
                await stack.enter_async_context(self.get(account_no))
            yield ordered


class BalanceStore:
    """계좌/잔액 저장소

    Args:
        db: SQLite 어댑터 (쓰기 연결)
        locks: 공유할 AccountLocks (None이면 새로 생성)
    """

    def __init__(self, db: SQLiteAdapter, locks: AccountLocks | None = None):
        self.db = db
        self.locks = locks or AccountLocks()

    # =========================================================================
    # 조회
    # =========================================================================

    async def get_account(self, account_no: str) -> Account | None:
        """계좌 조회 (없으면 None)"""
        row = await self.db.fetchone(
            f"SELECT {ACCOUNT_COLUMNS} FROM account WHERE account_no = ?",
            (account_no,),
        )
        return row_to_account(row) if row else None

    async def get_balance(self, account_no: str) -> Balance:
        """잔액 조회

        Raises:
            AccountNotFoundError: 잔액 레코드가 없는 경우
        """
        row = await self.db.fetchone(
            """
            SELECT account_no, current_balance, available_balance,
                   interest_accrued, version, last_tran_id
            FROM account_balance
            WHERE account_no = ?
            """,
            (account_no,),
        )
        if not row:
            raise AccountNotFoundError(account_no)

        return Balance(
            account_no=row[0],
            current_balance=Decimal(row[1]),
            available_balance=Decimal(row[2]),
            interest_accrued=Decimal(row[3]),
            version=int(row[4]),
            last_tran_id=row[5],
        )

    async def overdraft_allowed(self, account_no: str) -> bool:
        """당좌대월 허용 여부

        사무 계정은 항상 허용, 고객 계좌는 서브상품 설정을 따름.
        """
        row = await self.db.fetchone(
            """
            SELECT a.kind, COALESCE(sp.overdraft_allowed, 0)
            FROM account a
            LEFT JOIN sub_product sp ON sp.sub_product_code = a.sub_product_code
            WHERE a.account_no = ?
            """,
            (account_no,),
        )
        if not row:
            raise AccountNotFoundError(account_no)
        if row[0] == AccountKind.OFFICE.value:
            return True
        return bool(row[1])

    # =========================================================================
    # 쓰기 (호출자가 연 트랜잭션 안에서만)
    # =========================================================================

    def _require_transaction(self) -> None:
        if not self.db.in_transaction:
            raise RuntimeError("Balance mutation requires an open transaction")

    async def insert_account(self, account: Account) -> None:
        """계좌 + 0 잔액 레코드 생성"""
        self._require_transaction()

        details = account.details
        if isinstance(details, CustomerDetails):
            cust_id: int | None = details.cust_id
            sub_product_code: str | None = details.sub_product_code
            increment = str(details.interest_increment)
            reconciliation = 0
        else:
            cust_id = None
            sub_product_code = None
            increment = "0"
            reconciliation = int(details.reconciliation_required)

        await self.db.execute(
            """
            INSERT INTO account (
                account_no, kind, account_name, currency, gl_num, status,
                open_date, close_date, cust_id, sub_product_code,
                interest_increment, reconciliation_required
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.account_no,
                account.kind.value,
                account.account_name,
                account.currency,
                account.gl_num,
                account.status.value,
                account.open_date.isoformat(),
                account.close_date.isoformat() if account.close_date else None,
                cust_id,
                sub_product_code,
                increment,
                reconciliation,
            ),
        )
        await self.db.execute(
            """
            INSERT INTO account_balance (
                account_no, current_balance, available_balance, interest_accrued, version
            ) VALUES (?, '0', '0', '0', 0)
            """,
            (account.account_no,),
        )

    async def apply_delta(
        self,
        account_no: str,
        delta: Decimal,
        tran_id: str | None = None,
    ) -> Balance:
        """잔액에 부호 있는 변동분 반영

        Args:
            account_no: 계좌번호
            delta: 대변 +, 차변 -
            tran_id: 마지막 반영 거래 ID

        Returns:
            반영 후 잔액

        Raises:
            AccountNotFoundError: 잔액 레코드 없음
            InsufficientFundsError: 당좌대월 불가 계좌가 음수가 되는 경우
            ConcurrencyConflictError: version CAS 실패
        """
        self._require_transaction()

        current = await self.get_balance(account_no)
        new_balance = current.current_balance + delta

        if new_balance < 0 and delta < 0 and not await self.overdraft_allowed(account_no):
            raise InsufficientFundsError(account_no, current.current_balance, delta)

        cursor = await self.db.execute(
            """
            UPDATE account_balance SET
                current_balance = ?,
                available_balance = ?,
                version = version + 1,
                last_tran_id = COALESCE(?, last_tran_id),
                updated_at = datetime('now')
            WHERE account_no = ? AND version = ?
            """,
            (str(new_balance), str(new_balance), tran_id, account_no, current.version),
        )
        if cursor.rowcount == 0:
            raise ConcurrencyConflictError(account_no)

        return Balance(
            account_no=account_no,
            current_balance=new_balance,
            available_balance=new_balance,
            interest_accrued=current.interest_accrued,
            version=current.version + 1,
            last_tran_id=tran_id or current.last_tran_id,
        )

    async def add_accrued_interest(self, account_no: str, amount: Decimal) -> Balance:
        """경과 이자 누계 증가 (이자 경과 거래 전기 시에만)"""
        self._require_transaction()

        current = await self.get_balance(account_no)
        new_accrued = current.interest_accrued + amount

        cursor = await self.db.execute(
            """
            UPDATE account_balance SET
                interest_accrued = ?,
                version = version + 1,
                updated_at = datetime('now')
            WHERE account_no = ? AND version = ?
            """,
            (str(new_accrued), account_no, current.version),
        )
        if cursor.rowcount == 0:
            raise ConcurrencyConflictError(account_no)

        return Balance(
            account_no=account_no,
            current_balance=current.current_balance,
            available_balance=current.available_balance,
            interest_accrued=new_accrued,
            version=current.version + 1,
            last_tran_id=current.last_tran_id,
        )

    async def apply_gl_delta(self, gl_num: str, delta: Decimal) -> Decimal:
        """GL 잔액에 변동분 반영 (Upsert)

        Returns:
            반영 후 GL 잔액
        """
        self._require_transaction()

        row = await self.db.fetchone(
            "SELECT balance FROM gl_balance WHERE gl_num = ?",
            (gl_num,),
        )
        new_balance = (Decimal(row[0]) if row else Decimal("0")) + delta

        await self.db.execute(
            """
            INSERT INTO gl_balance (gl_num, balance)
            VALUES (?, ?)
            ON CONFLICT(gl_num) DO UPDATE SET
                balance = excluded.balance,
                updated_at = datetime('now')
            """,
            (gl_num, str(new_balance)),
        )
        return new_balance

    async def set_status(
        self,
        account_no: str,
        status: AccountStatus,
        close_date: date | None = None,
    ) -> None:
        """계좌 상태 컬럼 갱신 (전이 검증은 호출자 책임)"""
        self._require_transaction()
        await self.db.execute(
            """
            UPDATE account SET
                status = ?,
                close_date = COALESCE(?, close_date),
                updated_at = datetime('now')
            WHERE account_no = ?
            """,
            (status.value, close_date.isoformat() if close_date else None, account_no),
        )

    # =========================================================================
    # 해지
    # =========================================================================

    async def close_account(
        self,
        account_no: str,
        close_date: date | None = None,
    ) -> Account:
        """계좌 해지

        계좌 락을 잡은 상태에서 잔액 0을 확인하므로
        동시에 진행 중인 전기와 경합하지 않음.

        Raises:
            NotFoundError: 계좌 없음
            AccountStateError: ACTIVE가 아닌 계좌
            NonZeroBalanceError: 잔액이 0이 아닌 경우
        """
        close_date = close_date or date.today()

        async with self.locks.acquire([account_no]):
            async with self.db.transaction():
                account = await self.get_account(account_no)
                if account is None:
                    raise NotFoundError("Account", account_no)

                machine = AccountStateMachine(account.status)
                if not machine.can_transition(AccountStatus.CLOSED):
                    raise AccountStateError(
                        f"Account {account_no} cannot be closed from status {account.status.value}"
                    )

                balance = await self.get_balance(account_no)
                if balance.current_balance != 0:
                    raise NonZeroBalanceError(account_no, balance.current_balance)

                await self.set_status(account_no, AccountStatus.CLOSED, close_date)

        logger.info(
            f"계좌 해지: {account_no}",
            extra={"account_no": account_no, "close_date": close_date.isoformat()},
        )

        closed = await self.get_account(account_no)
        assert closed is not None
        return closed
