"""
EOD 이자 경과 엔진

영업일 마감 시 이자부 고객 계좌마다 일할 이자를 계산하여
일반 거래와 동일한 검증 → 전기 경로로 기표.

    일할 이자 = round_half_up(잔액 × (서브상품 금리 + 계좌 가산 금리) / 36500, 2)

재실행 정책:
- COMPLETED 영업일: EodAlreadyCompletedError
- FAILED / CANCELLED 영업일: 재실행 허용, 이미 경과된 계좌는 건너뜀
- RUNNING 기록이 있으면: EodInProgressError (프로세스 비정상 종료 시 recover_stale_runs)

계좌별 LedgerError는 실패로 기록하고 다음 계좌로 진행.
그 밖의 오류는 실행 전체를 FAILED로 기록하고 EodRunError.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import date, datetime, timedelta
from decimal import Decimal

from core.constants import LedgerLimits
from core.domain.state_machines import EodRunStateMachine
from core.ledger.balance_store import BalanceStore
from core.ledger.errors import (
    CurrencyMismatchError,
    EodAlreadyCompletedError,
    EodInProgressError,
    EodRunError,
    LedgerError,
)
from core.ledger.posting import PostingEngine
from core.ledger.types import (
    AccrualFailure,
    AccrualInfo,
    EodResult,
    TransactionLineRequest,
    TransactionRequest,
    round_amount,
)
from core.ledger.validator import TransactionValidator
from core.storage.param_store import ParamStore
from core.types import AccountKind, AccountStatus, DrCrFlag, EodStatus, TranType

logger = logging.getLogger(__name__)


def daily_interest(balance: Decimal, annual_rate: Decimal) -> Decimal:
    """일할 이자 계산

    Args:
        balance: 계좌 잔액
        annual_rate: 연이율 (%)

    Example:
        >>> daily_interest(Decimal("100000.00"), Decimal("3.65"))
        Decimal('10.00')
    """
    return round_amount(balance * annual_rate / LedgerLimits.DAY_COUNT_DIVISOR)


class EodAccrualEngine:
    """EOD 이자 경과 엔진

    Args:
        balance_store: 잔액 저장소
        validator: 거래 검증기
        posting: 전기 엔진
        params: 시스템 파라미터 (영업일 전진)
        interest_expense_account: 이자비용 사무 계정 번호
    """

    def __init__(
        self,
        balance_store: BalanceStore,
        validator: TransactionValidator,
        posting: PostingEngine,
        params: ParamStore,
        interest_expense_account: str | None,
    ):
        self.balance_store = balance_store
        self.db = balance_store.db
        self.validator = validator
        self.posting = posting
        self.params = params
        self.interest_expense_account = interest_expense_account

        self._run_lock = asyncio.Lock()
        self._cancel_requested = asyncio.Event()
        self._current_run_date: date | None = None

    @property
    def is_running(self) -> bool:
        """이 프로세스에서 EOD 실행 중인지 여부"""
        return self._run_lock.locked()

    @property
    def current_run_date(self) -> date | None:
        return self._current_run_date

    def request_cancel(self) -> bool:
        """실행 중인 EOD에 취소 요청

        다음 계좌로 넘어가기 전에 확인하므로, 처리 중인 계좌는 끝까지 전기됨.

        Returns:
            실행 중이어서 요청이 전달되었는지 여부
        """
        if not self.is_running:
            return False
        self._cancel_requested.set()
        logger.warning(f"EOD 취소 요청: {self._current_run_date}")
        return True

    async def recover_stale_runs(self) -> int:
        """비정상 종료로 남은 RUNNING 기록을 FAILED로 변경

        프로세스 시작 시 1회 호출. 같은 프로세스에서 실행 중이면 건드리지 않음.

        Returns:
            복구한 실행 수
        """
        if self.is_running:
            return 0

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                UPDATE eod_run SET
                    status = ?,
                    ended_at = ?,
                    error = 'Run was interrupted and recovered at start-up'
                WHERE status = ?
                """,
                (EodStatus.FAILED.value, datetime.now().isoformat(), EodStatus.RUNNING.value),
            )
            recovered = cursor.rowcount

        if recovered:
            logger.warning(f"중단된 EOD 실행 {recovered}건을 FAILED로 복구")
        return recovered

    async def run_eod(
        self,
        as_of: date | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> EodResult:
        """EOD 이자 경과 실행

        Args:
            as_of: 영업일 (None이면 오늘)
            cancel_event: 외부 취소 신호 (계좌 사이마다 확인)

        Returns:
            COMPLETED 또는 CANCELLED 결과

        Raises:
            EodAlreadyCompletedError: 이미 완료된 영업일
            EodInProgressError: 다른 실행이 진행 중
            EodRunError: 시스템 오류로 실행 중단 (FAILED로 기록됨)
        """
        run_date = as_of or date.today()

        if self._run_lock.locked():
            raise EodInProgressError(self._current_run_date or run_date)

        async with self._run_lock:
            self._cancel_requested.clear()
            self._current_run_date = run_date
            try:
                return await self._run_locked(run_date, cancel_event)
            finally:
                self._current_run_date = None

    async def _run_locked(
        self,
        run_date: date,
        cancel_event: asyncio.Event | None,
    ) -> EodResult:
        started_at = datetime.now()
        await self._start_run(run_date, started_at)

        result = EodResult(run_date=run_date, status=EodStatus.RUNNING, started_at=started_at)
        logger.info(f"EOD 시작: {run_date.isoformat()}")

        try:
            candidates = await self._list_candidates()
            expense_account = await self._require_expense_account() if candidates else ""

            cancelled = False
            for account_no, annual_rate in candidates:
                if self._is_cancelled(cancel_event):
                    cancelled = True
                    break

                failure = await self._accrue_account(
                    run_date, account_no, annual_rate, expense_account, result
                )
                await self._save_progress(result, failure)

            result.status = EodStatus.CANCELLED if cancelled else EodStatus.COMPLETED

        except asyncio.CancelledError:
            result.status = EodStatus.CANCELLED
            await self._finish_run(result)
            logger.warning(f"EOD 태스크 취소: {run_date.isoformat()}")
            raise

        except Exception as e:
            result.status = EodStatus.FAILED
            result.error = str(e)
            await self._finish_run(result)
            logger.exception(f"EOD 실패: {run_date.isoformat()}: {e}")
            raise EodRunError(run_date, str(e)) from e

        await self._finish_run(result)

        if result.status == EodStatus.COMPLETED:
            # 경과 결과는 이미 커밋됨. 영업일 전진 실패는 기록만 하고 결과 반환
            try:
                await self.params.advance_business_date(run_date + timedelta(days=1))
            except sqlite3.Error as e:
                logger.error(
                    f"영업일 전진 실패: {run_date.isoformat()}: {e}",
                    extra={"run_date": run_date.isoformat()},
                )

        logger.info(
            f"EOD 종료: {run_date.isoformat()} {result.status.value} "
            f"(processed={result.processed_count}, skipped={result.skipped_count}, "
            f"failed={result.failed_count})",
            extra=result.to_dict(),
        )
        return result

    def _is_cancelled(self, cancel_event: asyncio.Event | None) -> bool:
        if self._cancel_requested.is_set():
            return True
        return cancel_event is not None and cancel_event.is_set()

    # =========================================================================
    # 계좌별 처리
    # =========================================================================

    async def _accrue_account(
        self,
        run_date: date,
        account_no: str,
        annual_rate: Decimal,
        expense_account: str,
        result: EodResult,
    ) -> AccrualFailure | None:
        """계좌 1건 경과. LedgerError는 실패로 반환하고 나머지는 전파."""
        try:
            if await self._already_accrued(account_no, run_date):
                result.skipped_count += 1
                return None

            # 같은 계좌의 진행 중인 전기가 끝난 뒤 커밋된 잔액만 읽음 (전기 전에 락 해제)
            async with self.balance_store.locks.acquire([account_no]):
                async with self.db.transaction():
                    account = await self.balance_store.get_account(account_no)
                    if account is None or account.status != AccountStatus.ACTIVE:
                        result.skipped_count += 1
                        return None
                    balance = (await self.balance_store.get_balance(account_no)).current_balance

            if account.currency != self.validator.local_currency:
                raise CurrencyMismatchError(
                    f"Interest accrual requires a {self.validator.local_currency} account, "
                    f"{account_no} is {account.currency}",
                    account_no=account_no,
                )

            amount = daily_interest(balance, annual_rate)
            if amount <= 0:
                result.skipped_count += 1
                return None

            request = TransactionRequest(
                value_date=run_date,
                narration=f"Interest accrual {run_date.isoformat()}",
                tran_type=TranType.INTEREST_ACCRUAL,
                lines=[
                    TransactionLineRequest(
                        account_no=expense_account,
                        dr_cr=DrCrFlag.D,
                        tran_ccy=account.currency,
                        fcy_amt=amount,
                    ),
                    TransactionLineRequest(
                        account_no=account_no,
                        dr_cr=DrCrFlag.C,
                        tran_ccy=account.currency,
                        fcy_amt=amount,
                    ),
                ],
            )
            accrual = AccrualInfo(
                account_no=account_no,
                accrual_date=run_date,
                balance=balance,
                interest_rate=annual_rate,
                amount=amount,
            )

            validated = await self.validator.validate(request, accrual=accrual)
            await self.posting.post(validated)
            result.processed_count += 1
            return None

        except LedgerError as e:
            failure = AccrualFailure(
                account_no=account_no,
                error_type=type(e).__name__,
                message=e.message,
            )
            result.failures.append(failure)
            logger.error(
                f"이자 경과 실패: {account_no}: {e.message}",
                extra={"account_no": account_no, "run_date": run_date.isoformat()},
            )
            return failure

    async def _already_accrued(self, account_no: str, run_date: date) -> bool:
        row = await self.db.fetchone(
            "SELECT 1 FROM intt_accr_tran WHERE account_no = ? AND accrual_date = ?",
            (account_no, run_date.isoformat()),
        )
        return row is not None

    async def _list_candidates(self) -> list[tuple[str, Decimal]]:
        """이자 경과 대상 (계좌번호, 적용 연이율) 목록"""
        rows = await self.db.fetchall(
            """
            SELECT a.account_no, sp.interest_rate, a.interest_increment
            FROM account a
            JOIN sub_product sp ON sp.sub_product_code = a.sub_product_code
            WHERE a.kind = ?
              AND a.status = ?
              AND sp.interest_bearing = 1
            ORDER BY a.account_no
            """,
            (AccountKind.CUSTOMER.value, AccountStatus.ACTIVE.value),
        )
        return [(row[0], Decimal(row[1]) + Decimal(row[2])) for row in rows]

    async def _require_expense_account(self) -> str:
        """이자비용 사무 계정 확인 (없으면 실행 전체 실패)"""
        account_no = self.interest_expense_account
        if not account_no:
            raise RuntimeError("ledger.interest_expense_account is not configured")

        account = await self.balance_store.get_account(account_no)
        if account is None:
            raise RuntimeError(f"Interest expense account {account_no} does not exist")
        if account.kind != AccountKind.OFFICE:
            raise RuntimeError(f"Interest expense account {account_no} is not an office account")
        return account_no

    # =========================================================================
    # 실행 기록
    # =========================================================================

    async def _start_run(self, run_date: date, started_at: datetime) -> None:
        """RUNNING 기록 생성 (재실행이면 카운터와 실패 기록 초기화)"""
        async with self.db.transaction():
            running = await self.db.fetchone(
                "SELECT run_date FROM eod_run WHERE status = ? LIMIT 1",
                (EodStatus.RUNNING.value,),
            )
            if running:
                raise EodInProgressError(date.fromisoformat(running[0]))

            row = await self.db.fetchone(
                "SELECT status FROM eod_run WHERE run_date = ?",
                (run_date.isoformat(),),
            )

            if row is None:
                await self.db.execute(
                    """
                    INSERT INTO eod_run (run_date, status, started_at)
                    VALUES (?, ?, ?)
                    """,
                    (run_date.isoformat(), EodStatus.RUNNING.value, started_at.isoformat()),
                )
                return

            machine = EodRunStateMachine(row[0])
            if machine.is_terminal:
                raise EodAlreadyCompletedError(run_date)
            machine.transition(EodStatus.RUNNING)

            await self.db.execute(
                """
                UPDATE eod_run SET
                    status = ?,
                    processed_count = 0,
                    skipped_count = 0,
                    failed_count = 0,
                    started_at = ?,
                    ended_at = NULL,
                    error = NULL
                WHERE run_date = ?
                """,
                (EodStatus.RUNNING.value, started_at.isoformat(), run_date.isoformat()),
            )
            await self.db.execute(
                "DELETE FROM eod_failure WHERE run_date = ?",
                (run_date.isoformat(),),
            )

        logger.info(f"EOD 재실행: {run_date.isoformat()} (이전 상태 {row[0]})")

    async def _save_progress(
        self,
        result: EodResult,
        failure: AccrualFailure | None,
    ) -> None:
        """계좌 1건 처리 후 진행 카운터 커밋"""
        async with self.db.transaction():
            if failure is not None:
                await self.db.execute(
                    """
                    INSERT INTO eod_failure (run_date, account_no, error_type, message)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        result.run_date.isoformat(),
                        failure.account_no,
                        failure.error_type,
                        failure.message,
                    ),
                )
            await self._write_counts(result)

    async def _finish_run(self, result: EodResult) -> None:
        result.ended_at = datetime.now()
        async with self.db.transaction():
            await self._write_counts(result)

    async def _write_counts(self, result: EodResult) -> None:
        await self.db.execute(
            """
            UPDATE eod_run SET
                status = ?,
                processed_count = ?,
                skipped_count = ?,
                failed_count = ?,
                ended_at = ?,
                error = ?
            WHERE run_date = ?
            """,
            (
                result.status.value,
                result.processed_count,
                result.skipped_count,
                result.failed_count,
                result.ended_at.isoformat() if result.ended_at else None,
                result.error,
                result.run_date.isoformat(),
            ),
        )
