"""
EodAccrualEngine 테스트

일할 이자 계산, 대상 선정, 재실행 정책, 취소, 계좌별 실패 격리 확인
"""

import asyncio
import sqlite3
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable

import pytest

from core.ledger.accrual import daily_interest
from core.ledger.bootstrap import LedgerComponents, build_ledger
from core.ledger.errors import (
    EodAlreadyCompletedError,
    EodInProgressError,
    EodRunError,
    InsufficientFundsError,
)
from core.ledger.store import LedgerStore
from core.ledger.types import (
    Account,
    EodResult,
    TransactionLineRequest,
    TransactionReceipt,
    TransactionRequest,
)
from core.types import AccountStatus, DrCrFlag, EodStatus

Transfer = Callable[..., Awaitable[TransactionReceipt]]

RUN_DATE = date(2024, 1, 15)


async def _fund_eur(ledger: LedgerComponents, cash_no: str, eur_no: str) -> None:
    request = TransactionRequest(
        value_date=RUN_DATE,
        lines=[
            TransactionLineRequest(
                account_no=cash_no, dr_cr=DrCrFlag.D, tran_ccy="USD", fcy_amt=Decimal("1100.00")
            ),
            TransactionLineRequest(
                account_no=eur_no,
                dr_cr=DrCrFlag.C,
                tran_ccy="EUR",
                fcy_amt=Decimal("1000.00"),
                exchange_rate=Decimal("1.1"),
            ),
        ],
    )
    await ledger.posting.post(await ledger.validator.validate(request))


class TestDailyInterest:
    """daily_interest 테스트"""

    @pytest.mark.parametrize(
        "balance, rate, expected",
        [
            ("100000.00", "3.65", "10.00"),
            ("1000.00", "3.65", "0.10"),
            ("12345.67", "2.5", "0.85"),
            ("0", "3.65", "0.00"),
            ("10.00", "3.65", "0.00"),
            ("-5000.00", "3.65", "-0.50"),
        ],
    )
    def test_values(self, balance: str, rate: str, expected: str) -> None:
        """잔액 × 연이율 / 36500, 2자리 반올림"""
        assert daily_interest(Decimal(balance), Decimal(rate)) == Decimal(expected)


class TestRunEod:
    """EOD 실행"""

    @pytest.mark.asyncio
    async def test_no_accounts(self, ledger: LedgerComponents) -> None:
        """대상 계좌가 없어도 COMPLETED"""
        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED
        assert result.processed_count == 0
        assert result.failed_count == 0
        assert result.ended_at is not None

    @pytest.mark.asyncio
    async def test_accrues_daily_interest(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """잔액 100,000.00, 연 3.65% → 10.00"""
        await transfer(cash_account.account_no, savings_account.account_no, "100000.00")

        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED
        assert result.processed_count == 1

        savings = await ledger.balance_store.get_balance(savings_account.account_no)
        assert savings.current_balance == Decimal("100010.00")
        assert savings.interest_accrued == Decimal("10.00")

        expense = await ledger.balance_store.get_balance(ledger.accrual.interest_expense_account)
        assert expense.current_balance == Decimal("-10.00")

        row = await ledger.db.fetchone(
            "SELECT tran_id, balance, interest_rate, amount FROM intt_accr_tran "
            "WHERE account_no = ? AND accrual_date = ?",
            (savings_account.account_no, RUN_DATE.isoformat()),
        )
        assert row[0].startswith("ACR-20240115-")
        assert row[1:] == ("100000.00", "3.65", "10.00")

        moves = await ledger.db.fetchall(
            "SELECT gl_num, dr_cr, amount, is_accrual FROM gl_movement WHERE tran_id = ? "
            "ORDER BY line_no",
            (row[0],),
        )
        assert moves == [
            ("510100001", "D", "10.00", 1),
            (savings_account.gl_num, "C", "10.00", 1),
        ]

        transaction = await LedgerStore(ledger.db).get_transaction(row[0])
        assert transaction["status"] == "VERIFIED"
        assert transaction["tran_type"] == "INTEREST_ACCRUAL"

    @pytest.mark.asyncio
    async def test_interest_increment(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        transfer: Transfer,
    ) -> None:
        """적용 금리 = 서브상품 금리 + 계좌 가산 금리"""
        account = await ledger.accounts.open_customer_account(
            cust_id=777,
            sub_product_code="SB-REG",
            account_name="Premium",
            open_date=date(2020, 1, 1),
            interest_increment=Decimal("1.825"),
        )
        await transfer(cash_account.account_no, account.account_no, "100000.00")

        await ledger.accrual.run_eod(RUN_DATE)

        balance = await ledger.balance_store.get_balance(account.account_no)
        assert balance.interest_accrued == Decimal("15.00")

    @pytest.mark.asyncio
    async def test_zero_interest_skipped(
        self,
        ledger: LedgerComponents,
        savings_account: Account,
        current_account: Account,
    ) -> None:
        """이자가 0이면 건너뜀, 무이자 상품은 대상 아님"""
        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.processed_count == 0
        assert result.skipped_count == 1

        row = await ledger.db.fetchone("SELECT COUNT(*) FROM tran_header")
        assert row[0] == 0

    @pytest.mark.asyncio
    async def test_inactive_accounts_excluded(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """ACTIVE가 아닌 계좌는 대상 아님"""
        await transfer(cash_account.account_no, savings_account.account_no, "1000.00")
        await ledger.accounts.change_status(savings_account.account_no, AccountStatus.DORMANT)

        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.processed_count == 0
        assert result.skipped_count == 0

    @pytest.mark.asyncio
    async def test_advances_business_date(self, ledger: LedgerComponents) -> None:
        """COMPLETED면 영업일 = run_date + 1"""
        await ledger.accrual.run_eod(RUN_DATE)

        assert await ledger.params.get_business_date() == date(2024, 1, 16)

    @pytest.mark.asyncio
    async def test_run_recorded(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """실행 기록 저장"""
        await transfer(cash_account.account_no, savings_account.account_no, "5000.00")
        await ledger.accrual.run_eod(RUN_DATE)

        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)

        assert run["status"] == "COMPLETED"
        assert run["processed_count"] == 1
        assert run["ended_at"] is not None
        assert run["failures"] == []


class TestRerunPolicy:
    """재실행 정책"""

    @pytest.mark.asyncio
    async def test_completed_rejected(self, ledger: LedgerComponents) -> None:
        """완료된 영업일은 재실행 불가"""
        await ledger.accrual.run_eod(RUN_DATE)

        with pytest.raises(EodAlreadyCompletedError):
            await ledger.accrual.run_eod(RUN_DATE)

    @pytest.mark.asyncio
    async def test_failed_rerun_skips_accrued(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """FAILED 재실행은 이미 경과된 계좌를 건너뜀 (중복 경과 없음)"""
        await transfer(cash_account.account_no, savings_account.account_no, "100000.00")
        await ledger.accrual.run_eod(RUN_DATE)
        await ledger.db.execute(
            "UPDATE eod_run SET status = 'FAILED' WHERE run_date = ?",
            (RUN_DATE.isoformat(),),
        )

        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED
        assert result.processed_count == 0
        assert result.skipped_count == 1

        balance = await ledger.balance_store.get_balance(savings_account.account_no)
        assert balance.interest_accrued == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_running_elsewhere(self, ledger: LedgerComponents) -> None:
        """다른 영업일이 RUNNING이면 거부"""
        await ledger.db.execute(
            "INSERT INTO eod_run (run_date, status, started_at) VALUES (?, 'RUNNING', ?)",
            ("2024-01-14", "2024-01-14T22:00:00"),
        )

        with pytest.raises(EodInProgressError):
            await ledger.accrual.run_eod(RUN_DATE)

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, ledger: LedgerComponents) -> None:
        """같은 프로세스에서 동시에 두 번 실행 불가"""
        results = await asyncio.gather(
            ledger.accrual.run_eod(RUN_DATE),
            ledger.accrual.run_eod(date(2024, 1, 16)),
            return_exceptions=True,
        )

        assert results[0].status == EodStatus.COMPLETED
        assert isinstance(results[1], EodInProgressError)

    @pytest.mark.asyncio
    async def test_recover_stale_runs(self, ledger: LedgerComponents) -> None:
        """중단된 RUNNING 기록을 FAILED로 복구 후 재실행 가능"""
        await ledger.db.execute(
            "INSERT INTO eod_run (run_date, status, started_at) VALUES (?, 'RUNNING', ?)",
            (RUN_DATE.isoformat(), "2024-01-15T22:00:00"),
        )

        recovered = await ledger.accrual.recover_stale_runs()

        assert recovered == 1
        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["status"] == "FAILED"

        result = await ledger.accrual.run_eod(RUN_DATE)
        assert result.status == EodStatus.COMPLETED


class TestCancellation:
    """취소"""

    @pytest.mark.asyncio
    async def test_cancel_event(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """취소 신호가 있으면 다음 계좌 전에 중단, 영업일 유지"""
        await transfer(cash_account.account_no, savings_account.account_no, "100000.00")
        cancel_event = asyncio.Event()
        cancel_event.set()

        result = await ledger.accrual.run_eod(RUN_DATE, cancel_event=cancel_event)

        assert result.status == EodStatus.CANCELLED
        assert result.processed_count == 0
        assert await ledger.params.get_business_date() is None

        rerun = await ledger.accrual.run_eod(RUN_DATE)
        assert rerun.status == EodStatus.COMPLETED
        assert rerun.processed_count == 1

    @pytest.mark.asyncio
    async def test_request_cancel(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        transfer: Transfer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """첫 계좌 처리 후 취소 요청 → 나머지 계좌는 처리하지 않음"""
        for cust_id in (101, 102, 103):
            account = await ledger.accounts.open_customer_account(
                cust_id=cust_id,
                sub_product_code="SB-REG",
                account_name=f"cust {cust_id}",
                open_date=date(2020, 1, 1),
            )
            await transfer(cash_account.account_no, account.account_no, "36500.00")

        engine = ledger.accrual
        original = engine._save_progress

        async def save_and_cancel(result, failure):
            await original(result, failure)
            engine.request_cancel()

        monkeypatch.setattr(engine, "_save_progress", save_and_cancel)

        result = await engine.run_eod(RUN_DATE)

        assert result.status == EodStatus.CANCELLED
        assert result.processed_count == 1
        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_request_cancel_when_idle(self, ledger: LedgerComponents) -> None:
        """실행 중이 아니면 False"""
        assert ledger.accrual.request_cancel() is False

    @pytest.mark.asyncio
    async def test_task_cancelled(
        self,
        ledger: LedgerComponents,
        savings_account: Account,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """태스크 취소는 CANCELLED로 기록 후 전파"""

        async def cancelled(*args, **kwargs):
            raise asyncio.CancelledError()

        monkeypatch.setattr(ledger.accrual, "_accrue_account", cancelled)

        with pytest.raises(asyncio.CancelledError):
            await ledger.accrual.run_eod(RUN_DATE)

        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["status"] == "CANCELLED"


class TestFailures:
    """실패 처리"""

    @pytest.mark.asyncio
    async def test_per_account_failure_isolated(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """기준 통화가 아닌 계좌는 실패 기록, 나머지는 계속 처리"""
        eur = await ledger.accounts.open_customer_account(
            cust_id=555,
            sub_product_code="SB-EUR",
            account_name="Carol EUR",
            open_date=date(2020, 1, 1),
        )
        await _fund_eur(ledger, cash_account.account_no, eur.account_no)
        await transfer(cash_account.account_no, savings_account.account_no, "100000.00")

        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED
        assert result.processed_count == 1
        assert result.failed_count == 1
        assert result.failures[0].account_no == eur.account_no
        assert result.failures[0].error_type == "CurrencyMismatchError"

        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["failed_count"] == 1
        assert run["failures"][0]["account_no"] == eur.account_no

    @pytest.mark.asyncio
    async def test_rerun_clears_failures(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
    ) -> None:
        """재실행 시 이전 실패 기록과 카운터 초기화"""
        eur = await ledger.accounts.open_customer_account(
            cust_id=555,
            sub_product_code="SB-EUR",
            account_name="Carol EUR",
            open_date=date(2020, 1, 1),
        )
        await _fund_eur(ledger, cash_account.account_no, eur.account_no)
        await ledger.accrual.run_eod(RUN_DATE)
        await ledger.db.execute(
            "UPDATE eod_run SET status = 'CANCELLED' WHERE run_date = ?",
            (RUN_DATE.isoformat(),),
        )

        await ledger.accrual.run_eod(RUN_DATE)

        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["failed_count"] == 1
        assert len(run["failures"]) == 1

    @pytest.mark.asyncio
    async def test_missing_expense_account(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
    ) -> None:
        """이자비용 계정 미설정 → 실행 전체 FAILED"""
        await transfer(cash_account.account_no, savings_account.account_no, "1000.00")
        components = build_ledger(
            ledger.db, "USD", None, locks=ledger.balance_store.locks
        )

        with pytest.raises(EodRunError, match="not configured"):
            await components.accrual.run_eod(RUN_DATE)

        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["status"] == "FAILED"
        assert "not configured" in run["error"]
        assert await ledger.params.get_business_date() is None

    @pytest.mark.asyncio
    async def test_expense_account_must_be_office(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        current_account: Account,
        transfer: Transfer,
    ) -> None:
        """이자비용 계정이 고객 계좌면 실행 실패"""
        await transfer(cash_account.account_no, savings_account.account_no, "1000.00")
        components = build_ledger(
            ledger.db, "USD", current_account.account_no, locks=ledger.balance_store.locks
        )

        with pytest.raises(EodRunError, match="not an office account"):
            await components.accrual.run_eod(RUN_DATE)

    @pytest.mark.asyncio
    async def test_missing_expense_without_candidates(self, ledger: LedgerComponents) -> None:
        """대상 계좌가 없으면 이자비용 계정 없이도 완료"""
        components = build_ledger(ledger.db, "USD", None, locks=ledger.balance_store.locks)

        result = await components.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_business_date_write_failure(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        transfer: Transfer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """영업일 전진 실패 → 완료 결과는 그대로 반환"""
        await transfer(cash_account.account_no, savings_account.account_no, "1000.00")

        async def broken_advance(new_date: date, updated_by: str = "eod") -> bool:
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(ledger.params, "advance_business_date", broken_advance)

        result = await ledger.accrual.run_eod(RUN_DATE)

        assert result.status == EodStatus.COMPLETED
        assert result.processed_count == 1
        run = await LedgerStore(ledger.db).get_eod_run(RUN_DATE)
        assert run["status"] == "COMPLETED"
        assert await ledger.params.get_business_date() is None


class TestConcurrency:
    """진행 중인 전기와 EOD 경합"""

    @pytest.mark.asyncio
    async def test_reads_committed_balance_only(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """롤백된 전기의 잔액으로 이자를 계산하지 않음"""
        empty = await ledger.accounts.open_customer_account(
            cust_id=22222,
            sub_product_code="SB-REG",
            account_name="Carol Savings",
            open_date=date(2020, 1, 1),
        )
        savings_no = savings_account.account_no

        # 예금 입금 반영 직후 멈추고, 마지막 라인(잔액 없는 계좌 출금)에서 실패
        request = TransactionRequest(
            value_date=RUN_DATE,
            lines=[
                TransactionLineRequest(
                    account_no=cash_account.account_no,
                    dr_cr=DrCrFlag.D,
                    tran_ccy="USD",
                    fcy_amt=Decimal("100000.00"),
                ),
                TransactionLineRequest(
                    account_no=savings_no,
                    dr_cr=DrCrFlag.C,
                    tran_ccy="USD",
                    fcy_amt=Decimal("100000.00"),
                ),
                TransactionLineRequest(
                    account_no=empty.account_no,
                    dr_cr=DrCrFlag.D,
                    tran_ccy="USD",
                    fcy_amt=Decimal("1.00"),
                ),
                TransactionLineRequest(
                    account_no=cash_account.account_no,
                    dr_cr=DrCrFlag.C,
                    tran_ccy="USD",
                    fcy_amt=Decimal("1.00"),
                ),
            ],
        )
        validated = await ledger.validator.validate(request)

        credited = asyncio.Event()
        release = asyncio.Event()
        apply_delta = ledger.balance_store.apply_delta

        async def paused_apply_delta(account_no, delta, tran_id=None):
            balance = await apply_delta(account_no, delta, tran_id)
            if account_no == savings_no and delta > 0:
                credited.set()
                await release.wait()
            return balance

        monkeypatch.setattr(ledger.balance_store, "apply_delta", paused_apply_delta)

        posting = asyncio.create_task(ledger.posting.post(validated))
        await asyncio.wait_for(credited.wait(), timeout=5)

        result = EodResult(run_date=RUN_DATE, status=EodStatus.RUNNING)
        accrual = asyncio.create_task(
            ledger.accrual._accrue_account(
                RUN_DATE,
                savings_no,
                Decimal("3.65"),
                ledger.accrual.interest_expense_account,
                result,
            )
        )
        await asyncio.sleep(0.1)
        assert not accrual.done()

        release.set()
        with pytest.raises(InsufficientFundsError):
            await posting
        failure = await asyncio.wait_for(accrual, timeout=5)

        assert failure is None
        assert result.processed_count == 0
        assert result.skipped_count == 1

        balance = await ledger.balance_store.get_balance(savings_no)
        assert balance.current_balance == Decimal("0")
        assert balance.interest_accrued == Decimal("0")
