"""
BalanceStore 테스트

잔액 변동, 당좌대월 규칙, version CAS, 해지 규칙, 누적 합계의 정확성 확인
"""

import asyncio
import random
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.ledger.balance_store import AccountLocks, BalanceStore
from core.ledger.bootstrap import LedgerComponents
from core.ledger.errors import (
    AccountNotFoundError,
    AccountStateError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    NonZeroBalanceError,
    NotFoundError,
)
from core.ledger.types import Account, Balance, OfficeDetails
from core.types import AccountStatus


def _office_account(account_no: str = "911010000101") -> Account:
    return Account(
        account_no=account_no,
        account_name="Suspense",
        currency="USD",
        gl_num="110100001",
        status=AccountStatus.ACTIVE,
        open_date=date(2024, 1, 1),
        details=OfficeDetails(),
    )


class TestAccountLocks:
    """AccountLocks 테스트"""

    def test_same_lock_per_account(self) -> None:
        """계좌당 락 하나"""
        locks = AccountLocks()

        assert locks.get("A") is locks.get("A")
        assert locks.get("A") is not locks.get("B")

    @pytest.mark.asyncio
    async def test_acquire_sorted(self) -> None:
        """정렬 순서로 획득, 중복 제거"""
        locks = AccountLocks()

        async with locks.acquire(["C", "A", "B", "A"]) as ordered:
            assert ordered == ["A", "B", "C"]
            assert all(locks.get(no).locked() for no in ordered)

        assert not any(locks.get(no).locked() for no in ["A", "B", "C"])

    @pytest.mark.asyncio
    async def test_opposite_order_no_deadlock(self) -> None:
        """반대 순서로 요청해도 교착 없음"""
        locks = AccountLocks()
        entered: list[str] = []

        async def hold(name: str, account_nos: list[str]) -> None:
            async with locks.acquire(account_nos):
                await asyncio.sleep(0.01)
                entered.append(name)

        await asyncio.wait_for(
            asyncio.gather(hold("x", ["A", "B"]), hold("y", ["B", "A"])),
            timeout=2,
        )

        assert sorted(entered) == ["x", "y"]


class TestReads:
    """조회 테스트"""

    @pytest.mark.asyncio
    async def test_missing_account(self, ledger: LedgerComponents) -> None:
        """없는 계좌"""
        assert await ledger.balance_store.get_account("nope") is None
        with pytest.raises(AccountNotFoundError):
            await ledger.balance_store.get_balance("nope")

    @pytest.mark.asyncio
    async def test_new_account_zero_balance(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """개설 직후 잔액 0, version 0"""
        balance = await ledger.balance_store.get_balance(savings_account.account_no)

        assert balance.current_balance == Decimal("0")
        assert balance.available_balance == Decimal("0")
        assert balance.interest_accrued == Decimal("0")
        assert balance.version == 0
        assert balance.last_tran_id is None

    @pytest.mark.asyncio
    async def test_overdraft_rules(
        self,
        ledger: LedgerComponents,
        cash_account: Account,
        savings_account: Account,
        current_account: Account,
    ) -> None:
        """사무 계정은 항상 허용, 고객 계좌는 서브상품 설정"""
        store = ledger.balance_store

        assert await store.overdraft_allowed(cash_account.account_no) is True
        assert await store.overdraft_allowed(savings_account.account_no) is False
        assert await store.overdraft_allowed(current_account.account_no) is True


class TestApplyDelta:
    """apply_delta 테스트"""

    @pytest.mark.asyncio
    async def test_requires_transaction(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """트랜잭션 밖에서 호출하면 RuntimeError"""
        with pytest.raises(RuntimeError, match="transaction"):
            await ledger.balance_store.apply_delta(savings_account.account_no, Decimal("1"))

    @pytest.mark.asyncio
    async def test_credit_then_debit(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """대변 +, 차변 -, version 증가"""
        store = ledger.balance_store
        no = savings_account.account_no

        async with ledger.db.transaction():
            await store.apply_delta(no, Decimal("100.00"), "T1")
            after = await store.apply_delta(no, Decimal("-40.25"), "T2")

        assert after.current_balance == Decimal("59.75")
        assert after.version == 2

        stored = await store.get_balance(no)
        assert stored.current_balance == Decimal("59.75")
        assert stored.available_balance == Decimal("59.75")
        assert stored.last_tran_id == "T2"

    @pytest.mark.asyncio
    async def test_insufficient_funds(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """당좌대월 불가 계좌는 음수 불가, 롤백"""
        store = ledger.balance_store
        no = savings_account.account_no

        with pytest.raises(InsufficientFundsError):
            async with ledger.db.transaction():
                await store.apply_delta(no, Decimal("10.00"))
                await store.apply_delta(no, Decimal("-10.01"))

        balance = await store.get_balance(no)
        assert balance.current_balance == Decimal("0")
        assert balance.version == 0

    @pytest.mark.asyncio
    async def test_overdraft_allowed(
        self, ledger: LedgerComponents, current_account: Account
    ) -> None:
        """당좌 계좌는 음수 허용"""
        async with ledger.db.transaction():
            after = await ledger.balance_store.apply_delta(
                current_account.account_no, Decimal("-250.00")
            )

        assert after.current_balance == Decimal("-250.00")

    @pytest.mark.asyncio
    async def test_credit_on_negative_allowed(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """음수 잔액이어도 입금은 허용"""
        store = ledger.balance_store
        no = savings_account.account_no
        await ledger.db.execute(
            "UPDATE account_balance SET current_balance = '-5.00' WHERE account_no = ?",
            (no,),
        )

        async with ledger.db.transaction():
            after = await store.apply_delta(no, Decimal("1.00"))

        assert after.current_balance == Decimal("-4.00")

    @pytest.mark.asyncio
    async def test_version_conflict(
        self,
        ledger: LedgerComponents,
        savings_account: Account,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """읽은 version이 바뀌었으면 ConcurrencyConflictError"""
        store = ledger.balance_store
        no = savings_account.account_no
        real = await store.get_balance(no)

        async def stale_balance(account_no: str) -> Balance:
            return Balance(
                account_no=account_no,
                current_balance=real.current_balance,
                available_balance=real.available_balance,
                interest_accrued=real.interest_accrued,
                version=real.version - 1,
            )

        monkeypatch.setattr(store, "get_balance", stale_balance)

        with pytest.raises(ConcurrencyConflictError):
            async with ledger.db.transaction():
                await store.apply_delta(no, Decimal("1.00"))

    @pytest.mark.asyncio
    async def test_gl_delta_upsert(self, ledger: LedgerComponents) -> None:
        """GL 잔액은 없으면 생성, 있으면 누적"""
        store = ledger.balance_store

        async with ledger.db.transaction():
            first = await store.apply_gl_delta("999999999", Decimal("10.00"))
            second = await store.apply_gl_delta("999999999", Decimal("-2.50"))

        assert first == Decimal("10.00")
        assert second == Decimal("7.50")

    @pytest.mark.asyncio
    async def test_accrued_interest(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """경과 이자 누계는 잔액과 별도"""
        store = ledger.balance_store
        no = savings_account.account_no

        async with ledger.db.transaction():
            await store.add_accrued_interest(no, Decimal("0.27"))
            after = await store.add_accrued_interest(no, Decimal("0.27"))

        assert after.interest_accrued == Decimal("0.54")
        assert after.current_balance == Decimal("0")


class TestCloseAccount:
    """close_account 테스트"""

    @pytest.mark.asyncio
    async def test_close_zero_balance(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """잔액 0이면 해지, 해지일 기록"""
        closed = await ledger.balance_store.close_account(
            savings_account.account_no, date(2024, 3, 1)
        )

        assert closed.status == AccountStatus.CLOSED
        assert closed.close_date == date(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_close_non_zero(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """잔액이 남아 있으면 해지 불가"""
        no = savings_account.account_no
        async with ledger.db.transaction():
            await ledger.balance_store.apply_delta(no, Decimal("0.01"))

        with pytest.raises(NonZeroBalanceError):
            await ledger.balance_store.close_account(no)

        account = await ledger.balance_store.get_account(no)
        assert account.status == AccountStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_close_twice(
        self, ledger: LedgerComponents, savings_account: Account
    ) -> None:
        """이미 해지된 계좌"""
        await ledger.balance_store.close_account(savings_account.account_no)

        with pytest.raises(AccountStateError):
            await ledger.balance_store.close_account(savings_account.account_no)

    @pytest.mark.asyncio
    async def test_close_missing(self, ledger: LedgerComponents) -> None:
        """없는 계좌"""
        with pytest.raises(NotFoundError):
            await ledger.balance_store.close_account("nope")


class TestExactSummation:
    """누적 합계 정확성"""

    @pytest.mark.asyncio
    async def test_ten_thousand_random_deltas(self, db: SQLiteAdapter) -> None:
        """임의 변동분 10,000건의 합이 정확히 일치"""
        rng = random.Random(20240115)
        deltas = [
            Decimal(rng.randint(-1_000_000, 1_000_000)) / 100 for _ in range(10_000)
        ]

        store = BalanceStore(db)
        account = _office_account()
        async with db.transaction():
            await store.insert_account(account)
            for delta in deltas:
                await store.apply_delta(account.account_no, delta)

        balance = await store.get_balance(account.account_no)
        assert balance.current_balance == sum(deltas, Decimal("0"))
        assert balance.version == len(deltas)

    @settings(max_examples=25, deadline=None)
    @given(
        st.lists(
            st.decimals(
                min_value=Decimal("-1000000"),
                max_value=Decimal("1000000"),
                places=2,
                allow_nan=False,
                allow_infinity=False,
            ),
            min_size=1,
            max_size=40,
        )
    )
    def test_any_deltas_sum_exactly(self, deltas: list[Decimal]) -> None:
        """임의의 소수 2자리 변동분 목록에 대해 저장 잔액 = 합계"""

        async def scenario() -> Balance:
            with tempfile.TemporaryDirectory() as tmpdir:
                async with SQLiteAdapter(Path(tmpdir) / "prop.db") as adapter:
                    await init_schema(adapter)
                    store = BalanceStore(adapter)
                    account = _office_account()
                    async with adapter.transaction():
                        await store.insert_account(account)
                        for delta in deltas:
                            await store.apply_delta(account.account_no, delta)
                    return await store.get_balance(account.account_no)

        balance = asyncio.run(scenario())

        assert balance.current_balance == sum(deltas, Decimal("0"))
