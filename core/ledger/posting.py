"""
Posting Engine

검증된 거래를 원자적으로 전기.

순서:
1. tran_id 부여 (검증 객체는 이 시점에 소모됨)
2. 관련 계좌 락 획득 (정렬 순서)
3. 단일 DB 트랜잭션 안에서
   - 계좌 재조회 (검증 이후 해지/삭제 경합 감지)
   - 라인별 잔액 변동, GL 잔액 변동
   - 거래 헤더/라인, GL 변동 이력, 이자 경과 기록
4. 실패 시 전체 롤백, 암묵적 재시도 없음
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from decimal import Decimal

from core.ledger.balance_store import BalanceStore
from core.ledger.errors import (
    AccountClosedDuringPostingError,
    AccountNotFoundError,
    StoreUnavailableError,
    TransactionAlreadyPostedError,
)
from core.ledger.types import TransactionReceipt, ValidatedTransaction
from core.types import TranStatus, TranType
from core.utils.ids import make_tran_id

logger = logging.getLogger(__name__)


class PostingEngine:
    """전기 엔진

    Args:
        balance_store: 잔액 저장소 (락 레지스트리 포함)

    사용 예시:
    ```python
    validated = await validator.validate(request)
    receipt = await engine.post(validated)
    print(receipt.tran_id, receipt.balances)
    ```
    """

    def __init__(self, balance_store: BalanceStore):
        self.balance_store = balance_store
        self.db = balance_store.db

    async def post(self, validated: ValidatedTransaction) -> TransactionReceipt:
        """거래 전기

        Args:
            validated: 검증 완료 거래 (1회용)

        Returns:
            전기 결과 (거래 ID, 영향받은 계좌의 새 잔액)

        Raises:
            TransactionAlreadyPostedError: 이미 tran_id가 부여된 객체
            PostingError: 계좌 경합, 잔액 부족, 동시성 충돌, DB 오류
        """
        if validated.tran_id is not None:
            raise TransactionAlreadyPostedError(validated.tran_id)

        now = datetime.now()
        entry_date = now.date()
        entry_time = now.time().replace(microsecond=0)

        id_date = validated.accrual.accrual_date if validated.accrual else entry_date
        tran_id = make_tran_id(validated.tran_type, id_date)
        validated.tran_id = tran_id

        status = (
            TranStatus.VERIFIED
            if validated.tran_type == TranType.INTEREST_ACCRUAL
            else TranStatus.POSTED
        )

        try:
            async with self.balance_store.locks.acquire(validated.account_nos):
                async with self.db.transaction():
                    balances = await self._write(validated, tran_id, status, now)
        except sqlite3.Error as e:
            logger.error(
                f"전기 실패 (DB 오류): {tran_id}: {e}",
                extra={"tran_id": tran_id},
            )
            raise StoreUnavailableError(f"Ledger store unavailable: {e}") from e

        validated.status = status

        logger.info(
            f"거래 전기 완료: {tran_id}",
            extra={
                "tran_id": tran_id,
                "tran_type": validated.tran_type.value,
                "line_count": len(validated.lines),
                "amount": str(validated.total_debit),
            },
        )

        return TransactionReceipt(
            tran_id=tran_id,
            value_date=validated.value_date,
            entry_date=entry_date,
            entry_time=entry_time,
            narration=validated.narration,
            status=status,
            tran_type=validated.tran_type,
            lines=list(validated.lines),
            balances=balances,
        )

    async def _write(
        self,
        validated: ValidatedTransaction,
        tran_id: str,
        status: TranStatus,
        now: datetime,
    ) -> dict[str, Decimal]:
        """트랜잭션 내부 쓰기. 예외 시 호출자의 transaction()이 롤백."""
        store = self.balance_store

        for account_no in validated.account_nos:
            account = await store.get_account(account_no)
            if account is None:
                raise AccountNotFoundError(account_no)
            if not account.is_postable:
                raise AccountClosedDuringPostingError(account_no, account.status.value)

        balances: dict[str, Decimal] = {}
        balance_after: dict[int, Decimal] = {}
        gl_balance_after: dict[int, Decimal] = {}

        for line in validated.lines:
            balance = await store.apply_delta(line.account_no, line.delta, tran_id)
            balances[line.account_no] = balance.current_balance
            balance_after[line.line_no] = balance.current_balance
            gl_balance_after[line.line_no] = await store.apply_gl_delta(line.gl_num, line.gl_delta)

        await self.db.execute(
            """
            INSERT INTO tran_header (
                tran_id, tran_type, value_date, entry_date, entry_time,
                narration, status, lcy_currency, total_amount
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tran_id,
                validated.tran_type.value,
                validated.value_date.isoformat(),
                now.date().isoformat(),
                now.time().replace(microsecond=0).isoformat(),
                validated.narration,
                status.value,
                validated.lcy_currency,
                str(validated.total_debit),
            ),
        )

        await self.db.executemany(
            """
            INSERT INTO tran_line (
                tran_id, line_no, account_no, dr_cr, tran_ccy, fcy_amt,
                exchange_rate, lcy_amt, posting_amount, balance_after, reference
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    tran_id,
                    line.line_no,
                    line.account_no,
                    line.dr_cr.value,
                    line.tran_ccy,
                    str(line.fcy_amt),
                    str(line.exchange_rate),
                    str(line.lcy_amt),
                    str(line.posting_amount),
                    str(balance_after[line.line_no]),
                    line.reference,
                )
                for line in validated.lines
            ],
        )

        await self.db.executemany(
            """
            INSERT INTO gl_movement (
                tran_id, line_no, gl_num, dr_cr, amount, value_date,
                entry_date, balance_after, is_accrual
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    tran_id,
                    line.line_no,
                    line.gl_num,
                    line.dr_cr.value,
                    str(line.lcy_amt),
                    validated.value_date.isoformat(),
                    now.date().isoformat(),
                    str(gl_balance_after[line.line_no]),
                    int(validated.accrual is not None),
                )
                for line in validated.lines
            ],
        )

        accrual = validated.accrual
        if accrual is not None:
            await self.db.execute(
                """
                INSERT INTO intt_accr_tran (
                    tran_id, account_no, accrual_date, balance, interest_rate, amount
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    tran_id,
                    accrual.account_no,
                    accrual.accrual_date.isoformat(),
                    str(accrual.balance),
                    str(accrual.interest_rate),
                    str(accrual.amount),
                ),
            )
            await store.add_accrued_interest(accrual.account_no, accrual.amount)

        return balances
