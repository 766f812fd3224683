"""
Ledger 조회 저장소

거래, 계좌, 시산표, GL 변동 이력, EOD 실행 기록 조회 (읽기 전용).
Web은 요청마다 별도 읽기 전용 연결을 사용하므로 커밋된 데이터만 보임.

페이지 조회 규칙:
- page: 0부터 시작
- size: 1 ~ 200
- sort: "필드,방향" (예: "valueDate,desc"), 허용 목록 외 필드는 InvalidQueryError
"""

from __future__ import annotations

import logging
import math
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.constants import LedgerLimits
from core.ledger.errors import InvalidQueryError, NotFoundError
from core.ledger.types import signed_amount
from core.types import AccountStatus, DrCrFlag

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


# 정렬 허용 필드 → SQL 표현식 (snake_case / camelCase 모두 허용)
TRANSACTION_SORT_FIELDS: dict[str, str] = {
    "tran_id": "tran_id",
    "tranId": "tran_id",
    "value_date": "value_date",
    "valueDate": "value_date",
    "entry_date": "entry_date, entry_time",
    "entryDate": "entry_date, entry_time",
    "status": "status",
    "tran_type": "tran_type",
    "tranType": "tran_type",
    "total_amount": "CAST(total_amount AS REAL)",
    "totalAmount": "CAST(total_amount AS REAL)",
}

ACCOUNT_SORT_FIELDS: dict[str, str] = {
    "account_no": "account_no",
    "accountNo": "account_no",
    "account_name": "account_name",
    "accountName": "account_name",
    "open_date": "open_date",
    "openDate": "open_date",
    "status": "status",
    "kind": "kind",
    "current_balance": "CAST(current_balance AS REAL)",
    "currentBalance": "CAST(current_balance AS REAL)",
}


def validate_page(page: int, size: int) -> None:
    """페이지 파라미터 검증

    Raises:
        InvalidQueryError: page < 0 또는 size 범위 밖
    """
    if page < 0:
        raise InvalidQueryError(f"page must be >= 0, got {page}")
    if not 1 <= size <= LedgerLimits.MAX_PAGE_SIZE:
        raise InvalidQueryError(
            f"size must be between 1 and {LedgerLimits.MAX_PAGE_SIZE}, got {size}"
        )


def parse_sort(sort: str | None, allowed: dict[str, str], default: str) -> str:
    """정렬 토큰 → ORDER BY 절

    Example:
        >>> parse_sort("valueDate,desc", TRANSACTION_SORT_FIELDS, "tran_id")
        'value_date DESC'
        >>> parse_sort(None, TRANSACTION_SORT_FIELDS, "tran_id DESC")
        'tran_id DESC'
    """
    if not sort:
        return default

    parts = [p.strip() for p in sort.split(",")]
    if len(parts) > 2 or not parts[0]:
        raise InvalidQueryError(f"Invalid sort token: '{sort}'")

    column = allowed.get(parts[0])
    if column is None:
        raise InvalidQueryError(
            f"Cannot sort by '{parts[0]}'. Allowed: {sorted(set(allowed))}"
        )

    direction = parts[1].upper() if len(parts) == 2 else "ASC"
    if direction not in ("ASC", "DESC"):
        raise InvalidQueryError(f"Invalid sort direction: '{parts[1]}'")

    # 복합 컬럼(entry_date, entry_time)은 각 컬럼에 방향 적용
    return ", ".join(f"{col.strip()} {direction}" for col in column.split(","))


def make_page(content: list[dict[str, Any]], total: int, page: int, size: int) -> dict[str, Any]:
    """페이지 응답 구성"""
    return {
        "content": content,
        "total_elements": total,
        "total_pages": math.ceil(total / size) if total else 0,
        "page": page,
        "size": size,
    }


class LedgerStore:
    """Ledger 조회 저장소

    Args:
        db: SQLite 어댑터 (읽기 전용 연결 권장)
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # =========================================================================
    # 거래
    # =========================================================================

    async def get_transaction(self, tran_id: str) -> dict[str, Any]:
        """거래 단건 조회 (라인 포함)

        Raises:
            NotFoundError: 거래 없음
        """
        row = await self.db.fetchone(
            """
            SELECT tran_id, tran_type, value_date, entry_date, entry_time,
                   narration, status, lcy_currency, total_amount
            FROM tran_header
            WHERE tran_id = ?
            """,
            (tran_id,),
        )
        if not row:
            raise NotFoundError("Transaction", tran_id)

        line_rows = await self.db.fetchall(
            """
            SELECT line_no, account_no, dr_cr, tran_ccy, fcy_amt, exchange_rate,
                   lcy_amt, posting_amount, balance_after, reference
            FROM tran_line
            WHERE tran_id = ?
            ORDER BY line_no
            """,
            (tran_id,),
        )

        transaction = self._header_to_dict(row)
        transaction["lines"] = [
            {
                "line_no": r[0],
                "account_no": r[1],
                "dr_cr": r[2],
                "tran_ccy": r[3],
                "fcy_amt": r[4],
                "exchange_rate": r[5],
                "lcy_amt": r[6],
                "posting_amount": r[7],
                "balance_after": r[8],
                "reference": r[9],
            }
            for r in line_rows
        ]
        return transaction

    async def list_transactions(
        self,
        page: int = 0,
        size: int = LedgerLimits.DEFAULT_PAGE_SIZE,
        sort: str | None = None,
    ) -> dict[str, Any]:
        """거래 목록 조회 (페이지)"""
        validate_page(page, size)
        order_by = parse_sort(sort, TRANSACTION_SORT_FIELDS, "entry_date DESC, entry_time DESC")

        count_row = await self.db.fetchone("SELECT COUNT(*) FROM tran_header")
        total = count_row[0] if count_row else 0

        rows = await self.db.fetchall(
            f"""
            SELECT tran_id, tran_type, value_date, entry_date, entry_time,
                   narration, status, lcy_currency, total_amount
            FROM tran_header
            ORDER BY {order_by}, tran_id
            LIMIT ? OFFSET ?
            """,
            (size, page * size),
        )
        return make_page([self._header_to_dict(r) for r in rows], total, page, size)

    @staticmethod
    def _header_to_dict(row: tuple[Any, ...]) -> dict[str, Any]:
        return {
            "tran_id": row[0],
            "tran_type": row[1],
            "value_date": row[2],
            "entry_date": row[3],
            "entry_time": row[4],
            "narration": row[5],
            "status": row[6],
            "lcy_currency": row[7],
            "total_amount": row[8],
        }

    # =========================================================================
    # 계좌
    # =========================================================================

    async def get_account(
        self,
        account_no: str,
        on_date: date | None = None,
    ) -> dict[str, Any]:
        """계좌 조회 (잔액, 상태, 경과 이자, 당일 차/대변 합계 포함)

        computed_balance는 분개 라인만으로 다시 계산한 잔액
        (전일까지 순변동 + 당일 대변 - 당일 차변). current_balance와 같아야 함.

        Args:
            account_no: 계좌번호
            on_date: 당일 기준 입력일 (None이면 오늘)

        Raises:
            NotFoundError: 계좌 없음
        """
        row = await self.db.fetchone(
            """
            SELECT account_no, kind, account_name, currency, gl_num, status,
                   open_date, close_date, cust_id, sub_product_code,
                   interest_increment, reconciliation_required,
                   current_balance, available_balance, interest_accrued, last_tran_id
            FROM v_account_summary
            WHERE account_no = ?
            """,
            (account_no,),
        )
        if not row:
            raise NotFoundError("Account", account_no)

        account = self._account_to_dict(row)
        account.update(await self._movement_summary(account_no, on_date or date.today()))
        return account

    async def _movement_summary(self, account_no: str, on_date: date) -> dict[str, str]:
        rows = await self.db.fetchall(
            "SELECT dr_cr, posting_amount, entry_date FROM v_account_statement "
            "WHERE account_no = ?",
            (account_no,),
        )

        today = on_date.isoformat()
        today_debits = Decimal("0")
        today_credits = Decimal("0")
        computed = Decimal("0")
        for dr_cr, amount, entry_date in rows:
            flag = DrCrFlag(dr_cr)
            computed += signed_amount(flag, Decimal(amount))
            if entry_date == today:
                if flag == DrCrFlag.D:
                    today_debits += Decimal(amount)
                else:
                    today_credits += Decimal(amount)

        return {
            "today_debits": str(today_debits),
            "today_credits": str(today_credits),
            "computed_balance": str(computed),
        }

    async def list_accounts(
        self,
        page: int = 0,
        size: int = LedgerLimits.DEFAULT_PAGE_SIZE,
        sort: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        """계좌 목록 조회 (페이지, 상태 필터)"""
        validate_page(page, size)
        order_by = parse_sort(sort, ACCOUNT_SORT_FIELDS, "account_no ASC")

        where = ""
        params: list[Any] = []
        if status:
            try:
                params.append(AccountStatus(status.upper()).value)
            except ValueError as e:
                raise InvalidQueryError(f"Unknown account status: '{status}'") from e
            where = "WHERE status = ?"

        count_row = await self.db.fetchone(
            f"SELECT COUNT(*) FROM v_account_summary {where}", tuple(params)
        )
        total = count_row[0] if count_row else 0

        rows = await self.db.fetchall(
            f"""
            SELECT account_no, kind, account_name, currency, gl_num, status,
                   open_date, close_date, cust_id, sub_product_code,
                   interest_increment, reconciliation_required,
                   current_balance, available_balance, interest_accrued, last_tran_id
            FROM v_account_summary
            {where}
            ORDER BY {order_by}, account_no
            LIMIT ? OFFSET ?
            """,
            (*params, size, page * size),
        )
        return make_page([self._account_to_dict(r) for r in rows], total, page, size)

    @staticmethod
    def _account_to_dict(row: tuple[Any, ...]) -> dict[str, Any]:
        return {
            "account_no": row[0],
            "kind": row[1],
            "account_name": row[2],
            "currency": row[3],
            "gl_num": row[4],
            "status": row[5],
            "open_date": row[6],
            "close_date": row[7],
            "cust_id": row[8],
            "sub_product_code": row[9],
            "interest_increment": row[10],
            "reconciliation_required": bool(row[11]),
            "current_balance": row[12],
            "available_balance": row[13],
            "interest_accrued": row[14],
            "last_tran_id": row[15],
        }

    async def get_account_statement(
        self,
        account_no: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """계좌별 거래 내역 (최신순)

        Raises:
            NotFoundError: 계좌 없음
            InvalidQueryError: limit/offset 범위 오류
        """
        if not 1 <= limit <= LedgerLimits.MAX_PAGE_SIZE or offset < 0:
            raise InvalidQueryError(
                f"limit must be 1..{LedgerLimits.MAX_PAGE_SIZE} and offset >= 0"
            )

        exists = await self.db.fetchone(
            "SELECT 1 FROM account WHERE account_no = ?", (account_no,)
        )
        if not exists:
            raise NotFoundError("Account", account_no)

        rows = await self.db.fetchall(
            """
            SELECT tran_id, value_date, entry_date, entry_time, tran_type, narration,
                   line_no, dr_cr, tran_ccy, fcy_amt, lcy_amt, posting_amount,
                   balance_after, reference
            FROM v_account_statement
            WHERE account_no = ?
            ORDER BY line_id DESC
            LIMIT ? OFFSET ?
            """,
            (account_no, limit, offset),
        )

        return [
            {
                "tran_id": row[0],
                "value_date": row[1],
                "entry_date": row[2],
                "entry_time": row[3],
                "tran_type": row[4],
                "narration": row[5],
                "line_no": row[6],
                "dr_cr": row[7],
                "tran_ccy": row[8],
                "fcy_amt": row[9],
                "lcy_amt": row[10],
                "posting_amount": row[11],
                "balance_after": row[12],
                "reference": row[13],
            }
            for row in rows
        ]

    # =========================================================================
    # 시산표
    # =========================================================================

    async def get_trial_balance(self) -> dict[str, Any]:
        """시산표 조회

        GL별 잔액과 합계. 대변 +, 차변 - 규약이므로 합계는 항상 0.
        """
        rows = await self.db.fetchall(
            "SELECT gl_num, balance FROM gl_balance ORDER BY gl_num"
        )

        total = sum((Decimal(row[1]) for row in rows), Decimal("0"))
        return {
            "lines": [{"gl_num": row[0], "balance": row[1]} for row in rows],
            "total": str(total),
            "balanced": total == 0,
        }

    async def get_gl_movements(
        self,
        gl_num: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """GL 변동 이력 (최신순)

        Raises:
            InvalidQueryError: limit/offset 범위 오류
        """
        if not 1 <= limit <= LedgerLimits.MAX_PAGE_SIZE or offset < 0:
            raise InvalidQueryError(
                f"limit must be 1..{LedgerLimits.MAX_PAGE_SIZE} and offset >= 0"
            )

        rows = await self.db.fetchall(
            """
            SELECT tran_id, line_no, dr_cr, amount, value_date, entry_date,
                   balance_after, is_accrual
            FROM gl_movement
            WHERE gl_num = ?
            ORDER BY movement_id DESC
            LIMIT ? OFFSET ?
            """,
            (gl_num, limit, offset),
        )

        return [
            {
                "tran_id": row[0],
                "line_no": row[1],
                "dr_cr": row[2],
                "amount": row[3],
                "value_date": row[4],
                "entry_date": row[5],
                "balance_after": row[6],
                "accrual": bool(row[7]),
            }
            for row in rows
        ]

    # =========================================================================
    # EOD
    # =========================================================================

    async def get_eod_run(self, run_date: date) -> dict[str, Any]:
        """EOD 실행 기록 조회 (계좌별 실패 포함)

        Raises:
            NotFoundError: 기록 없음
        """
        row = await self.db.fetchone(
            """
            SELECT run_date, status, processed_count, skipped_count, failed_count,
                   started_at, ended_at, error
            FROM eod_run
            WHERE run_date = ?
            """,
            (run_date.isoformat(),),
        )
        if not row:
            raise NotFoundError("EOD run", run_date.isoformat())

        failure_rows = await self.db.fetchall(
            """
            SELECT account_no, error_type, message
            FROM eod_failure
            WHERE run_date = ?
            ORDER BY id
            """,
            (run_date.isoformat(),),
        )

        run = self._eod_run_to_dict(row)
        run["failures"] = [
            {"account_no": r[0], "error_type": r[1], "message": r[2]}
            for r in failure_rows
        ]
        return run

    async def list_eod_runs(self, limit: int = 30) -> list[dict[str, Any]]:
        """최근 EOD 실행 기록 (최신순)"""
        rows = await self.db.fetchall(
            """
            SELECT run_date, status, processed_count, skipped_count, failed_count,
                   started_at, ended_at, error
            FROM eod_run
            ORDER BY run_date DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._eod_run_to_dict(r) for r in rows]

    @staticmethod
    def _eod_run_to_dict(row: tuple[Any, ...]) -> dict[str, Any]:
        return {
            "run_date": row[0],
            "status": row[1],
            "processed_count": row[2],
            "skipped_count": row[3],
            "failed_count": row[4],
            "started_at": row[5],
            "ended_at": row[6],
            "error": row[7],
        }
