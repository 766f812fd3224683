"""
원장 스키마 초기화

Web/EOD 시작 시 자동으로 원장 테이블과 View 생성.
CREATE IF NOT EXISTS / DROP VIEW IF EXISTS 패턴으로 안전하게 동작.

금액은 모두 Decimal 문자열(TEXT)로 저장하여 부동소수점 오차 방지.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """원장 스키마 초기화 (테이블 + View)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_catalog_tables(db)
    await _create_ledger_tables(db)
    await _create_eod_tables(db)
    await _create_indexes(db)
    await _create_ledger_views(db)
    logger.info("원장 스키마 초기화 완료")


async def _create_catalog_tables(db: "SQLiteAdapter") -> None:
    """서브상품 / 계좌 / 계좌번호 시퀀스 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS sub_product (
            sub_product_code   TEXT PRIMARY KEY,
            sub_product_name   TEXT NOT NULL,
            product_type_code  TEXT NOT NULL,
            cum_gl_num         TEXT NOT NULL,
            currency           TEXT NOT NULL,
            interest_rate      TEXT NOT NULL DEFAULT '0',
            interest_bearing   INTEGER NOT NULL DEFAULT 0,
            overdraft_allowed  INTEGER NOT NULL DEFAULT 0,
            status             TEXT NOT NULL DEFAULT 'ACTIVE',
            created_at         TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            account_no              TEXT PRIMARY KEY,
            kind                    TEXT NOT NULL,
            account_name            TEXT NOT NULL,
            currency                TEXT NOT NULL,
            gl_num                  TEXT NOT NULL,
            status                  TEXT NOT NULL DEFAULT 'ACTIVE',
            open_date               TEXT NOT NULL,
            close_date              TEXT,
            cust_id                 INTEGER,
            sub_product_code        TEXT,
            interest_increment      TEXT NOT NULL DEFAULT '0',
            reconciliation_required INTEGER NOT NULL DEFAULT 0,
            created_at              TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at              TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (sub_product_code) REFERENCES sub_product(sub_product_code)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS account_seq (
            seq_key      TEXT PRIMARY KEY,
            last_seq     INTEGER NOT NULL DEFAULT 0,
            updated_at   TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """잔액 / GL 잔액 / 거래 / 이자 경과 테이블"""

    # account_balance: version은 낙관적 락 토큰
    await db.execute("""
        CREATE TABLE IF NOT EXISTS account_balance (
            account_no         TEXT PRIMARY KEY,
            current_balance    TEXT NOT NULL DEFAULT '0',
            available_balance  TEXT NOT NULL DEFAULT '0',
            interest_accrued   TEXT NOT NULL DEFAULT '0',
            version            INTEGER NOT NULL DEFAULT 0,
            last_tran_id       TEXT,
            updated_at         TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (account_no) REFERENCES account(account_no)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS gl_balance (
            gl_num       TEXT PRIMARY KEY,
            balance      TEXT NOT NULL DEFAULT '0',
            updated_at   TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS tran_header (
            tran_id        TEXT PRIMARY KEY,
            tran_type      TEXT NOT NULL,
            value_date     TEXT NOT NULL,
            entry_date     TEXT NOT NULL,
            entry_time     TEXT NOT NULL,
            narration      TEXT,
            status         TEXT NOT NULL,
            lcy_currency   TEXT NOT NULL,
            total_amount   TEXT NOT NULL,
            created_at     TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS tran_line (
            line_id          INTEGER PRIMARY KEY AUTOINCREMENT,
            tran_id          TEXT NOT NULL,
            line_no          INTEGER NOT NULL,
            account_no       TEXT NOT NULL,
            dr_cr            TEXT NOT NULL,
            tran_ccy         TEXT NOT NULL,
            fcy_amt          TEXT NOT NULL,
            exchange_rate    TEXT NOT NULL,
            lcy_amt          TEXT NOT NULL,
            posting_amount   TEXT NOT NULL,
            balance_after    TEXT NOT NULL,
            reference        TEXT,
            UNIQUE(tran_id, line_no),
            FOREIGN KEY (tran_id) REFERENCES tran_header(tran_id),
            FOREIGN KEY (account_no) REFERENCES account(account_no)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS intt_accr_tran (
            accr_id        INTEGER PRIMARY KEY AUTOINCREMENT,
            tran_id        TEXT NOT NULL,
            account_no     TEXT NOT NULL,
            accrual_date   TEXT NOT NULL,
            balance        TEXT NOT NULL,
            interest_rate  TEXT NOT NULL,
            amount         TEXT NOT NULL,
            created_at     TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(account_no, accrual_date),
            FOREIGN KEY (tran_id) REFERENCES tran_header(tran_id),
            FOREIGN KEY (account_no) REFERENCES account(account_no)
        )
    """)

    # 라인별 GL 변동 이력. is_accrual=1은 이자 경과 거래분
    await db.execute("""
        CREATE TABLE IF NOT EXISTS gl_movement (
            movement_id    INTEGER PRIMARY KEY AUTOINCREMENT,
            tran_id        TEXT NOT NULL,
            line_no        INTEGER NOT NULL,
            gl_num         TEXT NOT NULL,
            dr_cr          TEXT NOT NULL,
            amount         TEXT NOT NULL,
            value_date     TEXT NOT NULL,
            entry_date     TEXT NOT NULL,
            balance_after  TEXT NOT NULL,
            is_accrual     INTEGER NOT NULL DEFAULT 0,
            UNIQUE(tran_id, line_no),
            FOREIGN KEY (tran_id) REFERENCES tran_header(tran_id)
        )
    """)


async def _create_eod_tables(db: "SQLiteAdapter") -> None:
    """EOD 실행 기록 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS eod_run (
            run_date         TEXT PRIMARY KEY,
            status           TEXT NOT NULL,
            processed_count  INTEGER NOT NULL DEFAULT 0,
            skipped_count    INTEGER NOT NULL DEFAULT 0,
            failed_count     INTEGER NOT NULL DEFAULT 0,
            started_at       TEXT NOT NULL,
            ended_at         TEXT,
            error            TEXT
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS eod_failure (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            run_date     TEXT NOT NULL,
            account_no   TEXT NOT NULL,
            error_type   TEXT NOT NULL,
            message      TEXT NOT NULL,
            created_at   TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)


async def _create_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성"""
    await db.execute("CREATE INDEX IF NOT EXISTS idx_account_status ON account(status)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_account_kind ON account(kind)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_account_sub_product ON account(sub_product_code)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_tran_header_value_date ON tran_header(value_date)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_tran_header_entry ON tran_header(entry_date, entry_time)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_tran_line_tran ON tran_line(tran_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_tran_line_account ON tran_line(account_no)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_accrual_date ON intt_accr_tran(accrual_date)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_gl_movement_gl ON gl_movement(gl_num, movement_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_eod_failure_run ON eod_failure(run_date)")


async def _create_ledger_views(db: "SQLiteAdapter") -> None:
    """조회용 View 생성

    View는 항상 DROP 후 CREATE하여 스키마 변경 시에도 안전.
    """

    # 계좌별 거래 내역 (v_account_statement)
    await db.execute("DROP VIEW IF EXISTS v_account_statement")
    await db.execute("""
        CREATE VIEW v_account_statement AS
        SELECT
            tl.account_no,
            th.tran_id,
            th.value_date,
            th.entry_date,
            th.entry_time,
            th.tran_type,
            th.narration,
            tl.line_no,
            tl.dr_cr,
            tl.tran_ccy,
            tl.fcy_amt,
            tl.lcy_amt,
            tl.posting_amount,
            tl.balance_after,
            tl.reference,
            tl.line_id
        FROM tran_line tl
        JOIN tran_header th ON th.tran_id = tl.tran_id
    """)

    # 계좌 + 잔액 (v_account_summary)
    await db.execute("DROP VIEW IF EXISTS v_account_summary")
    await db.execute("""
        CREATE VIEW v_account_summary AS
        SELECT
            a.account_no,
            a.kind,
            a.account_name,
            a.currency,
            a.gl_num,
            a.status,
            a.open_date,
            a.close_date,
            a.cust_id,
            a.sub_product_code,
            a.interest_increment,
            a.reconciliation_required,
            COALESCE(ab.current_balance, '0') AS current_balance,
            COALESCE(ab.available_balance, '0') AS available_balance,
            COALESCE(ab.interest_accrued, '0') AS interest_accrued,
            ab.last_tran_id,
            ab.updated_at AS balance_updated_at
        FROM account a
        LEFT JOIN account_balance ab ON ab.account_no = a.account_no
    """)
