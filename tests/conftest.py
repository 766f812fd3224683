"""
pytest 공통 fixture 정의

임시 DB, 설정 파일, 서브상품/사무 계정이 적재된 원장 컴포넌트.
"""

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Awaitable, Callable

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import Settings
from core.ledger.bootstrap import LedgerComponents, build_ledger
from core.ledger.types import (
    Account,
    SubProduct,
    TransactionLineRequest,
    TransactionReceipt,
    TransactionRequest,
)
from core.types import DrCrFlag


LCY = "USD"

# 사무 계정 첫 순번은 01 → "9" + GL + "01"
EXPENSE_GL = "510100001"
EXPENSE_ACCOUNT = "951010000101"
CASH_GL = "110100001"

SUB_PRODUCTS = [
    SubProduct(
        sub_product_code="SB-REG",
        sub_product_name="Regular Savings",
        product_type_code="1",
        cum_gl_num="210100001",
        currency="USD",
        interest_rate=Decimal("3.65"),
        interest_bearing=True,
        overdraft_allowed=False,
    ),
    SubProduct(
        sub_product_code="CA-STD",
        sub_product_name="Standard Current",
        product_type_code="2",
        cum_gl_num="210200001",
        currency="USD",
        overdraft_allowed=True,
    ),
    SubProduct(
        sub_product_code="SB-EUR",
        sub_product_name="EUR Savings",
        product_type_code="4",
        cum_gl_num="210400001",
        currency="EUR",
        interest_rate=Decimal("2.00"),
        interest_bearing=True,
    ),
]


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    content = f"""# 테스트용 settings.yaml
mode: sandbox

ledger:
  local_currency: usd
  interest_expense_account: "{EXPENSE_ACCOUNT}"

eod:
  run_at: "21:30"

web:
  host: 0.0.0.0
  port: 9000

database:
  path: "{(temp_dir / 'ledger.db').as_posix()}"
"""
    path = temp_dir / "settings.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def reset_settings():
    """Settings 싱글턴 초기화 (테스트 전후)"""
    Settings.reset()
    yield
    Settings.reset()


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """스키마가 생성된 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def ledger(db: SQLiteAdapter) -> LedgerComponents:
    """서브상품 + 이자비용 사무 계정이 적재된 원장"""
    components = build_ledger(db, LCY, EXPENSE_ACCOUNT)
    for sub_product in SUB_PRODUCTS:
        await components.catalog.upsert_sub_product(sub_product)

    expense = await components.accounts.open_office_account(
        EXPENSE_GL, "Interest Expense", open_date=date(2020, 1, 1)
    )
    assert expense.account_no == EXPENSE_ACCOUNT
    return components


@pytest_asyncio.fixture
async def cash_account(ledger: LedgerComponents) -> Account:
    """현금 사무 계정 (당좌대월 항상 허용)"""
    return await ledger.accounts.open_office_account(
        CASH_GL, "Cash in Vault", open_date=date(2020, 1, 1)
    )


@pytest_asyncio.fixture
async def savings_account(ledger: LedgerComponents) -> Account:
    """이자부 예금 계좌 (당좌대월 불가, 연 3.65%)"""
    return await ledger.accounts.open_customer_account(
        cust_id=12345,
        sub_product_code="SB-REG",
        account_name="Alice Savings",
        open_date=date(2020, 1, 1),
    )


@pytest_asyncio.fixture
async def current_account(ledger: LedgerComponents) -> Account:
    """당좌 계좌 (당좌대월 허용, 무이자)"""
    return await ledger.accounts.open_customer_account(
        cust_id=67890,
        sub_product_code="CA-STD",
        account_name="Bob Current",
        open_date=date(2020, 1, 1),
    )


@pytest.fixture
def transfer(
    ledger: LedgerComponents,
) -> Callable[..., Awaitable[TransactionReceipt]]:
    """차변 계좌 → 대변 계좌 단일 통화 이체 (검증 + 전기)"""

    async def _transfer(
        debit_account: str,
        credit_account: str,
        amount: str | Decimal,
        value_date: date = date(2024, 1, 15),
        currency: str = LCY,
    ) -> TransactionReceipt:
        request = TransactionRequest(
            value_date=value_date,
            narration="test transfer",
            lines=[
                TransactionLineRequest(
                    account_no=debit_account,
                    dr_cr=DrCrFlag.D,
                    tran_ccy=currency,
                    fcy_amt=Decimal(amount),
                ),
                TransactionLineRequest(
                    account_no=credit_account,
                    dr_cr=DrCrFlag.C,
                    tran_ccy=currency,
                    fcy_amt=Decimal(amount),
                ),
            ],
        )
        validated = await ledger.validator.validate(request)
        return await ledger.posting.post(validated)

    return _transfer
