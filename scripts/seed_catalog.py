"""
카탈로그 초기 적재

config/catalog.yaml의 서브상품과 사무 계정을 DB에 적재.
서브상품은 upsert, 사무 계정은 같은 GL + 계정명이 이미 있으면 건너뜀.

사용법:
    python -m scripts.seed_catalog
    python -m scripts.seed_catalog --catalog config/catalog.yaml
"""

import argparse
import asyncio
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import yaml

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.constants import Paths
from core.ledger.accounts import AccountService
from core.ledger.balance_store import BalanceStore
from core.ledger.catalog import CatalogStore
from core.ledger.types import SubProduct
from core.types import AccountKind, SubProductStatus

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def load_catalog(path: Path) -> dict[str, Any]:
    """catalog.yaml 로드

    Raises:
        FileNotFoundError: 파일 없음
        ValueError: 필수 항목 누락
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data.get("sub_products", []), list):
        raise ValueError("catalog.yaml: 'sub_products'는 목록이어야 합니다")
    if not isinstance(data.get("office_accounts", []), list):
        raise ValueError("catalog.yaml: 'office_accounts'는 목록이어야 합니다")
    return data


def to_sub_product(item: dict[str, Any], local_currency: str) -> SubProduct:
    return SubProduct(
        sub_product_code=str(item["code"]),
        sub_product_name=str(item["name"]),
        product_type_code=str(item["product_type_code"]),
        cum_gl_num=str(item["gl_num"]),
        currency=str(item.get("currency", local_currency)).upper(),
        interest_rate=Decimal(str(item.get("interest_rate", "0"))),
        interest_bearing=bool(item.get("interest_bearing", False)),
        overdraft_allowed=bool(item.get("overdraft_allowed", False)),
        status=SubProductStatus(item.get("status", SubProductStatus.ACTIVE.value)),
    )


async def seed(
    db: SQLiteAdapter,
    catalog_data: dict[str, Any],
    local_currency: str,
) -> dict[str, str]:
    """서브상품/사무 계정 적재

    Returns:
        사무 계정명 → 계좌번호
    """
    catalog = CatalogStore(db)
    balance_store = BalanceStore(db)
    accounts = AccountService(balance_store, catalog, local_currency)

    for item in catalog_data.get("sub_products", []):
        sub_product = to_sub_product(item, local_currency)
        await catalog.upsert_sub_product(sub_product)
        logger.info(f"서브상품 적재: {sub_product.sub_product_code}")

    office_accounts: dict[str, str] = {}
    for item in catalog_data.get("office_accounts", []):
        gl_num = str(item["gl_num"])
        name = str(item["name"])

        existing = await db.fetchone(
            """
            SELECT account_no FROM account
            WHERE kind = ? AND gl_num = ? AND account_name = ?
            """,
            (AccountKind.OFFICE.value, gl_num, name),
        )
        if existing:
            office_accounts[name] = existing[0]
            logger.info(f"사무 계정 존재: {name} ({existing[0]})")
            continue

        account = await accounts.open_office_account(
            gl_num=gl_num,
            account_name=name,
            currency=item.get("currency"),
            reconciliation_required=bool(item.get("reconciliation_required", False)),
        )
        office_accounts[name] = account.account_no
        logger.info(f"사무 계정 개설: {name} ({account.account_no})")

    return office_accounts


async def main(catalog_path: Path) -> None:
    settings = get_settings()
    catalog_data = load_catalog(catalog_path)

    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)
        office_accounts = await seed(db, catalog_data, settings.local_currency)

    print(f"DB Path: {settings.db_path}")
    print(f"Office accounts ({len(office_accounts)}):")
    for name, account_no in office_accounts.items():
        print(f"  - {account_no}  {name}")
    if not settings.interest_expense_account:
        print("\nsettings.yaml의 ledger.interest_expense_account를 설정하세요")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="서브상품/사무 계정 초기 적재")
    parser.add_argument(
        "--catalog",
        type=Path,
        default=Paths.CATALOG_FILE,
        help="catalog.yaml 경로 (기본: config/catalog.yaml)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.catalog))
