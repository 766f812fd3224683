"""
서브상품 카탈로그

원장 입장에서 카탈로그는 읽기 전용 경계.
upsert_sub_product는 초기 데이터 적재(scripts/seed_catalog.py) 전용.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.ledger.types import SubProduct
from core.types import SubProductStatus

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


SUB_PRODUCT_COLUMNS = """
    sub_product_code, sub_product_name, product_type_code, cum_gl_num,
    currency, interest_rate, interest_bearing, overdraft_allowed, status
"""


def row_to_sub_product(row: tuple[Any, ...]) -> SubProduct:
    """sub_product 행 → SubProduct"""
    return SubProduct(
        sub_product_code=row[0],
        sub_product_name=row[1],
        product_type_code=row[2],
        cum_gl_num=row[3],
        currency=row[4],
        interest_rate=Decimal(row[5]),
        interest_bearing=bool(row[6]),
        overdraft_allowed=bool(row[7]),
        status=SubProductStatus(row[8]),
    )


class CatalogStore:
    """서브상품 조회

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def get_sub_product(self, sub_product_code: str) -> SubProduct | None:
        """서브상품 단건 조회 (없으면 None)"""
        row = await self.db.fetchone(
            f"SELECT {SUB_PRODUCT_COLUMNS} FROM sub_product WHERE sub_product_code = ?",
            (sub_product_code,),
        )
        return row_to_sub_product(row) if row else None

    async def list_sub_products(
        self,
        status: SubProductStatus | None = None,
    ) -> list[SubProduct]:
        """서브상품 목록 조회

        Args:
            status: 필터링할 상태 (선택)
        """
        sql = f"SELECT {SUB_PRODUCT_COLUMNS} FROM sub_product"
        params: list[Any] = []

        if status is not None:
            sql += " WHERE status = ?"
            params.append(status.value)

        sql += " ORDER BY sub_product_code"

        rows = await self.db.fetchall(sql, tuple(params))
        return [row_to_sub_product(row) for row in rows]

    async def upsert_sub_product(self, sub_product: SubProduct) -> None:
        """서브상품 등록/갱신 (초기 적재용)"""
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO sub_product (
                    sub_product_code, sub_product_name, product_type_code, cum_gl_num,
                    currency, interest_rate, interest_bearing, overdraft_allowed, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(sub_product_code) DO UPDATE SET
                    sub_product_name = excluded.sub_product_name,
                    product_type_code = excluded.product_type_code,
                    cum_gl_num = excluded.cum_gl_num,
                    currency = excluded.currency,
                    interest_rate = excluded.interest_rate,
                    interest_bearing = excluded.interest_bearing,
                    overdraft_allowed = excluded.overdraft_allowed,
                    status = excluded.status
                """,
                (
                    sub_product.sub_product_code,
                    sub_product.sub_product_name,
                    sub_product.product_type_code,
                    sub_product.cum_gl_num,
                    sub_product.currency,
                    str(sub_product.interest_rate),
                    int(sub_product.interest_bearing),
                    int(sub_product.overdraft_allowed),
                    sub_product.status.value,
                ),
            )

        logger.info(
            f"서브상품 등록: {sub_product.sub_product_code}",
            extra={"sub_product_code": sub_product.sub_product_code},
        )
