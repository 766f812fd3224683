"""
서브상품 라우트 (읽기 전용)

GET /api/sub-products - 카탈로그 목록
"""

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.catalog import CatalogStore
from core.ledger.errors import InvalidQueryError
from core.types import SubProductStatus
from web.dependencies import get_db
from web.models.responses import SubProductResponse

router = APIRouter(prefix="/api/sub-products", tags=["SubProducts"])


@router.get("", response_model=list[SubProductResponse])
async def list_sub_products(
    status: str | None = Query(default=None, description="상태 필터 (ACTIVE 등)"),
    db: SQLiteAdapter = Depends(get_db),
):
    """서브상품 목록 조회"""
    status_filter = None
    if status:
        try:
            status_filter = SubProductStatus(status.upper())
        except ValueError as e:
            raise InvalidQueryError(f"Unknown sub-product status: '{status}'") from e

    catalog = CatalogStore(db)
    sub_products = await catalog.list_sub_products(status_filter)

    return [
        SubProductResponse(
            sub_product_code=sp.sub_product_code,
            sub_product_name=sp.sub_product_name,
            product_type_code=sp.product_type_code,
            cum_gl_num=sp.cum_gl_num,
            currency=sp.currency,
            interest_rate=str(sp.interest_rate),
            interest_bearing=sp.interest_bearing,
            overdraft_allowed=sp.overdraft_allowed,
            status=sp.status.value,
        )
        for sp in sub_products
    ]
