"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

from fastapi import APIRouter

from core.config.loader import get_settings
from web.dependencies import get_ledger
from web.models.responses import HealthResponse

router = APIRouter(tags=["health"])

VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status, mode, version, 현재 영업일
    """
    settings = get_settings()
    ledger = get_ledger()
    business_date = await ledger.params.get_business_date()

    return HealthResponse(
        status="ok",
        mode=settings.mode.value,
        version=VERSION,
        business_date=business_date.isoformat() if business_date else None,
    )
