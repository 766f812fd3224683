"""
원장 오류 → HTTP 응답 매핑

모든 LedgerError는 하나의 핸들러에서 {"code", "detail"} 형태로 변환.
메시지는 그대로 노출.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from core.ledger.errors import (
    AccountStateError,
    CatalogError,
    EodError,
    EodRunError,
    LedgerError,
    NotFoundError,
    PostingError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# 위에서부터 처음 일치하는 클래스의 상태 코드 사용 (하위 클래스 먼저)
STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (StoreUnavailableError, 503),
    (NotFoundError, 404),
    (EodRunError, 500),
    (ValidationError, 400),
    (CatalogError, 400),
    (PostingError, 409),
    (AccountStateError, 409),
    (EodError, 409),
]


def status_for(exc: LedgerError) -> int:
    """오류 클래스별 HTTP 상태 코드"""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def ledger_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """LedgerError 예외 핸들러"""
    assert isinstance(exc, LedgerError)
    status_code = status_for(exc)

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} → {status_code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} → {status_code} {exc.code}")

    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "detail": exc.message},
    )
