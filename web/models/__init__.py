"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.base import CamelModel
from web.models.requests import (
    AccountCloseRequest,
    AccountStatusRequest,
    CustomerAccountOpenRequest,
    OfficeAccountOpenRequest,
    TransactionEntryRequest,
    TransactionLineRequest,
)
from web.models.responses import (
    AccountPageResponse,
    AccountResponse,
    EodCancelResponse,
    EodRunResponse,
    ErrorResponse,
    GlMovementsResponse,
    HealthResponse,
    StatementResponse,
    SubProductResponse,
    TransactionPageResponse,
    TransactionReceiptResponse,
    TransactionResponse,
    TrialBalanceResponse,
)

__all__ = [
    "CamelModel",
    # Requests
    "AccountCloseRequest",
    "AccountStatusRequest",
    "CustomerAccountOpenRequest",
    "OfficeAccountOpenRequest",
    "TransactionEntryRequest",
    "TransactionLineRequest",
    # Responses
    "AccountPageResponse",
    "AccountResponse",
    "EodCancelResponse",
    "EodRunResponse",
    "ErrorResponse",
    "GlMovementsResponse",
    "HealthResponse",
    "StatementResponse",
    "SubProductResponse",
    "TransactionPageResponse",
    "TransactionReceiptResponse",
    "TransactionResponse",
    "TrialBalanceResponse",
]
