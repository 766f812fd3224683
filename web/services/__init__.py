"""
Web 서비스 패키지

비즈니스 로직 처리
"""

from web.services.account_service import AccountService
from web.services.eod_service import EodService
from web.services.transaction_service import TransactionService

__all__ = [
    "AccountService",
    "EodService",
    "TransactionService",
]
