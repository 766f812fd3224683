"""
거래 ID 유틸리티

거래 ID 생성
규칙: {prefix}-{YYYYMMDD}-{랜덤 hex 12자리}
- 수기 거래: TRN (입력일 기준)
- 이자 경과: ACR (경과일 기준)
"""

import uuid
from datetime import date

from core.types import TranType

MANUAL_PREFIX: str = "TRN"
ACCRUAL_PREFIX: str = "ACR"

_PREFIX_BY_TYPE: dict[TranType, str] = {
    TranType.MANUAL: MANUAL_PREFIX,
    TranType.INTEREST_ACCRUAL: ACCRUAL_PREFIX,
}


def make_tran_id(tran_type: TranType, on_date: date) -> str:
    """거래 ID 생성

    Args:
        tran_type: 거래 유형 (접두사 결정)
        on_date: ID에 포함할 날짜

    Returns:
        tran_id: TRN-20260115-1a2b3c4d5e6f 형식

    Example:
        >>> make_tran_id(TranType.MANUAL, date(2026, 1, 15))[:13]
        'TRN-20260115-'
    """
    prefix = _PREFIX_BY_TYPE[tran_type]
    return f"{prefix}-{on_date.strftime('%Y%m%d')}-{uuid.uuid4().hex[:12]}"

