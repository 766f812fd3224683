"""
유틸리티 패키지

거래 ID 생성 등 공통 유틸리티
"""

from core.utils.ids import make_tran_id

__all__ = [
    "make_tran_id",
]
