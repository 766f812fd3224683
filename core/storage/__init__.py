"""
스토리지 모듈

시스템 파라미터(영업일 등) 저장소 인터페이스 제공
"""

from core.storage.param_store import BUSINESS_DATE_KEY, ParamStore

__all__ = [
    "BUSINESS_DATE_KEY",
    "ParamStore",
]
