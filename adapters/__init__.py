"""
어댑터 레이어

외부 자원(DB 등)과의 연동을 담당.
"""

from adapters.db import SQLiteAdapter

__all__ = [
    "SQLiteAdapter",
]
