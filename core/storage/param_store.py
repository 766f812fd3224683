"""
ParamStore - 시스템 파라미터 저장소

system_param 테이블을 통해 런타임 파라미터 관리.
Web과 EOD 스케줄러가 공유하는 값을 저장/조회.

파라미터 키 구조:
- "business_date": 현재 영업일 ({"date": "YYYY-MM-DD"})
  EOD가 COMPLETED로 끝나면 run_date + 1로 전진
"""

import json
import logging
from datetime import date, datetime, timezone
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


BUSINESS_DATE_KEY = "business_date"


class ParamStore:
    """시스템 파라미터 저장소

    Args:
        db: SQLiteAdapter 인스턴스

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        params = ParamStore(db)

        business_date = await params.get_business_date()
        await params.advance_business_date(date(2026, 1, 16), updated_by="eod")
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def get(self, key: str) -> dict[str, Any] | None:
        """파라미터 조회 (없으면 None)"""
        row = await self.db.fetchone(
            "SELECT value_json FROM system_param WHERE param_key = ?",
            (key,),
        )
        if not row:
            return None
        return json.loads(row[0])

    async def set(
        self,
        key: str,
        value: dict[str, Any],
        updated_by: str = "system",
    ) -> None:
        """파라미터 저장 (UPSERT, version 증가)

        Args:
            key: 파라미터 키
            value: 값 (JSON 직렬화 가능)
            updated_by: 변경 주체
        """
        now = datetime.now(timezone.utc).isoformat()
        value_json = json.dumps(value, ensure_ascii=False)

        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO system_param (param_key, value_json, version, updated_by, created_at, updated_at)
                VALUES (?, ?, 1, ?, ?, ?)
                ON CONFLICT(param_key) DO UPDATE SET
                    value_json = excluded.value_json,
                    version = system_param.version + 1,
                    updated_by = excluded.updated_by,
                    updated_at = excluded.updated_at
                """,
                (key, value_json, updated_by, now, now),
            )

        logger.info(f"Param '{key}' updated by {updated_by}")

    async def get_all(self) -> dict[str, dict[str, Any]]:
        """모든 파라미터 조회"""
        rows = await self.db.fetchall(
            "SELECT param_key, value_json FROM system_param ORDER BY param_key"
        )
        return {row[0]: json.loads(row[1]) for row in rows}

    # =========================================================================
    # 영업일
    # =========================================================================

    async def get_business_date(self) -> date | None:
        """현재 영업일 (설정 전이면 None)"""
        value = await self.get(BUSINESS_DATE_KEY)
        if not value or not value.get("date"):
            return None
        return date.fromisoformat(value["date"])

    async def advance_business_date(
        self,
        new_date: date,
        updated_by: str = "eod",
    ) -> bool:
        """영업일 전진 (현재 값보다 뒤일 때만)

        Returns:
            실제로 변경했는지 여부
        """
        current = await self.get_business_date()
        if current is not None and current >= new_date:
            return False

        await self.set(BUSINESS_DATE_KEY, {"date": new_date.isoformat()}, updated_by)
        return True
