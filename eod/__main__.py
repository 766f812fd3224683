"""
EOD 스케줄러 진입점

실행 방법:
    python -m eod
"""

import asyncio
import logging
import sys

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import SettingsLoadError, get_settings
from core.ledger.bootstrap import build_ledger
from core.logging import setup_logging
from eod.scheduler import EodScheduler

logger = logging.getLogger(__name__)


async def main() -> None:
    """EOD 스케줄러 메인 함수"""
    setup_logging("eod")

    try:
        settings = get_settings()
    except (SettingsLoadError, ValueError) as e:
        logger.error(f"설정 로드 실패: {e}")
        sys.exit(1)

    logger.info(f"Mode: {settings.mode.value}")
    logger.info(f"DB: {settings.db_path}")

    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)

        ledger = build_ledger(
            db,
            local_currency=settings.local_currency,
            interest_expense_account=settings.interest_expense_account,
        )
        scheduler = EodScheduler(ledger, run_at=settings.eod_run_at)

        logger.info("EOD 스케줄러 루프 시작 (종료: Ctrl+C)")
        try:
            await scheduler.run()
        except asyncio.CancelledError:
            logger.info("스케줄러 취소됨")
        finally:
            scheduler.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Ctrl+C 감지")
