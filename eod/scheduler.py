"""
EOD 스케줄러

매일 eod.run_at 시각 이후 첫 틱에서 해당 일자의 EOD를 1회 실행.
- 시작 시 중단된 RUNNING 기록을 FAILED로 복구
- 완료/진행 중/실행 실패는 로그만 남기고 루프 계속
- stop() 호출 시 진행 중인 EOD는 다음 계좌 경계에서 CANCELLED로 종료
"""

import asyncio
import logging
from datetime import date, datetime, time
from typing import Callable

from core.constants import Defaults
from core.ledger.bootstrap import LedgerComponents
from core.ledger.errors import (
    EodAlreadyCompletedError,
    EodInProgressError,
    EodRunError,
)
from core.ledger.types import EodResult

logger = logging.getLogger(__name__)


class EodScheduler:
    """일일 EOD 스케줄러

    Args:
        ledger: 원장 컴포넌트
        run_at: 자동 실행 시각
        tick_sec: 스케줄 확인 주기 (초)
        clock: 현재 시각 함수 (테스트 주입용)
    """

    def __init__(
        self,
        ledger: LedgerComponents,
        run_at: time,
        tick_sec: float = Defaults.SCHEDULER_TICK_SEC,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.run_at = run_at
        self.tick_sec = tick_sec
        self._clock = clock

        self._stop_event = asyncio.Event()
        self._last_attempt: date | None = None

    @property
    def last_attempt(self) -> date | None:
        """마지막으로 EOD를 시도한 일자"""
        return self._last_attempt

    def is_due(self, now: datetime) -> bool:
        """지금 EOD를 시도해야 하는지 여부 (하루 1회)"""
        if now.time() < self.run_at:
            return False
        return self._last_attempt != now.date()

    async def tick(self) -> EodResult | None:
        """스케줄 확인 후 필요하면 EOD 1회 실행

        Returns:
            실행했으면 EodResult, 아니면 None
        """
        now = self._clock()
        if not self.is_due(now):
            return None

        run_date = now.date()
        # 실패해도 같은 날 재시도하지 않음 (수동 재실행은 admin API)
        self._last_attempt = run_date

        try:
            return await self.ledger.accrual.run_eod(run_date, cancel_event=self._stop_event)
        except EodAlreadyCompletedError:
            logger.info(f"EOD 이미 완료됨: {run_date.isoformat()}")
        except EodInProgressError as e:
            logger.warning(f"EOD 진행 중이라 건너뜀: {e}")
        except EodRunError as e:
            logger.error(f"자동 EOD 실패: {e}")
        return None

    async def run(self) -> None:
        """스케줄 루프 (stop() 호출 시 종료)"""
        recovered = await self.ledger.accrual.recover_stale_runs()
        logger.info(
            f"EOD 스케줄러 시작 (run_at={self.run_at.strftime('%H:%M')}, "
            f"tick={self.tick_sec}s, recovered={recovered})"
        )

        while not self._stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_sec)
            except asyncio.TimeoutError:
                pass

        logger.info("EOD 스케줄러 종료")

    def stop(self) -> None:
        """루프 종료 요청"""
        self._stop_event.set()
