"""
services/timer.py

응시 카운트다운 타이머.

- 남은 시간은 started_at + duration 으로 재계산 가능 (새로고침/재접속 시 복원)
- 응시 중에는 메모리 카운터를 1초마다 감소
- 0 에 도달하면 스스로 멈추고 만료 콜백을 정확히 한 번 호출
- stop() 으로 명시적으로 취소 (화면 해제 후 틱 없음)
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from config import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


def compute_time_remaining(
    started_at: Optional[datetime],
    duration_minutes: int,
    now: Optional[float] = None,
) -> int:
    """
    started_at 기준 남은 시간(초)을 계산한다.

    Args:
        started_at:       응시 시작 시각. None 이면 아직 시작 전 → 전체 시간.
        duration_minutes: 시험 제한 시간 (분).
        now:              현재 시각 (Unix timestamp). 기본값 time.time().

    Returns:
        duration*60 - 경과 초(내림), 0 미만이면 0.
        서버 시각이 클라이언트보다 앞서 경과 시간이 음수면 0초 경과로 본다.
    """
    duration_seconds = int(duration_minutes) * 60
    if started_at is None:
        return duration_seconds

    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    current = time.time() if now is None else now

    elapsed = max(0, math.floor(current - started_at.timestamp()))
    return max(0, duration_seconds - elapsed)


class TimerEngine:
    """
    취소 가능한 카운트다운 자원.

    on_tick(remaining)  : 매 틱마다 새 남은 시간을 전달
    on_expire()         : 0 도달 시 한 번 호출
    """

    def __init__(
        self,
        on_tick: Callable[[int], None],
        on_expire: Callable[[], None],
        interval: float = TICK_INTERVAL_SECONDS,
    ):
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._remaining = 0
        self._expired = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    def start(self, remaining: int) -> None:
        """남은 시간에서 카운트다운을 (다시) 시작. 실행 중이던 틱은 취소된다."""
        self.stop()
        self._remaining = max(0, int(remaining))
        self._expired = False
        if self._remaining == 0:
            self._fire_expired()
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"타이머 시작: {self._remaining}초")

    def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        # 만료 콜백 안에서 stop() 을 불러도 자기 자신은 취소하지 않는다
        if not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.debug(f"타이머 정지 (남은 시간 {self._remaining}초)")

    async def _run(self) -> None:
        while self._remaining > 0:
            await asyncio.sleep(self._interval)
            self._remaining -= 1
            self._on_tick(self._remaining)
        self._fire_expired()

    def _fire_expired(self) -> None:
        if self._expired:
            return
        self._expired = True
        logger.info("시험 시간이 종료되었습니다.")
        self._on_expire()
