"""
services/auto_submit.py

자동 제출 트리거 두 가지를 하나의 제출 경로(AttemptSession.submit)로 모은다.
  1. 타이머 만료  → 확인 없이 즉시 제출
  2. ESC 키 입력  → 확인 창 후 제출

둘 다 세션의 SUBMITTING/SUBMITTED 가드를 거치므로 먼저 도착한 쪽만 실제로 제출된다.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from config import AUTO_SUBMIT_RETRY_SECONDS
from mock_test_cbt.models.session_state import Phase, SubmitReason
from mock_test_cbt.views.window import KEY_DOWN, KeyboardEvent, Window

if TYPE_CHECKING:
    from mock_test_cbt.services.attempt_session import AttemptSession

logger = logging.getLogger(__name__)

EMERGENCY_KEYS = ("Escape", "Esc")
EMERGENCY_CONFIRM_MESSAGE = (
    "Pressing ESC will automatically submit your exam. "
    "Are you sure you want to submit now?"
)


class AutoSubmitTrigger:
    def __init__(
        self,
        session: "AttemptSession",
        window: Window,
        retry_delay: float = AUTO_SUBMIT_RETRY_SECONDS,
    ):
        self._session = session
        self._window = window
        self._retry_delay = retry_delay
        self._armed = False
        self._confirming = False

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        if self._armed:
            return
        self._window.add_event_listener(KEY_DOWN, self._on_key_down)
        self._armed = True

    def disarm(self) -> None:
        if not self._armed:
            return
        self._window.remove_event_listener(KEY_DOWN, self._on_key_down)
        self._armed = False

    # ── 트리거 1: 타이머 만료 ─────────────────────────────────────────────────

    def on_timer_expired(self) -> None:
        if self._session.phase is not Phase.IN_PROGRESS:
            # 수동 제출이 진행 중이면 그쪽 결과를 따른다
            logger.info(f"시간 만료: 현재 단계 {self._session.phase.value}, 자동 제출 생략")
            return
        self._session.spawn(self._session.submit(SubmitReason.TIMER))

    def schedule_retry(self) -> None:
        """시간이 0인 상태에서 제출이 실패했을 때 재시도 예약."""
        self._session.spawn(self._retry_after_delay())

    async def _retry_after_delay(self) -> None:
        await asyncio.sleep(self._retry_delay)
        if self._session.phase is Phase.IN_PROGRESS:
            logger.info("자동 제출 재시도")
            await self._session.submit(SubmitReason.TIMER)

    # ── 트리거 2: ESC 키 ─────────────────────────────────────────────────────

    def _on_key_down(self, event: KeyboardEvent) -> None:
        if event.key not in EMERGENCY_KEYS:
            return
        event.prevent_default()
        event.stop_propagation()
        if self._session.phase is not Phase.IN_PROGRESS or self._confirming:
            return
        self._session.spawn(self._confirm_and_submit())

    async def _confirm_and_submit(self) -> None:
        self._confirming = True
        try:
            confirmed = await self._session.notifier.confirm(EMERGENCY_CONFIRM_MESSAGE)
        finally:
            self._confirming = False
        if confirmed:
            await self._session.submit(SubmitReason.EMERGENCY_KEY)
