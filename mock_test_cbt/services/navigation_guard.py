"""
services/navigation_guard.py

응시 중 화면 이탈 차단.

arm()    : beforeunload 경고 + 뒤로가기(popstate) 무효화
disarm() : 리스너 해제. 제출 완료/화면 해제 시 세션이 호출
"""

import logging

from mock_test_cbt.views.notifier import Notifier, ToastKind
from mock_test_cbt.views.window import BEFORE_UNLOAD, POP_STATE, Event, Window

logger = logging.getLogger(__name__)

UNLOAD_WARNING = (
    "You have an ongoing test. Are you sure you want to leave? "
    "Your progress will be saved but the timer will continue."
)
BLOCKED_NAVIGATION_MESSAGE = (
    "You cannot navigate away during the test. Please submit the test first."
)


class NavigationGuard:
    def __init__(self, window: Window, notifier: Notifier):
        self._window = window
        self._notifier = notifier
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        if self._armed:
            return
        self._window.add_event_listener(BEFORE_UNLOAD, self._on_before_unload)
        self._window.add_event_listener(POP_STATE, self._on_pop_state)
        # 뒤로가기가 먼저 이 항목을 소비하도록 현재 위치를 한 번 더 쌓는다
        self._window.history.push_state(None, self._window.location)
        self._armed = True
        logger.info("화면 이탈 차단 활성화")

    def disarm(self) -> None:
        if not self._armed:
            return
        self._window.remove_event_listener(BEFORE_UNLOAD, self._on_before_unload)
        self._window.remove_event_listener(POP_STATE, self._on_pop_state)
        self._armed = False
        logger.info("화면 이탈 차단 해제")

    def _on_before_unload(self, event: Event) -> None:
        event.prevent_default()
        event.return_value = UNLOAD_WARNING

    def _on_pop_state(self, event: Event) -> None:
        self._window.history.push_state(None, self._window.location)
        self._notifier.toast(BLOCKED_NAVIGATION_MESSAGE, ToastKind.WARNING)
