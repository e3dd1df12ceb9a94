"""
views/window.py — 응시 화면을 띄운 호스트(브라우저 창) 모델

세션 코어가 의존하는 최소한의 창 기능만 표현한다.
  - 이벤트 리스너 등록/해제 (beforeunload / popstate / keydown)
  - history (push_state / back) 와 현재 location
  - 페이지 이탈 요청 (request_unload)

리스너는 동기 함수. 비동기 작업이 필요하면 리스너 쪽에서 태스크를 띄운다.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

BEFORE_UNLOAD = "beforeunload"
POP_STATE = "popstate"
KEY_DOWN = "keydown"

Listener = Callable[["Event"], None]


class Event:
    def __init__(self, event_type: str):
        self.type = event_type
        self.default_prevented = False
        self.propagation_stopped = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


class KeyboardEvent(Event):
    def __init__(self, key: str):
        super().__init__(KEY_DOWN)
        self.key = key


class BeforeUnloadEvent(Event):
    def __init__(self):
        super().__init__(BEFORE_UNLOAD)
        self.return_value = ""


class PopStateEvent(Event):
    def __init__(self, state: Any = None):
        super().__init__(POP_STATE)
        self.state = state


class History:
    """세션 history 스택. back() 은 창에 popstate 를 발생시킨다."""

    def __init__(self, window: "Window", location: str):
        self._window = window
        self._entries: list[tuple[Any, str]] = [(None, location)]
        self._index = 0

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def location(self) -> str:
        return self._entries[self._index][1]

    @property
    def state(self) -> Any:
        return self._entries[self._index][0]

    def push_state(self, state: Any, url: Optional[str] = None) -> None:
        # 앞쪽 항목은 버리고 새 항목 추가
        del self._entries[self._index + 1:]
        self._entries.append((state, url or self.location))
        self._index += 1

    def back(self) -> None:
        if self._index == 0:
            return
        self._index -= 1
        self._window.dispatch_event(PopStateEvent(self.state))


class Window:
    def __init__(self, location: str = "/"):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self.history = History(self, location)

    @property
    def location(self) -> str:
        return self.history.location

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        if listener not in self._listeners[event_type]:
            self._listeners[event_type].append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        if listener in self._listeners[event_type]:
            self._listeners[event_type].remove(listener)

    def listener_count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._listeners[event_type])
        return sum(len(v) for v in self._listeners.values())

    def dispatch_event(self, event: Event) -> bool:
        """리스너를 등록 순서대로 호출. 기본 동작이 취소되지 않았으면 True."""
        for listener in list(self._listeners[event.type]):
            listener(event)
            if event.propagation_stopped:
                break
        return not event.default_prevented

    def press_key(self, key: str) -> bool:
        return self.dispatch_event(KeyboardEvent(key))

    def request_unload(self) -> Optional[str]:
        """
        페이지 이탈 요청.

        Returns:
            None: 아무도 막지 않음 (바로 떠나도 됨)
            str : 사용자에게 보여줄 경고 문구 (리스너가 이탈을 막음)
        """
        event = BeforeUnloadEvent()
        if self.dispatch_event(event):
            return None
        logger.info("페이지 이탈이 차단되었습니다.")
        return event.return_value or "Changes you made may not be saved."
