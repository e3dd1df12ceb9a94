"""
views/notifier.py

세션 코어 → 표시 계층 알림 포트.
토스트, 확인 창, 페이지 이동, 상태 변경 통지만 정의한다 (렌더링은 구현체 몫).
"""

from enum import Enum
from typing import Any, Protocol


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


class Notifier(Protocol):
    def toast(self, message: str, kind: ToastKind = ToastKind.SUCCESS) -> None:
        """짧은 알림 메시지."""

    async def confirm(self, message: str) -> bool:
        """예/아니오 확인. 사용자가 수락하면 True."""

    def redirect(self, path: str) -> None:
        """응시 화면을 떠나 다른 경로로 이동."""

    def state_changed(self, session: Any) -> None:
        """세션 상태가 바뀌었음을 알림 (다시 그리기 용도)."""
