"""
views/components/timer.py

남은 시험 시간 표시 컴포넌트.
10분 미만이면 노란색, 5분 미만이면 빨간색 경고.
"""

from rich.text import Text

from mock_test_cbt.services.exam_service import format_time, timer_urgency

_STYLES = {
    "normal": "bold blue",
    "warning": "bold yellow",
    "critical": "bold white on red",
}


def render(remaining: int) -> Text:
    """
    남은 시간 표시.

    Args:
        remaining: SessionState.time_remaining_seconds

    Returns:
        색상이 적용된 rich Text (예: "⏱ 12:05")
    """
    urgency = timer_urgency(remaining)
    icon = "⏱ " if urgency == "normal" else "⚠️ "
    return Text(f"{icon}{format_time(remaining)}", style=_STYLES[urgency])
