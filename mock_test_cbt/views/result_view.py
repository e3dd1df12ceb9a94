"""
views/result_view.py — 제출 결과 화면

표시 내용:
  - 점수 (맞힌 수 / 전체)
  - 백분율 + 평가 문구 (Excellent / Good / Average / Needs Improvement)
  - 응답 통계 (응답, 미응답, 표시)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mock_test_cbt.services.exam_service import performance_label

if TYPE_CHECKING:
    from mock_test_cbt.services.attempt_session import AttemptSession


def render(console: Console, session: "AttemptSession") -> None:
    """결과 화면 렌더링. 제출 전이면 아무것도 하지 않는다."""
    result = session.result
    if result is None:
        return

    label = performance_label(result.percentage)
    color = "green" if result.percentage >= 60 else "yellow" if result.percentage >= 40 else "red"

    table = Table.grid(padding=(0, 3))
    table.add_column(justify="right", style="dim")
    table.add_column(style="bold")
    table.add_row("Score", f"{result.score:g} / {result.total_questions}")
    table.add_row("Percentage", f"[{color}]{result.percentage:g}%[/{color}]")
    table.add_row("Performance", f"[{color}]{label}[/{color}]")

    stats = session.question_stats()
    table.add_row("Answered", str(stats.answered))
    table.add_row("Unanswered", str(stats.unanswered))
    table.add_row("Marked for review", str(stats.marked))

    title = session.attempt.test_title if session.attempt else "Result"
    console.print(Panel(table, title=f"Test Submitted — {title}", border_style=color))
