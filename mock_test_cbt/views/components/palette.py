"""
views/components/palette.py

문제 번호 팔레트 컴포넌트 (5열 그리드 + 진행 현황 + 범례).

색상 코딩:
  - 현재 문제: 반전
  - 답함:       초록
  - 표시함:     보라 (답도 했으면 초록 바탕 + 보라 글자)
  - 방문만 함:  빨강
  - 미방문:     회색
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from mock_test_cbt.services.attempt_session import AttemptSession

_COLS_PER_ROW = 5


def _cell(session: "AttemptSession", idx: int) -> Text:
    status = session.question_status(idx)
    label = f"{idx + 1:>2}"

    if status.answered and status.marked:
        style = "magenta on green"
    elif status.answered:
        style = "black on green"
    elif status.marked:
        style = "white on magenta"
    elif status.visited:
        style = "white on red"
    else:
        style = "dim"

    if idx == session.state.current_question_index:
        style += " reverse bold"
    return Text(f" {label} ", style=style)


def render(session: "AttemptSession") -> Group:
    """팔레트 그리드와 응답/미응답/표시/미방문 요약을 반환한다."""
    grid = Table.grid(padding=(0, 1))
    for _ in range(_COLS_PER_ROW):
        grid.add_column()

    total = len(session.questions)
    for row_start in range(0, total, _COLS_PER_ROW):
        row = [
            _cell(session, idx)
            for idx in range(row_start, min(row_start + _COLS_PER_ROW, total))
        ]
        grid.add_row(*row)

    stats = session.question_stats()
    summary = Text.assemble(
        ("Answered ", "green"), (str(stats.answered), "bold"), "  ",
        ("Unanswered ", "red"), (str(stats.unanswered), "bold"), "  ",
        ("Marked ", "magenta"), (str(stats.marked), "bold"), "  ",
        ("Not visited ", "dim"), (str(stats.not_visited), "bold"),
    )
    return Group(grid, summary)
