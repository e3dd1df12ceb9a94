"""
views/components/question_card.py

단일 문제를 카드(Panel) 형태로 렌더링하는 컴포넌트.
"""

from __future__ import annotations

from typing import Optional

from rich.panel import Panel
from rich.text import Text

from mock_test_cbt.models.attempt_model import AttemptQuestion


def render(
    question: AttemptQuestion,
    question_number: int,
    total: int,
    selected: Optional[int] = None,
    marked: bool = False,
) -> Panel:
    """
    문제 카드를 만든다.

    Args:
        question:        렌더링할 문제
        question_number: 전체 중 몇 번째인지 (1-based 표시용)
        total:           전체 문제 수
        selected:        현재 선택된 보기 인덱스 (없으면 None)
        marked:          '검토 표시' 여부
    """
    body = Text(question.text + "\n\n", style="bold")
    for idx, option in enumerate(question.options):
        chosen = idx == selected
        bullet = "●" if chosen else "○"
        body.append(f"  {bullet} {idx + 1}. {option}\n", style="green bold" if chosen else "")

    title = f"Question {question_number} / {total}"
    if marked:
        title += "  [magenta]★ marked for review[/magenta]"
    return Panel(body, title=title, title_align="left", border_style="cyan")
