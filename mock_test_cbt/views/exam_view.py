"""
views/exam_view.py — 시험 풀기 화면 (터미널)

레이아웃:
  - 상단  : 시험 제목 + 타이머
  - 메인  : 현재 문제 카드
  - 하단  : 문제 번호 팔레트 + 요약 + 명령 안내

상태 관리:
  - 모든 상태 변경은 AttemptSession 을 통해서만 한다
  - 이 화면은 명령을 세션 조작/창 이벤트로 옮기고, 알림을 출력할 뿐이다
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.rule import Rule

from config import API_BASE_URL, API_TOKEN, TIMER_CRITICAL_SECONDS, TIMER_WARNING_SECONDS
from mock_test_cbt.models.session_state import Phase, SubmitReason
from mock_test_cbt.services.attempt_client import AttemptApiError, AttemptClient
from mock_test_cbt.services.attempt_session import AttemptSession
from mock_test_cbt.services.exam_service import format_time, unanswered_question_ids
from mock_test_cbt.views import result_view
from mock_test_cbt.views.components import palette
from mock_test_cbt.views.components import question_card as qcard
from mock_test_cbt.views.components import timer as tmr
from mock_test_cbt.views.notifier import ToastKind
from mock_test_cbt.views.window import Window

logger = logging.getLogger(__name__)

_TOAST_STYLES = {
    ToastKind.SUCCESS: "green",
    ToastKind.ERROR: "bold red",
    ToastKind.INFO: "cyan",
    ToastKind.WARNING: "yellow",
}

_HELP = (
    "[cyan]1-9[/cyan] select option  "
    "[cyan]n[/cyan]/[cyan]p[/cyan] next/previous  "
    "[cyan]g <no>[/cyan] go to  "
    "[cyan]m[/cyan] mark  "
    "[cyan]s[/cyan] submit  "
    "[cyan]esc[/cyan] emergency submit  "
    "[cyan]back[/cyan] browser back  "
    "[cyan]quit[/cyan] leave page"
)


class ConsoleNotifier:
    """Notifier 구현: rich 콘솔로 토스트/확인 창 출력."""

    def __init__(self, console: Console):
        self.console = console
        self.redirected_to: Optional[str] = None
        self._announced: set[int] = set()

    def toast(self, message: str, kind: ToastKind = ToastKind.SUCCESS) -> None:
        self.console.print(f"[{_TOAST_STYLES[kind]}]▍{message}[/{_TOAST_STYLES[kind]}]")

    async def confirm(self, message: str) -> bool:
        return await asyncio.to_thread(Confirm.ask, message, console=self.console)

    def redirect(self, path: str) -> None:
        self.redirected_to = path
        self.console.print(f"[dim]→ {path}[/dim]")

    def state_changed(self, session: AttemptSession) -> None:
        # 남은 시간이 경고 기준을 지나는 순간 한 번씩만 알림
        if session.phase is not Phase.IN_PROGRESS:
            return
        remaining = session.state.time_remaining_seconds
        for threshold in (TIMER_WARNING_SECONDS, TIMER_CRITICAL_SECONDS):
            if remaining == threshold and threshold not in self._announced:
                self._announced.add(threshold)
                self.toast(f"{format_time(remaining)} remaining.", ToastKind.WARNING)


def _render(console: Console, session: AttemptSession) -> None:
    question = session.current_question
    if question is None:
        console.print("[yellow]This test has no questions.[/yellow]")
        return

    state = session.state
    console.print(Rule(session.attempt.test_title if session.attempt else ""))
    console.print(tmr.render(state.time_remaining_seconds))
    console.print(
        qcard.render(
            question=question,
            question_number=state.current_question_index + 1,
            total=len(session.questions),
            selected=state.answers.get(question.id),
            marked=question.id in state.marked_questions,
        )
    )
    console.print(palette.render(session))
    console.print(_HELP)


async def _read_command(console: Console) -> str:
    raw = await asyncio.to_thread(console.input, "[bold]> [/bold]")
    return raw.strip().lower()


async def _instructions_screen(console: Console, session: AttemptSession) -> bool:
    """안내 화면. 시작하면 True, 돌아가면 False."""
    attempt = session.attempt
    lines = "\n".join(f"{i}. {text}" for i, text in enumerate(session.instructions, 1))
    console.print(
        Panel(
            lines,
            title=f"📋 Test Instructions — {attempt.test_title}",
            subtitle=f"{len(session.questions)} questions · {attempt.duration_minutes} minutes",
            border_style="blue",
        )
    )
    while session.phase is Phase.INSTRUCTIONS:
        choice = await asyncio.to_thread(
            Prompt.ask, "Start the test?", choices=["start", "back"],
            default="start", console=console,
        )
        if choice == "back":
            return False
        await session.start()
    return session.phase is Phase.IN_PROGRESS


async def _submit(console: Console, session: AttemptSession) -> None:
    unanswered = unanswered_question_ids(session.questions, session.state.answers)
    if unanswered:
        console.print(f"[yellow]⚠️ {len(unanswered)} question(s) are unanswered.[/yellow]")
    confirmed = await asyncio.to_thread(
        Confirm.ask,
        "Are you sure you want to submit? You won't be able to change your answers.",
        console=console,
    )
    if confirmed:
        await session.submit(SubmitReason.MANUAL)


async def _handle(command: str, console: Console, session: AttemptSession, window: Window) -> bool:
    """명령 하나 처리. 화면을 떠나야 하면 False."""
    question = session.current_question

    if command in ("n", "next"):
        session.next_question()
    elif command in ("p", "prev", "previous"):
        session.previous_question()
    elif command.startswith("g ") and command[2:].strip().isdigit():
        session.navigate(int(command[2:].strip()) - 1)
    elif command.isdigit() and question is not None:
        option = int(command) - 1
        if not 0 <= option < len(question.options):
            console.print("[yellow]No such option.[/yellow]")
        elif not session.select_answer(question.id, option):
            console.print("[yellow]Answers cannot be changed right now.[/yellow]")
    elif command in ("m", "mark") and question is not None:
        session.toggle_mark(question.id)
    elif command in ("s", "submit"):
        await _submit(console, session)
    elif command == "esc":
        window.press_key("Escape")
        await session.drain()
    elif command == "back":
        window.history.back()
    elif command == "quit":
        warning = window.request_unload()
        if warning is None:
            return False
        leave = await asyncio.to_thread(Confirm.ask, warning, default=False, console=console)
        return not leave
    elif command in ("h", "help", "?"):
        console.print(_HELP)
    elif command:
        console.print(f"[yellow]Unknown command: {command}[/yellow]")
    return True


async def _exam_loop(console: Console, session: AttemptSession, window: Window) -> None:
    _render(console, session)
    while session.phase in (Phase.IN_PROGRESS, Phase.SUBMITTING):
        command = await _read_command(console)
        if session.phase is Phase.SUBMITTED:
            # 입력 대기 중 시간 만료로 자동 제출됨
            break
        if not await _handle(command, console, session, window):
            return
        if session.phase is Phase.IN_PROGRESS:
            _render(console, session)


async def run_exam(
    test_id: str,
    base_url: str = API_BASE_URL,
    token: str = API_TOKEN,
    attempt_id: Optional[str] = None,
    console: Optional[Console] = None,
) -> Optional[AttemptSession]:
    """
    응시 1회를 처음부터 끝까지 진행한다.
    attempt_id 가 없으면 새 응시를 만든다.
    """
    console = console or Console()
    async with AttemptClient(base_url, token) as client:
        if attempt_id is None:
            try:
                created = await client.create_attempt(test_id)
            except AttemptApiError as e:
                console.print(f"[bold red]{e.message}[/bold red]")
                return None
            attempt_id = created.attempt_id
            logger.info(f"새 응시 생성: {attempt_id}")

        window = Window(location=f"/tests/{test_id}/attempt?attemptId={attempt_id}")
        notifier = ConsoleNotifier(console)
        session = AttemptSession(attempt_id, client, notifier, window, test_id=test_id)
        try:
            if not await session.load():
                return session
            if session.phase is Phase.INSTRUCTIONS:
                if not await _instructions_screen(console, session):
                    notifier.redirect(f"/tests/{test_id}")
                    return session
            if session.phase in (Phase.IN_PROGRESS, Phase.SUBMITTING):
                await _exam_loop(console, session, window)
            await session.drain()
            result_view.render(console, session)
        finally:
            await session.close()
        return session
