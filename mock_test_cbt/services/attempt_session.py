"""
services/attempt_session.py

응시 1회분을 다루는 세션 상태 머신.

  LOADING → INSTRUCTIONS → IN_PROGRESS → SUBMITTING → SUBMITTED

설계 원칙:
- 로컬 상태(답안/표시/현재 위치)는 즉시 반영하고, 저장은 전체 스냅샷을
  fire-and-forget 으로 보낸다. 저장 실패는 로그만 남기고 로컬 상태를 되돌리지 않는다.
- load / start / submit 만 응답을 기다린 뒤 단계를 넘긴다.
- 제출 경로는 submit() 하나. SUBMITTING 단계가 재진입 가드 역할을 한다.
- 타이머, 이탈 차단, ESC 트리거는 단계 전환에 맞춰 세션이 직접 켜고 끈다.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, List, Optional, Set

from config import AUTO_SUBMIT_RETRY_SECONDS, TICK_INTERVAL_SECONDS
from mock_test_cbt.models.attempt_model import (
    AttemptDetail,
    AttemptQuestion,
    AttemptRecord,
    SubmitResult,
)
from mock_test_cbt.models.session_state import (
    Phase,
    QuestionStats,
    QuestionStatus,
    SessionState,
    SubmitReason,
)
from mock_test_cbt.services import exam_service
from mock_test_cbt.services.attempt_client import AttemptApiError, AttemptClient
from mock_test_cbt.services.auto_submit import AutoSubmitTrigger
from mock_test_cbt.services.navigation_guard import NavigationGuard
from mock_test_cbt.services.timer import TimerEngine, compute_time_remaining
from mock_test_cbt.views.notifier import Notifier, ToastKind
from mock_test_cbt.views.window import Window

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = [
    "Read each question carefully before selecting your answer.",
    "You can navigate between questions using the Previous/Next buttons or the Question Palette.",
    "Mark questions for review if you want to revisit them later.",
    "The timer will start once you click 'Start Test'. Make sure you have a stable internet connection.",
    "You can change your answers before submitting the test.",
    "Once submitted, you cannot modify your answers.",
    "The test will auto-submit when the time runs out.",
    "Ensure you have answered all questions before submitting.",
]

_SUBMITTED_TOASTS = {
    SubmitReason.MANUAL: ("Test submitted successfully!", ToastKind.SUCCESS),
    SubmitReason.TIMER: ("Time's up! Test auto-submitted.", ToastKind.INFO),
    SubmitReason.EMERGENCY_KEY: ("Test submitted successfully via ESC key!", ToastKind.SUCCESS),
}


class AttemptSession:
    """
    응시 화면 1개가 마운트되어 있는 동안의 세션.

    Attributes:
        state:        로컬 상태 (SessionState). 이 클래스만 변경한다.
        attempt:      로드한 응시 레코드 (로드 전에는 None).
        questions:    문제 스냅샷 리스트.
        instructions: 안내 화면 문구.
        result:       제출 결과 (제출 전에는 None).
    """

    def __init__(
        self,
        attempt_id: str,
        client: AttemptClient,
        notifier: Notifier,
        window: Window,
        test_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        retry_delay: float = AUTO_SUBMIT_RETRY_SECONDS,
    ):
        self.attempt_id = attempt_id
        self.test_id = test_id
        self.client = client
        self.notifier = notifier
        self.window = window
        self._clock = clock

        self.state = SessionState()
        self.attempt: Optional[AttemptRecord] = None
        self.questions: List[AttemptQuestion] = []
        self.instructions: List[str] = []
        self.result: Optional[SubmitResult] = None

        self.guard = NavigationGuard(window, notifier)
        self.auto_submit = AutoSubmitTrigger(self, window, retry_delay=retry_delay)
        self.timer = TimerEngine(
            on_tick=self._on_tick,
            on_expire=self.auto_submit.on_timer_expired,
            interval=tick_interval,
        )

        self._tasks: Set[asyncio.Task] = set()
        self._save_tasks: Set[asyncio.Task] = set()
        self._starting = False
        self._closed = False

    # ── 조회 ─────────────────────────────────────────────────────────────────

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_question(self) -> Optional[AttemptQuestion]:
        if not self.questions:
            return None
        return self.questions[self.state.current_question_index]

    def question_status(self, index: int) -> QuestionStatus:
        return exam_service.question_status(self.questions, self.state, index)

    def question_stats(self) -> QuestionStats:
        return exam_service.question_stats(self.questions, self.state)

    # ── 로드 ─────────────────────────────────────────────────────────────────

    async def load(self) -> bool:
        """
        응시 레코드를 불러와 로컬 상태를 재구성한다.

        실패(없는 응시, 권한 없음, 네트워크 오류)는 치명적이다. 토스트 후 화면을 떠난다.
        """
        try:
            detail = await self.client.get_attempt(self.attempt_id)
        except AttemptApiError as e:
            logger.error(f"응시 {self.attempt_id} 로드 실패: {e.message}")
            self.notifier.toast(e.message or "Failed to load attempt", ToastKind.ERROR)
            self.notifier.redirect(self._exit_path())
            await self.close()
            return False

        if self._closed:
            return False
        self._apply_detail(detail)
        return True

    def _apply_detail(self, detail: AttemptDetail) -> None:
        attempt = detail.attempt
        questions = list(detail.questions)
        question_ids = {q.id for q in questions}

        self.attempt = attempt
        self.questions = questions
        if self.test_id is None:
            self.test_id = attempt.test_id

        if detail.test is not None and detail.test.instructions:
            self.instructions = list(detail.test.instructions)
        else:
            self.instructions = list(DEFAULT_INSTRUCTIONS)

        last_index = max(0, len(questions) - 1)
        self.state = SessionState(
            phase=Phase.LOADING,
            answers={
                q.id: q.selected_answer
                for q in questions
                if q.selected_answer is not None
            },
            marked_questions={qid for qid in attempt.marked_questions if qid in question_ids},
            current_question_index=min(max(attempt.current_question_index, 0), last_index),
        )
        self._visit(self.state.current_question_index)

        if attempt.submitted_at is not None:
            # 제출 완료된 응시 → 읽기 전용 복습 모드
            self.result = SubmitResult(
                score=attempt.score or 0,
                total_questions=attempt.total_questions or len(questions),
                percentage=attempt.percentage or 0,
            )
            self._set_phase(Phase.SUBMITTED)
        elif attempt.started_at is not None:
            # 새로고침/재접속: 끊겨 있던 시간도 차감
            remaining = compute_time_remaining(
                attempt.started_at, attempt.duration_minutes, self._clock()
            )
            self._enter_in_progress(remaining)
        else:
            self.state.time_remaining_seconds = attempt.duration_minutes * 60
            self._set_phase(Phase.INSTRUCTIONS)

    # ── 시작 ─────────────────────────────────────────────────────────────────

    async def start(self) -> bool:
        """안내 화면에서 응시 시작. 실패해도 INSTRUCTIONS 에 머물러 재시도 가능."""
        if self.phase is not Phase.INSTRUCTIONS or self._starting:
            return False

        self._starting = True
        try:
            result = await self.client.start_attempt(self.attempt_id)
        except AttemptApiError as e:
            logger.warning(f"응시 {self.attempt_id} 시작 실패: {e.message}")
            self.notifier.toast(e.message or "Failed to start test", ToastKind.ERROR)
            return False
        finally:
            self._starting = False

        if self._closed or self.phase is not Phase.INSTRUCTIONS:
            return False

        self.attempt.started_at = result.started_at or datetime.now(timezone.utc)
        # 서버 started_at 은 다음 로드부터 기준이 되고, 지금은 전체 시간으로 바로 시작
        self._enter_in_progress(self.attempt.duration_minutes * 60)
        self.notifier.toast("Test started! Timer is now running.", ToastKind.SUCCESS)
        return True

    def _enter_in_progress(self, remaining: int) -> None:
        self.state.time_remaining_seconds = remaining
        self._set_phase(Phase.IN_PROGRESS)
        self.guard.arm()
        self.auto_submit.arm()
        # remaining 이 0 이면 즉시 만료 → 자동 제출
        self.timer.start(remaining)

    # ── 응시 중 조작 ─────────────────────────────────────────────────────────

    def select_answer(self, question_id: str, option_index: int) -> bool:
        """
        답 선택. 마지막 선택이 우선하며 전체 답안 스냅샷을 저장한다.

        Raises:
            ValueError: 로드된 문제가 아니거나 보기 범위를 벗어난 인덱스.
        """
        question = self._find_question(question_id)
        if not 0 <= option_index < len(question.options):
            raise ValueError(
                f"option index {option_index} out of range for question {question_id}"
            )
        if self.phase is not Phase.IN_PROGRESS:
            return False

        self.state.answers[question_id] = option_index
        self.state.visited_questions.add(question_id)
        self._save_progress(answers=dict(self.state.answers))
        self._notify()
        return True

    def toggle_mark(self, question_id: str) -> bool:
        """'나중에 검토' 표시 토글. 전체 표시 집합을 저장한다."""
        self._find_question(question_id)
        if self.phase is not Phase.IN_PROGRESS:
            return False

        marked = self.state.marked_questions
        if question_id in marked:
            marked.discard(question_id)
        else:
            marked.add(question_id)
        self.state.visited_questions.add(question_id)
        self._save_progress(marked_questions=sorted(marked))
        self._notify()
        return True

    def navigate(self, index: int) -> bool:
        """
        index 번 문제로 이동. 범위 밖이면 아무것도 하지 않는다.
        제출 후(복습 모드)에도 이동은 되지만 저장하지 않는다.
        """
        if self.phase not in (Phase.IN_PROGRESS, Phase.SUBMITTED):
            return False
        if not 0 <= index < len(self.questions):
            return False

        self.state.current_question_index = index
        self._visit(index)
        if self.phase is Phase.IN_PROGRESS:
            self._save_progress(current_question_index=index)
        self._notify()
        return True

    def next_question(self) -> bool:
        return self.navigate(self.state.current_question_index + 1)

    def previous_question(self) -> bool:
        return self.navigate(self.state.current_question_index - 1)

    # ── 제출 ─────────────────────────────────────────────────────────────────

    async def submit(self, reason: SubmitReason = SubmitReason.MANUAL) -> bool:
        """
        모든 제출 트리거(수동 / 타이머 / ESC)의 단일 수렴 지점.

        IN_PROGRESS 에서만 실행되며, SUBMITTING 중 재호출은 무시된다.
        실패하면 IN_PROGRESS 로 돌아가 다시 제출할 수 있다 (타이머는 계속 흐름).
        """
        if self.phase is not Phase.IN_PROGRESS:
            logger.info(f"제출 무시 ({reason.value}): 현재 단계 {self.phase.value}")
            return False

        # 첫 await 이전에 단계를 바꿔야 동시 트리거가 막힌다
        self._set_phase(Phase.SUBMITTING)
        logger.info(f"응시 {self.attempt_id} 제출 시작 ({reason.value})")

        # 진행 중인 답안 저장이 먼저 도착하도록 기다린다
        await self._settle_saves()

        try:
            result = await self.client.submit_attempt(self.attempt_id)
        except AttemptApiError as e:
            logger.warning(f"응시 {self.attempt_id} 제출 실패 ({reason.value}): {e.message}")
            if self._closed:
                return False
            self._set_phase(Phase.IN_PROGRESS)
            self.notifier.toast(e.message or "Failed to submit test", ToastKind.ERROR)
            if self.state.time_remaining_seconds == 0:
                self.auto_submit.schedule_retry()
            return False

        self.result = result
        if self.attempt is not None:
            self.attempt.submitted_at = datetime.now(timezone.utc)
            self.attempt.score = result.score
            self.attempt.total_questions = result.total_questions
            self.attempt.percentage = result.percentage

        self.timer.stop()
        self.guard.disarm()
        self.auto_submit.disarm()
        self._set_phase(Phase.SUBMITTED)

        message, kind = _SUBMITTED_TOASTS[reason]
        self.notifier.toast(message, kind)
        return True

    # ── 해제 ─────────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """화면 해제: 타이머 정지, 리스너 해제, 남은 태스크 정리."""
        if self._closed:
            return
        self._closed = True
        self.timer.stop()
        self.guard.disarm()
        self.auto_submit.disarm()

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current]
        for task in pending:
            if task not in self._save_tasks:
                task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info(f"응시 세션 {self.attempt_id} 종료")

    async def drain(self) -> None:
        """지금까지 띄운 백그라운드 작업(저장, 제출, 확인 창)이 끝날 때까지 대기."""
        current = asyncio.current_task()
        while True:
            pending = [t for t in self._tasks if t is not current and not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ── 내부 ─────────────────────────────────────────────────────────────────

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        """세션 수명에 묶인 백그라운드 태스크 생성."""
        if self._closed:
            coro.close()
            return None
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._save_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("응시 세션 백그라운드 작업 오류", exc_info=exc)

    def _save_progress(self, **snapshot: Any) -> None:
        task = self.spawn(self._put_progress(snapshot))
        if task is not None:
            self._save_tasks.add(task)

    async def _put_progress(self, snapshot: dict) -> None:
        try:
            await self.client.update_attempt(self.attempt_id, **snapshot)
        except AttemptApiError as e:
            # 다음 스냅샷 저장이 덮어쓰므로 로그만 남긴다
            logger.warning(f"진행 상태 저장 실패 ({', '.join(snapshot)}): {e.message}")

    async def _settle_saves(self) -> None:
        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks), return_exceptions=True)

    def _on_tick(self, remaining: int) -> None:
        if self.phase in (Phase.IN_PROGRESS, Phase.SUBMITTING):
            self.state.time_remaining_seconds = remaining
            self._notify()

    def _find_question(self, question_id: str) -> AttemptQuestion:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise ValueError(f"question {question_id} is not part of attempt {self.attempt_id}")

    def _visit(self, index: int) -> None:
        if 0 <= index < len(self.questions):
            self.state.visited_questions.add(self.questions[index].id)

    def _set_phase(self, phase: Phase) -> None:
        if self.state.phase is not phase:
            logger.info(f"응시 {self.attempt_id}: {self.state.phase.value} → {phase.value}")
            self.state.phase = phase
        self._notify()

    def _notify(self) -> None:
        self.notifier.state_changed(self)

    def _exit_path(self) -> str:
        return f"/tests/{self.test_id}" if self.test_id else "/tests"
