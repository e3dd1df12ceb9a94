import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio

from mock_test_cbt.models.attempt_model import (
    AttemptDetail,
    AttemptQuestion,
    AttemptRecord,
    StartResult,
    SubmitResult,
    TestInfo,
)
from mock_test_cbt.services.attempt_client import AttemptApiError
from mock_test_cbt.services.attempt_session import AttemptSession
from mock_test_cbt.views.notifier import ToastKind
from mock_test_cbt.views.window import Window

T0 = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


def build_detail(
    count: int = 5,
    duration_minutes: int = 30,
    started_at: Optional[datetime] = None,
    submitted_at: Optional[datetime] = None,
    instructions: Optional[list] = None,
    selected: Optional[dict] = None,
    marked: Optional[list] = None,
    current_index: int = 0,
    **attempt_fields,
) -> AttemptDetail:
    selected = selected or {}
    questions = [
        AttemptQuestion(
            id=f"q{i}",
            text=f"Question {i}?",
            options=["A", "B", "C", "D"],
            selected_answer=selected.get(f"q{i}"),
        )
        for i in range(1, count + 1)
    ]
    attempt = AttemptRecord(
        attempt_id="a1",
        test_id="t1",
        test_title="Sample Test",
        duration_minutes=duration_minutes,
        started_at=started_at,
        submitted_at=submitted_at,
        marked_questions=marked or [],
        current_question_index=current_index,
        **attempt_fields,
    )
    test = TestInfo(instructions=instructions) if instructions is not None else None
    return AttemptDetail(attempt=attempt, questions=questions, test=test)


class FakeAttemptClient:
    """AttemptClient 대역. 호출 기록 + 실패/지연 주입."""

    def __init__(self, detail: AttemptDetail):
        self.detail = detail
        self.load_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.submit_errors: list = []
        self.submit_gate: Optional[asyncio.Event] = None
        self.submit_result = SubmitResult(score=3, total_questions=5, percentage=60.0)
        self.start_calls = 0
        self.submit_calls = 0
        self.updates: list = []

    async def get_attempt(self, attempt_id):
        if self.load_error is not None:
            raise self.load_error
        return self.detail.model_copy(deep=True)

    async def start_attempt(self, attempt_id):
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        return StartResult(started_at=T0)

    async def update_attempt(self, attempt_id, **snapshot):
        self.updates.append(snapshot)
        await asyncio.sleep(0)
        if self.update_error is not None:
            raise self.update_error

    async def submit_attempt(self, attempt_id):
        self.submit_calls += 1
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        return self.submit_result

    def updates_with(self, field):
        return [u[field] for u in self.updates if field in u]


class RecordingNotifier:
    def __init__(self):
        self.toasts: list = []
        self.redirects: list = []
        self.confirm_prompts: list = []
        self.confirm_answer = True
        self.state_changes = 0

    def toast(self, message, kind=ToastKind.SUCCESS):
        self.toasts.append((message, kind))

    async def confirm(self, message):
        self.confirm_prompts.append(message)
        await asyncio.sleep(0)
        return self.confirm_answer

    def redirect(self, path):
        self.redirects.append(path)

    def state_changed(self, session):
        self.state_changes += 1

    def messages(self, kind=None):
        return [m for m, k in self.toasts if kind is None or k == kind]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def window():
    win = Window("/tests/t1")
    win.history.push_state(None, "/tests/t1/attempt?attemptId=a1")
    return win


@pytest_asyncio.fixture
async def make_session(notifier, window):
    """(detail, **kwargs) → (session, client). 테스트 종료 시 세션 정리."""
    sessions = []

    def _make(detail=None, clock=None, tick_interval=3600.0, retry_delay=0.01):
        client = FakeAttemptClient(detail or build_detail())
        kwargs = {"tick_interval": tick_interval, "retry_delay": retry_delay}
        if clock is not None:
            kwargs["clock"] = clock
        session = AttemptSession("a1", client, notifier, window, test_id="t1", **kwargs)
        sessions.append(session)
        return session, client

    yield _make

    for session in sessions:
        await session.close()


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout=2.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def api_error():
    return lambda message="Network error", status=None: AttemptApiError(message, status)
