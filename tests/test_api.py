import httpx
import pytest
import pytest_asyncio

import api.attempt_store as store
from api.app import create_app
from mock_test_cbt.models.session_state import Phase
from mock_test_cbt.services.attempt_client import (
    AttemptApiError,
    AttemptClient,
    NotFoundError,
    UnauthorizedError,
)
from mock_test_cbt.services.attempt_session import AttemptSession
from mock_test_cbt.views.window import Window

BASE_URL = "http://test/api"


@pytest.fixture(autouse=True)
def _clean_store():
    store.reset()
    yield
    store.reset()


@pytest.fixture
def app():
    return create_app()


@pytest_asyncio.fixture
async def client_for(app):
    clients = []

    def _make(token="alice"):
        client = AttemptClient(BASE_URL, token, transport=httpx.ASGITransport(app=app))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()


@pytest.mark.asyncio
async def test_health_does_not_need_token(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        response = await http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"success": True}


@pytest.mark.asyncio
async def test_attempt_lifecycle(client_for):
    client = client_for()
    created = await client.create_attempt("general-aptitude")

    detail = await client.get_attempt(created.attempt_id)
    assert detail.attempt.started_at is None
    assert detail.attempt.duration_minutes == 30
    assert [q.id for q in detail.questions] == ["ga-1", "ga-2", "ga-3", "ga-4", "ga-5"]
    assert detail.test.instructions

    started = await client.start_attempt(created.attempt_id)
    again = await client.start_attempt(created.attempt_id)
    assert started.started_at is not None
    assert again.started_at == started.started_at

    await client.update_attempt(created.attempt_id, answers={"ga-1": 1, "ga-3": 0})
    await client.update_attempt(created.attempt_id, marked_questions=["ga-4"])
    await client.update_attempt(created.attempt_id, current_question_index=3)

    detail = await client.get_attempt(created.attempt_id)
    assert {q.id: q.selected_answer for q in detail.questions if q.selected_answer is not None} == {
        "ga-1": 1,
        "ga-3": 0,
    }
    assert detail.attempt.marked_questions == ["ga-4"]
    assert detail.attempt.current_question_index == 3

    result = await client.submit_attempt(created.attempt_id)
    assert (result.score, result.total_questions, result.percentage) == (1, 5, 20.0)

    detail = await client.get_attempt(created.attempt_id)
    assert detail.attempt.submitted_at is not None
    assert detail.attempt.score == 1
    assert detail.attempt.percentage == 20.0


@pytest.mark.asyncio
async def test_answers_snapshot_replaces_previous(client_for):
    client = client_for()
    created = await client.create_attempt("quant-basics")
    await client.start_attempt(created.attempt_id)

    await client.update_attempt(created.attempt_id, answers={"qb-1": 0, "qb-2": 1})
    await client.update_attempt(created.attempt_id, answers={"qb-2": 2})

    detail = await client.get_attempt(created.attempt_id)
    assert detail.questions[0].selected_answer is None
    assert detail.questions[1].selected_answer == 2
    assert detail.test is None


@pytest.mark.asyncio
async def test_submit_is_idempotent(client_for):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    await client.start_attempt(created.attempt_id)

    first = await client.submit_attempt(created.attempt_id)
    second = await client.submit_attempt(created.attempt_id)
    assert first == second


@pytest.mark.asyncio
async def test_changes_after_submit_are_rejected(client_for):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    await client.start_attempt(created.attempt_id)
    await client.submit_attempt(created.attempt_id)

    with pytest.raises(AttemptApiError) as exc_info:
        await client.update_attempt(created.attempt_id, answers={"ga-1": 0})
    assert exc_info.value.status_code == 400
    assert "already been submitted" in exc_info.value.message


@pytest.mark.asyncio
async def test_submit_before_start_is_rejected(client_for):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    with pytest.raises(AttemptApiError) as exc_info:
        await client.submit_attempt(created.attempt_id)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("update", [
    {"answers": {"nope": 0}},
    {"answers": {"ga-1": 9}},
    {"marked_questions": ["nope"]},
    {"current_question_index": 5},
])
async def test_invalid_progress_is_rejected(client_for, update):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    with pytest.raises(AttemptApiError) as exc_info:
        await client.update_attempt(created.attempt_id, **update)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_negative_index_fails_validation(client_for):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    with pytest.raises(AttemptApiError) as exc_info:
        await client.update_attempt(created.attempt_id, current_question_index=-1)
    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "Validation failed"


@pytest.mark.asyncio
async def test_other_users_attempt_is_not_found(client_for):
    created = await client_for("alice").create_attempt("general-aptitude")
    with pytest.raises(NotFoundError) as exc_info:
        await client_for("bob").get_attempt(created.attempt_id)
    assert exc_info.value.message == "Attempt not found"


@pytest.mark.asyncio
async def test_unknown_test_is_not_found(client_for):
    with pytest.raises(NotFoundError, match="Test not found"):
        await client_for().create_attempt("no-such-test")


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(client_for):
    with pytest.raises(UnauthorizedError) as exc_info:
        await client_for(token=None).get_attempt("whatever")
    assert exc_info.value.message == "Not authorized, no token"


@pytest.mark.asyncio
async def test_session_against_local_store(client_for, notifier):
    client = client_for()
    created = await client.create_attempt("general-aptitude")
    window = Window(f"/tests/general-aptitude/attempt?attemptId={created.attempt_id}")
    session = AttemptSession(
        created.attempt_id, client, notifier, window,
        test_id="general-aptitude", tick_interval=3600,
    )
    try:
        assert await session.load()
        assert session.phase is Phase.INSTRUCTIONS
        assert await session.start()

        session.select_answer("ga-1", 1)
        session.select_answer("ga-2", 1)
        session.select_answer("ga-3", 0)
        session.toggle_mark("ga-5")
        session.navigate(4)
        await session.drain()

        detail = await client.get_attempt(created.attempt_id)
        assert detail.attempt.marked_questions == ["ga-5"]
        assert detail.attempt.current_question_index == 4

        assert await session.submit()
        assert session.phase is Phase.SUBMITTED
        assert (session.result.score, session.result.percentage) == (2, 40.0)
        assert window.listener_count() == 0
    finally:
        await session.close()

    reloaded = AttemptSession(created.attempt_id, client, notifier, window, tick_interval=3600)
    try:
        assert await reloaded.load()
        assert reloaded.phase is Phase.SUBMITTED
        assert reloaded.state.answers == {"ga-1": 1, "ga-2": 1, "ga-3": 0}
        assert reloaded.result.score == 2
    finally:
        await reloaded.close()
