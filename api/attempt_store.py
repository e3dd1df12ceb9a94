"""
api/attempt_store.py — 사용자별 인메모리 응시 저장소

각 응시는 생성한 사용자에게만 보인다 (다른 사용자의 응시는 '없음'으로 취급).
시작/제출은 멱등: 두 번째 호출은 첫 결과를 그대로 돌려준다.
진행 상태 갱신은 필드 단위 전체 스냅샷 교체.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from api.sample_tests import SAMPLE_TESTS, SampleTest
from mock_test_cbt.models.attempt_model import (
    AttemptDetail,
    AttemptQuestion,
    AttemptRecord,
    SubmitResult,
    TestInfo,
)
from mock_test_cbt.services.exam_service import calculate_score

_lock = threading.Lock()
_attempts: Dict[str, Dict[str, Any]] = {}


class AttemptNotFound(LookupError):
    """없는 응시이거나 호출자 소유가 아님."""


class AttemptStateError(ValueError):
    """현재 응시 상태에서 허용되지 않는 요청."""


def _new_attempt(user_id: str, test: SampleTest) -> Dict[str, Any]:
    return {
        "attempt_id": uuid.uuid4().hex,
        "user_id": user_id,
        "test_id": test.id,
        "answers": {},
        "marked_questions": [],
        "current_question_index": 0,
        "started_at": None,
        "submitted_at": None,
        "result": None,
    }


def _owned(user_id: str, attempt_id: str) -> Dict[str, Any]:
    """잠금을 잡은 상태에서 호출."""
    attempt = _attempts.get(attempt_id)
    if attempt is None or attempt["user_id"] != user_id:
        raise AttemptNotFound(attempt_id)
    return attempt


def _test_of(attempt: Dict[str, Any]) -> SampleTest:
    return SAMPLE_TESTS[attempt["test_id"]]


def create_attempt(user_id: str, test_id: str) -> Dict[str, Any]:
    """새 응시를 만들고 식별 정보를 반환. 없는 시험이면 LookupError."""
    test = SAMPLE_TESTS.get(test_id)
    if test is None:
        raise LookupError(test_id)
    attempt = _new_attempt(user_id, test)
    with _lock:
        _attempts[attempt["attempt_id"]] = attempt
    return {
        "attempt_id": attempt["attempt_id"],
        "test_id": test.id,
        "started_at": None,
    }


def get_attempt(user_id: str, attempt_id: str) -> AttemptDetail:
    with _lock:
        attempt = _owned(user_id, attempt_id)
        test = _test_of(attempt)
        result: Optional[SubmitResult] = attempt["result"]
        record = AttemptRecord(
            attempt_id=attempt["attempt_id"],
            test_id=test.id,
            test_title=test.title,
            duration_minutes=test.duration_minutes,
            started_at=attempt["started_at"],
            submitted_at=attempt["submitted_at"],
            score=result.score if result else None,
            total_questions=result.total_questions if result else None,
            percentage=result.percentage if result else None,
            marked_questions=list(attempt["marked_questions"]),
            current_question_index=attempt["current_question_index"],
        )
        questions = [
            AttemptQuestion(
                id=q.id,
                text=q.text,
                options=list(q.options),
                selected_answer=attempt["answers"].get(q.id),
            )
            for q in test.questions
        ]
    info = TestInfo(instructions=list(test.instructions)) if test.instructions else None
    return AttemptDetail(attempt=record, questions=questions, test=info)


def start_attempt(user_id: str, attempt_id: str) -> datetime:
    with _lock:
        attempt = _owned(user_id, attempt_id)
        if attempt["submitted_at"] is not None:
            raise AttemptStateError("This attempt has already been submitted.")
        if attempt["started_at"] is None:
            attempt["started_at"] = datetime.now(timezone.utc)
        return attempt["started_at"]


def update_attempt(
    user_id: str,
    attempt_id: str,
    answers: Optional[Dict[str, int]] = None,
    marked_questions: Optional[Iterable[str]] = None,
    current_question_index: Optional[int] = None,
) -> Dict[str, Any]:
    with _lock:
        attempt = _owned(user_id, attempt_id)
        if attempt["submitted_at"] is not None:
            raise AttemptStateError("This attempt has already been submitted.")
        test = _test_of(attempt)
        options_by_id = {q.id: len(q.options) for q in test.questions}

        if answers is not None:
            for qid, idx in answers.items():
                if qid not in options_by_id:
                    raise AttemptStateError(f"Unknown question: {qid}")
                if not 0 <= idx < options_by_id[qid]:
                    raise AttemptStateError(f"Invalid option for question {qid}")
            attempt["answers"] = dict(answers)
        if marked_questions is not None:
            marked = list(dict.fromkeys(marked_questions))
            unknown = [qid for qid in marked if qid not in options_by_id]
            if unknown:
                raise AttemptStateError(f"Unknown question: {unknown[0]}")
            attempt["marked_questions"] = marked
        if current_question_index is not None:
            if not 0 <= current_question_index < len(test.questions):
                raise AttemptStateError("Question index out of range")
            attempt["current_question_index"] = current_question_index

        return {
            "attempt_id": attempt["attempt_id"],
            "answers": dict(attempt["answers"]),
            "marked_questions": list(attempt["marked_questions"]),
            "current_question_index": attempt["current_question_index"],
        }


def submit_attempt(user_id: str, attempt_id: str) -> SubmitResult:
    """채점 후 제출 확정. 이미 제출됐으면 저장된 결과를 그대로 반환."""
    with _lock:
        attempt = _owned(user_id, attempt_id)
        if attempt["result"] is not None:
            return attempt["result"]
        if attempt["started_at"] is None:
            raise AttemptStateError("This attempt has not been started.")
        result = calculate_score(_test_of(attempt).correct_answers(), attempt["answers"])
        attempt["result"] = result
        attempt["submitted_at"] = datetime.now(timezone.utc)
        return result


def reset() -> None:
    """저장소 전체 초기화."""
    with _lock:
        _attempts.clear()
