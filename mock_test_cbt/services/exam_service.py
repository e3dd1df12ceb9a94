"""
services/exam_service.py

문제 상태/통계 계산, 채점, 표시용 헬퍼.
순수 Python 함수로 구성. UI 코드, 전역 상태 변경 없음.
"""

from typing import Dict, List, Mapping, Sequence

from config import TIMER_CRITICAL_SECONDS, TIMER_WARNING_SECONDS
from mock_test_cbt.models.attempt_model import AttemptQuestion, SubmitResult
from mock_test_cbt.models.session_state import QuestionStats, QuestionStatus, SessionState


def question_status(
    questions: Sequence[AttemptQuestion],
    state: SessionState,
    index: int,
) -> QuestionStatus:
    """
    index 번째 문제의 상태를 계산한다.

    visited 판정: 현재 문제이거나, 응답했거나, 표시했거나, 이전에 방문한 적이 있음.
    범위를 벗어난 index 는 모든 값이 False.
    """
    if not 0 <= index < len(questions):
        return QuestionStatus()

    qid = questions[index].id
    answered = qid in state.answers
    marked = qid in state.marked_questions
    visited = (
        index == state.current_question_index
        or answered
        or marked
        or qid in state.visited_questions
    )
    return QuestionStatus(answered=answered, marked=marked, visited=visited)


def question_stats(
    questions: Sequence[AttemptQuestion],
    state: SessionState,
) -> QuestionStats:
    """문제 팔레트 하단 요약: 응답 / 미응답 / 표시 / 미방문 개수."""
    stats = QuestionStats()
    for idx in range(len(questions)):
        status = question_status(questions, state, idx)
        if status.answered:
            stats.answered += 1
        else:
            stats.unanswered += 1
        if status.marked:
            stats.marked += 1
        if not status.visited:
            stats.not_visited += 1
    return stats


def calculate_score(
    correct_answers: Mapping[str, int],
    user_answers: Mapping[str, int],
) -> SubmitResult:
    """
    사용자 답안을 채점한다.

    정답 판정 기준: correct_answers[qid] == user_answers.get(qid)
    응답하지 않은 문제(키 없음)는 오답으로 처리.

    Args:
        correct_answers: {question.id: 정답 보기 인덱스}
        user_answers:    {question.id: 선택한 보기 인덱스}

    Returns:
        score(정답 수), total_questions, percentage(소수점 둘째 자리 반올림).
        문제가 없으면 0/0/0.0.
    """
    total = len(correct_answers)
    if not total:
        return SubmitResult(score=0, total_questions=0, percentage=0.0)

    correct_count = sum(
        1
        for qid, answer in correct_answers.items()
        if user_answers.get(qid) == answer
    )
    return SubmitResult(
        score=correct_count,
        total_questions=total,
        percentage=round(correct_count / total * 100, 2),
    )


def unanswered_question_ids(
    questions: Sequence[AttemptQuestion],
    answers: Dict[str, int],
) -> List[str]:
    return [q.id for q in questions if q.id not in answers]


def format_time(seconds: int) -> str:
    """남은 시간 표시 문자열. 1시간 이상이면 H:MM:SS, 아니면 M:SS."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def timer_urgency(seconds: int) -> str:
    """타이머 색상 단계: 'critical' (5분 미만) / 'warning' (10분 미만) / 'normal'."""
    if seconds < TIMER_CRITICAL_SECONDS:
        return "critical"
    if seconds < TIMER_WARNING_SECONDS:
        return "warning"
    return "normal"


def performance_label(percentage: float) -> str:
    """결과 화면 평가 문구."""
    if percentage >= 80:
        return "Excellent"
    if percentage >= 60:
        return "Good"
    if percentage >= 40:
        return "Average"
    return "Needs Improvement"
