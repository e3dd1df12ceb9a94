import pytest

from mock_test_cbt.models.attempt_model import AttemptQuestion
from mock_test_cbt.models.session_state import QuestionStatus, SessionState
from mock_test_cbt.services import exam_service


def _questions(count=3):
    return [AttemptQuestion(id=f"q{i}", text="?", options=["A", "B"]) for i in range(1, count + 1)]


@pytest.mark.parametrize("seconds, expected", [
    (0, "0:00"),
    (59, "0:59"),
    (600, "10:00"),
    (3599, "59:59"),
    (3600, "1:00:00"),
    (3725, "1:02:05"),
    (-5, "0:00"),
])
def test_format_time(seconds, expected):
    assert exam_service.format_time(seconds) == expected


@pytest.mark.parametrize("seconds, expected", [
    (0, "critical"),
    (299, "critical"),
    (300, "warning"),
    (599, "warning"),
    (600, "normal"),
])
def test_timer_urgency(seconds, expected):
    assert exam_service.timer_urgency(seconds) == expected


@pytest.mark.parametrize("percentage, expected", [
    (100, "Excellent"),
    (80, "Excellent"),
    (79.99, "Good"),
    (60, "Good"),
    (40, "Average"),
    (39.5, "Needs Improvement"),
    (0, "Needs Improvement"),
])
def test_performance_label(percentage, expected):
    assert exam_service.performance_label(percentage) == expected


def test_calculate_score_counts_unanswered_as_wrong():
    result = exam_service.calculate_score(
        {"q1": 0, "q2": 1, "q3": 2},
        {"q1": 0, "q3": 1},
    )
    assert result.score == 1
    assert result.total_questions == 3
    assert result.percentage == 33.33


def test_calculate_score_without_questions():
    result = exam_service.calculate_score({}, {"q1": 0})
    assert (result.score, result.total_questions, result.percentage) == (0, 0, 0.0)


def test_question_status_out_of_range_is_blank():
    state = SessionState(answers={"q1": 0})
    assert exam_service.question_status(_questions(), state, 3) == QuestionStatus()
    assert exam_service.question_status(_questions(), state, -1) == QuestionStatus()


def test_current_question_counts_as_visited():
    state = SessionState(current_question_index=1)
    status = exam_service.question_status(_questions(), state, 1)
    assert status.visited and not status.answered and not status.marked


def test_question_stats_and_unanswered_ids():
    questions = _questions(4)
    state = SessionState(
        answers={"q1": 1, "q4": 0},
        marked_questions={"q2"},
        visited_questions={"q1"},
    )
    stats = exam_service.question_stats(questions, state)
    assert (stats.answered, stats.unanswered, stats.marked, stats.not_visited) == (2, 2, 1, 1)
    assert exam_service.unanswered_question_ids(questions, state.answers) == ["q2", "q3"]
