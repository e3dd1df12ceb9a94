"""
models/session_state.py

응시 화면 1개가 소유하는 로컬 상태 모델.
Pydantic BaseModel 기반. 세션 상태 머신(AttemptSession)만 변경한다.
UI 코드 없음.
"""

from enum import Enum
from typing import Dict, Set

from pydantic import BaseModel, Field


class Phase(str, Enum):
    """
    응시 세션 생애주기.

    LOADING → INSTRUCTIONS → IN_PROGRESS → SUBMITTING → SUBMITTED
    SUBMITTING 은 중복 제출을 막는 과도 상태.
    """

    LOADING = "loading"
    INSTRUCTIONS = "instructions"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class SubmitReason(str, Enum):
    """제출 경로. 모두 AttemptSession.submit 하나로 수렴한다."""

    MANUAL = "manual"
    TIMER = "timer"
    EMERGENCY_KEY = "emergency_key"


class SessionState(BaseModel):
    """
    응시 세션의 메모리 상태.

    Attributes:
        phase:                  현재 생애주기 단계.
        answers:                답안지. {question.id: 선택한 보기 인덱스}
        marked_questions:       '나중에 검토' 표시한 문제 id 집합.
        visited_questions:      한 번이라도 방문한 문제 id 집합 (단조 증가).
        current_question_index: 현재 문제 인덱스 (0-based).
        time_remaining_seconds: 남은 시간 (초, 0 이상).
    """

    phase: Phase = Phase.LOADING
    answers: Dict[str, int] = Field(default_factory=dict)
    marked_questions: Set[str] = Field(default_factory=set)
    visited_questions: Set[str] = Field(default_factory=set)
    current_question_index: int = Field(default=0, ge=0)
    time_remaining_seconds: int = Field(default=0, ge=0)


class QuestionStatus(BaseModel):
    answered: bool = False
    marked: bool = False
    visited: bool = False


class QuestionStats(BaseModel):
    answered: int = 0
    unanswered: int = 0
    marked: int = 0
    not_visited: int = 0
