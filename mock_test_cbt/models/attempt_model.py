"""
models/attempt_model.py

응시 저장소(AttemptStore) REST 응답 모델.
Pydantic v2 적용. 와이어 포맷은 camelCase, 파이썬 쪽은 snake_case.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import DEFAULT_DURATION_MINUTES


class WireModel(BaseModel):
    """camelCase 별칭으로 직렬화/역직렬화하는 공통 베이스."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiEnvelope(WireModel):
    """모든 응답의 공통 봉투: { success, data?, message?, errors? }"""

    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    errors: Optional[List[dict]] = None


class AttemptQuestion(WireModel):
    """
    응시 내 문제 스냅샷.
    id/text/options 는 불변, selected_answer 만 응시 중에 바뀐다.
    """

    id: str = Field(..., min_length=1, description="문제 식별자")
    text: str = Field(..., description="문제 본문")
    options: List[str] = Field(..., description="보기 리스트 (순서 유지)")
    selected_answer: Optional[int] = Field(
        None,
        description="저장된 선택 보기 인덱스 (미응답이면 None)"
    )


class AttemptRecord(WireModel):
    """
    응시 1회분 메타데이터 + 진행 상태.

    started_at   : 시작 전(안내 화면)에는 None, 시작 시 한 번만 설정.
    submitted_at : 제출 전에는 None, 제출 시 한 번만 설정.
    score / total_questions / percentage : 제출 후에만 채워진다.
    """

    attempt_id: Optional[str] = None
    test_id: str
    test_title: str = ""
    duration_minutes: int = Field(DEFAULT_DURATION_MINUTES, ge=0)
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    total_questions: Optional[int] = None
    percentage: Optional[float] = None
    marked_questions: List[str] = Field(default_factory=list)
    current_question_index: int = 0

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def default_duration(cls, v: Any) -> Any:
        # 0/None 이면 기본 시험 시간 사용
        return v or DEFAULT_DURATION_MINUTES

    @field_validator("marked_questions", mode="before")
    @classmethod
    def default_marked(cls, v: Any) -> Any:
        return v or []

    @field_validator("current_question_index", mode="before")
    @classmethod
    def default_index(cls, v: Any) -> Any:
        return v or 0


class TestInfo(WireModel):
    instructions: Optional[List[str]] = None


class AttemptDetail(WireModel):
    """GET /attempts/{id} 의 data."""

    attempt: AttemptRecord
    questions: List[AttemptQuestion]
    test: Optional[TestInfo] = None


class StartResult(WireModel):
    started_at: Optional[datetime] = None


class SubmitResult(WireModel):
    score: float = 0
    total_questions: int = 0
    percentage: float = 0


class CreatedAttempt(WireModel):
    attempt_id: str
    test_id: str
    started_at: Optional[datetime] = None
