"""
api/routes.py — 응시 저장소 FastAPI 엔드포인트

모든 응답은 { success, data?, message? } 봉투로 감싼다.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import Field
from pydantic.alias_generators import to_camel

import api.attempt_store as store
from mock_test_cbt.models.attempt_model import WireModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

ATTEMPT_NOT_FOUND = "Attempt not found"

# ── Pydantic request bodies ──────────────────────────────────────────────────

class CreateAttemptBody(WireModel):
    test_id: str = Field(..., min_length=1)


class UpdateAttemptBody(WireModel):
    answers: Optional[Dict[str, int]] = None
    marked_questions: Optional[List[str]] = None
    current_question_index: Optional[int] = Field(None, ge=0)


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _ok(data: Any) -> dict:
    return {"success": True, "data": data}


def _user_id(request: Request) -> str:
    return request.state.user_id


def _camel(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/attempts", status_code=201)
async def create_attempt(body: CreateAttemptBody, request: Request):
    try:
        created = store.create_attempt(_user_id(request), body.test_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Test not found")
    logger.info(f"응시 생성: {created['attempt_id']} (test={body.test_id})")
    return _ok(_camel(created))


@router.get("/attempts/{attempt_id}")
async def get_attempt(attempt_id: str, request: Request):
    try:
        detail = store.get_attempt(_user_id(request), attempt_id)
    except store.AttemptNotFound:
        raise HTTPException(status_code=404, detail=ATTEMPT_NOT_FOUND)
    return _ok(detail.model_dump(by_alias=True, mode="json"))


@router.post("/attempts/{attempt_id}/start")
async def start_attempt(attempt_id: str, request: Request):
    try:
        started_at = store.start_attempt(_user_id(request), attempt_id)
    except store.AttemptNotFound:
        raise HTTPException(status_code=404, detail=ATTEMPT_NOT_FOUND)
    except store.AttemptStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok({"startedAt": started_at.isoformat()})


@router.put("/attempts/{attempt_id}")
async def update_attempt(attempt_id: str, body: UpdateAttemptBody, request: Request):
    try:
        updated = store.update_attempt(
            _user_id(request),
            attempt_id,
            answers=body.answers,
            marked_questions=body.marked_questions,
            current_question_index=body.current_question_index,
        )
    except store.AttemptNotFound:
        raise HTTPException(status_code=404, detail=ATTEMPT_NOT_FOUND)
    except store.AttemptStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok(_camel(updated))


@router.post("/attempts/{attempt_id}/submit")
async def submit_attempt(attempt_id: str, request: Request):
    try:
        result = store.submit_attempt(_user_id(request), attempt_id)
    except store.AttemptNotFound:
        raise HTTPException(status_code=404, detail=ATTEMPT_NOT_FOUND)
    except store.AttemptStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"응시 제출: {attempt_id} ({result.score}/{result.total_questions})")
    return _ok(result.model_dump(by_alias=True, mode="json"))
