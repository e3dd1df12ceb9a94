"""
services/attempt_client.py

응시 저장소(AttemptStore) REST 클라이언트 (httpx 비동기).

Public API:
  - get_attempt(attempt_id)     -> AttemptDetail    : GET  /attempts/{id}
  - start_attempt(attempt_id)   -> StartResult      : POST /attempts/{id}/start
  - update_attempt(attempt_id, ...) -> dict         : PUT  /attempts/{id}
  - submit_attempt(attempt_id)  -> SubmitResult     : POST /attempts/{id}/submit
  - create_attempt(test_id)     -> CreatedAttempt   : POST /attempts

실패 처리:
- 2xx 가 아니면 서버 message(없으면 "Request failed")로 AttemptApiError 계열 예외
- 401 → UnauthorizedError, 403/404 → NotFoundError
- 네트워크 오류 → AttemptApiError("Network error")
"""

import logging
from typing import Any, Dict, Iterable, Optional

import httpx
from pydantic import ValidationError

from config import API_BASE_URL, API_TOKEN, DEFAULT_TIMEOUT
from mock_test_cbt.models.attempt_model import (
    ApiEnvelope,
    AttemptDetail,
    CreatedAttempt,
    StartResult,
    SubmitResult,
)

logger = logging.getLogger(__name__)

_GENERIC_FAILURE = "Request failed"
_NETWORK_FAILURE = "Network error"


class AttemptApiError(Exception):
    """응시 저장소 호출 실패."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(AttemptApiError):
    """응시가 없거나 호출자 소유가 아님."""


class UnauthorizedError(AttemptApiError):
    """인증 만료/누락 (401). 세션 무효화는 상위 앱의 몫."""


def _error_for_status(status_code: int, message: str) -> AttemptApiError:
    if status_code == 401:
        return UnauthorizedError(message, status_code)
    if status_code in (403, 404):
        return NotFoundError(message, status_code)
    return AttemptApiError(message, status_code)


class AttemptClient:
    """
    AttemptStore 비동기 클라이언트.

    async with AttemptClient(base_url, token) as client:
        detail = await client.get_attempt(attempt_id)
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = API_TOKEN,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AttemptClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── 공통 요청 래퍼 ───────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} 네트워크 오류: {e}")
            raise AttemptApiError(_NETWORK_FAILURE) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        message = body.get("message") if isinstance(body, dict) else None

        if not response.is_success:
            logger.warning(f"{method} {path} 실패 ({response.status_code}): {message}")
            raise _error_for_status(response.status_code, message or _GENERIC_FAILURE)

        try:
            envelope = ApiEnvelope.model_validate(body)
        except ValidationError as e:
            raise AttemptApiError(_GENERIC_FAILURE, response.status_code) from e
        if not envelope.success:
            raise AttemptApiError(envelope.message or _GENERIC_FAILURE, response.status_code)
        return envelope.data

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data or {})
        except ValidationError as e:
            logger.error(f"{model.__name__} 응답 형식 오류: {e}")
            raise AttemptApiError(_GENERIC_FAILURE) from e

    # ── 엔드포인트 ───────────────────────────────────────────────────────────

    async def get_attempt(self, attempt_id: str) -> AttemptDetail:
        data = await self._request("GET", f"/attempts/{attempt_id}")
        return self._parse(AttemptDetail, data)

    async def start_attempt(self, attempt_id: str) -> StartResult:
        data = await self._request("POST", f"/attempts/{attempt_id}/start")
        return self._parse(StartResult, data)

    async def update_attempt(
        self,
        attempt_id: str,
        answers: Optional[Dict[str, int]] = None,
        marked_questions: Optional[Iterable[str]] = None,
        current_question_index: Optional[int] = None,
    ) -> Dict[str, Any]:
        """진행 상태 저장. 넘긴 필드는 모두 전체 스냅샷으로 취급된다."""
        payload: Dict[str, Any] = {}
        if answers is not None:
            payload["answers"] = dict(answers)
        if marked_questions is not None:
            payload["markedQuestions"] = list(marked_questions)
        if current_question_index is not None:
            payload["currentQuestionIndex"] = current_question_index
        data = await self._request("PUT", f"/attempts/{attempt_id}", json=payload)
        return data or {}

    async def submit_attempt(self, attempt_id: str) -> SubmitResult:
        data = await self._request("POST", f"/attempts/{attempt_id}/submit")
        return self._parse(SubmitResult, data)

    async def create_attempt(self, test_id: str) -> CreatedAttempt:
        data = await self._request("POST", "/attempts", json={"testId": test_id})
        return self._parse(CreatedAttempt, data)
