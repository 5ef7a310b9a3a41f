"""Thin async client for the compliance platform's REST backend.

Every page and the session gate talk to the backend through
:class:`BackendClient`. Failures of any kind (transport, non-2xx status,
unexpected body) surface as :class:`BackendError` carrying the message the
backend sent, so callers can show it to the user as-is.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..core.config import settings
from ..schemas.auth import Identity, LoginResponse
from ..schemas.calendar import CalendarEvents, HolidayCreate, HolidayEvent
from ..schemas.worker import ChecklistItem, DashboardOverview, Reference, Worker

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendError(Exception):
    """Raised when a backend call fails; ``message`` is safe to display."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in {401, 403}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and detail:
        return detail
    return f"API error: {response.status_code}"


def _raise_for_status(response: httpx.Response, endpoint: str) -> None:
    if response.is_success:
        return
    error = BackendError(_error_message(response), status_code=response.status_code)
    if error.is_auth_error:
        logger.info("Backend rejected credentials for %s (%s)", endpoint, response.status_code)
    elif response.status_code >= 500:
        logger.error("Backend error %s during %s", response.status_code, endpoint)
    else:
        logger.warning("Backend request error %s during %s", response.status_code, endpoint)
    raise error


class BackendClient:
    """JSON-over-HTTP wrapper with bearer-token support."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=settings.BACKEND_API_URL,
            timeout=httpx.Timeout(settings.BACKEND_TIMEOUT),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        json: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(
                method, endpoint, headers=headers, json=json, params=params
            )
        except httpx.HTTPError as exc:
            logger.warning("Backend unreachable for %s %s: %s", method, endpoint, exc)
            raise BackendError("Backend unavailable") from exc
        _raise_for_status(response, endpoint)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Malformed response from backend", response.status_code) from exc

    async def get(self, endpoint: str, token: str | None = None, params: Dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, token=token, params=params)

    async def post(self, endpoint: str, data: Any, token: str | None = None) -> Any:
        return await self.request("POST", endpoint, token=token, json=data)

    async def patch(self, endpoint: str, data: Any, token: str | None = None) -> Any:
        return await self.request("PATCH", endpoint, token=token, json=data)

    async def delete(self, endpoint: str, token: str | None = None) -> Any:
        return await self.request("DELETE", endpoint, token=token)

    # ---- typed calls

    @staticmethod
    def _validate(model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise BackendError(f"Malformed {model.__name__} payload") from exc

    @staticmethod
    def _validate_list(model: Type[ModelT], payload: Any) -> List[ModelT]:
        try:
            return TypeAdapter(List[model]).validate_python(payload)  # type: ignore[valid-type]
        except ValidationError as exc:
            raise BackendError(f"Malformed {model.__name__} list") from exc

    async def login(self, identifier: str, password: str) -> LoginResponse:
        payload = await self.post("/auth/login", {"identifier": identifier, "password": password})
        return self._validate(LoginResponse, payload)

    async def me(self, token: str) -> Identity:
        return self._validate(Identity, await self.get("/auth/me", token))

    async def calendar_events(self, token: str, year: int, month: int) -> CalendarEvents:
        payload = await self.get("/calendar/events", token, params={"year": year, "month": month})
        return self._validate(CalendarEvents, payload)

    async def add_holiday(self, token: str, holiday: HolidayCreate) -> Optional[HolidayEvent]:
        payload = await self.post("/calendar/holidays", holiday.model_dump(mode="json"), token)
        return self._validate(HolidayEvent, payload) if payload else None

    async def list_workers(self, token: str) -> List[Worker]:
        return self._validate_list(Worker, await self.get("/workers", token))

    async def get_worker(self, token: str, worker_id: str) -> Worker:
        return self._validate(Worker, await self.get(f"/workers/{worker_id}", token))

    async def worker_checklist(self, token: str, worker_id: str) -> List[ChecklistItem]:
        return self._validate_list(ChecklistItem, await self.get(f"/workers/{worker_id}/checklist", token))

    async def compliance_summary(self, token: str) -> Dict[str, Any]:
        return await self.get("/workers/compliance-summary", token) or {}

    async def dashboard_overview(self, token: str) -> DashboardOverview:
        return self._validate(DashboardOverview, await self.get("/dashboard/overview", token))

    async def list_leave(self, token: str, status: str | None = None) -> List[Dict[str, Any]]:
        params = {"status_filter": status} if status else None
        return await self.get("/leave/all", token, params=params) or []

    async def list_users(self, token: str) -> List[Dict[str, Any]]:
        return await self.get("/auth/users", token) or []

    async def portal_me(self, token: str) -> Worker:
        return self._validate(Worker, await self.get("/portal/me", token))

    async def portal_checklist(self, token: str) -> List[ChecklistItem]:
        return self._validate_list(ChecklistItem, await self.get("/portal/checklist", token))

    async def my_leave(self, token: str) -> List[Dict[str, Any]]:
        return await self.get("/leave/my", token) or []

    async def worker_references(self, token: str, worker_id: str) -> List[Reference]:
        payload = await self.get(f"/bgverify/worker/{worker_id}", token) or {}
        if not isinstance(payload, dict):
            raise BackendError("Malformed Reference payload")
        return self._validate_list(Reference, payload.get("references") or [])


__all__ = ["BackendClient", "BackendError"]
