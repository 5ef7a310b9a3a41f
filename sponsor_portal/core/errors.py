from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..services.backend import BackendError
from ..services.dates import InvalidDateError
from .roles import ENTRY_ROUTE


class NavigationRedirect(Exception):
    """Raised by the route guard to send the browser somewhere else."""

    def __init__(self, location: str) -> None:
        super().__init__(location)
        self.location = location


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_html(request: Request) -> bool:
    return "text/html" in (request.headers.get("accept") or "").lower()


async def navigation_redirect_handler(request: Request, exc: NavigationRedirect):
    return RedirectResponse(url=exc.location, status_code=status.HTTP_302_FOUND)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED and _wants_html(request):
        return RedirectResponse(url=ENTRY_ROUTE, status_code=status.HTTP_302_FOUND)
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    else:
        message = HTTPStatus(exc.status_code).phrase
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": exc.errors()},
    )


async def invalid_date_handler(request: Request, exc: InvalidDateError):
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="invalid_date",
        message=str(exc),
    )


async def backend_error_handler(request: Request, exc: BackendError):
    return ErrorEnvelope(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="backend_error",
        message=exc.message,
        details={"upstream_status": exc.status_code} if exc.status_code else None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NavigationRedirect, navigation_redirect_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidDateError, invalid_date_handler)
    app.add_exception_handler(BackendError, backend_error_handler)
