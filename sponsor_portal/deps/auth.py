from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import NavigationRedirect, http_exception_handler
from ..core.roles import Role
from ..middlewares import principal_ctx_var
from ..services.backend import BackendClient
from ..services.session_gate import NavigationAction, SessionCredentialStore, SessionGate


def get_backend(request: Request) -> BackendClient:
    """One shared backend client per application, created on first use."""

    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        backend = BackendClient()
        request.app.state.backend = backend
    return backend


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


async def get_session_gate(
    request: Request, backend: BackendClient = Depends(get_backend)
) -> SessionGate:
    """Restore the browser's session for this request."""

    gate = getattr(request.state, "session_gate", None)
    if gate is None:
        gate = SessionGate(SessionCredentialStore(request.session), backend)
        await gate.restore()
        request.state.session_gate = gate
    if gate.identity is not None:
        _set_principal(request, f"{gate.identity.role.value}:{gate.identity.id}")
    return gate


async def require_route_access(
    request: Request, gate: SessionGate = Depends(get_session_gate)
) -> SessionGate:
    """Router-level guard: redirect instead of rendering a forbidden page."""

    decision = gate.guard(request.url.path)
    if decision.is_redirect and decision.location:
        raise NavigationRedirect(decision.location)
    if decision.action is NavigationAction.WAIT:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session not ready")
    return gate


def require_roles(*roles: Role) -> Callable[..., SessionGate]:
    """Action-level check for controls only some roles may use."""

    async def dependency(gate: SessionGate = Depends(require_route_access)) -> SessionGate:
        if not gate.has_role(*roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not permitted")
        return gate

    return dependency


async def unknown_route_handler(request: Request, exc: StarletteHTTPException):
    """404s go through the same guard as real pages before being reported."""

    gate = await get_session_gate(request, get_backend(request))
    decision = gate.guard(request.url.path)
    if decision.is_redirect and decision.location:
        return RedirectResponse(url=decision.location, status_code=status.HTTP_302_FOUND)
    return await http_exception_handler(request, exc)
