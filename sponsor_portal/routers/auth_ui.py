"""Public entry route: sign-in form, sign-in submit and sign-out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.errors import NavigationRedirect
from ..core.jinja import get_templates
from ..deps.auth import get_session_gate
from ..services.backend import BackendError
from ..services.session_gate import SessionGate

router = APIRouter()
templates = get_templates()


def _login_page(request: Request, *, identifier: str = "", error: str = "", status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "login.html",
        {"identifier": identifier, "error": error},
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
async def login_page(request: Request, gate: SessionGate = Depends(get_session_gate)):
    decision = gate.guard(request.url.path)
    if decision.is_redirect and decision.location:
        raise NavigationRedirect(decision.location)
    return _login_page(request)


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    identifier: str = Form(""),
    password: str = Form(""),
    gate: SessionGate = Depends(get_session_gate),
):
    if not identifier.strip() or not password:
        return _login_page(
            request,
            identifier=identifier,
            error="Enter your email and password",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        decision = await gate.login(identifier.strip(), password)
    except BackendError as exc:
        return _login_page(
            request,
            identifier=identifier,
            error=exc.message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return RedirectResponse(url=decision.location or "/", status_code=status.HTTP_302_FOUND)


@router.get("/logout")
async def logout(gate: SessionGate = Depends(get_session_gate)):
    decision = gate.logout()
    return RedirectResponse(url=decision.location or "/", status_code=status.HTTP_302_FOUND)
