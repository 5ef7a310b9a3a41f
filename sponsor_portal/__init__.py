"""Application factory and top-level wiring for the Sponsor Portal.

This module is the glue that brings together configuration, the browser
session, the REST backend client, the page routers and error handling. It
gives a bird's-eye view of *what* pieces exist, *when* they are initialised,
*why* they are required, and *how* they interact.
"""

from __future__ import annotations

from fastapi import FastAPI, status
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .deps.auth import unknown_route_handler
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import auth_ui as auth_ui_router
from .routers import ui as ui_router


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)

    # ---------- Middleware ----------
    # The signed session cookie is the durable client storage for the bearer
    # credential. Starlette runs middleware outermost-last, so request ids
    # wrap everything else.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ---------- Routers ----------
    # Public entry (login/logout) first, then the guarded pages.
    app.include_router(auth_ui_router.router)
    app.include_router(ui_router.router)

    # ---------- Exception handling ----------
    register_exception_handlers(app)
    app.add_exception_handler(status.HTTP_404_NOT_FOUND, unknown_route_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.on_event("shutdown")
    async def _close_backend() -> None:
        backend = getattr(app.state, "backend", None)
        if backend is not None:
            await backend.aclose()

    return app


app = create_app()

__all__ = ["app", "create_app"]
