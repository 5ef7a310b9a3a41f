"""Session ownership and role-based navigation gate.

A :class:`SessionGate` holds the single Identity/Credential pair for one
browser session. Only ``restore``, ``login`` and ``logout`` write to it and
they always set or clear both halves together. Navigation decisions are made
by :func:`decide_navigation`, a pure function of (identity, path), so the
rules can be exercised without a web server.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import MutableMapping, Protocol

from ..core.config import settings
from ..core.roles import ENTRY_ROUTE, Role, can_access, home_for_role, is_internal_path, normalize_path
from ..schemas.auth import Identity
from .backend import BackendClient, BackendError

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, credential: str) -> None: ...

    def clear(self) -> None: ...


class SessionCredentialStore:
    """Keeps the credential in the signed session cookie under one key."""

    def __init__(self, session: MutableMapping[str, object], key: str | None = None) -> None:
        self._session = session
        self._key = key or settings.CREDENTIAL_KEY

    def get(self) -> str | None:
        value = self._session.get(self._key)
        return value if isinstance(value, str) and value else None

    def set(self, credential: str) -> None:
        self._session[self._key] = credential

    def clear(self) -> None:
        self._session.pop(self._key, None)


class MemoryCredentialStore:
    def __init__(self, credential: str | None = None) -> None:
        self.credential = credential

    def get(self) -> str | None:
        return self.credential

    def set(self, credential: str) -> None:
        self.credential = credential

    def clear(self) -> None:
        self.credential = None


class NavigationAction(str, Enum):
    RENDER = "render"
    REDIRECT = "redirect"
    WAIT = "wait"


@dataclass(frozen=True)
class NavigationDecision:
    action: NavigationAction
    location: str | None = None

    @classmethod
    def render(cls) -> "NavigationDecision":
        return cls(NavigationAction.RENDER)

    @classmethod
    def wait(cls) -> "NavigationDecision":
        return cls(NavigationAction.WAIT)

    @classmethod
    def redirect(cls, location: str) -> "NavigationDecision":
        return cls(NavigationAction.REDIRECT, location)

    @property
    def is_redirect(self) -> bool:
        return self.action is NavigationAction.REDIRECT


def decide_navigation(identity: Identity | None, path: str, *, loading: bool = False) -> NavigationDecision:
    """Decide whether ``path`` may be shown to ``identity``.

    Unauthorized routes send the user to their role's home without an error;
    anonymous users are sent to the public entry route.
    """

    if loading:
        return NavigationDecision.wait()
    if is_internal_path(path):
        return NavigationDecision.render()

    normalized = normalize_path(path)
    if identity is None:
        if normalized == ENTRY_ROUTE:
            return NavigationDecision.render()
        return NavigationDecision.redirect(ENTRY_ROUTE)

    home = home_for_role(identity.role)
    if normalized == ENTRY_ROUTE:
        return NavigationDecision.redirect(home)
    if not can_access(identity.role, path):
        return NavigationDecision.redirect(home)
    return NavigationDecision.render()


class SessionGate:
    """Owns the current identity and its bearer credential."""

    def __init__(self, store: CredentialStore, backend: BackendClient) -> None:
        self._store = store
        self._backend = backend
        self._identity: Identity | None = None
        self._credential: str | None = None
        self.loading = True

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def backend(self) -> BackendClient:
        return self._backend

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def _set_session(self, identity: Identity, credential: str) -> None:
        self._store.set(credential)
        self._credential = credential
        self._identity = identity

    def _clear_session(self) -> None:
        self._store.clear()
        self._credential = None
        self._identity = None

    async def restore(self) -> Identity | None:
        """Re-establish the session from the stored credential.

        A credential the backend will not vouch for is discarded; this never
        raises for backend failures.
        """

        self.loading = True
        try:
            stored = self._store.get()
            if not stored:
                self._identity = None
                self._credential = None
                return None
            try:
                identity = await self._backend.me(stored)
            except BackendError as exc:
                logger.warning(
                    "session.restore_failed",
                    extra={"extra_data": {"reason": exc.message, "status": exc.status_code}},
                )
                self._clear_session()
                return None
            self._set_session(identity, stored)
            logger.debug("session.restored", extra={"extra_data": {"user_id": identity.id}})
            return identity
        finally:
            self.loading = False

    async def login(self, identifier: str, password: str) -> NavigationDecision:
        """Authenticate and return the redirect to the role's home route.

        On failure :class:`BackendError` propagates and the current session,
        if any, is left exactly as it was.
        """

        response = await self._backend.login(identifier, password)
        self._set_session(response.user, response.access_token)
        logger.info(
            "session.login",
            extra={"extra_data": {"user_id": response.user.id, "role": response.user.role.value}},
        )
        return NavigationDecision.redirect(home_for_role(response.user.role))

    def logout(self) -> NavigationDecision:
        if self._identity is not None:
            logger.info("session.logout", extra={"extra_data": {"user_id": self._identity.id}})
        self._clear_session()
        return NavigationDecision.redirect(ENTRY_ROUTE)

    def has_role(self, *roles: Role) -> bool:
        return self._identity is not None and self._identity.role in roles

    def guard(self, path: str) -> NavigationDecision:
        decision = decide_navigation(self._identity, path, loading=self.loading)
        if decision.is_redirect:
            logger.debug(
                "navigation.redirect",
                extra={"extra_data": {"path": path, "location": decision.location}},
            )
        return decision


__all__ = [
    "CredentialStore",
    "MemoryCredentialStore",
    "NavigationAction",
    "NavigationDecision",
    "SessionCredentialStore",
    "SessionGate",
    "decide_navigation",
]
