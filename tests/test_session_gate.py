"""Session gate behaviour against a mocked backend."""

import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sponsor_portal.core.roles import Role
from sponsor_portal.services.backend import BackendClient, BackendError
from sponsor_portal.services.session_gate import (
    MemoryCredentialStore,
    NavigationAction,
    SessionCredentialStore,
    SessionGate,
)

BASE_URL = "http://backend.test/api"


def _user(role="hr_officer", user_id="u-1"):
    return {
        "id": user_id,
        "email": f"{role}@example.co.uk",
        "full_name": "Priya Shah",
        "role": role,
        "is_active": True,
        "organisation_id": "org-1",
    }


def _backend(handler) -> BackendClient:
    transport = httpx.MockTransport(handler)
    return BackendClient(httpx.AsyncClient(transport=transport, base_url=BASE_URL))


def _me_handler(status=200, body=None, valid_token="good-token"):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path != "/api/auth/me":
            return httpx.Response(404, json={"detail": "Not Found"})
        if request.headers.get("Authorization") != f"Bearer {valid_token}":
            return httpx.Response(401, json={"detail": "Could not validate credentials"})
        return httpx.Response(status, json=body if body is not None else _user())

    return handler


def test_restore_without_credential_stays_anonymous():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=_user())

    gate = SessionGate(MemoryCredentialStore(), _backend(handler))
    assert gate.loading is True

    assert asyncio.run(gate.restore()) is None
    assert gate.identity is None
    assert gate.credential is None
    assert gate.loading is False
    assert calls == []


def test_restore_with_valid_credential():
    store = MemoryCredentialStore("good-token")
    gate = SessionGate(store, _backend(_me_handler()))

    identity = asyncio.run(gate.restore())

    assert identity is not None
    assert identity.role is Role.HR_OFFICER
    assert gate.credential == "good-token"
    assert gate.is_authenticated
    assert store.get() == "good-token"


def test_restore_with_revoked_credential_clears_everything():
    store = MemoryCredentialStore("stale-token")
    gate = SessionGate(store, _backend(_me_handler()))

    assert asyncio.run(gate.restore()) is None
    assert gate.identity is None
    assert gate.credential is None
    assert store.get() is None
    assert gate.loading is False


def test_restore_with_malformed_identity_clears_everything():
    store = MemoryCredentialStore("good-token")
    gate = SessionGate(store, _backend(_me_handler(body={"id": "u-1", "role": "janitor"})))

    assert asyncio.run(gate.restore()) is None
    assert gate.credential is None
    assert store.get() is None


def test_restore_when_backend_unreachable_clears_everything():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = MemoryCredentialStore("good-token")
    gate = SessionGate(store, _backend(handler))

    assert asyncio.run(gate.restore()) is None
    assert gate.identity is None
    assert store.get() is None


def test_login_stores_credential_and_goes_home():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"access_token": "fresh-token", "token_type": "bearer", "user": _user("employee", "u-9")},
        )

    session: dict = {}
    gate = SessionGate(SessionCredentialStore(session, key="cred"), _backend(handler))

    decision = asyncio.run(gate.login("worker@example.co.uk", "secret"))

    assert seen["path"] == "/api/auth/login"
    assert seen["body"] == {"identifier": "worker@example.co.uk", "password": "secret"}
    assert decision.is_redirect
    assert decision.location == "/portal"
    assert session == {"cred": "fresh-token"}
    assert gate.credential == "fresh-token"
    assert gate.identity.id == "u-9"


def test_failed_login_leaves_existing_session_alone():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/auth/login":
            return httpx.Response(401, json={"detail": "Incorrect email or password"})
        return _me_handler()(request)

    store = MemoryCredentialStore("good-token")
    gate = SessionGate(store, _backend(handler))
    asyncio.run(gate.restore())

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(gate.login("someone", "wrong"))

    assert excinfo.value.message == "Incorrect email or password"
    assert excinfo.value.status_code == 401
    assert gate.credential == "good-token"
    assert gate.identity is not None
    assert store.get() == "good-token"


def test_failed_login_without_detail_uses_status_message():
    gate = SessionGate(MemoryCredentialStore(), _backend(lambda request: httpx.Response(500)))

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(gate.login("someone", "pw"))

    assert excinfo.value.message == "API error: 500"
    assert gate.identity is None


def test_logout_clears_and_is_idempotent():
    store = MemoryCredentialStore("good-token")
    gate = SessionGate(store, _backend(_me_handler()))
    asyncio.run(gate.restore())

    first = gate.logout()
    second = gate.logout()

    assert first.location == "/"
    assert second.location == "/"
    assert gate.identity is None
    assert gate.credential is None
    assert store.get() is None


def test_has_role():
    gate = SessionGate(MemoryCredentialStore("good-token"), _backend(_me_handler()))
    assert gate.has_role(Role.HR_OFFICER) is False

    asyncio.run(gate.restore())

    assert gate.has_role(Role.HR_OFFICER) is True
    assert gate.has_role(Role.SUPER_ADMIN, Role.HR_OFFICER) is True
    assert gate.has_role(Role.SUPER_ADMIN) is False
    assert gate.has_role() is False


def test_guard_waits_until_restore_finishes():
    gate = SessionGate(MemoryCredentialStore("good-token"), _backend(_me_handler()))
    assert gate.guard("/dashboard").action is NavigationAction.WAIT

    asyncio.run(gate.restore())

    decision = gate.guard("/settings")
    assert decision.is_redirect
    assert decision.location == "/workers"
    assert gate.guard("/workers/42").action is NavigationAction.RENDER


def test_session_store_ignores_non_string_values():
    store = SessionCredentialStore({"cred": 42}, key="cred")
    assert store.get() is None
