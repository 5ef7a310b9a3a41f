import asyncio
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sponsor_portal.schemas.calendar import HolidayCreate
from sponsor_portal.services.backend import BackendClient, BackendError


def _client(handler) -> BackendClient:
    return BackendClient(
        httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://backend.test/api")
    )


def test_bearer_header_and_json_content_type():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["content_type"] = request.headers.get("Content-Type")
        return httpx.Response(200, json=[])

    asyncio.run(_client(handler).get("/workers", "abc123"))

    assert seen["auth"] == "Bearer abc123"
    assert seen["content_type"] == "application/json"


def test_no_authorization_header_without_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={})

    asyncio.run(_client(handler).get("/public"))

    assert seen["auth"] is None


def test_no_content_returns_none():
    result = asyncio.run(_client(lambda request: httpx.Response(204)).delete("/leave/1", "t"))
    assert result is None


def test_error_uses_backend_detail():
    def handler(request):
        return httpx.Response(400, json={"detail": "Holiday already exists"})

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(_client(handler).post("/calendar/holidays", {}, "t"))

    assert str(excinfo.value) == "Holiday already exists"
    assert excinfo.value.status_code == 400
    assert excinfo.value.is_auth_error is False


def test_error_without_detail_falls_back_to_status():
    def handler(request):
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(_client(handler).get("/workers", "t"))

    assert excinfo.value.message == "API error: 502"


def test_validation_detail_list_falls_back_to_status():
    def handler(request):
        return httpx.Response(422, json={"detail": [{"loc": ["body"], "msg": "field required"}]})

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(_client(handler).get("/workers", "t"))

    assert excinfo.value.message == "API error: 422"


def test_calendar_events_sends_year_and_month():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "holidays": [{"id": "h1", "name": "Good Friday", "date": "2025-04-18"}],
                "bg_verifications": [
                    {
                        "id": "b1",
                        "worker_id": "w-4",
                        "worker_name": "Sam Hill",
                        "referee_name": "J. Carter",
                        "date": "2025-04-02",
                    }
                ],
            },
        )

    events = asyncio.run(_client(handler).calendar_events("t", 2025, 4))

    assert seen["path"] == "/api/calendar/events"
    assert seen["params"] == {"year": "2025", "month": "4"}
    assert [event.type for event in events.all_events()] == ["holiday", "bg_verification"]
    assert events.leaves == []


def test_add_holiday_posts_iso_date():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.read().decode()
        return httpx.Response(201, json={"id": "h9", "name": "Founders Day", "date": "2025-05-05"})

    holiday = HolidayCreate(name="Founders Day", date="2025-05-05")
    created = asyncio.run(_client(handler).add_holiday("t", holiday))

    assert '"date":"2025-05-05"' in seen["body"].replace(" ", "")
    assert created is not None and created.id == "h9"


def test_malformed_worker_list_is_a_backend_error():
    with pytest.raises(BackendError):
        asyncio.run(_client(lambda request: httpx.Response(200, json=[{"name": "No id"}])).list_workers("t"))


def test_rejected_credentials_are_flagged_as_auth_errors():
    def handler(request):
        return httpx.Response(401, json={"detail": "Could not validate credentials"})

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(_client(handler).get("/auth/me", "expired"))

    assert excinfo.value.is_auth_error is True


def test_worker_references_unwraps_reference_list():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json={"references": [{"id": "r1", "referee_name": "Dr Ellis"}]})

    references = asyncio.run(_client(handler).worker_references("t", "w9"))

    assert seen["path"] == "/api/bgverify/worker/w9"
    assert [reference.referee_name for reference in references] == ["Dr Ellis"]
    assert references[0].status == "pending"
