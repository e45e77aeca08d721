import re
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config import settings
from main import app
from services.report_store import InMemoryReportStore, SharedReportRecord
from services.share_errors import StoreError


AUDIT_RESULT = {
    "summary": "ok",
    "strengths": ["a"],
    "weaknesses": ["b"],
    "actionableSteps": ["c"],
    "improvements": [],
}


class BrokenStore(InMemoryReportStore):
    async def exists(self, short_id):
        raise StoreError("exists", short_id=short_id)

    async def get(self, short_id):
        raise StoreError("get", short_id=short_id)

    async def delete_expired(self, now):
        raise StoreError("delete_expired")

    async def count_all(self):
        raise StoreError("count_all")

    async def ping(self):
        raise StoreError("ping")


async def _client_for(store):
    app.state.report_store = store
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def share_client():
    store = InMemoryReportStore()
    previous = getattr(app.state, "report_store", None)
    async with await _client_for(store) as client:
        yield client, store
    app.state.report_store = previous


@pytest_asyncio.fixture
async def broken_client():
    previous = getattr(app.state, "report_store", None)
    async with await _client_for(BrokenStore()) as client:
        yield client
    app.state.report_store = previous


async def _seed(store, short_id, expires_in):
    now = datetime.now(timezone.utc)
    await store.insert(
        SharedReportRecord(
            short_id=short_id,
            audit_result=AUDIT_RESULT,
            lighthouse_data=None,
            website="https://example.com",
            created_at=now - timedelta(days=1),
            expires_at=now + expires_in,
        )
    )


@pytest.mark.asyncio
async def test_share_then_resolve_round_trip(share_client):
    client, _ = share_client
    response = await client.post(
        "/share",
        json={"auditResult": AUDIT_RESULT, "lighthouseData": None, "website": "https://example.com"},
        headers={"Origin": "https://brand.example"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    short_id = body["short_id"]
    assert re.fullmatch(r"[A-Za-z0-9]{6}", short_id)
    assert body["url"] == f"https://brand.example/report/{short_id}"

    resolved = await client.post("/resolve", json={"token": short_id})
    assert resolved.status_code == 200
    payload = resolved.json()
    assert payload["success"] is True
    assert payload["payload"]["website"] == "https://example.com"
    assert payload["payload"]["auditResult"] == AUDIT_RESULT
    assert payload["payload"]["lighthouseData"] is None
    assert "created_at" in payload["payload"]
    assert "expires_at" in payload["payload"]

    by_path = await client.get(f"/report/{short_id}")
    assert by_path.status_code == 200
    assert by_path.json()["payload"] == payload["payload"]


@pytest.mark.asyncio
async def test_share_without_origin_uses_public_base_url(share_client):
    client, _ = share_client
    response = await client.post("/share", json={"auditResult": AUDIT_RESULT, "website": "https://example.com"})
    assert response.status_code == 200
    body = response.json()
    assert body["url"] == f"{settings.PUBLIC_BASE_URL.rstrip('/')}/report/{body['short_id']}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"website": "https://example.com"},
        {"auditResult": AUDIT_RESULT},
        {"auditResult": AUDIT_RESULT, "website": ""},
        {"auditResult": AUDIT_RESULT, "website": "https://example.com", "lighthouseData": [1, 2]},
        {"auditResult": AUDIT_RESULT, "website": 123},
        {"auditResult": "summary only", "website": "https://example.com"},
        {},
    ],
)
async def test_share_rejects_missing_fields(share_client, payload):
    client, store = share_client
    response = await client.post("/share", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert await store.count_all() == 0


@pytest.mark.asyncio
async def test_share_store_failure_is_generic_500(broken_client):
    response = await broken_client.post(
        "/share", json={"auditResult": AUDIT_RESULT, "website": "https://example.com"}
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to generate share link"}


@pytest.mark.asyncio
async def test_resolve_status_codes(share_client):
    client, store = share_client
    await _seed(store, "Expd01", timedelta(seconds=-1))

    missing_token = await client.post("/resolve", json={})
    assert missing_token.status_code == 400

    not_found = await client.post("/resolve", json={"token": "Nope01"})
    assert not_found.status_code == 404
    assert not_found.json()["success"] is False

    expired = await client.post("/resolve", json={"token": "Expd01"})
    assert expired.status_code == 410
    assert expired.json()["message"] != not_found.json()["message"]

    expired_path = await client.get("/report/Expd01")
    assert expired_path.status_code == 410


@pytest.mark.asyncio
async def test_resolve_store_failure_is_500(broken_client):
    response = await broken_client.post("/resolve", json={"token": "Abc123"})
    assert response.status_code == 500
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_cleanup_endpoints(share_client):
    client, store = share_client
    for short_id in ("Old001", "Old002", "Old003"):
        await _seed(store, short_id, timedelta(minutes=-1))
    for short_id in ("New001", "New002"):
        await _seed(store, short_id, timedelta(days=3))

    stats = await client.get("/cleanup")
    assert stats.status_code == 200
    assert stats.json() == {"success": True, "stats": {"total": 5, "active": 2, "expired": 3}}

    swept = await client.post("/cleanup")
    assert swept.status_code == 200
    body = swept.json()
    assert body["success"] is True
    assert body["message"] == "Cleaned up 3 expired reports"
    assert body["stats"] == {"total": 2, "active": 2, "expired": 0}

    again = await client.post("/cleanup")
    assert again.json()["message"] == "Cleaned up 0 expired reports"

    still_there = await client.get("/report/New001")
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_cleanup_failure_is_500(broken_client):
    swept = await broken_client.post("/cleanup")
    assert swept.status_code == 500
    assert swept.json() == {"success": False, "message": "Cleanup failed"}

    stats = await broken_client.get("/cleanup")
    assert stats.status_code == 500


@pytest.mark.asyncio
async def test_cleanup_secret_is_enforced_when_configured(share_client, monkeypatch):
    client, _ = share_client
    monkeypatch.setattr(settings, "CLEANUP_SECRET", "sweep-secret")

    assert (await client.post("/cleanup")).status_code == 401
    assert (await client.get("/cleanup", headers={"Authorization": "Bearer wrong"})).status_code == 401

    ok = await client.post("/cleanup", headers={"Authorization": "Bearer sweep-secret"})
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_share_rate_limit_applies(share_client):
    client, _ = share_client
    app.state.disable_rate_limits = False
    statuses = []
    for _ in range(settings.SHARE_RATE_LIMIT_PER_HOUR + 1):
        response = await client.post(
            "/share", json={"auditResult": AUDIT_RESULT, "website": "https://example.com"}
        )
        statuses.append(response.status_code)
    assert statuses[:-1] == [200] * settings.SHARE_RATE_LIMIT_PER_HOUR
    assert statuses[-1] == 429


@pytest.mark.asyncio
async def test_resolve_rejects_non_string_token(share_client):
    client, _ = share_client
    response = await client.post("/resolve", json={"token": 5})
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_share_accepts_empty_payload_objects(share_client):
    client, _ = share_client
    response = await client.post(
        "/share", json={"auditResult": {}, "lighthouseData": {}, "website": "https://example.com"}
    )
    assert response.status_code == 200
    resolved = await client.post("/resolve", json={"token": response.json()["short_id"]})
    assert resolved.json()["payload"]["auditResult"] == {}
    assert resolved.json()["payload"]["lighthouseData"] == {}


@pytest.mark.asyncio
async def test_resolve_body_token_is_url_decoded(share_client):
    client, _ = share_client
    response = await client.post("/share", json={"auditResult": AUDIT_RESULT, "website": "https://example.com"})
    short_id = response.json()["short_id"]
    encoded = "".join(f"%{ord(ch):02X}" for ch in short_id)
    resolved = await client.post("/resolve", json={"token": encoded})
    assert resolved.status_code == 200


@pytest.mark.asyncio
async def test_share_rate_limit_ignores_forwarded_for_rotation(share_client):
    client, _ = share_client
    app.state.disable_rate_limits = False
    statuses = []
    for index in range(settings.SHARE_RATE_LIMIT_PER_HOUR + 10):
        response = await client.post(
            "/share",
            json={"auditResult": AUDIT_RESULT, "website": "https://example.com"},
            headers={"X-Forwarded-For": f"10.0.0.{index}"},
        )
        statuses.append(response.status_code)
    assert statuses[: settings.SHARE_RATE_LIMIT_PER_HOUR] == [200] * settings.SHARE_RATE_LIMIT_PER_HOUR
    assert set(statuses[settings.SHARE_RATE_LIMIT_PER_HOUR:]) == {429}


@pytest.mark.asyncio
async def test_health_reports_store(share_client):
    client, _ = share_client
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["database"] == "up"
    assert health.json()["store_backend"] == "memory"
    assert (await client.get("/health/ready")).json() == {"ready": True}
    assert (await client.get("/health/live")).json() == {"alive": True}


@pytest.mark.asyncio
async def test_health_degraded_when_store_down(broken_client):
    degraded = await broken_client.get("/health")
    assert degraded.status_code == 200
    assert degraded.json()["status"] == "degraded"
    assert (await broken_client.get("/health/ready")).status_code == 503
