import asyncio
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from order_relay.domain.keys import OrderKeyRegistry
from order_relay.main import create_app
from order_relay.service.pinata import PinataClient

from .conftest import PIN_URL


def _new_key(client) -> str:
    r = client.post("/api/generate-order-key")
    assert r.status_code == 200
    return r.json()["orderKey"]


def test_health_and_request_id(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers["X-Request-ID"] == "abc-123"


def test_generate_order_key_registers_key(client, registry):
    key = _new_key(client)
    assert len(key) == 32
    assert key in registry
    assert len(registry) == 1


def test_generate_order_key_failure_is_500(fake_pinata):
    class BrokenRegistry(OrderKeyRegistry):
        def issue(self) -> str:
            raise OSError("entropy source unavailable")

    app = create_app(registry=BrokenRegistry(), pinata=fake_pinata.client(timeout=5.0))
    with TestClient(app) as c:
        r = c.post("/api/generate-order-key")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate order key."}


def test_upload_success_relays_ipfs_hash(client, registry, fake_pinata, jwt):
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key, "item": "tea", "qty": 2})

    assert r.status_code == 200
    assert r.json() == {"ipfsHash": "Qm123"}
    assert key not in registry
    assert fake_pinata.bodies == [{"pinataContent": {"item": "tea", "qty": 2}}]
    assert fake_pinata.requests[0].headers["Authorization"] == "Bearer test-jwt"


@pytest.mark.parametrize(
    "body",
    [
        {"item": "tea"},
        {"orderKey": "", "item": "tea"},
        {"orderKey": 12345},
        {"orderKey": None},
        {"orderKey": "deadbeef" * 4},
    ],
)
def test_upload_without_valid_key_is_401_and_no_upstream_call(client, fake_pinata, jwt, body):
    r = client.post("/api/upload-order", json=body)
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized: Invalid or missing order key."}
    assert fake_pinata.requests == []


def test_upload_with_no_body_is_401(client, fake_pinata, jwt):
    r = client.post("/api/upload-order")
    assert r.status_code == 401
    assert fake_pinata.requests == []


def test_upload_with_non_object_body_is_422(client, fake_pinata, jwt):
    r = client.post("/api/upload-order", json=["not", "an", "object"])
    assert r.status_code == 422
    assert fake_pinata.requests == []


def test_key_cannot_be_replayed(client, fake_pinata, jwt):
    key = _new_key(client)
    assert client.post("/api/upload-order", json={"orderKey": key}).status_code == 200
    r = client.post("/api/upload-order", json={"orderKey": key})
    assert r.status_code == 401
    assert len(fake_pinata.requests) == 1


def test_missing_jwt_is_500_and_key_is_consumed(client, registry, fake_pinata, monkeypatch):
    monkeypatch.delenv("PINATA_JWT", raising=False)
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key, "item": "tea"})

    assert r.status_code == 500
    assert r.json() == {"error": "Pinata JWT is not configured."}
    assert key not in registry
    assert fake_pinata.requests == []


def test_upstream_503_surfaces_details(client, registry, fake_pinata, jwt):
    fake_pinata.response = httpx.Response(503, json={"error": "Service Unavailable"})
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key})

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Failed to upload order details to Pinata."
    assert body["details"] == {"error": "Service Unavailable"}
    # Spent key stays spent after a downstream failure.
    assert key not in registry


def test_upstream_unreachable_is_500_without_details(client, fake_pinata, jwt):
    fake_pinata.error = httpx.ConnectError("connection refused")
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key})

    assert r.status_code == 500
    body = r.json()
    assert body["error"].startswith("No response received from Pinata API.")
    assert "details" not in body


def test_local_request_failure_is_500(client, fake_pinata, jwt, monkeypatch):
    def broken_build_request(self, *args, **kwargs):
        raise httpx.InvalidURL("bad url")

    monkeypatch.setattr(httpx.AsyncClient, "build_request", broken_build_request)
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to upload order details."}
    assert fake_pinata.requests == []


def test_concurrent_uploads_with_one_key_pin_once(registry, jwt):
    calls = []

    async def slow_pinata(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(0.05)
        return httpx.Response(200, json={"IpfsHash": "QmSlow"})

    pinata = PinataClient(url=PIN_URL, timeout=5.0, transport=httpx.MockTransport(slow_pinata))
    app = create_app(registry=registry, pinata=pinata)
    key = registry.issue()

    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            return await asyncio.gather(
                *[ac.post("/api/upload-order", json={"orderKey": key}) for _ in range(10)]
            )

    responses = asyncio.run(run())
    codes = sorted(r.status_code for r in responses)
    assert codes == [200] + [401] * 9
    assert len(calls) == 1
    assert len(registry) == 0


def test_cors_preflight_allowed(client):
    r = client.options(
        "/api/upload-order",
        headers={
            "Origin": "https://shop.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert r.status_code == 200
    assert "access-control-allow-origin" in r.headers


def test_undecodable_upstream_response_is_json_500(client, registry, fake_pinata, jwt, caplog):
    caplog.set_level(logging.INFO)
    fake_pinata.response = httpx.Response(
        200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip")
    )
    key = _new_key(client)
    r = client.post("/api/upload-order", json={"orderKey": key})

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"error": "Failed to upload order details to Pinata."}
    assert key not in registry
    failed = [rec for rec in caplog.records if getattr(rec, "event", None) == "order_upload_failed"]
    assert len(failed) == 1
    assert failed[0].error_code == "upstream_rejected"
    assert failed[0].key_prefix == key[:8]
