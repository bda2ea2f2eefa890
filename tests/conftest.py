"""Shared fixtures: an app wired to a fake Pinata behind httpx.MockTransport."""
from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from order_relay.domain.keys import OrderKeyRegistry
from order_relay.main import create_app
from order_relay.service.pinata import PinataClient

PIN_URL = "https://pinata.test/pinning/pinJSONToIPFS"


class FakePinata:
    """Records every request and answers with a configurable response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(200, json={"IpfsHash": "Qm123", "PinSize": 42})
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def client(self, **kwargs) -> PinataClient:
        return PinataClient(url=PIN_URL, transport=httpx.MockTransport(self.handler), **kwargs)


@pytest.fixture
def fake_pinata():
    return FakePinata()


@pytest.fixture
def registry():
    return OrderKeyRegistry()


@pytest.fixture
def jwt(monkeypatch):
    monkeypatch.setenv("PINATA_JWT", "test-jwt")
    return "test-jwt"


@pytest.fixture
def client(registry, fake_pinata):
    app = create_app(registry=registry, pinata=fake_pinata.client(timeout=5.0))
    with TestClient(app) as c:
        yield c
