from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from order_relay.logging_conf import get_logger, key_prefix
from runner.types import OrderKeyError, SmokeError, UploadOutcome

logger = get_logger("runner.client")


async def wait_for_health(client: httpx.AsyncClient, timeout_s: float = 20.0) -> None:
    """Ping /health until it returns ok or raise after `timeout_s` seconds."""
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        try:
            r = await client.get("/health")
            if r.status_code == 200 and r.json().get("ok") is True:
                logger.info("health.ok", extra={"event": "health_ok"})
                return
        except httpx.HTTPError as e:
            logger.debug("health.waiting", extra={"event": "health_waiting", "error": str(e)})
        await asyncio.sleep(0.25)
    raise SmokeError("Health check did not pass within timeout")


async def request_order_key(client: httpx.AsyncClient) -> str:
    """Ask the relay for a fresh order key."""
    r = await client.post("/api/generate-order-key")
    if r.status_code != 200:
        raise OrderKeyError(f"generate-order-key returned {r.status_code}: {r.text}")
    key = r.json().get("orderKey")
    if not isinstance(key, str) or not key:
        raise OrderKeyError("generate-order-key returned no orderKey")
    logger.info(
        "order_key.received",
        extra={"event": "order_key_received", "key_prefix": key_prefix(key)},
    )
    return key


async def upload_order(
    client: httpx.AsyncClient, order_key: str, order: dict[str, Any]
) -> UploadOutcome:
    """Submit one order. Never retried: a retry would reuse a spent key."""
    r = await client.post("/api/upload-order", json={**order, "orderKey": order_key})
    try:
        body = r.json()
    except ValueError:
        body = {"error": r.text}
    outcome = UploadOutcome(status_code=r.status_code, body=body if isinstance(body, dict) else {})
    logger.info(
        "order.upload_result",
        extra={
            "event": "order_upload_result",
            "status_code": outcome.status_code,
            "ipfs_hash": outcome.ipfs_hash,
        },
    )
    return outcome
