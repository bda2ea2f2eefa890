#!/usr/bin/env python3
"""End-to-end smoke run against a live relay.

Steps:
- wait for server health
- request an order key
- upload an order with it
- upload again with the same key and expect a 401
- emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import httpx

from order_relay.logging_conf import get_logger, setup_logging
from runner.cli import parse_args
from runner.client import request_order_key, upload_order, wait_for_health
from runner.types import OrderFileError, UploadOutcome

setup_logging()
logger = get_logger("runner")

SAMPLE_ORDER: dict[str, Any] = {
    "customer": "smoke-test",
    "items": [{"sku": "SMOKE-1", "quantity": 1}],
}


def load_order(path: str | None) -> dict[str, Any]:
    """Read the order document to upload, or fall back to the sample."""
    if path is None:
        return dict(SAMPLE_ORDER)
    p = Path(path)
    if not p.is_file():
        raise OrderFileError(f"order file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise OrderFileError(f"order file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise OrderFileError("order file must contain a JSON object")
    return data


def summarize(first: UploadOutcome, replay: UploadOutcome) -> tuple[dict, int]:
    """Compute summary dict and an exit code from the two upload attempts."""
    uploaded = first.status_code == 200 and bool(first.ipfs_hash)
    replay_blocked = replay.status_code == 401
    summary = {
        "component": "runner",
        "event": "summary",
        "upload_status": first.status_code,
        "ipfs_hash": first.ipfs_hash,
        "upload_error": first.body.get("error"),
        "replay_status": replay.status_code,
        "replay_blocked": replay_blocked,
    }
    return summary, 0 if (uploaded and replay_blocked) else 1


async def run_smoke(*, base_url: str, order: dict[str, Any], timeout_s: float = 30.0) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s) as client:
        await wait_for_health(client)
        key = await request_order_key(client)
        first = await upload_order(client, key, order)
        replay = await upload_order(client, key, order)
    summary, exit_code = summarize(first, replay)
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            order=load_order(args.order),
            timeout_s=args.timeout,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
