"""Environment-backed settings.

Everything is read at call time rather than import time, so the JWT can be
provided after start-up and tests can patch the environment freely.
"""
from __future__ import annotations

import os

DEFAULT_PIN_JSON_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"
DEFAULT_TIMEOUT_S = 30.0


def get_pinata_jwt_from_env() -> str | None:
    """Return PINATA_JWT, or None when unset or blank."""
    val = os.getenv("PINATA_JWT", "").strip()
    return val or None


def get_pin_json_url_from_env() -> str:
    return os.getenv("PINATA_PIN_JSON_URL", DEFAULT_PIN_JSON_URL)


def get_timeout_from_env() -> float:
    """Return PINATA_TIMEOUT in seconds, defaulting to 30."""
    raw = os.getenv("PINATA_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT_S
    try:
        val = float(raw)
    except ValueError as e:
        raise ValueError("PINATA_TIMEOUT must be a number of seconds") from e
    if val <= 0:
        raise ValueError("PINATA_TIMEOUT must be > 0")
    return val


def get_cors_origins_from_env() -> list[str]:
    """Return CORS_ALLOW_ORIGINS split on commas; "*" when unset."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]
