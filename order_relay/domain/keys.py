from __future__ import annotations

import secrets
import threading

__all__ = [
    "ORDER_KEY_BYTES",
    "OrderKeyRegistry",
]

# 128 bits of entropy, rendered as 32 hex characters.
ORDER_KEY_BYTES = 16


class OrderKeyRegistry:
    """In-memory set of issued, not-yet-redeemed order keys.

    A key in the set has never been redeemed; a key missing from it was either
    never issued or already used. Nothing expires and nothing is persisted, so
    a restart invalidates every outstanding key.

    `redeem` is the only removal path and is atomic: when several requests
    race on the same key exactly one of them gets True.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def issue(self) -> str:
        key = secrets.token_hex(ORDER_KEY_BYTES)
        with self._lock:
            self._keys.add(key)
        return key

    def redeem(self, key: str) -> bool:
        """Remove `key` if present. Returns whether it was valid."""
        with self._lock:
            if key not in self._keys:
                return False
            self._keys.remove(key)
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
