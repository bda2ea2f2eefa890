from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class UploadOutcome:
    """What the relay answered to one upload-order call."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ipfs_hash(self) -> str | None:
        return self.body.get("ipfsHash")


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., health never ready)."""


class OrderKeyError(SmokeError):
    """Raised when the relay refuses to issue an order key."""


class OrderFileError(SmokeError):
    """Raised when the order file is missing or not a JSON object."""
