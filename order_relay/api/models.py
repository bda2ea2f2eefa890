from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class OrderKeyResponse(BaseModel):
    """A freshly issued single-use order key."""
    orderKey: str


class UploadOrderResponse(BaseModel):
    """Content identifier Pinata assigned to the pinned order."""
    ipfsHash: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
