from __future__ import annotations

from typing import Any

__all__ = [
    "NO_DETAILS",
    "RelayError",
    "KeyGenerationError",
    "AuthorizationError",
    "ConfigurationError",
    "UpstreamRejection",
    "UpstreamUnreachable",
    "LocalRequestError",
]

# Marks an error that carries no "details" at all.
NO_DETAILS: Any = object()


class RelayError(Exception):
    """Base class for every failure surfaced to API callers.

    `code` is a stable machine identifier used in logs; `message` is what the
    client sees under "error"; `details`, when set, is echoed under "details".
    """

    code: str = "relay_error"
    status_code: int = 500
    message: str = "Internal server error."

    def __init__(self, message: str | None = None, *, details: Any = NO_DETAILS) -> None:
        if message is not None:
            self.message = message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        # An upstream JSON `null` body is still echoed as "details": null.
        if self.details is not NO_DETAILS:
            body["details"] = self.details
        return body


class KeyGenerationError(RelayError):
    code = "key_generation_failed"
    message = "Failed to generate order key."


class AuthorizationError(RelayError):
    code = "unauthorized"
    status_code = 401
    message = "Unauthorized: Invalid or missing order key."


class ConfigurationError(RelayError):
    code = "not_configured"
    message = "Pinata JWT is not configured."


class UpstreamRejection(RelayError):
    """Pinata answered, but not with a usable 2xx response."""

    code = "upstream_rejected"
    message = "Failed to upload order details to Pinata."

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any = NO_DETAILS,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class UpstreamUnreachable(RelayError):
    code = "upstream_unreachable"
    message = (
        "No response received from Pinata API. "
        "Check your network or the Pinata service status."
    )


class LocalRequestError(RelayError):
    code = "request_setup_failed"
    message = "Failed to upload order details."
