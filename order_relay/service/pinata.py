"""Thin async client for Pinata's JSON pinning endpoint.

One call, one attempt. Every failure is turned into one of the relay's
upstream error classes so the API layer never sees an httpx exception.
"""
from __future__ import annotations

from typing import Any

import httpx

from ..config import get_pin_json_url_from_env, get_timeout_from_env
from ..domain.errors import LocalRequestError, UpstreamRejection, UpstreamUnreachable
from ..logging_conf import get_logger

logger = get_logger("service.pinata")

# Raised by httpx while sending, but the request never left the process.
_LOCAL_SEND_ERRORS = (httpx.UnsupportedProtocol, httpx.LocalProtocolError)


def _body_of(response: httpx.Response) -> Any:
    """Parsed JSON body if there is one, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


class PinataClient:
    """Posts `{"pinataContent": ...}` documents and returns the IpfsHash.

    `url` and `timeout` fall back to the environment on every call when not
    given explicitly. `transport` is handed to httpx untouched (tests pass an
    `httpx.MockTransport`).
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url or get_pin_json_url_from_env()

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else get_timeout_from_env()

    async def pin_json(self, content: dict[str, Any], *, jwt: str) -> str:
        headers = {
            "Authorization": f"Bearer {jwt}",
            "Content-Type": "application/json",
        }
        try:
            timeout = self.timeout
        except ValueError as e:
            logger.error(
                "pinata.request_setup_failed",
                extra={"event": "pinata_request_setup_failed", "error": str(e)},
            )
            raise LocalRequestError() from e

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                request = client.build_request(
                    "POST", self.url, json={"pinataContent": content}, headers=headers
                )
            except (httpx.InvalidURL, TypeError, ValueError) as e:
                logger.error(
                    "pinata.request_setup_failed",
                    extra={"event": "pinata_request_setup_failed", "error": str(e)},
                )
                raise LocalRequestError() from e

            logger.info("pinata.upload", extra={"event": "pinata_upload", "url": str(request.url)})
            try:
                response = await client.send(request)
            except _LOCAL_SEND_ERRORS as e:
                logger.error(
                    "pinata.request_setup_failed",
                    extra={"event": "pinata_request_setup_failed", "error": str(e)},
                )
                raise LocalRequestError() from e
            except httpx.TransportError as e:
                logger.error(
                    "pinata.no_response",
                    extra={
                        "event": "pinata_no_response",
                        "error": str(e) or type(e).__name__,
                    },
                )
                raise UpstreamUnreachable() from e
            except httpx.RequestError as e:
                # Pinata answered but the response could not be read
                # (undecodable body, redirect loop).
                logger.error(
                    "pinata.unreadable_response",
                    extra={
                        "event": "pinata_unreadable_response",
                        "error": str(e) or type(e).__name__,
                    },
                )
                raise UpstreamRejection() from e

        body = _body_of(response)
        if not response.is_success:
            logger.error(
                "pinata.rejected",
                extra={
                    "event": "pinata_rejected",
                    "upstream_status": response.status_code,
                    "upstream_body": body,
                },
            )
            raise UpstreamRejection(details=body, upstream_status=response.status_code)

        ipfs_hash = body.get("IpfsHash") if isinstance(body, dict) else None
        if not isinstance(ipfs_hash, str) or not ipfs_hash:
            logger.error(
                "pinata.malformed_response",
                extra={
                    "event": "pinata_malformed_response",
                    "upstream_status": response.status_code,
                    "upstream_body": body,
                },
            )
            raise UpstreamRejection(details=body, upstream_status=response.status_code)

        logger.info("pinata.uploaded", extra={"event": "pinata_uploaded", "ipfs_hash": ipfs_hash})
        return ipfs_hash
