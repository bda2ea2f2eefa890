from __future__ import annotations

from typing import Any

from ..config import get_pinata_jwt_from_env
from ..domain.errors import (
    AuthorizationError,
    ConfigurationError,
    KeyGenerationError,
    RelayError,
)
from ..domain.keys import OrderKeyRegistry
from ..logging_conf import get_logger, key_prefix
from .pinata import PinataClient

logger = get_logger("service.order")

ORDER_KEY_FIELD = "orderKey"


# ------------------------
# Use-cases
# ------------------------

def issue_order_key(registry: OrderKeyRegistry) -> str:
    """Mint a fresh single-use order key."""
    try:
        key = registry.issue()
    except Exception as e:
        logger.exception("order_key.generate_failed", extra={"event": "order_key_generate_failed"})
        raise KeyGenerationError() from e
    logger.info(
        "order_key.generated",
        extra={"event": "order_key_generated", "key_prefix": key_prefix(key)},
    )
    return key


async def upload_order(
    *, registry: OrderKeyRegistry, pinata: PinataClient, body: dict[str, Any] | None
) -> str:
    """Redeem the order key in `body` and pin the rest of it on Pinata.

    The key is burned before anything else happens and is not restored when
    a later step fails, so a slow upstream call cannot be raced by a replay.
    """
    order = dict(body or {})
    key = order.pop(ORDER_KEY_FIELD, None)

    if not isinstance(key, str) or not key or not registry.redeem(key):
        logger.warning(
            "order_key.rejected",
            extra={
                "event": "order_key_rejected",
                "key_prefix": key_prefix(key),
                "error_code": AuthorizationError.code,
            },
        )
        raise AuthorizationError()

    logger.info(
        "order_key.redeemed",
        extra={"event": "order_key_redeemed", "key_prefix": key_prefix(key)},
    )

    jwt = get_pinata_jwt_from_env()
    if jwt is None:
        logger.error(
            "order.not_configured",
            extra={
                "event": "order_not_configured",
                "key_prefix": key_prefix(key),
                "error_code": ConfigurationError.code,
            },
        )
        raise ConfigurationError()

    try:
        ipfs_hash = await pinata.pin_json(order, jwt=jwt)
    except RelayError as e:
        logger.error(
            "order.upload_failed",
            extra={
                "event": "order_upload_failed",
                "key_prefix": key_prefix(key),
                "error_code": e.code,
            },
        )
        raise
    logger.info(
        "order.uploaded",
        extra={"event": "order_uploaded", "key_prefix": key_prefix(key), "ipfs_hash": ipfs_hash},
    )
    return ipfs_hash
