from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from ..domain.errors import RelayError
from ..domain.keys import OrderKeyRegistry
from ..logging_conf import get_logger
from ..service import order_service
from ..service.pinata import PinataClient
from .models import ErrorResponse, OrderKeyResponse, UploadOrderResponse

router = APIRouter(prefix="/api")
logger = get_logger("api")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_registry(request: Request) -> OrderKeyRegistry:
    return request.app.state.order_keys


def get_pinata(request: Request) -> PinataClient:
    return request.app.state.pinata


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render any RelayError as `{"error": ..., "details"?: ...}`."""
    logger.warning(
        "request.failed",
        extra={
            "event": "request_failed",
            "path": request.url.path,
            "error_code": exc.code,
            "status_code": exc.status_code,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@router.post(
    "/generate-order-key",
    response_model=OrderKeyResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Issue a single-use order key",
)
async def generate_order_key(
    registry: OrderKeyRegistry = Depends(get_registry),
) -> OrderKeyResponse:
    return OrderKeyResponse(orderKey=order_service.issue_order_key(registry))


@router.post(
    "/upload-order",
    response_model=UploadOrderResponse,
    responses=_ERROR_RESPONSES,
    summary="Redeem an order key and pin the order on IPFS",
)
async def upload_order(
    body: dict[str, Any] | None = Body(default=None),
    registry: OrderKeyRegistry = Depends(get_registry),
    pinata: PinataClient = Depends(get_pinata),
) -> UploadOrderResponse:
    """Consume `orderKey` from the body and forward the remaining fields to Pinata.

    The key is spent even if the upload then fails.
    """
    ipfs_hash = await order_service.upload_order(registry=registry, pinata=pinata, body=body)
    return UploadOrderResponse(ipfsHash=ipfs_hash)
