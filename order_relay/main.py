"""FastAPI app factory: health endpoint, order-key and upload routes."""
from __future__ import annotations

import os
import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_relay.api import relay_error_handler, router as api_router
from order_relay.config import get_cors_origins_from_env
from order_relay.domain.errors import RelayError
from order_relay.domain.keys import OrderKeyRegistry
from order_relay.logging_conf import get_logger, setup_logging
from order_relay.service.pinata import PinataClient

# Configure logging before anything else.
setup_logging()
logger = get_logger("order_relay")


def create_app(
    *,
    registry: OrderKeyRegistry | None = None,
    pinata: PinataClient | None = None,
) -> FastAPI:
    """Build the ASGI app.

    Each app owns exactly one key registry; tests pass their own registry
    and a PinataClient wired to a mock transport.
    """
    app = FastAPI(
        title="Order Relay",
        version=os.getenv("APP_VERSION", "0.1.0"),
    )
    app.state.order_keys = registry if registry is not None else OrderKeyRegistry()
    app.state.pinata = pinata if pinata is not None else PinataClient()

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("startup", extra={"event": "startup"})

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        logger.info(
            "shutdown",
            extra={"event": "shutdown", "outstanding_keys": len(app.state.order_keys)},
        )

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """Log start/end of every request under a correlation id.

        An incoming X-Request-ID is reused, otherwise one is minted; either
        way it is echoed back on the response.
        """
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "path": request.url.path,
                    "method": request.method,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins_from_env(),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(RelayError, relay_error_handler)

    @app.get("/health", summary="Liveness check")
    async def health() -> JSONResponse:
        return JSONResponse(content={"ok": True})

    app.include_router(api_router)

    return app


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "order_relay.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3000")),
        log_config=None,
    )


# ASGI entrypoint for uvicorn: `uvicorn order_relay.main:app --port 3000`
app = create_app()
