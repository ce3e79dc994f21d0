"""FastAPI app factory: CORS, preflight, request logging and the catch-all route."""
from __future__ import annotations

import os
import time
from collections.abc import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .api.dispatch import Dispatcher
from .logging_conf import get_logger

logger = get_logger("webmount")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PATCH, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class DispatchEndpoint:
    """ASGI endpoint handing every request to the dispatcher, whatever its method.

    Starlette only restricts methods for function endpoints, so a Route built
    on this object matches PROPFIND and custom verbs as well as GET.
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive, send)
        response = await self.dispatcher(request)
        await response(scope, receive, send)


def create_app(dispatcher: Dispatcher) -> FastAPI:
    app = FastAPI(
        title="webmount",
        version=os.getenv("APP_VERSION", "0.1.0"),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def cors(request: Request, call_next: Callable[[Request], Awaitable[Response]]):
        """Permissive CORS on every response; preflight never reaches the gates."""
        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Awaitable[Response]]):
        """JSON request logging with correlation id.

        - If the client sends X-Request-ID we propagate it; otherwise we mint one
        - Logs a start and end event with method/path/status/elapsed_ms
        - Attaches X-Request-ID header on the response for easy tracing
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
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    # OPTIONS never gets here; the cors middleware answers it.
    app.routes.append(Route("/{full_path:path}", endpoint=DispatchEndpoint(dispatcher)))

    return app
