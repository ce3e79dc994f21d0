"""Per-request dispatch: namespace gates, built-in routes, mount routing.

Order for each request (CORS and preflight are handled by middleware in
`webmount.main` before this runs):

1. general paths pass the session gate, API paths are held for the token gate
2. /api index, dashboard, mount listing
3. longest-prefix mount routing, token-gated under /api unless skip_auth
4. 404, token-gated under /api so probing needs a valid token
"""
from __future__ import annotations

import inspect
from typing import Any

from fastapi import Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from ..domain import router
from ..domain.credentials import SessionGate, TokenDecision, TokenGate
from ..domain.paths import DASHBOARD_PATH, MOUNTS_PATH, is_api_path, is_api_root
from ..domain.registry import MountRegistration, MountRegistry
from ..logging_conf import get_logger
from .models import ApiIndexResponse, ErrorBody

logger = get_logger("webmount.dispatch")

REALM = "webmount"


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorBody(error=message).model_dump(),
        headers=headers,
    )


def _session_denied() -> JSONResponse:
    return error_response(
        status.HTTP_401_UNAUTHORIZED,
        "Unauthorized",
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def _token_denied(decision: TokenDecision) -> JSONResponse:
    if decision is TokenDecision.read_only:
        return error_response(
            status.HTTP_403_FORBIDDEN,
            "Read-only token cannot be used for write requests",
        )
    return error_response(status.HTTP_401_UNAUTHORIZED, "Invalid or missing API token")


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JSONResponse(content=jsonable_encoder(result))


async def _call_handler(reg: MountRegistration, request: Request, sub_path: str) -> Any:
    handler = reg.handler
    if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    ):
        return await handler(request, sub_path)
    result = await run_in_threadpool(handler, request, sub_path)
    if inspect.isawaitable(result):
        result = await result
    return result


class Dispatcher:
    """Routes one request through the gates to a mount or a built-in page."""

    def __init__(
        self,
        registry: MountRegistry,
        session_gate: SessionGate,
        token_gate: TokenGate,
        dashboard_html: str,
    ) -> None:
        self.registry = registry
        self.session_gate = session_gate
        self.token_gate = token_gate
        self.dashboard_html = dashboard_html

    def _check_token(self, request: Request, path: str) -> JSONResponse | None:
        decision = self.token_gate.check(request.headers.get("authorization"), request.method)
        if decision is TokenDecision.allowed:
            return None
        logger.info(
            "auth.token_denied",
            extra={
                "event": "auth_token_denied",
                "path": path,
                "method": request.method,
                "decision": decision.value,
            },
        )
        return _token_denied(decision)

    def api_index(self) -> ApiIndexResponse:
        creds = self.token_gate.credentials
        return ApiIndexResponse(
            mounts=self.registry.list_api(),
            token_auth=creds.full_token is not None,
            read_token_auth=creds.read_token is not None,
        )

    async def __call__(self, request: Request) -> Response:
        path = request.url.path
        api = is_api_path(path)

        if not api and not self.session_gate.check(request.headers.get("authorization")):
            logger.info(
                "auth.session_denied",
                extra={"event": "auth_session_denied", "path": path, "method": request.method},
            )
            return _session_denied()

        if is_api_root(path):
            if (denied := self._check_token(request, path)) is not None:
                return denied
            return JSONResponse(content=self.api_index().model_dump(by_alias=True))

        if path == DASHBOARD_PATH:
            return HTMLResponse(self.dashboard_html)

        if path == MOUNTS_PATH:
            return JSONResponse(
                content=[info.model_dump(by_alias=True) for info in self.registry.list()]
            )

        found = router.match(self.registry.snapshot(), path)
        if found is None:
            if api and (denied := self._check_token(request, path)) is not None:
                return denied
            return error_response(status.HTTP_404_NOT_FOUND, "Not found")

        reg, sub = found
        if api and not reg.skip_auth and (denied := self._check_token(request, path)) is not None:
            return denied

        try:
            response = _to_response(await _call_handler(reg, request, sub))
        except Exception as exc:
            logger.exception(
                "handler.error",
                extra={"event": "handler_error", "mount": reg.name, "path": path},
            )
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
        return response
