from __future__ import annotations

import base64

import pytest
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from webmount import WebServer


def basic(user: str, password: str) -> dict[str, str]:
    raw = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
    return {"Authorization": f"Basic {raw}"}


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def echo(name: str):
    """Handler that reports which mount answered and the sub-path it saw."""

    async def handler(request, sub_path: str):
        return JSONResponse({"mount": name, "sub_path": sub_path, "method": request.method})

    return handler


@pytest.fixture
def server() -> WebServer:
    return WebServer(host="127.0.0.1", dashboard_html="<h1>dash</h1>")


@pytest.fixture
def client(server: WebServer) -> TestClient:
    return TestClient(server.app)
