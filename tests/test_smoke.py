import asyncio

import pytest

from runner.smoke import run_smoke, summarize
from runner.types import Check
from webmount import WebServer


def test_summarize():
    summary, code = summarize([Check("a", 200, 200), Check("b", 401, 404)])
    assert code == 1
    assert summary["passed"] == 1
    assert summary["failures"] == [{"check": "b", "expected": 401, "actual": 404, "error": None}]
    assert summarize([])[1] == 1
    assert summarize([Check("a", 204, 204)])[1] == 0


@pytest.mark.parametrize(
    "auth, token, read_token",
    [
        (None, None, None),
        ("secret", "F", "R"),
        (None, None, "R"),
    ],
)
def test_smoke_against_live_server(auth, token, read_token):
    server = WebServer(host="127.0.0.1")
    if auth:
        server.set_auth(auth, "pi")
    server.set_api_token(token)
    server.set_api_read_token(read_token)
    server.start(0)
    try:
        code = asyncio.run(
            run_smoke(
                base_url=f"http://127.0.0.1:{server.get_port()}",
                user="pi",
                password=auth,
                token=token,
                read_token=read_token,
                timeout_s=5.0,
            )
        )
    finally:
        server.stop()
    assert code == 0
