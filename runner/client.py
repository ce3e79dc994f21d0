from __future__ import annotations

import asyncio
import time

import httpx

from runner.types import Check, SmokeError
from webmount.logging_conf import get_logger

logger = get_logger("runner.client")


def basic_auth(user: str | None, password: str | None) -> httpx.BasicAuth | None:
    if password is None:
        return None
    return httpx.BasicAuth(user or "admin", password)


def bearer(token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


async def wait_for_server(
    base_url: str, *, auth: httpx.BasicAuth | None = None, timeout_s: float = 20.0
) -> None:
    """Hit /_api/mounts until it answers 200 or raise after a timeout."""
    deadline = time.monotonic() + timeout_s
    async with httpx.AsyncClient(base_url=base_url, timeout=5.0, auth=auth) as client:
        while time.monotonic() < deadline:
            try:
                r = await client.get("/_api/mounts")
                if r.status_code == 200:
                    logger.info("server.ok", extra={"event": "server_ok", "mounts": len(r.json())})
                    return
            except httpx.TransportError:
                pass
            await asyncio.sleep(0.25)
    raise SmokeError("server did not answer within timeout")


async def probe(
    client: httpx.AsyncClient,
    name: str,
    method: str,
    path: str,
    expected: int,
    *,
    headers: dict[str, str] | None = None,
) -> Check:
    """Send one request and record whether the status matched."""
    try:
        r = await client.request(method, path, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("probe.error", extra={"event": "probe_error", "check": name, "error": str(e)})
        return Check(name=name, expected=expected, actual=None, error=str(e))
    return Check(name=name, expected=expected, actual=r.status_code)


async def run_checks(
    base_url: str,
    *,
    auth: httpx.BasicAuth | None,
    token: str | None,
    read_token: str | None,
) -> list[Check]:
    """Preflight, mount listing and the /api token matrix, concurrently."""
    gated = bool(token or read_token)
    plain = httpx.AsyncClient(base_url=base_url, timeout=10.0)
    authed = httpx.AsyncClient(base_url=base_url, timeout=10.0, auth=auth)
    async with plain, authed:
        tasks = [
            probe(plain, "preflight", "OPTIONS", "/_api/mounts", 204),
            probe(authed, "mounts", "GET", "/_api/mounts", 200),
            probe(plain, "unknown_api_path", "GET", "/api/__smoke_missing__", 401 if gated else 404),
        ]
        if auth is not None:
            tasks.append(probe(plain, "mounts_without_auth", "GET", "/_api/mounts", 401))
        if token:
            tasks.append(probe(plain, "api_full_get", "GET", "/api", 200, headers=bearer(token)))
            tasks.append(probe(plain, "api_no_token", "GET", "/api", 401))
            wrong = bearer(token + "x")
            tasks.append(probe(plain, "api_wrong_token", "GET", "/api", 401, headers=wrong))
        if read_token:
            tasks.append(probe(plain, "api_read_get", "GET", "/api", 200, headers=bearer(read_token)))
            tasks.append(probe(plain, "api_read_post", "POST", "/api", 403, headers=bearer(read_token)))
        if not gated:
            tasks.append(probe(plain, "api_open", "GET", "/api", 200))
        return list(await asyncio.gather(*tasks))
