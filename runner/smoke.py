#!/usr/bin/env python3
"""Smoke probe for a running webmount server.

Steps:
- wait until the mount listing answers
- run the preflight / session / token checks concurrently
- emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import sys

from runner.cli import parse_args
from runner.client import basic_auth, run_checks, wait_for_server
from runner.types import Check
from webmount.logging_conf import get_logger, setup_logging

setup_logging()
logger = get_logger("runner")


def summarize(checks: list[Check]) -> tuple[dict, int]:
    """Compute summary dict and an exit code from the check outcomes."""
    failures = [
        {"check": c.name, "expected": c.expected, "actual": c.actual, "error": c.error}
        for c in checks
        if not c.ok
    ]
    summary = {
        "component": "runner",
        "event": "summary",
        "checks": len(checks),
        "passed": len(checks) - len(failures),
        "failures": failures,
    }
    exit_code = 0 if checks and not failures else 1
    return summary, exit_code


async def run_smoke(
    *,
    base_url: str,
    user: str | None = None,
    password: str | None = None,
    token: str | None = None,
    read_token: str | None = None,
    timeout_s: float = 20.0,
) -> int:
    auth = basic_auth(user, password)
    await wait_for_server(base_url, auth=auth, timeout_s=timeout_s)
    checks = await run_checks(base_url, auth=auth, token=token, read_token=read_token)
    summary, exit_code = summarize(checks)
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            user=args.user,
            password=args.password,
            token=args.token,
            read_token=args.read_token,
            timeout_s=args.timeout,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
