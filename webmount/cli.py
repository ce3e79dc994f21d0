from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import replace

from .config import apply_settings, load_settings, parse_auth_value
from .logging_conf import get_logger, setup_logging
from .server import WebServer

logger = get_logger("webmount.cli")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments; unset flags fall back to the environment."""
    parser = argparse.ArgumentParser(prog="webmount", description="Shared extension web server")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--auth", default=None, help="password or user:password for Basic auth")
    parser.add_argument("--api-token", default=None)
    parser.add_argument("--api-read-token", default=None)
    parser.add_argument("--dashboard", default=None, help="HTML file served at /")
    return parser.parse_args(argv)


def describe_status(server: WebServer) -> str:
    """Human-readable summary: URL, auth state, token state, mounts."""
    if not server.is_running():
        return "Web server is not running"

    auth = server.get_auth()
    tokens = server.get_api_token_status()
    lines = [
        f"Web server running at {server.get_url()}",
        f"Auth: enabled (user: {auth.username})" if auth.enabled else "Auth: disabled",
        f"API token: {'enabled' if tokens.enabled else 'disabled'}",
        f"API read token: {'enabled' if tokens.read_enabled else 'disabled'}",
    ]
    mounts = server.get_mounts()
    if mounts:
        lines.append("Mounts:")
        for m in mounts:
            line = f"  {m.prefix} - {m.label}"
            if m.description:
                line += f" ({m.description})"
            lines.append(line)
    else:
        lines.append("No extensions mounted")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_args(sys.argv[1:] if argv is None else argv)

    settings = load_settings()
    if args.host:
        settings = replace(settings, host=args.host)
    if args.port is not None:
        settings = replace(settings, port=args.port)
    if args.auth:
        username, password = parse_auth_value(args.auth)
        settings = replace(settings, username=username, password=password)
    if args.api_token:
        settings = replace(settings, api_token=args.api_token)
    if args.api_read_token:
        settings = replace(settings, api_read_token=args.api_read_token)

    dashboard_html = None
    if args.dashboard:
        from .dashboard import load_dashboard

        dashboard_html = load_dashboard(args.dashboard)

    server = WebServer(host=settings.host, dashboard_html=dashboard_html)
    apply_settings(server, settings)
    server.start(settings.port)
    logger.info("cli.status", extra={"event": "cli_status", "status": describe_status(server)})

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
