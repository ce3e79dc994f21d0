"""Environment bootstrap.

Read once at process start and fed into the server's configuration
interface. Nothing here is consulted per request.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from .logging_conf import get_logger
from .server import DEFAULT_HOST, DEFAULT_PORT, WebServer

__all__ = [
    "ConfigError",
    "Settings",
    "parse_auth_value",
    "parse_port",
    "load_settings",
    "apply_settings",
    "apply_env",
]

logger = get_logger("webmount.config")

AUTH_ENV = "WEBMOUNT_AUTH"
TOKEN_ENV = "API_TOKEN"
READ_TOKEN_ENV = "API_READ_TOKEN"
HOST_ENV = "WEBMOUNT_HOST"
PORT_ENV = "WEBMOUNT_PORT"


class ConfigError(ValueError):
    code: str = "invalid_config"


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    username: str | None = None
    password: str | None = None
    api_token: str | None = None
    api_read_token: str | None = None


def parse_auth_value(raw: str) -> tuple[str | None, str]:
    """Split `password` or `user:password` into (username, password).

    Only the first colon separates, so `user:pa:ss` keeps `pa:ss` intact.
    """
    user, colon, password = raw.partition(":")
    if colon:
        return user or None, password
    return None, raw


def parse_port(raw: str) -> int:
    try:
        port = int(raw, 10)
    except ValueError as e:
        raise ConfigError(f"{PORT_ENV} must be an integer, got {raw!r}") from e
    if not (1 <= port <= 65535):
        raise ConfigError(f"{PORT_ENV} must be in [1, 65535], got {port}")
    return port


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Build Settings from the environment (or a given mapping)."""
    env = dict(os.environ) if env is None else env

    username: str | None = None
    password: str | None = None
    if raw_auth := env.get(AUTH_ENV):
        username, password = parse_auth_value(raw_auth)

    raw_port = env.get(PORT_ENV)
    return Settings(
        host=env.get(HOST_ENV) or DEFAULT_HOST,
        port=parse_port(raw_port) if raw_port else DEFAULT_PORT,
        username=username,
        password=password,
        api_token=env.get(TOKEN_ENV) or None,
        api_read_token=env.get(READ_TOKEN_ENV) or None,
    )


def apply_settings(server: WebServer, settings: Settings) -> None:
    """Push credential settings into the server; unset values leave it untouched."""
    if settings.password is not None:
        server.set_auth(settings.password, settings.username)
    if settings.api_token:
        server.set_api_token(settings.api_token)
    if settings.api_read_token:
        server.set_api_read_token(settings.api_read_token)
    logger.info(
        "config.applied",
        extra={
            "event": "config_applied",
            "session_auth": settings.password is not None,
            "token_auth": bool(settings.api_token),
            "read_token_auth": bool(settings.api_read_token),
        },
    )


def apply_env(server: WebServer, env: dict[str, str] | None = None) -> Settings:
    settings = load_settings(env)
    apply_settings(server, settings)
    return settings
