"""The embeddable server: registry + gates + app + one listening socket.

Extensions talk to a `WebServer` instance:

    server = WebServer()
    server.mount("notes", "/notes", notes_handler, label="Notes")
    server.mount_api("chat", "/chat", chat_handler)
    server.set_auth("secret")
    server.set_api_token("F")
    url = server.start(4100)

The listener runs uvicorn on a daemon thread with its own event loop, so
`start()` and `stop()` are plain blocking calls usable from any host.
"""
from __future__ import annotations

import asyncio
import socket
import threading
import time

import uvicorn

from .api.dispatch import Dispatcher
from .api.models import AuthStatus, TokenStatus
from .dashboard import DEFAULT_DASHBOARD
from .domain.paths import api_prefix
from .domain.credentials import SessionGate, TokenGate
from .domain.registry import MountHandler, MountInfo, MountRegistry
from .logging_conf import get_logger
from .main import create_app

__all__ = ["DEFAULT_HOST", "DEFAULT_PORT", "ServerStartError", "WebServer"]

logger = get_logger("webmount.server")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4100
_STARTUP_TIMEOUT_S = 5.0
_SHUTDOWN_TIMEOUT_S = 5.0


class ServerStartError(RuntimeError):
    """Raised when the listener thread does not come up."""


class _ThreadedServer(uvicorn.Server):
    """uvicorn server that remembers its loop so another thread can abort it."""

    loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets: list[socket.socket] | None = None) -> None:
        self.loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def abort_connections(self) -> None:
        """Drop every open connection without waiting for responses."""
        for connection in list(self.server_state.connections):
            transport = getattr(connection, "transport", None)
            if transport is not None:
                transport.abort()


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


class WebServer:
    def __init__(self, *, host: str = DEFAULT_HOST, dashboard_html: str | None = None) -> None:
        self.host = host
        self.registry = MountRegistry()
        self.session_gate = SessionGate()
        self.token_gate = TokenGate()
        self.dispatcher = Dispatcher(
            registry=self.registry,
            session_gate=self.session_gate,
            token_gate=self.token_gate,
            dashboard_html=dashboard_html if dashboard_html is not None else DEFAULT_DASHBOARD,
        )
        self.app = create_app(self.dispatcher)

        self._lifecycle = threading.Lock()
        self._server: _ThreadedServer | None = None
        self._thread: threading.Thread | None = None
        self._socket: socket.socket | None = None
        self._port: int | None = None

    # ------------------------
    # Mounts
    # ------------------------

    def mount(
        self,
        name: str,
        prefix: str,
        handler: MountHandler,
        *,
        label: str | None = None,
        description: str | None = None,
        skip_auth: bool = False,
    ) -> MountInfo:
        """Route `prefix` and everything below it to `handler`.

        Re-using a name replaces that mount. The handler sees paths with the
        prefix stripped.
        """
        reg = self.registry.register(
            name, prefix, handler, label=label, description=description, skip_auth=skip_auth
        )
        return reg.info

    def unmount(self, name: str) -> bool:
        return self.registry.unregister(name)

    def mount_api(
        self,
        name: str,
        prefix: str,
        handler: MountHandler,
        *,
        label: str | None = None,
        description: str | None = None,
        skip_auth: bool = False,
    ) -> MountInfo:
        """Like `mount`, but relative to /api: "/chat" lands on "/api/chat"."""
        return self.mount(
            name,
            api_prefix(prefix),
            handler,
            label=label,
            description=description,
            skip_auth=skip_auth,
        )

    def unmount_api(self, name: str) -> bool:
        return self.registry.unregister(name)

    def get_mounts(self) -> list[MountInfo]:
        return self.registry.list()

    def get_api_mounts(self) -> list[MountInfo]:
        return self.registry.list_api()

    # ------------------------
    # Auth configuration
    # ------------------------

    def set_auth(self, password: str | None, username: str | None = None) -> None:
        """Enable Basic auth on the general surface; None disables it."""
        self.session_gate.configure(password, username)
        logger.info(
            "auth.session_configured",
            extra={"event": "auth_session_configured", "enabled": password is not None},
        )

    def get_auth(self) -> AuthStatus:
        creds = self.session_gate.credentials
        if creds is None:
            return AuthStatus(enabled=False)
        return AuthStatus(enabled=True, username=creds.username)

    def set_api_token(self, token: str | None) -> None:
        self.token_gate.set_full_token(token)
        logger.info(
            "auth.token_configured",
            extra={"event": "auth_token_configured", "tier": "full", "enabled": bool(token)},
        )

    def set_api_read_token(self, token: str | None) -> None:
        self.token_gate.set_read_token(token)
        logger.info(
            "auth.token_configured",
            extra={"event": "auth_token_configured", "tier": "read", "enabled": bool(token)},
        )

    def get_api_token_status(self) -> TokenStatus:
        creds = self.token_gate.credentials
        return TokenStatus(
            enabled=creds.full_token is not None,
            read_enabled=creds.read_token is not None,
        )

    # ------------------------
    # Lifecycle
    # ------------------------

    def is_running(self) -> bool:
        return self._server is not None

    def get_port(self) -> int | None:
        return self._port

    def get_url(self) -> str | None:
        return f"http://localhost:{self._port}" if self._port is not None else None

    def start(self, port: int = DEFAULT_PORT) -> str:
        """Listen on `port` and return the URL. A running server is stopped first.

        Port 0 picks a free port; `get_port()` reports the real one.
        """
        if not (0 <= port <= 65535):
            raise ValueError(f"port must be in [0, 65535], got {port}")

        with self._lifecycle:
            if self._server is not None:
                self._stop_locked()

            sock = _bind(self.host, port)
            config = uvicorn.Config(
                self.app,
                log_config=None,
                access_log=False,
                lifespan="off",
            )
            server = _ThreadedServer(config)
            thread = threading.Thread(
                target=server.run,
                kwargs={"sockets": [sock]},
                name=f"webmount-{sock.getsockname()[1]}",
                daemon=True,
            )
            thread.start()

            deadline = time.monotonic() + _STARTUP_TIMEOUT_S
            while not server.started:
                if not thread.is_alive() or time.monotonic() > deadline:
                    server.should_exit = True
                    thread.join(_SHUTDOWN_TIMEOUT_S)
                    sock.close()
                    raise ServerStartError(f"listener on port {port} did not start")
                time.sleep(0.01)

            self._server = server
            self._thread = thread
            self._socket = sock
            self._port = sock.getsockname()[1]

        url = self.get_url()
        logger.info("server.start", extra={"event": "server_start", "port": self._port, "url": url})
        return url  # type: ignore[return-value]

    def stop(self) -> bool:
        """Hard-close every connection and the listener. Returns whether it was running."""
        with self._lifecycle:
            return self._stop_locked()

    def _stop_locked(self) -> bool:
        server = self._server
        if server is None:
            return False

        port = self._port
        server.should_exit = True
        server.force_exit = True
        if server.loop is not None and not server.loop.is_closed():
            try:
                server.loop.call_soon_threadsafe(server.abort_connections)
            except RuntimeError:  # loop closed between the check and the call
                pass

        if self._thread is not None:
            self._thread.join(_SHUTDOWN_TIMEOUT_S)
            if self._thread.is_alive():
                logger.warning(
                    "server.stop_timeout",
                    extra={"event": "server_stop_timeout", "port": port},
                )
        if self._socket is not None:
            self._socket.close()

        self._server = None
        self._thread = None
        self._socket = None
        self._port = None
        logger.info("server.stop", extra={"event": "server_stop", "port": port})
        return True
