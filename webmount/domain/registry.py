from __future__ import annotations

import threading
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field
from starlette.requests import Request

from ..logging_conf import get_logger
from .paths import API_PREFIX, PrefixError, normalize_prefix

__all__ = [
    "MountError",
    "MountHandler",
    "MountInfo",
    "MountRegistration",
    "MountRegistry",
]

logger = get_logger("webmount.registry")


class MountHandler(Protocol):
    """What an extension hands the server.

    Receives the request and the path left over after the mount prefix is
    stripped (always starting with "/"). Returns a Response, a JSON-able
    value, or None; may be a coroutine function.
    """

    def __call__(self, request: Request, sub_path: str) -> Any | Awaitable[Any]: ...


class MountError(ValueError):
    """Raised when a registration is rejected."""

    code: str = "invalid_mount"


class MountInfo(BaseModel):
    """Public view of a mount; never carries the handler."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    label: str
    description: Optional[str] = None
    prefix: str
    skip_auth: bool = Field(default=False, alias="skipAuth")


@dataclass(frozen=True)
class MountRegistration:
    name: str
    prefix: str
    handler: MountHandler
    label: str
    description: str | None = None
    skip_auth: bool = False

    @property
    def info(self) -> MountInfo:
        return MountInfo(
            name=self.name,
            label=self.label,
            description=self.description,
            prefix=self.prefix,
            skip_auth=self.skip_auth,
        )


class MountRegistry:
    """Name -> registration table shared by every in-flight request.

    Writers serialize on a lock and publish a fresh dict; readers grab the
    current dict reference and never see a half-applied change. Iteration
    order is insertion order, and replacing a name keeps its original slot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._mounts: Mapping[str, MountRegistration] = {}

    def register(
        self,
        name: str,
        prefix: str,
        handler: MountHandler,
        *,
        label: str | None = None,
        description: str | None = None,
        skip_auth: bool = False,
    ) -> MountRegistration:
        if not isinstance(name, str) or not name:
            raise MountError("mount name must be a non-empty string")
        if not callable(handler):
            raise MountError(f"handler for mount {name!r} is not callable")
        try:
            normalized = normalize_prefix(prefix)
        except PrefixError as e:
            raise MountError(f"mount {name!r}: {e}") from e

        reg = MountRegistration(
            name=name,
            prefix=normalized,
            handler=handler,
            label=label or name,
            description=description,
            skip_auth=bool(skip_auth),
        )
        with self._lock:
            replaced = name in self._mounts
            updated = dict(self._mounts)
            updated[name] = reg
            self._mounts = updated

        logger.info(
            "mount.register",
            extra={
                "event": "mount_register",
                "mount": name,
                "prefix": normalized,
                "skip_auth": reg.skip_auth,
                "replaced": replaced,
            },
        )
        return reg

    def unregister(self, name: str) -> bool:
        with self._lock:
            if name not in self._mounts:
                return False
            updated = dict(self._mounts)
            del updated[name]
            self._mounts = updated

        logger.info("mount.unregister", extra={"event": "mount_unregister", "mount": name})
        return True

    def snapshot(self) -> tuple[MountRegistration, ...]:
        """Registrations as of now, in insertion order."""
        return tuple(self._mounts.values())

    def list(self) -> list[MountInfo]:
        return [reg.info for reg in self.snapshot()]

    def list_api(self) -> list[MountInfo]:
        return [info for info in self.list() if info.prefix.startswith(API_PREFIX)]

    def __len__(self) -> int:
        return len(self._mounts)

    def __contains__(self, name: object) -> bool:
        return name in self._mounts
