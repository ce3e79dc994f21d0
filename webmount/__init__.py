"""Shared HTTP server that extensions mount prefixed handlers on.

Public surface: `WebServer` plus the handler protocol. Everything else is
reachable through the submodules.
"""
from importlib.metadata import PackageNotFoundError, version

from .domain.registry import MountHandler, MountInfo
from .server import DEFAULT_PORT, WebServer

try:
    __version__ = version("webmount")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["DEFAULT_PORT", "MountHandler", "MountInfo", "WebServer", "__version__"]
