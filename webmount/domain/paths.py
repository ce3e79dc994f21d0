from __future__ import annotations

import re

__all__ = [
    "API_PREFIX",
    "MOUNTS_PATH",
    "DASHBOARD_PATH",
    "PrefixError",
    "normalize_prefix",
    "api_prefix",
    "is_api_path",
    "is_api_root",
]

API_PREFIX = "/api"
MOUNTS_PATH = "/_api/mounts"
DASHBOARD_PATH = "/"

_TRAILING_SLASHES_RE = re.compile(r"/+$")


class PrefixError(ValueError):
    """Raised when a mount prefix cannot name a path segment."""

    code: str = "invalid_prefix"


def normalize_prefix(prefix: str) -> str:
    """Normalize a user-supplied mount prefix.

    Rules:
    - Strip trailing "/" characters.
    - Ensure a single leading "/".

    Raises:
        PrefixError: if the prefix is not a string or normalizes to the root.
    """
    if not isinstance(prefix, str):
        raise PrefixError("prefix must be a string")

    p = _TRAILING_SLASHES_RE.sub("", prefix.strip())
    if not p.startswith("/"):
        p = "/" + p
    if p == "/":
        raise PrefixError("prefix must name a path segment, not the root")
    return p


def api_prefix(prefix: str) -> str:
    """Place a prefix under the API namespace: "/chat" -> "/api/chat".

    An empty or root prefix maps to the namespace itself.
    """
    p = _TRAILING_SLASHES_RE.sub("", prefix.strip())
    if p and not p.startswith("/"):
        p = "/" + p
    return API_PREFIX + p


def is_api_path(path: str) -> bool:
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


def is_api_root(path: str) -> bool:
    return path in (API_PREFIX, API_PREFIX + "/")
