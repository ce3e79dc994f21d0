from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from .registry import MountRegistration

__all__ = ["Match", "match", "sub_path"]


class Match(NamedTuple):
    registration: MountRegistration
    sub_path: str


def _covers(prefix: str, path: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def sub_path(prefix: str, path: str) -> str:
    """Strip the mount prefix; an exact hit maps to "/"."""
    return path[len(prefix):] or "/"


def match(registrations: Iterable[MountRegistration], path: str) -> Match | None:
    """Pick the registration with the longest prefix covering `path`.

    Equal-length prefixes resolve to whichever registration comes first in
    `registrations` (for the registry that is the earliest registered).
    """
    best: MountRegistration | None = None
    for reg in registrations:
        if not _covers(reg.prefix, path):
            continue
        if best is None or len(reg.prefix) > len(best.prefix):
            best = reg
    if best is None:
        return None
    return Match(best, sub_path(best.prefix, path))
