from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Check:
    """Outcome of one probe request."""

    name: str
    expected: int
    actual: int | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.actual == self.expected


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., server never answers)."""
