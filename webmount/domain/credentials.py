from __future__ import annotations

import base64
import binascii
import hmac
import threading
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "DEFAULT_USERNAME",
    "READ_METHODS",
    "SessionCredentials",
    "TokenCredentials",
    "TokenDecision",
    "SessionGate",
    "TokenGate",
    "parse_basic",
    "parse_bearer",
    "tokens_equal",
]

DEFAULT_USERNAME = "admin"
READ_METHODS = frozenset({"GET", "HEAD"})


# ------------------------
# Credentials
# ------------------------
@dataclass(frozen=True)
class SessionCredentials:
    username: str
    password: str


@dataclass(frozen=True)
class TokenCredentials:
    full_token: str | None = None
    read_token: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.full_token or self.read_token)


class TokenDecision(str, Enum):
    allowed = "allowed"
    read_only = "read_only"
    unauthorized = "unauthorized"


# ------------------------
# Header parsing
# ------------------------

def parse_basic(header: str | None) -> tuple[str, str] | None:
    """Decode `Basic <base64(user:password)>` into (user, password).

    Splits at the first colon so passwords may contain colons. Anything
    malformed yields None, same as a missing header.
    """
    if not header or not header.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user, colon, password = decoded.partition(":")
    if not colon:
        return None
    return user, password


def parse_bearer(header: str | None) -> str | None:
    if not header or not header.startswith("Bearer "):
        return None
    return header[7:]


def tokens_equal(presented: str | None, expected: str | None) -> bool:
    """Constant-time token comparison; False if either side is unset.

    Unequal lengths fail straight away, so only the length leaks.
    """
    if not presented or not expected:
        return False
    a = presented.encode("utf-8")
    b = expected.encode("utf-8")
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


# ------------------------
# Gates
# ------------------------
class SessionGate:
    """Basic auth for the general (non-API) surface."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._credentials: SessionCredentials | None = None

    def configure(self, password: str | None, username: str | None = None) -> None:
        """Enable with the given pair, or disable with password=None."""
        creds = (
            SessionCredentials(username=username or DEFAULT_USERNAME, password=password)
            if password is not None
            else None
        )
        with self._lock:
            self._credentials = creds

    @property
    def credentials(self) -> SessionCredentials | None:
        return self._credentials

    def check(self, authorization: str | None) -> bool:
        creds = self._credentials
        if creds is None:
            return True
        pair = parse_basic(authorization)
        if pair is None:
            return False
        user, password = pair
        return user == creds.username and password == creds.password


class TokenGate:
    """Bearer auth for the /api namespace with full and read-only tiers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._credentials = TokenCredentials()

    def set_full_token(self, token: str | None) -> None:
        with self._lock:
            self._credentials = TokenCredentials(
                full_token=token or None, read_token=self._credentials.read_token
            )

    def set_read_token(self, token: str | None) -> None:
        with self._lock:
            self._credentials = TokenCredentials(
                full_token=self._credentials.full_token, read_token=token or None
            )

    @property
    def credentials(self) -> TokenCredentials:
        return self._credentials

    def check(self, authorization: str | None, method: str) -> TokenDecision:
        creds = self._credentials
        if not creds.enabled:
            return TokenDecision.allowed

        bearer = parse_bearer(authorization)
        if tokens_equal(bearer, creds.full_token):
            return TokenDecision.allowed
        if tokens_equal(bearer, creds.read_token):
            if method.upper() in READ_METHODS:
                return TokenDecision.allowed
            return TokenDecision.read_only
        return TokenDecision.unauthorized
