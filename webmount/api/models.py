from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..domain.registry import MountInfo


class ErrorBody(BaseModel):
    """Every error response: a single `error` string."""
    error: str


class ApiIndexResponse(BaseModel):
    """Body of GET /api: mounts under the namespace and which tokens are set."""
    model_config = ConfigDict(populate_by_name=True)

    mounts: list[MountInfo]
    token_auth: bool = Field(alias="tokenAuth")
    read_token_auth: bool = Field(alias="readTokenAuth")


class AuthStatus(BaseModel):
    """Session auth state; never carries the password."""
    enabled: bool
    username: str | None = None


class TokenStatus(BaseModel):
    """Token auth state; never carries the tokens."""
    enabled: bool
    read_enabled: bool
