"""Session records and login parameters."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TokenSource(StrEnum):
    """Places in an inbound request where a token may be carried."""

    HEADER = "header"
    PARAM = "param"  # Query parameter
    SESSION = "session"  # Server-side session attribute
    COOKIE = "cookie"


class Session(BaseModel):
    """One authenticated login instance.

    Frozen: refreshing the last access time produces a new record, so a
    session handed to one request is never mutated underneath another.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Business identifier of the authenticated subject")
    user_type: str = Field(..., description="Subject category, part of the user key")
    user_key: str = Field(..., description="Groups every session of one subject")
    session_key: str = Field(..., description="Unique identifier of this login")
    token: str = Field(..., description="Signed token handed to the client")
    timeout: int = Field(..., gt=0, description="Max idle duration in milliseconds")
    login_time: int = Field(..., description="Login time, epoch milliseconds")
    last_access_time: int = Field(..., description="Last successful verification, epoch milliseconds")
    device_type: str
    device_name: str

    def is_expired(self, now: int) -> bool:
        return now - self.last_access_time >= self.timeout

    def touch(self, now: int) -> "Session":
        """Return a copy accessed at `now`; the access time never moves backwards."""
        return self.model_copy(update={"last_access_time": max(self.last_access_time, now)})


class LoginParams(BaseModel):
    """Per-login overrides; unset values fall back to configuration defaults."""

    timeout: int | None = Field(None, gt=0, description="Idle timeout in milliseconds")
    user_type: str | None = None
    device_type: str | None = None
    device_name: str | None = None
    login_time: int | None = Field(None, description="Login time override, epoch milliseconds")


class RequestTokens(BaseModel):
    """Token candidates extracted from one inbound request by a transport adapter."""

    header: str | None = None
    param: str | None = None
    session: str | None = None
    cookie: str | None = None

    def get(self, source: TokenSource) -> str | None:
        value: str | None = getattr(self, source.value)
        if value is None or not value.strip():
            return None
        return value
