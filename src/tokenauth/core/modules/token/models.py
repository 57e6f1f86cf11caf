from pydantic import BaseModel, ConfigDict


class TokenClaims(BaseModel):
    """The signed (user key, session key) pair carried by a valid token."""

    model_config = ConfigDict(frozen=True)

    user_key: str
    session_key: str
