from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from tokenauth.core.modules.session.models import TokenSource

THIRTY_DAYS_MILLIS = 30 * 24 * 60 * 60 * 1000


class Config(BaseSettings):
    """Configuration loaded from environment variables."""

    sign_public_key: str  # Base64 DER SubjectPublicKeyInfo
    sign_private_key: str | None = None  # Base64 DER PKCS#8, omit for verify-only instances
    key_prefix: str = "auth_token"  # Namespace for user keys in the store
    timeout: int = Field(THIRTY_DAYS_MILLIS, gt=0)  # Default idle timeout in milliseconds
    user_type: str = "user"
    device_type: str = "default"
    device_name: str = "default"
    concurrent_login: bool = True  # False: a new login evicts every other session of the user
    device_reject: bool = False  # True: a new login evicts sessions with the same device type
    refresh_on_access: bool = True  # Successful verification extends the idle timeout
    nonce_min_length: int = Field(10, ge=1)
    nonce_max_length: int = Field(20, ge=1)
    token_name: str = "auth_token"  # Header, parameter, session attribute and cookie name
    token_sources: list[TokenSource] = Field(
        default_factory=lambda: [TokenSource.HEADER, TokenSource.PARAM, TokenSource.SESSION, TokenSource.COOKIE],
        min_length=1,
    )
    database_url: str | None = None  # MongoDB URL, in-memory store when unset
    debug: bool = False

    model_config = {
        "env_file": [".env"],
        "env_prefix": "TOKENAUTH_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_nonce_range(self) -> Self:
        if self.nonce_min_length > self.nonce_max_length:
            raise ValueError("nonce_min_length must not exceed nonce_max_length")
        return self
