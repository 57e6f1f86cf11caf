from abc import ABC


class UserError(ABC, Exception):
    """Base class for caller-facing errors.

    All errors that inherit from UserError carry messages that are safe
    to report to the caller. These errors should not contain any
    sensitive information such as tokens or key material.
    """


class AuthenticationError(UserError):
    """Raised when an operation requires an authenticated session and there is none."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when caller input fails validation."""


class StoreError(Exception):
    """Raised when the session store backend fails."""


class ConfigError(Exception):
    """Raised at initialization when configuration or key material is malformed."""
