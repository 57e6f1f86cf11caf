"""Current-session propagation for one logical request.

The slot is a ContextVar, so every asyncio task works on a copy of the
context it was created from and concurrent requests never see each other's
session. Work handed to a thread pool gets the same copy-at-hand-off
behaviour through bind_context.
"""

import contextvars
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from tokenauth.core.modules.session.models import Session
from tokenauth.errors import AuthenticationError

P = ParamSpec("P")
R = TypeVar("R")

_current_session: contextvars.ContextVar[Session | None] = contextvars.ContextVar("current_session", default=None)


def get_current_session() -> Session | None:
    return _current_session.get()


def require_current_session() -> Session:
    """Get the session of the current request, raise AuthenticationError if there is none."""
    session = _current_session.get()
    if session is None:
        raise AuthenticationError
    return session


def set_current_session(session: Session) -> None:
    _current_session.set(session)


def clear_current_session() -> None:
    """Empty the slot. Safe to call any number of times."""
    _current_session.set(None)


@contextmanager
def request_scope() -> Iterator[None]:
    """Run one request with an empty session slot.

    The slot is restored on exit whatever happens inside, including
    exceptions and task cancellation, so a reused thread or context never
    carries an identity into the next request.
    """
    token = _current_session.set(None)
    try:
        yield
    finally:
        _current_session.reset(token)


def bind_context(func: Callable[P, R]) -> Callable[P, R]:
    """Snapshot the caller's context so `func` runs in a copy of it wherever it is executed."""
    ctx = contextvars.copy_context()

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return ctx.copy().run(func, *args, **kwargs)

    return wrapper
