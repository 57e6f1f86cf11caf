from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager

from tokenauth.config import Config
from tokenauth.core import context
from tokenauth.core.core import Core
from tokenauth.core.modules.session.models import LoginParams, RequestTokens, Session
from tokenauth.core.modules.store.base import SessionStore


class App:
    """Facade for embedding the token core in a request pipeline."""

    def __init__(self, config: Config, store: SessionStore | None = None) -> None:
        self._core = Core(config, store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    @contextmanager
    def request_scope(self) -> Iterator[None]:
        """Wrap the handling of one request; the current session is cleared on exit."""
        with context.request_scope():
            yield

    async def authenticate_request(self, tokens: RequestTokens) -> Session | None:
        """Verify the first usable token of a request and make its session current."""
        return await self._core.sessions.authenticate_request(tokens)

    async def verify(self, token: str) -> bool:
        return await self._core.sessions.verify(token)

    async def login(self, id: str, params: LoginParams | None = None) -> Session:
        return await self._core.sessions.login(id, params)

    async def logout(self) -> None:
        """Log out the current session (requires authentication)."""
        await self._core.sessions.logout()

    def get_current_session(self) -> Session | None:
        return context.get_current_session()

    def require_current_session(self) -> Session:
        """Get the current session, raise AuthenticationError when not logged in."""
        return context.require_current_session()

    async def get_current_user_sessions(self) -> list[Session]:
        """Get every live session of the current user (requires authentication)."""
        return await self._core.sessions.get_current_user_sessions()

    async def get_user_sessions(self, user_key: str) -> list[Session]:
        return await self._core.sessions.get_user_sessions(user_key)

    async def get_all_user_keys(self) -> list[str]:
        """Get keys of all users with a live session."""
        return await self._core.sessions.get_all_user_keys()

    async def kick_out_user(self, user_key: str) -> None:
        await self._core.sessions.kick_out_user(user_key)

    async def kick_out_session(self, user_key: str, session_key: str) -> None:
        await self._core.sessions.kick_out_session(user_key, session_key)

    async def clear_all_users(self) -> None:
        await self._core.sessions.clear_all_users()

    async def sweep_expired(self) -> int:
        """Remove expired sessions of every user; returns how many were removed."""
        return await self._core.sessions.sweep_all()

    def build_user_key(self, user_type: str, id: str) -> str:
        return self._core.sessions.build_user_key(user_type, id)
