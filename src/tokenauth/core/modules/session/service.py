"""Session lifecycle: login, verification, eviction and expiry sweeps.

Store calls are individually atomic but the sequences here (read then
remove, enumerate then remove a subset) take no lock. Two racing logins
under the single-login policy may both survive, and a verification racing
a sweep may refresh a session the sweep has just removed. Last write or
delete wins; the store never ends up with a session it cannot address.
"""

from collections.abc import Callable
from uuid import uuid4

import structlog

from tokenauth.config import Config
from tokenauth.core import context
from tokenauth.core.modules.session.models import LoginParams, RequestTokens, Session
from tokenauth.core.modules.store.base import SessionStore
from tokenauth.core.modules.token.codec import TokenCodec
from tokenauth.errors import StoreError, ValidationError
from tokenauth.utils import now_millis

logger = structlog.get_logger(__name__)


class SessionService:
    """Issues, verifies and evicts sessions."""

    def __init__(
        self,
        config: Config,
        codec: TokenCodec,
        store: SessionStore,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._config = config
        self._codec = codec
        self._store = store
        self._clock = clock

    def build_user_key(self, user_type: str, id: str) -> str:
        return f"{self._config.key_prefix}_{user_type}_{id}"

    async def login(self, id: str, params: LoginParams | None = None) -> Session:
        """Create a session, apply the device policies and publish it for the current request."""
        if not id:
            raise ValidationError("User id must not be empty")
        params = params or LoginParams()
        now = self._clock()
        user_type = params.user_type or self._config.user_type
        user_key = self.build_user_key(user_type, id)
        session_key = uuid4().hex
        session = Session(
            id=id,
            user_type=user_type,
            user_key=user_key,
            session_key=session_key,
            token=self._codec.encode(user_key, session_key),
            timeout=params.timeout or self._config.timeout,
            login_time=params.login_time if params.login_time is not None else now,
            last_access_time=now,
            device_type=params.device_type or self._config.device_type,
            device_name=params.device_name or self._config.device_name,
        )

        if not self._config.concurrent_login:
            await self._store.remove_user(user_key)
        elif self._config.device_reject:
            same_device = {
                s.session_key
                for s in await self._store.get_user_sessions(user_key)
                if s.device_type == session.device_type
            }
            if same_device:
                await self._store.remove_sessions(user_key, same_device)
                logger.debug("device_sessions_replaced", user_key=user_key, count=len(same_device))

        await self._store.put(user_key, session_key, session)
        context.set_current_session(session)
        try:
            await self.sweep_user(user_key)
        except StoreError:
            logger.warning("login_sweep_failed", user_key=user_key, exc_info=True)
        logger.info("session_created", user_key=user_key, session_key=session_key, device_type=session.device_type)
        return session

    async def authenticate(self, token: str) -> Session | None:
        """Resolve a token to its live session and publish it for the current request.

        Returns None for any failure: bad token, unknown or expired session,
        store error. Expired sessions are removed on the way.
        """
        try:
            return await self._authenticate(token)
        except Exception:
            logger.warning("token_verification_failed", exc_info=True)
            return None

    async def verify(self, token: str) -> bool:
        return await self.authenticate(token) is not None

    async def _authenticate(self, token: str) -> Session | None:
        claims = self._codec.decode(token)
        if claims is None:
            return None
        session = await self._store.get(claims.user_key, claims.session_key)
        if session is None or session.user_key != claims.user_key or session.session_key != claims.session_key:
            return None

        now = self._clock()
        if session.is_expired(now):
            await self._store.remove_session(session.user_key, session.session_key)
            logger.debug("session_expired", user_key=session.user_key, session_key=session.session_key)
            return None

        if self._config.refresh_on_access:
            session = session.touch(now)
            await self._store.put(session.user_key, session.session_key, session)

        context.set_current_session(session)
        return session

    async def authenticate_request(self, tokens: RequestTokens) -> Session | None:
        """Try the request's token candidates in the configured source order.

        The first candidate that verifies wins. No match leaves the request
        unauthenticated; rejecting it is up to the caller.
        """
        for source in self._config.token_sources:
            token = tokens.get(source)
            if token is None:
                continue
            session = await self.authenticate(token)
            if session is not None:
                return session
        return None

    async def logout(self) -> None:
        """Remove the session of the current request."""
        session = context.require_current_session()
        await self.kick_out_session(session.user_key, session.session_key)
        context.clear_current_session()

    async def kick_out_user(self, user_key: str) -> None:
        await self._store.remove_user(user_key)
        logger.info("user_kicked_out", user_key=user_key)

    async def kick_out_session(self, user_key: str, session_key: str) -> None:
        await self._store.remove_session(user_key, session_key)
        logger.info("session_removed", user_key=user_key, session_key=session_key)

    async def clear_all_users(self) -> None:
        await self._store.clear_all()
        logger.info("all_sessions_cleared")

    async def sweep_user(self, user_key: str) -> int:
        """Remove expired sessions of one user, and the user entry once nothing is left.

        A failed removal is logged and skipped; it keeps the user entry alive.
        Returns the number of sessions removed.
        """
        sessions = await self._store.get_user_sessions(user_key)
        now = self._clock()
        removed = 0
        for session in sessions:
            if not session.is_expired(now):
                continue
            try:
                await self._store.remove_session(user_key, session.session_key)
            except StoreError:
                logger.warning("expired_session_removal_failed", user_key=user_key, session_key=session.session_key, exc_info=True)
                continue
            removed += 1
        if removed == len(sessions):
            try:
                await self._store.remove_user(user_key)
            except StoreError:
                logger.warning("empty_user_removal_failed", user_key=user_key, exc_info=True)
        if removed:
            logger.debug("expired_sessions_swept", user_key=user_key, count=removed)
        return removed

    async def sweep_all(self) -> int:
        removed = 0
        for user_key in await self._store.get_all_user_keys():
            removed += await self.sweep_user(user_key)
        return removed

    async def get_all_user_keys(self) -> list[str]:
        """List users with at least one live session."""
        await self.sweep_all()
        return await self._store.get_all_user_keys()

    async def get_user_sessions(self, user_key: str) -> list[Session]:
        """List the live sessions of one user across all devices."""
        await self.sweep_user(user_key)
        return await self._store.get_user_sessions(user_key)

    async def get_current_user_sessions(self) -> list[Session]:
        session = context.require_current_session()
        return await self.get_user_sessions(session.user_key)
