from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from tokenauth.config import Config
from tokenauth.core.modules.session.service import SessionService
from tokenauth.core.modules.signer.service import Signer
from tokenauth.core.modules.store.base import SessionStore
from tokenauth.core.modules.store.memory import MemorySessionStore
from tokenauth.core.modules.store.mongo import MongoSessionStore
from tokenauth.core.modules.token.codec import TokenCodec

logger = structlog.get_logger(__name__)


def create_store(config: Config) -> SessionStore:
    """Pick the store backend from configuration."""
    if config.database_url:
        return MongoSessionStore.from_url(config.database_url)
    return MemorySessionStore()


class Core:
    """Container wiring config, signer, token codec, store and the session service."""

    config: Config
    signer: Signer
    codec: TokenCodec
    store: SessionStore
    sessions: SessionService

    def __init__(self, config: Config, store: SessionStore | None = None) -> None:
        """Build every component up front; malformed key material fails here."""
        self.config = config
        self.signer = Signer(config.sign_public_key, config.sign_private_key)
        self.codec = TokenCodec(self.signer, config.nonce_min_length, config.nonce_max_length)
        self.store = store if store is not None else create_store(config)
        self.sessions = SessionService(config, self.codec, self.store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.store.on_start()
        logger.debug("core_started", store=type(self.store).__name__, can_sign=self.signer.can_sign)

    async def on_stop(self) -> None:
        await self.store.on_stop()
