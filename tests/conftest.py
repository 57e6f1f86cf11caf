"""Shared pytest fixtures."""

import pytest

from tokenauth.config import Config
from tokenauth.core import context
from tokenauth.core.modules.session.models import Session
from tokenauth.core.modules.session.service import SessionService
from tokenauth.core.modules.signer.service import Signer, generate_key_pair
from tokenauth.core.modules.store.memory import MemorySessionStore
from tokenauth.core.modules.token.codec import TokenCodec


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture(scope="session")
def key_pair():
    """One RSA key pair for the whole run, generation is slow."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def signer(key_pair):
    private_key, public_key = key_pair
    return Signer(public_key, private_key)


@pytest.fixture
def codec(signer):
    return TokenCodec(signer)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def make_config(key_pair):
    """Build a Config that ignores the environment and .env files."""
    private_key, public_key = key_pair

    def factory(**overrides) -> Config:
        return Config(_env_file=None, sign_private_key=private_key, sign_public_key=public_key, **overrides)

    return factory


@pytest.fixture
def make_service(make_config, codec, store, clock):
    """Build a SessionService over the shared memory store and fake clock."""

    def factory(**overrides) -> SessionService:
        return SessionService(make_config(**overrides), codec, store, clock=clock)

    return factory


@pytest.fixture
def make_session():
    def factory(**overrides) -> Session:
        values = {
            "id": "u1",
            "user_type": "user",
            "user_key": "auth_token_user_u1",
            "session_key": "s1",
            "token": "token",
            "timeout": 1000,
            "login_time": 0,
            "last_access_time": 0,
            "device_type": "web",
            "device_name": "browser",
        }
        values.update(overrides)
        return Session(**values)

    return factory


@pytest.fixture(autouse=True)
def empty_current_session():
    """Keep sessions published by one test from leaking into the next."""
    context.clear_current_session()
    yield
    context.clear_current_session()
