"""Tests for the MongoDB session store against an in-memory collection double."""

from typing import Any

import pytest
from pymongo.errors import ConnectionFailure

from tokenauth.core.modules.store.mongo import MongoSessionStore
from tokenauth.errors import StoreError


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for field, condition in query.items():
        if isinstance(condition, dict):
            if doc.get(field) not in condition["$in"]:
                return False
        elif doc.get(field) != condition:
            return False
    return True


class FakeCollection:
    """Implements the subset of AsyncCollection the store uses."""

    name = "sessions"

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.indexes: list[Any] = []

    async def create_index(self, keys: Any) -> str:
        self.indexes.append(keys)
        return "index"

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        return next((dict(d) for d in self.docs.values() if _matches(d, query)), None)

    async def replace_one(self, query: dict[str, Any], doc: dict[str, Any], upsert: bool = False) -> None:
        self.docs[doc["_id"]] = dict(doc)

    async def delete_one(self, query: dict[str, Any]) -> None:
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]
                return

    async def delete_many(self, query: dict[str, Any]) -> None:
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]

    def find(self, query: dict[str, Any]):
        async def cursor():
            for doc in list(self.docs.values()):
                if _matches(doc, query):
                    yield dict(doc)

        return cursor()

    async def distinct(self, field: str) -> list[Any]:
        return sorted({doc[field] for doc in self.docs.values()})


class FailingCollection(FakeCollection):
    """Collection whose every operation fails like an unreachable server."""

    def __getattribute__(self, name: str) -> Any:
        if name in {"find_one", "replace_one", "delete_one", "delete_many", "distinct", "create_index"}:

            async def fail(*args: Any, **kwargs: Any) -> Any:
                raise ConnectionFailure("server unavailable")

            return fail
        return super().__getattribute__(name)


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def mongo_store(collection):
    return MongoSessionStore(collection)  # type: ignore[arg-type]


class TestMongoSessionStore:
    """Tests for the session store contract on the MongoDB backend."""

    @pytest.mark.asyncio
    async def test_on_start_creates_user_index(self, mongo_store, collection):
        """Test that startup indexes sessions by user key."""
        await mongo_store.on_start()
        assert collection.indexes == [[("user_key", 1)]]

    @pytest.mark.asyncio
    async def test_put_stores_document_by_session_key(self, mongo_store, collection, make_session):
        """Test the stored document layout."""
        await mongo_store.put("auth_token_user_u1", "s1", make_session())

        doc = collection.docs["s1"]
        assert doc["_id"] == "s1"
        assert doc["user_key"] == "auth_token_user_u1"
        assert doc["device_type"] == "web"

    @pytest.mark.asyncio
    async def test_get_round_trips_session(self, mongo_store, make_session):
        """Test that a stored session reads back equal."""
        session = make_session()
        await mongo_store.put("auth_token_user_u1", "s1", session)

        assert await mongo_store.get("auth_token_user_u1", "s1") == session
        assert await mongo_store.get("auth_token_user_u2", "s1") is None

    @pytest.mark.asyncio
    async def test_user_enumeration(self, mongo_store, make_session):
        """Test listing sessions per user and distinct user keys."""
        await mongo_store.put("auth_token_user_u1", "s1", make_session())
        await mongo_store.put("auth_token_user_u1", "s2", make_session(session_key="s2"))
        await mongo_store.put("auth_token_user_u2", "s3", make_session(user_key="auth_token_user_u2", session_key="s3"))

        sessions = await mongo_store.get_user_sessions("auth_token_user_u1")
        assert sorted(s.session_key for s in sessions) == ["s1", "s2"]
        assert await mongo_store.get_all_user_keys() == ["auth_token_user_u1", "auth_token_user_u2"]

    @pytest.mark.asyncio
    async def test_removals(self, mongo_store, make_session):
        """Test single, subset and per-user removal."""
        for key in ("s1", "s2", "s3"):
            await mongo_store.put("auth_token_user_u1", key, make_session(session_key=key))
        await mongo_store.put("auth_token_user_u2", "s4", make_session(user_key="auth_token_user_u2", session_key="s4"))

        await mongo_store.remove_session("auth_token_user_u1", "s1")
        await mongo_store.remove_sessions("auth_token_user_u1", ["s2", "s4"])
        assert [s.session_key for s in await mongo_store.get_user_sessions("auth_token_user_u1")] == ["s3"]
        assert await mongo_store.get("auth_token_user_u2", "s4") is not None

        await mongo_store.remove_user("auth_token_user_u1")
        assert await mongo_store.get_all_user_keys() == ["auth_token_user_u2"]

        await mongo_store.clear_all()
        assert await mongo_store.get_all_user_keys() == []

    @pytest.mark.asyncio
    async def test_backend_errors_become_store_errors(self, make_session):
        """Test that driver failures surface as StoreError."""
        store = MongoSessionStore(FailingCollection())  # type: ignore[arg-type]

        with pytest.raises(StoreError):
            await store.get("auth_token_user_u1", "s1")
        with pytest.raises(StoreError):
            await store.put("auth_token_user_u1", "s1", make_session())
        with pytest.raises(StoreError):
            await store.remove_user("auth_token_user_u1")
        with pytest.raises(StoreError):
            await store.get_all_user_keys()
        with pytest.raises(StoreError):
            await store.on_start()
