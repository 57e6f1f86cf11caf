from collections.abc import Iterable
from typing import Any
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from tokenauth.core.modules.session.models import Session
from tokenauth.core.modules.store.base import SessionStore
from tokenauth.errors import StoreError

logger = structlog.get_logger(__name__)


class MongoSessionStore(SessionStore):
    """MongoDB store, one document per session keyed by session key.

    User entries are the distinct user keys of stored sessions, so a user
    disappears as soon as its last session is removed.
    """

    def __init__(self, collection: AsyncCollection[dict[str, Any]], client: AsyncMongoClient[dict[str, Any]] | None = None) -> None:
        self._collection = collection
        self._client = client

    @classmethod
    def from_url(cls, database_url: str, collection_name: str = "sessions") -> "MongoSessionStore":
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(database_url)
        database = client.get_database(urlparse(database_url).path[1:])
        return cls(database.get_collection(collection_name), client)

    async def on_start(self) -> None:
        """Create indexes on startup."""
        try:
            # Index for enumerating the sessions of one user
            await self._collection.create_index([("user_key", 1)])
        except PyMongoError as e:
            raise StoreError("Failed to create session indexes") from e
        logger.debug("mongo_session_store_started", collection=self._collection.name)

    async def on_stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def get(self, user_key: str, session_key: str) -> Session | None:
        try:
            doc = await self._collection.find_one({"_id": session_key, "user_key": user_key})
        except PyMongoError as e:
            raise StoreError("Failed to read session") from e
        return _from_doc(doc) if doc is not None else None

    async def put(self, user_key: str, session_key: str, session: Session) -> None:
        doc = session.model_dump()
        doc["_id"] = session_key
        doc["user_key"] = user_key
        try:
            await self._collection.replace_one({"_id": session_key}, doc, upsert=True)
        except PyMongoError as e:
            raise StoreError("Failed to write session") from e

    async def remove_session(self, user_key: str, session_key: str) -> None:
        try:
            await self._collection.delete_one({"_id": session_key, "user_key": user_key})
        except PyMongoError as e:
            raise StoreError("Failed to remove session") from e

    async def remove_sessions(self, user_key: str, session_keys: Iterable[str]) -> None:
        keys = list(session_keys)
        if not keys:
            return
        try:
            await self._collection.delete_many({"_id": {"$in": keys}, "user_key": user_key})
        except PyMongoError as e:
            raise StoreError("Failed to remove sessions") from e

    async def remove_user(self, user_key: str) -> None:
        try:
            await self._collection.delete_many({"user_key": user_key})
        except PyMongoError as e:
            raise StoreError("Failed to remove user sessions") from e

    async def get_user_sessions(self, user_key: str) -> list[Session]:
        try:
            return [_from_doc(doc) async for doc in self._collection.find({"user_key": user_key})]
        except PyMongoError as e:
            raise StoreError("Failed to list user sessions") from e

    async def get_all_user_keys(self) -> list[str]:
        try:
            return list(await self._collection.distinct("user_key"))
        except PyMongoError as e:
            raise StoreError("Failed to list users") from e

    async def clear_all(self) -> None:
        try:
            await self._collection.delete_many({})
        except PyMongoError as e:
            raise StoreError("Failed to clear sessions") from e


def _from_doc(doc: dict[str, Any]) -> Session:
    data = dict(doc)
    data["session_key"] = data.pop("_id")
    return Session.model_validate(data)
