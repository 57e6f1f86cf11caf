import threading
from collections.abc import Iterable

from tokenauth.core.modules.session.models import Session
from tokenauth.core.modules.store.base import SessionStore


class MemorySessionStore(SessionStore):
    """In-process store for single-instance deployments and tests.

    A user entry is kept while it is known, even with no sessions left;
    only remove_user drops it. Sessions are frozen so they are shared
    without copying.
    """

    def __init__(self) -> None:
        self._users: dict[str, dict[str, Session]] = {}
        self._lock = threading.Lock()

    async def get(self, user_key: str, session_key: str) -> Session | None:
        with self._lock:
            return self._users.get(user_key, {}).get(session_key)

    async def put(self, user_key: str, session_key: str, session: Session) -> None:
        with self._lock:
            self._users.setdefault(user_key, {})[session_key] = session

    async def remove_session(self, user_key: str, session_key: str) -> None:
        with self._lock:
            sessions = self._users.get(user_key)
            if sessions is not None:
                sessions.pop(session_key, None)

    async def remove_sessions(self, user_key: str, session_keys: Iterable[str]) -> None:
        with self._lock:
            sessions = self._users.get(user_key)
            if sessions is not None:
                for session_key in session_keys:
                    sessions.pop(session_key, None)

    async def remove_user(self, user_key: str) -> None:
        with self._lock:
            self._users.pop(user_key, None)

    async def get_user_sessions(self, user_key: str) -> list[Session]:
        with self._lock:
            return list(self._users.get(user_key, {}).values())

    async def get_all_user_keys(self) -> list[str]:
        with self._lock:
            return list(self._users)

    async def clear_all(self) -> None:
        with self._lock:
            self._users.clear()
