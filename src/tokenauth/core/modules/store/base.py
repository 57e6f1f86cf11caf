"""Session store contract.

Sessions are addressed by (user_key, session_key). Every method is one
atomic request to the backend; the session service never assumes
multi-key transactions. Backend failures must surface as StoreError.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from tokenauth.core.modules.session.models import Session


class SessionStore(ABC):
    """Pluggable persistence for sessions."""

    async def on_start(self) -> None:
        """Prepare the backend on application startup."""

    async def on_stop(self) -> None:
        """Release backend resources on application shutdown."""

    @abstractmethod
    async def get(self, user_key: str, session_key: str) -> Session | None: ...

    @abstractmethod
    async def put(self, user_key: str, session_key: str, session: Session) -> None:
        """Insert or overwrite a session."""

    @abstractmethod
    async def remove_session(self, user_key: str, session_key: str) -> None: ...

    @abstractmethod
    async def remove_sessions(self, user_key: str, session_keys: Iterable[str]) -> None: ...

    @abstractmethod
    async def remove_user(self, user_key: str) -> None:
        """Remove every session of the user and the user entry itself."""

    @abstractmethod
    async def get_user_sessions(self, user_key: str) -> list[Session]: ...

    @abstractmethod
    async def get_all_user_keys(self) -> list[str]: ...

    @abstractmethod
    async def clear_all(self) -> None: ...
