"""
Storage interfaces the engine depends on.

The session store commits as soon as each call returns; the scratch store
keeps small persisted scalars such as the utility window ids.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from spaces_engine.models.session import Session


class SessionStore(ABC):
    """Session CRUD by id, name and window association.

    Implementations: InMemorySessionStore (volatile), HttpSessionStore (REST).
    """

    @abstractmethod
    async def fetch_all_sessions(self) -> list[Session]:
        """All persisted sessions in the store's natural order."""

    @abstractmethod
    async def fetch_session_by_id(self, session_id: int) -> Optional[Session]:
        """Session with this id, or None."""

    @abstractmethod
    async def fetch_session_by_window_id(self, window_id: int) -> Optional[Session]:
        """Session currently bound to this runtime window id, or None."""

    @abstractmethod
    async def create_session(self, session: Session) -> Session:
        """Persist a new session and return it with its assigned id."""

    @abstractmethod
    async def update_session(self, session: Session) -> Session:
        """Replace the stored record with the same id (last write wins)."""

    @abstractmethod
    async def remove_session(self, session_id: int) -> bool:
        """Delete a session. Returns False when it did not exist."""

    async def fetch_session_by_name(self, name: Optional[str]) -> Optional[Session]:
        """Case-insensitive name lookup."""
        if not name:
            return None
        wanted = name.casefold()
        for session in await self.fetch_all_sessions():
            if session.name and session.name.casefold() == wanted:
                return session
        return None

    async def close(self) -> None:
        """Release resources (HTTP clients, files)."""


class ScratchStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...
