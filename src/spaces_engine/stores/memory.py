"""
Volatile in-process stores, used by `spaces serve --memory` and the tests.
"""

import itertools
from typing import Any, Optional

from spaces_engine.models.session import Session
from spaces_engine.stores.base import ScratchStore, SessionStore


class InMemorySessionStore(SessionStore):
    def __init__(self, sessions: Optional[list[Session]] = None):
        self._sessions: dict[int, Session] = {}
        self._ids = itertools.count(1)
        for session in sessions or []:
            if session.id is None:
                session = session.model_copy(update={"id": next(self._ids)})
            self._sessions[session.id] = session.model_copy(deep=True)
        if self._sessions:
            self._ids = itertools.count(max(self._sessions) + 1)

    async def fetch_all_sessions(self) -> list[Session]:
        return [s.model_copy(deep=True) for s in self._sessions.values()]

    async def fetch_session_by_id(self, session_id: int) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def fetch_session_by_window_id(self, window_id: int) -> Optional[Session]:
        for session in self._sessions.values():
            if session.window_id is not None and session.window_id == window_id:
                return session.model_copy(deep=True)
        return None

    async def create_session(self, session: Session) -> Session:
        stored = session.model_copy(deep=True, update={"id": next(self._ids)})
        self._sessions[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update_session(self, session: Session) -> Session:
        if session.id is None or session.id not in self._sessions:
            raise KeyError(f"Unknown session id {session.id!r}")
        self._sessions[session.id] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    async def remove_session(self, session_id: int) -> bool:
        return self._sessions.pop(session_id, None) is not None


class MemoryScratchStore(ScratchStore):
    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self.values: dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)
