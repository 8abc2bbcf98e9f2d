"""
Session store backed by the REST session service.
"""

from __future__ import annotations

from typing import Any, Optional

from spaces_engine.errors import NotFoundError
from spaces_engine.models.session import Session
from spaces_engine.stores.base import SessionStore
from spaces_engine.transport.http import HttpClient


class HttpSessionStore(SessionStore):
    def __init__(self, http: HttpClient):
        self._http = http

    @staticmethod
    def _sessions(data: Any) -> list[Session]:
        if isinstance(data, dict):
            data = data.get("sessions", [])
        return [Session.model_validate(item) for item in data or []]

    async def fetch_all_sessions(self) -> list[Session]:
        return self._sessions(await self._http.get("/v1/sessions"))

    async def fetch_session_by_id(self, session_id: int) -> Optional[Session]:
        try:
            return Session.model_validate(await self._http.get(f"/v1/sessions/{session_id}"))
        except NotFoundError:
            return None

    async def fetch_session_by_window_id(self, window_id: int) -> Optional[Session]:
        found = self._sessions(await self._http.get("/v1/sessions", params={"windowId": window_id}))
        return found[0] if found else None

    async def fetch_session_by_name(self, name: Optional[str]) -> Optional[Session]:
        """Server-side lookup is case-insensitive by contract."""
        if not name:
            return None
        found = self._sessions(await self._http.get("/v1/sessions", params={"name": name}))
        return found[0] if found else None

    async def create_session(self, session: Session) -> Session:
        body = session.model_dump(by_alias=True, exclude_none=True, exclude={"id"})
        return Session.model_validate(await self._http.post("/v1/sessions", body))

    async def update_session(self, session: Session) -> Session:
        body = session.model_dump(by_alias=True, exclude={"id"})
        return Session.model_validate(await self._http.put(f"/v1/sessions/{session.id}", body))

    async def remove_session(self, session_id: int) -> bool:
        try:
            await self._http.delete(f"/v1/sessions/{session_id}")
        except NotFoundError:
            return False
        return True

    async def close(self) -> None:
        await self._http.close()
