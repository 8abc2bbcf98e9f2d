"""
Session service: the session mutations used by the dispatcher and router.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from spaces_engine.errors import ConflictError, NotFoundError
from spaces_engine.models.session import Session, Space, Tab, WindowBounds
from spaces_engine.models.window import Window
from spaces_engine.naming import resolve_conflict
from spaces_engine.runtime.base import WindowManager
from spaces_engine.stores.base import SessionStore

logger = logging.getLogger(__name__)


def window_tabs(window: Window) -> list[Tab]:
    """A live window's tabs as they are persisted (no runtime tab ids)."""
    return [tab.to_tab().model_copy(update={"id": None}) for tab in window.tabs]


class SpacesService:
    def __init__(self, store: SessionStore, windows: WindowManager):
        self._store = store
        self._windows = windows

    @property
    def store(self) -> SessionStore:
        return self._store

    async def save_new_session(
        self,
        name: Optional[str],
        tabs: Iterable[Tab],
        window_id: Optional[int] = None,
        bounds: Optional[WindowBounds] = None,
        *,
        overwrite: bool = False,
    ) -> Session:
        """Persist a new session. Raises ConflictError if the name is taken."""
        resolution = await resolve_conflict(self._store, name, overwrite)
        if not resolution.proceed:
            raise ConflictError(f'Session with name "{name}" already exists', details={"existing_id": resolution.existing_id})
        if resolution.requires_delete:
            await self.delete_session(resolution.existing_id)
        if window_id is not None:
            await self._unbind_window(window_id)

        session = Session(
            name=name,
            tabs=list(tabs),
            window_id=window_id,
            window_bounds=bounds,
            last_access=time.time(),
        )
        created = await self._store.create_session(session)
        logger.info("Saved session %s (%r)", created.id, created.name)
        return created

    async def update_session_name(self, session_id: int, name: str, *, overwrite: bool = False) -> Session:
        await self._require(session_id)
        resolution = await resolve_conflict(self._store, name, overwrite, renaming_id=session_id)
        if not resolution.proceed:
            raise ConflictError(f'Session with name "{name}" already exists', details={"existing_id": resolution.existing_id})
        if resolution.requires_delete:
            await self.delete_session(resolution.existing_id)

        session = await self._require(session_id)
        session.name = name
        return await self._store.update_session(session)

    async def update_session_tabs(self, session_id: int, tabs: Iterable[Tab]) -> Session:
        session = await self._require(session_id)
        session.tabs = list(tabs)
        return await self._store.update_session(session)

    async def delete_session(self, session_id: int) -> bool:
        deleted = await self._store.remove_session(session_id)
        if deleted:
            logger.info("Deleted session %s", session_id)
        return deleted

    async def match_session_to_window(self, session: Session, window: Window) -> Session:
        """Bind `session` to a freshly opened window."""
        await self._unbind_window(window.id, keep_id=session.id)
        current = await self._require(session.id)
        current.window_id = window.id
        current.last_access = time.time()
        return await self._store.update_session(current)

    async def capture_window_bounds(self, window_id: int, bounds: WindowBounds) -> bool:
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is None:
            return False
        session.window_bounds = bounds
        await self._store.update_session(session)
        return True

    async def handle_window_removed(self, window_id: int) -> bool:
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is None:
            return False
        session.window_id = None
        await self._store.update_session(session)
        logger.debug("Session %s closed with window %s", session.id, window_id)
        return True

    async def handle_window_focused(self, window_id: int) -> None:
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is not None:
            session.last_access = time.time()
            await self._store.update_session(session)

    async def sync_window(self, window_id: int) -> bool:
        """Copy a live window's tabs into its bound session. Returns whether anything was written."""
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is None:
            return False
        try:
            window = await self._windows.get_window(window_id, populate=True)
        except NotFoundError:
            return False
        tabs = window_tabs(window)
        if tabs == session.tabs:
            return False
        # Re-read after the window lookup; the binding may have moved.
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is None:
            return False
        session.tabs = tabs
        await self._store.update_session(session)
        return True

    async def clear_window_id_associations(self) -> None:
        """After a browser restart every stored window id is meaningless."""
        for session in await self._store.fetch_all_sessions():
            if session.window_id is not None:
                session.window_id = None
                await self._store.update_session(session)

    async def all_spaces(self, exclude: Iterable[Optional[int]] = ()) -> list[Space]:
        """Every session plus unsaved live windows: open first, then most recently used."""
        excluded = {window_id for window_id in exclude if window_id is not None}
        sessions = await self._store.fetch_all_sessions()
        spaces = [Space.from_session(session) for session in sessions]

        bound = {session.window_id for session in sessions if session.window_id is not None}
        for window in await self._windows.get_all_windows(populate=True):
            if window.id in bound or window.id in excluded:
                continue
            spaces.append(Space(window_id=window.id, tabs=[tab.to_tab() for tab in window.tabs]))

        spaces = [space for space in spaces if space.tabs]
        spaces.sort(key=lambda space: (space.window_id is None, -(space.last_access or 0)))
        return spaces

    async def _unbind_window(self, window_id: int, keep_id: Optional[int] = None) -> None:
        holder = await self._store.fetch_session_by_window_id(window_id)
        if holder is not None and holder.id != keep_id:
            holder.window_id = None
            await self._store.update_session(holder)

    async def _require(self, session_id: Optional[int]) -> Session:
        session = await self._store.fetch_session_by_id(session_id) if session_id is not None else None
        if session is None:
            raise NotFoundError(f"No session found with id {session_id}")
        return session
