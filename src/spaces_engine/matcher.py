"""
Session matcher: map a runtime window to its session.

Identifier lookup first. When that fails the caller may ask for a content
match: a session whose tab URLs equal the window's, same length and order,
is assumed to have lost its binding (browser restart reassigned the ids) and
is rebound to the window.
"""

import logging
from typing import Optional

from spaces_engine.errors import NotFoundError
from spaces_engine.models.session import Session, Space
from spaces_engine.models.window import Window
from spaces_engine.runtime.base import WindowManager
from spaces_engine.stores.base import SessionStore

logger = logging.getLogger(__name__)


def tabs_match(session: Session, window: Window) -> bool:
    return session.urls == window.urls


class SessionMatcher:
    def __init__(self, store: SessionStore, windows: WindowManager):
        self._store = store
        self._windows = windows

    async def resolve_space(self, window_id: int, match_by_tabs: bool = False) -> Optional[Space]:
        session = await self._store.fetch_session_by_window_id(window_id)
        if session is not None:
            return Space.from_session(session)

        try:
            window = await self._windows.get_window(window_id, populate=True)
        except NotFoundError:
            return None

        if match_by_tabs:
            for candidate in await self._store.fetch_all_sessions():
                if tabs_match(candidate, window):
                    rebound = await self._rebind(candidate.id, window_id)
                    if rebound is not None:
                        logger.info("Rebound session %s to window %s by tab content", rebound.id, window_id)
                        return Space.from_session(rebound)

        return Space(window_id=window.id, tabs=[tab.to_tab() for tab in window.tabs])

    async def _rebind(self, session_id: Optional[int], window_id: int) -> Optional[Session]:
        # Re-read: another handler may have changed or deleted it meanwhile.
        session = await self._store.fetch_session_by_id(session_id) if session_id is not None else None
        if session is None:
            return None
        if session.window_id == window_id:
            return session
        session.window_id = window_id
        return await self._store.update_session(session)

    async def space_from_session_id(self, session_id: int) -> Optional[Space]:
        session = await self._store.fetch_session_by_id(session_id)
        if session is None:
            return None
        return Space.from_session(session)
