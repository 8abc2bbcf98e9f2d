"""
Singleton utility windows: the dashboard and the quick-action popup.

Each is Absent or Present (its id recorded in the engine's slots). Showing a
Present window focuses it and points its sole tab at the new URL; showing an
Absent one creates it on the display the user is looking at.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

from spaces_engine.bounds import dashboard_bounds, popup_bounds, target_work_area
from spaces_engine.errors import NotFoundError, SpacesError
from spaces_engine.models.session import WindowBounds
from spaces_engine.models.window import Window
from spaces_engine.rediscovery import DASHBOARD_PAGE, POPUP_PAGE
from spaces_engine.runtime.base import WindowManager
from spaces_engine.state import OPEN_WINDOW_KEY, POPUP_WINDOW_KEY, UtilityWindowSlots
from spaces_engine.stores.base import SessionStore

logger = logging.getLogger(__name__)


def encode_uri_component(value: str) -> str:
    return quote(value, safe="-_.!~*'()")


class SingletonWindow(ABC):
    slot_key: str
    page: str
    focus_on_create: Optional[bool] = None

    def __init__(self, windows: WindowManager, slots: UtilityWindowSlots):
        self._windows = windows
        self._slots = slots
        self._lock = asyncio.Lock()

    @property
    def window_id(self) -> Optional[int]:
        return self._slots.get(self.slot_key)

    @property
    def base_url(self) -> str:
        return self._windows.resource_url(self.page)

    @abstractmethod
    def geometry(self, work_area: WindowBounds) -> WindowBounds:
        ...

    async def show_or_focus(self, url: str) -> int:
        """Focus the existing window (re-pointing it at `url`) or create it."""
        async with self._lock:
            window_id = self.window_id
            if window_id is not None:
                try:
                    window = await self._windows.get_window(window_id, populate=True)
                except NotFoundError:
                    logger.debug("%s window %s is gone, recreating", self.slot_key, window_id)
                    await self._slots.clear(self.slot_key)
                else:
                    await self._refocus(window, url)
                    return window.id
            return await self._create(url)

    async def _refocus(self, window: Window, url: str) -> None:
        await self._windows.update_window(window.id, focused=True)
        if window.tabs:
            await self._windows.update_tab(window.tabs[0].id, url=url)

    async def _create(self, url: str) -> int:
        async with self._slots.creating():
            geometry = self.geometry(await target_work_area(self._windows))
            window = await self._windows.create_window(
                url,
                type="popup",
                focused=self.focus_on_create,
                left=geometry.left,
                top=geometry.top,
                width=geometry.width,
                height=geometry.height,
            )
            await self._slots.assign(self.slot_key, window.id)
        logger.debug("Created %s window %s", self.slot_key, window.id)
        return window.id


class DashboardWindow(SingletonWindow):
    slot_key = OPEN_WINDOW_KEY
    page = DASHBOARD_PAGE

    def geometry(self, work_area: WindowBounds) -> WindowBounds:
        return dashboard_bounds(work_area)

    async def show(self, window_id: Optional[int] = None, edit_mode: bool = False) -> int:
        url = self.base_url
        if edit_mode and window_id:
            url = f"{url}#windowId={window_id}&editMode=true"
        return await self.show_or_focus(url)

    async def close(self) -> None:
        window_id = self.window_id
        if window_id is None:
            return
        try:
            await self._windows.remove_window(window_id)
        except NotFoundError:
            pass
        await self._slots.clear(self.slot_key)


class PopupWindow(SingletonWindow):
    slot_key = POPUP_WINDOW_KEY
    page = POPUP_PAGE
    focus_on_create = True

    def __init__(self, windows: WindowManager, slots: UtilityWindowSlots, store: SessionStore):
        super().__init__(windows, slots)
        self._store = store

    def geometry(self, work_area: WindowBounds) -> WindowBounds:
        return popup_bounds(work_area)

    async def _refocus(self, window: Window, url: str) -> None:
        # Leave a focused popup alone; the user is interacting with it.
        if window.focused:
            return
        await super()._refocus(window, url)

    async def params(self, action: str, tab_url: Optional[str] = None) -> str:
        """Query string describing the active tab, or '' if the popup itself is active."""
        tabs = await self._windows.query_active_tabs()
        if not tabs:
            return ""
        active = tabs[0]
        if self._slots.is_internal(active.window_id):
            return ""

        session = await self._store.fetch_session_by_window_id(active.window_id)
        name = session.name if session and session.name else ""
        params = f"action={action}&windowId={active.window_id}&sessionName={name}"
        if tab_url:
            params += f"&url={encode_uri_component(tab_url)}"
        else:
            params += f"&tabId={active.id}"
        return params

    async def show(self, action: str, tab_url: Optional[str] = None) -> int:
        params = await self.params(action, tab_url)
        return await self.show_or_focus(f"{self.base_url}#opener=bg&{params}")

    async def close_and_forget(self) -> None:
        """Close the popup without leaving it in navigation history."""
        window_id = self.window_id
        if window_id is None:
            return
        try:
            window = await self._windows.get_window(window_id, populate=True)
            if window.tabs and window.tabs[0].url:
                await self._windows.delete_history_url(window.tabs[0].url)
            await self._windows.remove_window(window.id)
        except SpacesError as e:
            logger.info("Could not close popup window %s: %s", window_id, e)
            return
        await self._slots.clear(self.slot_key)
