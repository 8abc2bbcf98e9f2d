"""Shared fixtures: an in-memory browser window manager and a wired engine."""

import asyncio
import itertools
from typing import Optional, Union

import pytest
import pytest_asyncio

from spaces_engine.engine import SpacesEngine
from spaces_engine.errors import NotFoundError
from spaces_engine.models.session import Session, Tab, WindowBounds
from spaces_engine.models.window import Display, LiveTab, Window
from spaces_engine.runtime.base import WindowManager
from spaces_engine.stores.memory import InMemorySessionStore, MemoryScratchStore

RESOURCE_BASE = "chrome-extension://spaces/"
DASHBOARD_URL = RESOURCE_BASE + "spaces.html"
POPUP_URL = RESOURCE_BASE + "popup.html"


class FakeWindowManager(WindowManager):
    """Browser stand-in: windows, tabs, displays and focus kept in dicts."""

    def __init__(self, displays: Optional[list[Display]] = None):
        super().__init__(RESOURCE_BASE)
        self.windows: dict[int, Window] = {}
        self.displays = displays if displays is not None else [
            Display(id="primary", is_primary=True, work_area=WindowBounds(left=0, top=0, width=1920, height=1080)),
        ]
        self.current_id: Optional[int] = None
        self.deleted_history: list[str] = []
        self.created_windows: list[dict] = []
        # When set, create_window registers the window and then blocks until the
        # gate opens, the way the browser fires tab events before the callback.
        self.create_gate: Optional[asyncio.Event] = None
        self._window_ids = itertools.count(1)
        self._tab_ids = itertools.count(1000)

    # -- test helpers ------------------------------------------------------

    def open_window(
        self,
        urls: list[str],
        *,
        focused: bool = True,
        left: int = 10,
        top: int = 10,
        width: int = 800,
        height: int = 600,
        window_type: str = "normal",
    ) -> Window:
        window = Window(id=next(self._window_ids), left=left, top=top, width=width, height=height, type=window_type)
        for url in urls:
            self._append_tab(window, url, active=False)
        if window.tabs:
            window.tabs[0].active = True
        self.windows[window.id] = window
        if focused:
            self._focus(window.id)
        return window.model_copy(deep=True)

    def tab_urls(self, window_id: int) -> list[str]:
        return [tab.url for tab in self.windows[window_id].tabs]

    def _append_tab(self, window: Window, url: str, active: bool) -> LiveTab:
        tab = LiveTab(id=next(self._tab_ids), window_id=window.id, index=len(window.tabs), url=url, title=url, active=active)
        if active:
            for other in window.tabs:
                other.active = False
        window.tabs.append(tab)
        return tab

    def _reindex(self, window: Window) -> None:
        for index, tab in enumerate(window.tabs):
            tab.index = index

    def _focus(self, window_id: int) -> None:
        for window in self.windows.values():
            window.focused = window.id == window_id
        self.current_id = window_id

    def _find_tab(self, tab_id: int) -> tuple[Window, LiveTab]:
        for window in self.windows.values():
            for tab in window.tabs:
                if tab.id == tab_id:
                    return window, tab
        raise NotFoundError(f"No tab with id: {tab_id}.")

    def _window(self, window_id: int) -> Window:
        window = self.windows.get(window_id)
        if window is None:
            raise NotFoundError(f"No window with id: {window_id}.")
        return window

    @staticmethod
    def _snapshot(window: Window, populate: bool) -> Window:
        copy = window.model_copy(deep=True)
        if not populate:
            copy.tabs = []
        return copy

    # -- WindowManager -----------------------------------------------------

    async def get_window(self, window_id: int, populate: bool = False) -> Window:
        return self._snapshot(self._window(window_id), populate)

    async def get_all_windows(self, populate: bool = False) -> list[Window]:
        return [self._snapshot(window, populate) for window in self.windows.values()]

    async def get_current_window(self) -> Optional[Window]:
        if self.current_id is None or self.current_id not in self.windows:
            return None
        return self._snapshot(self.windows[self.current_id], True)

    async def create_window(
        self,
        url: Union[str, list[str]],
        *,
        left: Optional[int] = None,
        top: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        type: Optional[str] = None,
        focused: Optional[bool] = None,
    ) -> Window:
        urls = [url] if isinstance(url, str) else list(url)
        self.created_windows.append(
            {"urls": urls, "left": left, "top": top, "width": width, "height": height, "type": type, "focused": focused}
        )
        window = self.open_window(
            urls or ["chrome://newtab/"],
            focused=focused is not False,
            left=left,
            top=top,
            width=width,
            height=height,
            window_type=type or "normal",
        )
        if self.create_gate is not None:
            await self.create_gate.wait()
        return await self.get_window(window.id, populate=True)

    async def update_window(self, window_id: int, *, focused: Optional[bool] = None) -> Window:
        window = self._window(window_id)
        if focused:
            self._focus(window_id)
        return self._snapshot(window, False)

    async def remove_window(self, window_id: int) -> None:
        self._window(window_id)
        del self.windows[window_id]
        if self.current_id == window_id:
            self.current_id = None

    async def get_tab(self, tab_id: int) -> LiveTab:
        _, tab = self._find_tab(tab_id)
        return tab.model_copy()

    async def query_active_tabs(self) -> list[LiveTab]:
        if self.current_id is None or self.current_id not in self.windows:
            return []
        return [tab.model_copy() for tab in self.windows[self.current_id].tabs if tab.active]

    async def create_tab(self, url: str, *, window_id: Optional[int] = None, active: bool = True) -> LiveTab:
        target = window_id if window_id is not None else self.current_id
        return self._append_tab(self._window(target), url, active).model_copy()

    async def update_tab(
        self,
        tab_id: int,
        *,
        url: Optional[str] = None,
        active: Optional[bool] = None,
        pinned: Optional[bool] = None,
    ) -> LiveTab:
        window, tab = self._find_tab(tab_id)
        if url is not None:
            tab.url = url
        if pinned is not None:
            tab.pinned = pinned
        if active:
            for other in window.tabs:
                other.active = other.id == tab_id
        return tab.model_copy()

    async def move_tab(self, tab_id: int, window_id: int, index: int = -1) -> None:
        source, tab = self._find_tab(tab_id)
        target = self._window(window_id)
        source.tabs.remove(tab)
        tab.window_id = window_id
        tab.active = False
        if index == -1:
            target.tabs.append(tab)
        else:
            target.tabs.insert(index, tab)
        self._reindex(source)
        self._reindex(target)

    async def remove_tab(self, tab_id: int) -> None:
        window, tab = self._find_tab(tab_id)
        window.tabs.remove(tab)
        self._reindex(window)

    async def delete_history_url(self, url: str) -> None:
        self.deleted_history.append(url)

    async def get_displays(self) -> list[Display]:
        return [display.model_copy(deep=True) for display in self.displays]


def make_session(name: Optional[str], urls: list[str], window_id: Optional[int] = None, **kwargs) -> Session:
    return Session(name=name, tabs=[Tab(url=url) for url in urls], window_id=window_id, **kwargs)


@pytest.fixture
def windows() -> FakeWindowManager:
    return FakeWindowManager()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def scratch() -> MemoryScratchStore:
    return MemoryScratchStore()


@pytest_asyncio.fixture
async def engine(store, windows, scratch):
    spaces = SpacesEngine(store, windows, scratch)
    await spaces.start()
    yield spaces
    await spaces.stop()


@pytest.fixture
def pushes(engine) -> list[dict]:
    received: list[dict] = []
    engine.add_push_handler(received.append)
    return received
