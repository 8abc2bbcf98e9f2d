"""
Interface to the browser's window/tab manager.

Lookups of windows or tabs that no longer exist raise NotFoundError.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from spaces_engine.models.window import Display, LiveTab, Window

DEFAULT_RESOURCE_BASE = "chrome-extension://spaces/"


class WindowManager(ABC):
    def __init__(self, resource_base: str = DEFAULT_RESOURCE_BASE):
        self.resource_base = resource_base if resource_base.endswith("/") else resource_base + "/"

    def resource_url(self, path: str) -> str:
        """Absolute URL of one of the extension's own pages."""
        return self.resource_base + path.lstrip("/")

    @abstractmethod
    async def get_window(self, window_id: int, populate: bool = False) -> Window:
        ...

    @abstractmethod
    async def get_all_windows(self, populate: bool = False) -> list[Window]:
        ...

    @abstractmethod
    async def get_current_window(self) -> Optional[Window]:
        """The focused (or last focused) window, None when there is none."""

    @abstractmethod
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
        """Open a window; the returned window is populated with its tabs."""

    @abstractmethod
    async def update_window(self, window_id: int, *, focused: Optional[bool] = None) -> Window:
        ...

    @abstractmethod
    async def remove_window(self, window_id: int) -> None:
        ...

    @abstractmethod
    async def get_tab(self, tab_id: int) -> LiveTab:
        ...

    @abstractmethod
    async def query_active_tabs(self) -> list[LiveTab]:
        """Active tab(s) of the current window."""

    @abstractmethod
    async def create_tab(self, url: str, *, window_id: Optional[int] = None, active: bool = True) -> LiveTab:
        ...

    @abstractmethod
    async def update_tab(
        self,
        tab_id: int,
        *,
        url: Optional[str] = None,
        active: Optional[bool] = None,
        pinned: Optional[bool] = None,
    ) -> LiveTab:
        ...

    @abstractmethod
    async def move_tab(self, tab_id: int, window_id: int, index: int = -1) -> None:
        ...

    @abstractmethod
    async def remove_tab(self, tab_id: int) -> None:
        ...

    @abstractmethod
    async def delete_history_url(self, url: str) -> None:
        ...

    @abstractmethod
    async def get_displays(self) -> list[Display]:
        ...
