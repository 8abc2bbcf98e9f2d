"""
WindowManager implemented over the Socket.IO browser bridge.

Each method maps onto one browser API call relayed by the bridge; the bridge
answers with the API's JSON result or an error payload.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from spaces_engine.models.window import Display, LiveTab, Window
from spaces_engine.runtime.base import DEFAULT_RESOURCE_BASE, WindowManager
from spaces_engine.transport.socketio import BridgeConnection


def _options(**kwargs: Any) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


class BridgeWindowManager(WindowManager):
    def __init__(self, bridge: BridgeConnection, resource_base: str = DEFAULT_RESOURCE_BASE):
        super().__init__(resource_base)
        self._bridge = bridge

    async def get_window(self, window_id: int, populate: bool = False) -> Window:
        data = await self._bridge.call("windows.get", {"windowId": window_id, "populate": populate})
        return Window.model_validate(data)

    async def get_all_windows(self, populate: bool = False) -> list[Window]:
        data = await self._bridge.call("windows.getAll", {"populate": populate})
        return [Window.model_validate(item) for item in data or []]

    async def get_current_window(self) -> Optional[Window]:
        data = await self._bridge.call("windows.getCurrent")
        return Window.model_validate(data) if data else None

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
        data = await self._bridge.call("windows.create", _options(
            url=url, left=left, top=top, width=width, height=height, type=type, focused=focused,
        ))
        return Window.model_validate(data)

    async def update_window(self, window_id: int, *, focused: Optional[bool] = None) -> Window:
        data = await self._bridge.call("windows.update", {
            "windowId": window_id, "updateInfo": _options(focused=focused),
        })
        return Window.model_validate(data)

    async def remove_window(self, window_id: int) -> None:
        await self._bridge.call("windows.remove", {"windowId": window_id})

    async def get_tab(self, tab_id: int) -> LiveTab:
        return LiveTab.model_validate(await self._bridge.call("tabs.get", {"tabId": tab_id}))

    async def query_active_tabs(self) -> list[LiveTab]:
        data = await self._bridge.call("tabs.query", {"active": True, "currentWindow": True})
        return [LiveTab.model_validate(item) for item in data or []]

    async def create_tab(self, url: str, *, window_id: Optional[int] = None, active: bool = True) -> LiveTab:
        data = await self._bridge.call("tabs.create", _options(url=url, windowId=window_id, active=active))
        return LiveTab.model_validate(data)

    async def update_tab(
        self,
        tab_id: int,
        *,
        url: Optional[str] = None,
        active: Optional[bool] = None,
        pinned: Optional[bool] = None,
    ) -> LiveTab:
        data = await self._bridge.call("tabs.update", {
            "tabId": tab_id, "updateProperties": _options(url=url, active=active, pinned=pinned),
        })
        return LiveTab.model_validate(data)

    async def move_tab(self, tab_id: int, window_id: int, index: int = -1) -> None:
        await self._bridge.call("tabs.move", {"tabId": tab_id, "moveProperties": {"windowId": window_id, "index": index}})

    async def remove_tab(self, tab_id: int) -> None:
        await self._bridge.call("tabs.remove", {"tabId": tab_id})

    async def delete_history_url(self, url: str) -> None:
        await self._bridge.call("history.deleteUrl", {"url": url})

    async def get_displays(self) -> list[Display]:
        data = await self._bridge.call("system.display.getInfo")
        return [Display.model_validate(item) for item in data or []]
