"""
Lifecycle event routing and dashboard refresh.

Browser events are queued in delivery order and handled one at a time by a
single consumer task. Events about the engine's own utility windows are
dropped before they reach session bookkeeping.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from spaces_engine.errors import NotFoundError
from spaces_engine.models.envelope import LifecycleEvent
from spaces_engine.models.events import Command, PushEvent, RuntimeEvent
from spaces_engine.models.session import Space, WindowBounds
from spaces_engine.models.window import WINDOW_ID_NONE
from spaces_engine.rediscovery import DASHBOARD_PAGE, rediscover, rediscover_all
from spaces_engine.runtime.base import WindowManager
from spaces_engine.sessions import SpacesService
from spaces_engine.state import OPEN_WINDOW_KEY, UtilityWindowSlots
from spaces_engine.windows import DashboardWindow, PopupWindow

logger = logging.getLogger(__name__)

TAB_EVENTS = (
    RuntimeEvent.TAB_CREATED,
    RuntimeEvent.TAB_REMOVED,
    RuntimeEvent.TAB_MOVED,
    RuntimeEvent.TAB_UPDATED,
)

PushHandler = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class EventRouter:
    def __init__(
        self,
        windows: WindowManager,
        slots: UtilityWindowSlots,
        service: SpacesService,
        dashboard: DashboardWindow,
        popup: PopupWindow,
        all_spaces: Callable[[], Awaitable[list[Space]]],
    ):
        self._windows = windows
        self._slots = slots
        self._service = service
        self._dashboard = dashboard
        self._popup = popup
        self._all_spaces = all_spaces

        self._queue: asyncio.Queue[LifecycleEvent] = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._push_handlers: list[PushHandler] = []

        self._refreshing = False
        self._refresh_pending = False
        self._refresh_task: Optional[asyncio.Task] = None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        """Drain queued events and any refresh in flight, then stop consuming."""
        if self._consumer is None:
            return
        await self.idle()
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def idle(self) -> None:
        await self._queue.join()
        while self._refresh_task is not None and not self._refresh_task.done():
            await self._refresh_task

    def submit(self, event: Union[LifecycleEvent, dict[str, Any]]) -> None:
        if not isinstance(event, LifecycleEvent):
            event = LifecycleEvent.model_validate(event)
        self._queue.put_nowait(event)

    def add_push_handler(self, handler: PushHandler) -> Callable[[], None]:
        self._push_handlers.append(handler)

        def remove() -> None:
            if handler in self._push_handlers:
                self._push_handlers.remove(handler)

        return remove

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.route(event)
            except Exception:
                logger.exception("Error handling %s", event.type)
            finally:
                self._queue.task_done()

    # -- routing -----------------------------------------------------------

    async def route(self, event: LifecycleEvent) -> None:
        # A utility window being created has no recorded id yet; wait so its
        # own tab events are recognised as internal.
        await self._slots.settled()

        if event.type == RuntimeEvent.WINDOW_FOCUS_CHANGED:
            await self._on_focus_changed(event.window_id)
            return

        if self._slots.is_internal(event.window_id):
            if event.type == RuntimeEvent.WINDOW_REMOVED:
                await self._slots.release(event.window_id)
            else:
                logger.debug("Ignoring %s for utility window %s", event.type, event.window_id)
            return

        if event.type in TAB_EVENTS:
            await self._on_tab_event(event)
        elif event.type == RuntimeEvent.WINDOW_CREATED:
            self.request_refresh(event.type)
        elif event.type == RuntimeEvent.WINDOW_REMOVED:
            await self._on_window_removed(event.window_id)
        elif event.type == RuntimeEvent.WINDOW_BOUNDS_CHANGED:
            await self._on_bounds_changed(event)
        elif event.type == RuntimeEvent.STARTUP:
            await self._service.clear_window_id_associations()
            await rediscover_all(self._windows, self._slots)
        elif event.type == RuntimeEvent.INSTALLED:
            if event.data.get("reason") == "install":
                await self._dashboard.show()
        elif event.type == RuntimeEvent.COMMAND:
            await self._on_command(event.data.get("command"))
        elif event.type == RuntimeEvent.CONTEXT_MENU_CLICKED:
            if event.data.get("menuItemId") == Command.ADD_LINK_MENU:
                await self._popup.show("move", event.data.get("linkUrl"))
        else:
            logger.debug("Unhandled event %s", event.type)

    async def _on_tab_event(self, event: LifecycleEvent) -> None:
        if event.window_id is None:
            return
        # Tabs closing along with their window must not empty the saved session.
        if event.type == RuntimeEvent.TAB_REMOVED and event.data.get("isWindowClosing"):
            return
        await self._service.sync_window(event.window_id)
        self.request_refresh(event.type)

    async def _on_window_removed(self, window_id: Optional[int]) -> None:
        if window_id is None:
            return
        if await self._service.handle_window_removed(window_id):
            self.request_refresh(RuntimeEvent.WINDOW_REMOVED)

        dashboard_id = self._slots.open_window_id
        if dashboard_id is None:
            return
        remaining = await self._windows.get_all_windows()
        if len(remaining) == 1 and remaining[0].id == dashboard_id:
            logger.debug("Last browser window closed, closing dashboard %s", dashboard_id)
            await self._dashboard.close()

    async def _on_focus_changed(self, window_id: Optional[int]) -> None:
        if window_id is None or window_id == WINDOW_ID_NONE:
            return
        if window_id == self._slots.popup_window_id:
            return
        await self._popup.close_and_forget()
        if not self._slots.is_internal(window_id):
            await self._service.handle_window_focused(window_id)

    async def _on_bounds_changed(self, event: LifecycleEvent) -> None:
        if event.window_id is None:
            return
        if any(key in event.data for key in ("left", "top", "width", "height")):
            bounds = WindowBounds.model_validate(event.data)
        else:
            try:
                bounds = (await self._windows.get_window(event.window_id)).bounds
            except NotFoundError:
                return
        await self._service.capture_window_bounds(event.window_id, bounds)

    async def _on_command(self, command: Optional[str]) -> None:
        if command == Command.MOVE:
            await self._popup.show("move")
        elif command == Command.SWITCH:
            await self._popup.show("switch")
        else:
            logger.debug("Unknown command %r", command)

    # -- refresh -----------------------------------------------------------

    def request_refresh(self, source: Optional[str] = None) -> None:
        """Schedule a dashboard refresh; requests made mid-refresh collapse into one follow-up."""
        if self._refreshing:
            self._refresh_pending = True
            return
        self._refreshing = True
        self._refresh_task = asyncio.create_task(self._run_refresh(source))

    async def _run_refresh(self, source: Optional[str]) -> None:
        try:
            while True:
                self._refresh_pending = False
                logger.debug("Refreshing dashboard (%s)", source)
                try:
                    await self.refresh()
                except Exception:
                    logger.exception("Dashboard refresh failed")
                if not self._refresh_pending:
                    break
                source = "pending"
        finally:
            self._refreshing = False

    async def refresh(self) -> None:
        if self._slots.open_window_id is None:
            found = await rediscover(
                self._windows, self._slots.scratch, OPEN_WINDOW_KEY, self._windows.resource_url(DASHBOARD_PAGE),
            )
            await self._slots.assign(OPEN_WINDOW_KEY, found)
        window_id = self._slots.open_window_id
        if window_id is None:
            return

        try:
            await self._windows.get_window(window_id)
        except NotFoundError:
            await self._slots.clear(OPEN_WINDOW_KEY)
            return

        spaces = await self._all_spaces()
        await self.push({"action": PushEvent.UPDATE_SPACES, "spaces": [space.to_wire() for space in spaces]})

    async def push(self, message: dict[str, Any]) -> None:
        for handler in list(self._push_handlers):
            result = handler(message)
            if inspect.isawaitable(result):
                await result
