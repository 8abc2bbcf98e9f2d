"""
SpacesEngine wires the stores, window manager, dispatcher and event router
into one object a host process can drive.

Usage:
    engine = SpacesEngine(InMemorySessionStore(), window_manager)
    await engine.start()
    response = await engine.handle_request({"action": "requestAllSpaces"})
    engine.submit_event({"type": "windows.onRemoved", "windowId": 7})
    await engine.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from spaces_engine.dispatcher import NO_RESPONSE, RequestDispatcher
from spaces_engine.matcher import SessionMatcher
from spaces_engine.models.envelope import LifecycleEvent
from spaces_engine.models.events import BridgeEvent
from spaces_engine.models.session import Space
from spaces_engine.rediscovery import rediscover_all
from spaces_engine.routing import EventRouter, PushHandler
from spaces_engine.runtime.base import WindowManager
from spaces_engine.sessions import SpacesService
from spaces_engine.state import UtilityWindowSlots
from spaces_engine.stores.base import ScratchStore, SessionStore
from spaces_engine.stores.memory import MemoryScratchStore
from spaces_engine.transport.envelope import parse_envelope
from spaces_engine.transport.socketio import BridgeConnection
from spaces_engine.windows import DashboardWindow, PopupWindow

logger = logging.getLogger(__name__)


class SpacesEngine:
    def __init__(
        self,
        store: SessionStore,
        windows: WindowManager,
        scratch: Optional[ScratchStore] = None,
    ):
        self.store = store
        self.windows = windows
        self.slots = UtilityWindowSlots(scratch if scratch is not None else MemoryScratchStore())
        self.service = SpacesService(store, windows)
        self.matcher = SessionMatcher(store, windows)
        self.dashboard = DashboardWindow(windows, self.slots)
        self.popup = PopupWindow(windows, self.slots, store)
        self.router = EventRouter(windows, self.slots, self.service, self.dashboard, self.popup, self.all_spaces)
        self.dispatcher = RequestDispatcher(
            windows, self.slots, self.service, self.matcher, self.dashboard, self.popup,
            on_change=self.router.request_refresh,
        )
        self._bridge: Optional[BridgeConnection] = None
        self._detach: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        await rediscover_all(self.windows, self.slots)
        self.router.start()
        logger.info(
            "Engine started (dashboard=%s, popup=%s)", self.slots.open_window_id, self.slots.popup_window_id,
        )

    async def stop(self) -> None:
        for remove in self._detach:
            remove()
        self._detach.clear()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.router.stop()
        logger.info("Engine stopped")

    async def all_spaces(self) -> list[Space]:
        return await self.dispatcher.all_spaces()

    async def handle_request(self, request: Any, sender: Any = None) -> Any:
        """Dispatch one UI request. Returns NO_RESPONSE when nothing should be answered."""
        return await self.dispatcher.dispatch(request, sender)

    def submit_event(self, event: Union[LifecycleEvent, dict[str, Any]]) -> None:
        self.router.submit(event)

    def add_push_handler(self, handler: PushHandler) -> Callable[[], None]:
        return self.router.add_push_handler(handler)

    async def idle(self) -> None:
        """Wait until queued events and pending refreshes have been processed."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.router.idle()

    # -- bridge ------------------------------------------------------------

    def attach(self, bridge: BridgeConnection) -> None:
        """Serve lifecycle events and UI requests arriving over `bridge`."""
        self._bridge = bridge
        self._detach.append(bridge.add_event_handler(self._on_bridge_event))
        self._detach.append(self.add_push_handler(self._push_to_bridge))

    def _on_bridge_event(self, event: str, raw: dict[str, Any]) -> None:
        if event not in (BridgeEvent.LIFECYCLE, BridgeEvent.REQUEST):
            return
        envelope = parse_envelope(raw)
        if envelope is None:
            logger.warning("Dropping malformed %s envelope", event)
            return

        if event == BridgeEvent.LIFECYCLE:
            try:
                self.submit_event(envelope.payload.data or {})
            except ValidationError:
                logger.warning("Dropping malformed lifecycle event: %r", envelope.payload.data)
            return

        source = envelope.metadata.source
        self._spawn(self._answer(envelope.payload.data, envelope.metadata.request_id, source.model_dump()))

    async def _answer(self, request: Any, request_id: Optional[str], sender: dict[str, Any]) -> None:
        response = await self.handle_request(request, sender)
        if response is NO_RESPONSE or self._bridge is None:
            return
        self._bridge.emit(BridgeEvent.RESPONSE, response, request_id=request_id)

    def _push_to_bridge(self, message: dict[str, Any]) -> None:
        if self._bridge is not None and self._bridge.connected:
            self._bridge.emit(BridgeEvent.PUSH, message)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
