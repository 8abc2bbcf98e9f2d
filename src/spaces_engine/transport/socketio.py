"""
Socket.IO connection to the browser bridge.

The bridge relays browser API calls (`bridge:call` → `bridge:result`),
lifecycle events (`runtime:event`) and UI action requests
(`runtime:request` → `runtime:response`). Waits for `ready` before resolving
connect().
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from spaces_engine.errors import ConnectionError, NotFoundError, SpacesError
from spaces_engine.models.events import BridgeEvent
from spaces_engine.transport.envelope import build_envelope

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/bridge/socket.io/"
DEFAULT_BRIDGE_URL = "http://127.0.0.1:8766"


class BridgeConnection:
    def __init__(
        self,
        base_url: str = DEFAULT_BRIDGE_URL,
        token: Optional[str] = None,
        client_id: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        call_timeout: float = 10.0,
    ):
        self._base_url = base_url
        self._token = token
        self._client_id = client_id or str(uuid.uuid4())
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._call_timeout = call_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False
        self._event_handlers: list[Callable[[str, dict[str, Any]], None]] = []

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    @property
    def client_id(self) -> str:
        return self._client_id

    def add_event_handler(self, handler: Callable[[str, dict[str, Any]], None]) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        """Connect to the bridge and wait for its `ready` event."""
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on(BridgeEvent.READY)
        async def on_ready(*_args: Any) -> None:
            self._connected = True
            ready_event.set()

        @self._sio.on("*")
        async def on_any(event: str, data: Any) -> None:
            if event in ("connect", "disconnect", "connect_error", BridgeEvent.READY):
                return
            if self._event_handlers and isinstance(data, dict):
                for handler in list(self._event_handlers):
                    handler(event, data)

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            self._connected = False
            logger.info("Bridge disconnected")

        try:
            await self._sio.connect(
                self._base_url,
                auth={"token": self._token} if self._token else None,
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
            )
        except SocketIOConnectionError as e:
            raise ConnectionError(f"Cannot reach bridge at {self._base_url}: {e}")

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise ConnectionError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")

    def emit(self, event_type: str, data: Any, request_id: Optional[str] = None) -> None:
        """Emit an enveloped event without waiting.

        Schedules the async emit on the running event loop; failures are logged.
        """
        if not self._sio or not self._sio.connected:
            raise ConnectionError("Bridge not connected")
        envelope = build_envelope(event_type, data, client_id=self._client_id, request_id=request_id)

        async def _do_emit() -> None:
            try:
                await self._sio.emit(event_type, envelope)  # type: ignore[union-attr]
            except Exception as e:
                logger.error(f"Emit failed for {event_type}: {e}")

        asyncio.get_running_loop().create_task(_do_emit())

    async def call(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Invoke a browser API method through the bridge and return its result."""
        if not self._sio or not self._sio.connected:
            raise ConnectionError("Bridge not connected")
        request_id = str(uuid.uuid4())
        envelope = build_envelope(
            BridgeEvent.CALL, params or {},
            client_id=self._client_id,
            method=method,
            request_id=request_id,
        )

        result_event = asyncio.Event()
        result: dict[str, Any] = {}

        def response_handler(evt: str, raw: dict[str, Any]) -> None:
            if evt != BridgeEvent.RESULT:
                return
            if raw.get("metadata", {}).get("request_id") == request_id:
                result.update(raw.get("payload") or {})
                result_event.set()

        remove_handler = self.add_event_handler(response_handler)
        try:
            await self._sio.emit(BridgeEvent.CALL, envelope)
            await asyncio.wait_for(result_event.wait(), timeout=self._call_timeout)
        except asyncio.TimeoutError:
            raise SpacesError("bridge_timeout", f"Timeout waiting for {method} result")
        finally:
            remove_handler()

        error = result.get("error")
        if error:
            message = error.get("message", f"{method} failed")
            if error.get("code") == "not_found":
                raise NotFoundError(message, details={"method": method, "params": params})
            raise SpacesError(error.get("code", "bridge_error"), message, {"method": method})
        return result.get("data")

    async def disconnect(self) -> None:
        self._connected = False
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
