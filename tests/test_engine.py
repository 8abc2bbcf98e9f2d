"""Engine wiring and the bridge attachment."""

import pytest

from spaces_engine.models.events import BridgeEvent
from spaces_engine.transport.envelope import build_envelope, parse_envelope

from conftest import DASHBOARD_URL


class FakeBridge:
    """Records emits and lets tests inject bridge traffic."""

    def __init__(self):
        self.connected = True
        self.emitted: list[tuple[str, object, object]] = []
        self.handlers = []

    def add_event_handler(self, handler):
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    def emit(self, event_type, data, request_id=None):
        self.emitted.append((event_type, data, request_id))

    def deliver(self, event_type, data, request_id=None):
        raw = build_envelope(event_type, data, client_id="bridge", request_id=request_id)
        for handler in list(self.handlers):
            handler(event_type, raw)


@pytest.fixture
def bridge(engine):
    fake = FakeBridge()
    engine.attach(fake)
    return fake


class TestEngine:
    @pytest.mark.asyncio
    async def test_start_rediscovers_dashboard(self, store, windows, scratch):
        from spaces_engine.engine import SpacesEngine

        dashboard = windows.open_window([DASHBOARD_URL])
        engine = SpacesEngine(store, windows, scratch)
        await engine.start()
        assert engine.slots.open_window_id == dashboard.id
        assert scratch.values["openWindowId"] == dashboard.id
        await engine.stop()

    @pytest.mark.asyncio
    async def test_start_ignores_cached_id_of_user_window(self, store, windows, scratch):
        from spaces_engine.engine import SpacesEngine

        user = windows.open_window(["https://mail.example"])
        await scratch.set("openWindowId", user.id)
        engine = SpacesEngine(store, windows, scratch)
        await engine.start()
        try:
            assert engine.slots.open_window_id is None
            assert "openWindowId" not in scratch.values
            detail = await engine.handle_request({"action": "requestSpaceDetail", "windowId": user.id})
            assert detail["windowId"] == user.id

            await engine.handle_request({"action": "requestShowSpaces"})
            assert windows.tab_urls(user.id) == ["https://mail.example"]
            assert engine.slots.open_window_id != user.id
        finally:
            await engine.stop()

    @pytest.mark.asyncio
    async def test_push_handler_removal(self, engine, windows):
        received = []
        remove = engine.add_push_handler(received.append)
        await engine.dashboard.show()
        engine.router.request_refresh()
        await engine.idle()
        assert len(received) == 1
        remove()
        engine.router.request_refresh()
        await engine.idle()
        assert len(received) == 1


class TestBridgeAttachment:
    @pytest.mark.asyncio
    async def test_request_answered_with_same_request_id(self, engine, bridge):
        bridge.deliver(BridgeEvent.REQUEST, {"action": "requestAllSpaces"}, request_id="req-1")
        await engine.idle()
        assert bridge.emitted == [(BridgeEvent.RESPONSE, [], "req-1")]

    @pytest.mark.asyncio
    async def test_no_response_actions_stay_silent(self, engine, bridge):
        bridge.deliver(BridgeEvent.REQUEST, {"action": "requestClose"}, request_id="req-2")
        bridge.deliver(BridgeEvent.REQUEST, {"action": "unknown"}, request_id="req-3")
        await engine.idle()
        assert bridge.emitted == []

    @pytest.mark.asyncio
    async def test_lifecycle_events_routed(self, engine, bridge, windows, store):
        window = windows.open_window(["https://a.example"])
        await engine.handle_request({"action": "saveNewSession", "windowId": window.id, "sessionName": "Work"})
        await windows.remove_window(window.id)
        bridge.deliver(BridgeEvent.LIFECYCLE, {"type": "windows.onRemoved", "windowId": window.id})
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).window_id is None

    @pytest.mark.asyncio
    async def test_malformed_traffic_dropped(self, engine, bridge):
        for handler in bridge.handlers:
            handler(BridgeEvent.REQUEST, {"not": "an envelope"})
        bridge.deliver(BridgeEvent.LIFECYCLE, {"windowId": 3})
        await engine.idle()
        assert bridge.emitted == []

    @pytest.mark.asyncio
    async def test_refresh_pushed_to_bridge(self, engine, bridge, windows):
        windows.open_window(["https://a.example"])
        await engine.dashboard.show()
        engine.router.request_refresh()
        await engine.idle()
        assert bridge.emitted[-1][0] == BridgeEvent.PUSH
        assert bridge.emitted[-1][1]["action"] == "updateSpaces"


def test_envelope_round_trip():
    raw = build_envelope(BridgeEvent.CALL, {"windowId": 1}, client_id="engine", method="windows.get", request_id="abc")
    envelope = parse_envelope(raw)
    assert envelope.metadata.request_id == "abc"
    assert envelope.metadata.source.role == "engine"
    assert envelope.payload.method == "windows.get"
    assert parse_envelope({"type": "x"}) is None
