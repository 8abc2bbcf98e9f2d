"""Lifecycle event routing, driven through SpacesEngine.submit_event."""

import asyncio

import pytest

from spaces_engine.models.session import WindowBounds

from conftest import DASHBOARD_URL, POPUP_URL, make_session


async def bound_window(windows, store, name, urls):
    window = windows.open_window(urls)
    await store.create_session(make_session(name, urls, window_id=window.id))
    return window


class TestInternalWindowFilter:
    @pytest.mark.asyncio
    async def test_dashboard_tab_events_ignored(self, engine, windows, pushes):
        windows.open_window(["https://a.example"])
        dashboard_id = await engine.dashboard.show()
        engine.submit_event({"type": "tabs.onUpdated", "windowId": dashboard_id, "tabId": 1})
        await engine.idle()
        assert pushes == []

    @pytest.mark.asyncio
    async def test_ordinary_tab_events_refresh_dashboard(self, engine, windows, store, pushes):
        window = await bound_window(windows, store, "Work", ["https://a.example"])
        await engine.dashboard.show()
        await windows.create_tab("https://b.example", window_id=window.id)
        engine.submit_event({"type": "tabs.onCreated", "windowId": window.id})
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).urls == ["https://a.example", "https://b.example"]
        assert pushes[-1]["spaces"][0]["tabs"][1]["url"] == "https://b.example"

    @pytest.mark.asyncio
    async def test_tab_event_during_utility_window_creation(self, engine, windows, store, pushes):
        await bound_window(windows, store, "Work", ["https://a.example"])
        windows.create_gate = asyncio.Event()
        showing = asyncio.create_task(engine.dashboard.show())
        while not windows.created_windows:
            await asyncio.sleep(0)

        # The browser reports the new window's tab before create_window returns.
        dashboard_id = max(windows.windows)
        engine.submit_event({"type": "tabs.onCreated", "windowId": dashboard_id})
        await asyncio.sleep(0)
        windows.create_gate.set()
        assert await showing == dashboard_id

        await engine.idle()
        assert pushes == []

    @pytest.mark.asyncio
    async def test_utility_window_removed_releases_slot(self, engine, windows, scratch):
        dashboard_id = await engine.dashboard.show()
        await windows.remove_window(dashboard_id)
        engine.submit_event({"type": "windows.onRemoved", "windowId": dashboard_id})
        await engine.idle()
        assert engine.slots.open_window_id is None
        assert "openWindowId" not in scratch.values


class TestWindowEvents:
    @pytest.mark.asyncio
    async def test_tabs_closing_with_window_keep_session(self, engine, windows, store):
        window = await bound_window(windows, store, "Work", ["https://a.example", "https://b.example"])
        await windows.remove_tab(window.tabs[1].id)
        engine.submit_event({
            "type": "tabs.onRemoved", "windowId": window.id, "tabId": window.tabs[1].id,
            "data": {"isWindowClosing": True},
        })
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).urls == ["https://a.example", "https://b.example"]

        engine.submit_event({"type": "tabs.onRemoved", "windowId": window.id, "data": {"isWindowClosing": False}})
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).urls == ["https://a.example"]

    @pytest.mark.asyncio
    async def test_window_removed_unbinds(self, engine, windows, store):
        window = await bound_window(windows, store, "Work", ["https://a.example"])
        await windows.remove_window(window.id)
        engine.submit_event({"type": "windows.onRemoved", "windowId": window.id})
        await engine.idle()
        session = await store.fetch_session_by_id(1)
        assert session.window_id is None
        assert session.urls == ["https://a.example"]

    @pytest.mark.asyncio
    async def test_last_window_closes_dashboard(self, engine, windows):
        window = windows.open_window(["https://a.example"])
        dashboard_id = await engine.dashboard.show()
        await windows.remove_window(window.id)
        engine.submit_event({"type": "windows.onRemoved", "windowId": window.id})
        await engine.idle()
        assert dashboard_id not in windows.windows
        assert engine.slots.open_window_id is None

    @pytest.mark.asyncio
    async def test_dashboard_kept_while_windows_remain(self, engine, windows):
        first = windows.open_window(["https://a.example"])
        windows.open_window(["https://b.example"])
        dashboard_id = await engine.dashboard.show()
        await windows.remove_window(first.id)
        engine.submit_event({"type": "windows.onRemoved", "windowId": first.id})
        await engine.idle()
        assert dashboard_id in windows.windows

    @pytest.mark.asyncio
    async def test_bounds_changed_persisted(self, engine, windows, store):
        window = await bound_window(windows, store, "Work", ["https://a.example"])
        engine.submit_event({
            "type": "windows.onBoundsChanged", "windowId": window.id,
            "data": {"left": 1, "top": 2, "width": 300, "height": 400},
        })
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).window_bounds == WindowBounds(left=1, top=2, width=300, height=400)

        windows.windows[window.id].width = 999
        engine.submit_event({"type": "windows.onBoundsChanged", "windowId": window.id})
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).window_bounds.width == 999


class TestFocus:
    @pytest.mark.asyncio
    async def test_focus_elsewhere_closes_popup(self, engine, windows, store):
        window = await bound_window(windows, store, "Work", ["https://a.example"])
        popup_id = await engine.popup.show("switch")
        engine.submit_event({"type": "windows.onFocusChanged", "windowId": window.id})
        await engine.idle()
        assert popup_id not in windows.windows
        assert (await store.fetch_session_by_id(1)).last_access is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["none", "popup"])
    async def test_popup_survives(self, engine, windows, target):
        windows.open_window(["https://a.example"])
        popup_id = await engine.popup.show("switch")
        engine.submit_event({"type": "windows.onFocusChanged", "windowId": -1 if target == "none" else popup_id})
        await engine.idle()
        assert popup_id in windows.windows

    @pytest.mark.asyncio
    async def test_focus_on_dashboard_closes_popup(self, engine, windows):
        windows.open_window(["https://a.example"])
        dashboard_id = await engine.dashboard.show()
        popup_id = await engine.popup.show("switch")
        engine.submit_event({"type": "windows.onFocusChanged", "windowId": dashboard_id})
        await engine.idle()
        assert popup_id not in windows.windows
        assert dashboard_id in windows.windows


class TestRuntimeEvents:
    @pytest.mark.asyncio
    async def test_startup_clears_bindings_and_rediscovers(self, engine, windows, store):
        await store.create_session(make_session("Work", ["https://a.example"], window_id=5))
        dashboard = windows.open_window([DASHBOARD_URL])
        engine.submit_event({"type": "runtime.onStartup"})
        await engine.idle()
        assert (await store.fetch_session_by_id(1)).window_id is None
        assert engine.slots.open_window_id == dashboard.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason,opened", [("install", True), ("update", False)])
    async def test_installed(self, engine, reason, opened):
        engine.submit_event({"type": "runtime.onInstalled", "data": {"reason": reason}})
        await engine.idle()
        assert (engine.slots.open_window_id is not None) is opened

    @pytest.mark.asyncio
    async def test_switch_command_opens_popup(self, engine, windows):
        windows.open_window(["https://a.example"])
        engine.submit_event({"type": "commands.onCommand", "data": {"command": "spaces-switch"}})
        await engine.idle()
        popup_id = engine.slots.popup_window_id
        assert windows.tab_urls(popup_id)[0].startswith(POPUP_URL + "#opener=bg&action=switch")

    @pytest.mark.asyncio
    async def test_context_menu_opens_mover_with_link(self, engine, windows):
        windows.open_window(["https://a.example"])
        engine.submit_event({
            "type": "contextMenus.onClicked",
            "data": {"menuItemId": "spaces-add-link", "linkUrl": "https://x.example"},
        })
        await engine.idle()
        url = windows.tab_urls(engine.slots.popup_window_id)[0]
        assert "action=move" in url
        assert url.endswith("&url=https%3A%2F%2Fx.example")

    @pytest.mark.asyncio
    async def test_unknown_event_ignored(self, engine):
        engine.submit_event({"type": "bookmarks.onCreated"})
        await engine.idle()


class TestRefreshCoalescing:
    @pytest.mark.asyncio
    async def test_requests_during_refresh_collapse(self, engine, monkeypatch):
        calls = 0
        gate = asyncio.Event()

        async def slow_refresh():
            nonlocal calls
            calls += 1
            await gate.wait()

        monkeypatch.setattr(engine.router, "refresh", slow_refresh)
        engine.router.request_refresh("first")
        await asyncio.sleep(0)
        for _ in range(5):
            engine.router.request_refresh("burst")
        gate.set()
        await engine.idle()
        assert calls == 2

        engine.router.request_refresh("later")
        await engine.idle()
        assert calls == 3

    @pytest.mark.asyncio
    async def test_failed_refresh_does_not_wedge(self, engine, monkeypatch):
        calls = 0

        async def failing_refresh():
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        monkeypatch.setattr(engine.router, "refresh", failing_refresh)
        engine.router.request_refresh()
        await engine.idle()
        engine.router.request_refresh()
        await engine.idle()
        assert calls == 2

    @pytest.mark.asyncio
    async def test_dashboard_closed_externally(self, engine, windows, pushes):
        dashboard_id = await engine.dashboard.show()
        await windows.remove_window(dashboard_id)
        await engine.router.refresh()
        assert engine.slots.open_window_id is None
        assert pushes == []
