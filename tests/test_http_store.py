"""HttpSessionStore against a mocked REST service."""

import json

import httpx
import pytest

from spaces_engine.errors import NotFoundError, SpacesError
from spaces_engine.stores.http import HttpSessionStore
from spaces_engine.transport.http import HttpClient

from conftest import make_session


class FakeSessionService:
    def __init__(self):
        self.sessions = {1: {"id": 1, "name": "Work", "windowId": 4, "tabs": [{"url": "https://a.example"}]}}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/v1/sessions" and request.method == "GET":
            found = list(self.sessions.values())
            if "windowId" in request.url.params:
                found = [s for s in found if s.get("windowId") == int(request.url.params["windowId"])]
            if "name" in request.url.params:
                wanted = request.url.params["name"].casefold()
                found = [s for s in found if s["name"].casefold() == wanted]
            return httpx.Response(200, json={"status": "success", "data": {"sessions": found}})
        if path == "/api/v1/sessions" and request.method == "POST":
            body = json.loads(request.content)
            body["id"] = max(self.sessions) + 1
            self.sessions[body["id"]] = body
            return httpx.Response(200, json={"status": "success", "data": body})

        session_id = int(path.rsplit("/", 1)[-1])
        if session_id not in self.sessions:
            return httpx.Response(404, json={"status": "error"})
        if request.method == "GET":
            return httpx.Response(200, json={"status": "success", "data": self.sessions[session_id]})
        if request.method == "PUT":
            body = json.loads(request.content)
            body["id"] = session_id
            self.sessions[session_id] = body
            return httpx.Response(200, json={"status": "success", "data": body})
        if request.method == "DELETE":
            del self.sessions[session_id]
            return httpx.Response(204)
        return httpx.Response(500, text="unsupported")


@pytest.fixture
def service():
    return FakeSessionService()


@pytest.fixture
def http_store(service):
    client = HttpClient(base_url="http://store.test", token="secret")
    client._client = httpx.AsyncClient(base_url="http://store.test/api", transport=httpx.MockTransport(service))
    return HttpSessionStore(client)


class TestHttpSessionStore:
    @pytest.mark.asyncio
    async def test_fetches(self, http_store, service):
        assert [s.name for s in await http_store.fetch_all_sessions()] == ["Work"]
        assert (await http_store.fetch_session_by_id(1)).window_id == 4
        assert await http_store.fetch_session_by_id(9) is None
        assert (await http_store.fetch_session_by_window_id(4)).id == 1
        assert await http_store.fetch_session_by_window_id(5) is None
        assert (await http_store.fetch_session_by_name("WORK")).id == 1
        assert service.requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_create_update_remove(self, http_store, service):
        created = await http_store.create_session(make_session("Home", ["https://b.example"]))
        assert created.id == 2
        created.window_id = 8
        await http_store.update_session(created)
        assert service.sessions[2]["windowId"] == 8
        assert await http_store.remove_session(2)
        assert not await http_store.remove_session(2)
        await http_store.close()

    @pytest.mark.asyncio
    async def test_errors_mapped(self, service):
        def broken(request):
            return httpx.Response(503, text="down")

        client = HttpClient(base_url="http://store.test")
        client._client = httpx.AsyncClient(base_url="http://store.test/api", transport=httpx.MockTransport(broken))
        with pytest.raises(SpacesError) as excinfo:
            await client.get("/v1/sessions")
        assert excinfo.value.code == "http_error"
        assert not isinstance(excinfo.value, NotFoundError)
