# Shared fixtures: fake clock, fake identity API, session factory.
# Created: 2026-10-16

import asyncio
import json

import httpx
import pytest

from munchvendor.config import Settings
from munchvendor.session.cookies import CookieJar
from munchvendor.session.manager import SessionManager
from munchvendor.session.navigation import Navigator
from munchvendor.session.storage import MemoryStorage

API_BASE = "https://api.test/api/v1"
API_KEY = "test-api-key"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAPI:
    """MockTransport handler with per-route response queues.

    ``add("POST", "/auth/login", 200, {"ok": True})`` queues one response;
    the last queued response for a route is repeated once the queue drains.
    A response may also be an exception instance, which is raised.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list] = {}
        self.delay = 0.0

    def add(self, method: str, path: str, status: int = 200, body=None, *, exc=None) -> None:
        self._routes.setdefault((method, path), []).append((status, body, exc))

    def calls(self, path: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.path == f"/api/v1{path}" and (method is None or r.method == method)
        ]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        path = request.url.path.removeprefix("/api/v1")
        queue = self._routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"message": "not found"})
        status, body, exc = queue.pop(0) if len(queue) > 1 else queue[0]
        if exc is not None:
            raise exc
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


def request_json(request: httpx.Request):
    return json.loads(request.content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(api_base=API_BASE, api_key=API_KEY)


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
async def session(settings, api, clock):
    http = httpx.AsyncClient(transport=httpx.MockTransport(api))
    manager = SessionManager(
        settings,
        storage=MemoryStorage(),
        cookies=CookieJar(MemoryStorage(), clock=clock),
        http=http,
        navigator=Navigator(),
        clock=clock,
    )
    yield manager
    await http.aclose()
