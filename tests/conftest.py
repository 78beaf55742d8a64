"""
Shared test fixtures for strapi-mcp tests.
Patches config module to avoid loading a real .env and making network calls.
"""

import asyncio
import json
import os
import sys

import httpx
import pytest

# Add project root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from strapi_mcp.config import AuthSettings  # noqa: E402

BASE_URL = "http://strapi.test"


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Ensure every test starts with a clean config state.
    Prevents tests from reading the real .env or writing a token cache."""
    from strapi_mcp import config

    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "STRAPI_URL", BASE_URL)
    monkeypatch.setattr(config, "API_TOKEN", "")
    monkeypatch.setattr(config, "ADMIN_EMAIL", "")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "")
    monkeypatch.setattr(config, "DEV_MODE", False)
    monkeypatch.setattr(config, "HTTP_LOG_ENABLED", False)
    monkeypatch.setattr(config, "TOKEN_CACHE_ENABLED", False)
    monkeypatch.setattr(config, "TOOL_LOG_PATH", "")


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeSleep:
    """Records requested delays, advances the clock, and yields to the loop."""

    def __init__(self, clock):
        self.clock = clock
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return FakeSleep(clock)


def make_settings(admin=True, token=None, **overrides):
    values = {
        "base_url": BASE_URL,
        "api_token": token,
        "admin_email": "admin@example.com" if admin else None,
        "admin_password": "s3cret" if admin else None,
        "login_min_interval": 1.0,
        "login_retry_base": 1.0,
        "login_max_attempts": 3,
        "login_poll_interval": 0.1,
        "login_max_polls": 300,
    }
    values.update(overrides)
    return AuthSettings(**values)


def json_response(status, payload=None, headers=None):
    content = b"" if payload is None else json.dumps(payload).encode()
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    return httpx.Response(status, content=content, headers=all_headers)


def login_ok(token="abc"):
    return json_response(200, {"data": {"token": token, "user": {"id": 1}}})


def mock_http(handler):
    """AsyncClient whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


class Recorder:
    """Routes requests by (method, path) and keeps a log of what was sent."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    async def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return json_response(404, {"error": {"status": 404, "message": "Not Found"}})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route):
            result = route(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)
