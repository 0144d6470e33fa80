from __future__ import annotations

from collections.abc import Callable

import fakeredis.aioredis
import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from dashucl.api import deps
from dashucl.core.config import get_settings
from dashucl.main import app


class UpstreamStub:
    """Stands in for uclapi.com behind an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={"ok": True})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture()
def redis_client():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture()
def configured_settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "ucl_client_id", "client-id")
    monkeypatch.setattr(settings, "ucl_client_secret", "server-secret")
    monkeypatch.setattr(settings, "env", "dev")
    return settings


@pytest.fixture()
async def app_client(redis_client, upstream, configured_settings):
    async def override_redis():
        return redis_client

    async def override_transport():
        return upstream.transport

    app.dependency_overrides[deps.get_redis_client] = override_redis
    app.dependency_overrides[deps.get_upstream_transport] = override_transport

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture()
def installation_headers() -> dict[str, str]:
    return {"X-Installation-Id": "device-0001"}
