from __future__ import annotations

import re

import httpx
from fastapi import Depends, Header
from redis.asyncio import Redis

from dashucl.core.config import get_settings
from dashucl.core.exceptions import BadRequestError
from dashucl.integrations.notifications import RedisNotificationCenter
from dashucl.integrations.redis import get_redis
from dashucl.integrations.ucl_api import UCLAPIClient
from dashucl.repositories.settings import SettingsRepository
from dashucl.services.proxy import UCLProxyService
from dashucl.services.reminders import ReminderCoordinator, ReminderScheduler
from dashucl.services.settings import SettingsStore

INSTALLATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


async def get_redis_client() -> Redis:
    return await get_redis()


async def get_upstream_transport() -> httpx.AsyncBaseTransport | None:
    return None


async def get_installation_id(x_installation_id: str | None = Header(default=None)) -> str:
    value = (x_installation_id or "").strip()
    if not value:
        raise BadRequestError("X-Installation-Id header missing")
    if not INSTALLATION_ID_PATTERN.match(value):
        raise BadRequestError("Invalid installation id", details={"installation_id": value[:64]})
    return value


async def get_proxy_service(
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
) -> UCLProxyService:
    return UCLProxyService(get_settings(), transport=transport)


async def get_ucl_client(
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
) -> UCLAPIClient:
    return UCLAPIClient(transport=transport)


async def get_settings_store(
    installation_id: str = Depends(get_installation_id),
    redis: Redis = Depends(get_redis_client),
) -> SettingsStore:
    return SettingsStore(SettingsRepository(redis, installation_id), get_settings())


async def get_reminder_scheduler(
    installation_id: str = Depends(get_installation_id),
    redis: Redis = Depends(get_redis_client),
) -> ReminderScheduler:
    return ReminderScheduler(RedisNotificationCenter(redis, installation_id))


async def get_reminder_coordinator(
    store: SettingsStore = Depends(get_settings_store),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    client: UCLAPIClient = Depends(get_ucl_client),
    x_ucl_token: str | None = Header(default=None),
) -> ReminderCoordinator:
    token = (x_ucl_token or "").strip()

    async def fetch_events():
        return await client.personal_timetable(token)

    coordinator = ReminderCoordinator(store, scheduler, fetch_events if token else None)
    store.subscribe(coordinator.handle_settings_changes)
    return coordinator
