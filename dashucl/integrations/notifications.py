"""Local-notification facility used by the reminder scheduler.

A notification center keeps pending reminders ordered by fire time. The Redis
implementation keeps one sorted set per installation (score = fire time as a
UTC timestamp) next to a hash of JSON payloads, so the delivery worker can
pick up everything that is due with a single range query.
"""

from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import WatchError

logger = logging.getLogger(__name__)

INSTALLATIONS_KEY = "reminders:installations"


@dataclass(slots=True)
class PendingReminder:
    reminder_id: str
    fire_time: datetime
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationCenter(abc.ABC):
    @abc.abstractmethod
    async def cancel_all(self) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def schedule_at(self, reminder_id: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def describe_pending(self) -> list[PendingReminder]:
        raise NotImplementedError

    @abc.abstractmethod
    async def pop_due(self, now: datetime) -> list[PendingReminder]:
        raise NotImplementedError

    async def list_pending(self) -> list[str]:
        return [item.reminder_id for item in await self.describe_pending()]


class InMemoryNotificationCenter(NotificationCenter):
    def __init__(self) -> None:
        self._pending: dict[str, PendingReminder] = {}

    async def cancel_all(self) -> int:
        count = len(self._pending)
        self._pending.clear()
        return count

    async def schedule_at(self, reminder_id: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        self._pending[reminder_id] = PendingReminder(reminder_id, fire_time, dict(payload))

    async def describe_pending(self) -> list[PendingReminder]:
        return sorted(self._pending.values(), key=lambda item: (item.fire_time, item.reminder_id))

    async def pop_due(self, now: datetime) -> list[PendingReminder]:
        due = [item for item in await self.describe_pending() if item.fire_time <= now]
        for item in due:
            del self._pending[item.reminder_id]
        return due


class RedisNotificationCenter(NotificationCenter):
    def __init__(self, redis: Redis, installation_id: str) -> None:
        self.redis = redis
        self.installation_id = installation_id
        self.schedule_key = f"reminders:{installation_id}:schedule"
        self.payload_key = f"reminders:{installation_id}:payloads"

    async def cancel_all(self) -> int:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zcard(self.schedule_key)
            pipe.delete(self.schedule_key, self.payload_key)
            pipe.srem(INSTALLATIONS_KEY, self.installation_id)
            count, _, _ = await pipe.execute()
        return int(count)

    async def schedule_at(self, reminder_id: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zadd(self.schedule_key, {reminder_id: _to_score(fire_time)})
            pipe.hset(self.payload_key, reminder_id, json.dumps(payload))
            pipe.sadd(INSTALLATIONS_KEY, self.installation_id)
            await pipe.execute()

    async def describe_pending(self) -> list[PendingReminder]:
        entries = await self.redis.zrange(self.schedule_key, 0, -1, withscores=True)
        if not entries:
            return []
        ids = [reminder_id for reminder_id, _ in entries]
        raw_payloads = await self.redis.hmget(self.payload_key, ids)
        return [
            PendingReminder(reminder_id, _from_score(score), json.loads(raw) if raw else {})
            for (reminder_id, score), raw in zip(entries, raw_payloads)
        ]

    async def pop_due(self, now: datetime) -> list[PendingReminder]:
        entries = await self.redis.zrangebyscore(self.schedule_key, "-inf", _to_score(now), withscores=True)
        claimed: list[PendingReminder] = []
        for reminder_id, score in entries:
            # zrem acts as the claim; a concurrent worker that loses gets 0.
            if not await self.redis.zrem(self.schedule_key, reminder_id):
                continue
            raw = await self.redis.hget(self.payload_key, reminder_id)
            await self.redis.hdel(self.payload_key, reminder_id)
            claimed.append(PendingReminder(reminder_id, _from_score(score), json.loads(raw) if raw else {}))
        if claimed:
            await self._forget_if_empty()
        return claimed

    async def _forget_if_empty(self) -> None:
        # A schedule_at racing with this check touches the watched key and aborts the removal.
        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(self.schedule_key)
                if await pipe.zcard(self.schedule_key):
                    return
                pipe.multi()
                pipe.srem(INSTALLATIONS_KEY, self.installation_id)
                await pipe.execute()
            except WatchError:
                logger.debug("Schedule changed while pruning", extra={"installation_id": self.installation_id})


async def installations_with_reminders(redis: Redis) -> list[str]:
    return sorted(await redis.smembers(INSTALLATIONS_KEY))


def _to_score(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _from_score(score: float) -> datetime:
    return datetime.fromtimestamp(float(score), tz=timezone.utc)
