from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis


class SettingsRepository:
    """Key-value persistence for one installation, JSON-encoded in a Redis hash."""

    def __init__(self, redis: Redis, installation_id: str) -> None:
        self.redis = redis
        self.key = f"settings:{installation_id}"

    async def load(self, storage_key: str) -> Any | None:
        raw = await self.redis.hget(self.key, storage_key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def load_all(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for storage_key, raw in (await self.redis.hgetall(self.key)).items():
            try:
                result[storage_key] = json.loads(raw)
            except json.JSONDecodeError:
                continue
        return result

    async def save(self, storage_key: str, value: Any) -> None:
        await self.redis.hset(self.key, storage_key, json.dumps(value))

    async def save_many(self, values: dict[str, Any]) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(self.key, mapping={key: json.dumps(value) for key, value in values.items()})
            await pipe.execute()
