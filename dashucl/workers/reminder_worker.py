from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from redis.asyncio import Redis

from dashucl.core.config import get_settings
from dashucl.core.logging import configure_logging
from dashucl.integrations.notifications import RedisNotificationCenter, installations_with_reminders
from dashucl.integrations.redis import close_redis, get_redis

logger = logging.getLogger(__name__)


def notification_channel(installation_id: str) -> str:
    return f"notifications:{installation_id}"


async def process_due_reminders(redis: Redis, now: datetime | None = None) -> int:
    """Deliver every reminder whose fire time has passed and drop it from the schedule."""
    now = now or datetime.now(timezone.utc)
    delivered = 0
    for installation_id in await installations_with_reminders(redis):
        center = RedisNotificationCenter(redis, installation_id)
        for reminder in await center.pop_due(now):
            message = {
                "reminder_id": reminder.reminder_id,
                "fire_time": reminder.fire_time.isoformat(),
                **reminder.payload,
            }
            await redis.publish(notification_channel(installation_id), json.dumps(message))
            delivered += 1
            logger.info(
                "Delivered class reminder",
                extra={"installation_id": installation_id, "reminder_id": reminder.reminder_id},
            )
    return delivered


async def worker_loop() -> None:
    configure_logging()
    settings = get_settings()
    redis = await get_redis()
    logger.info("Reminder worker started")
    try:
        while True:
            try:
                await process_due_reminders(redis)
            except Exception:
                logger.exception("Worker iteration failed")
            await asyncio.sleep(settings.worker_poll_interval_sec)
    finally:
        await close_redis()


if __name__ == "__main__":
    asyncio.run(worker_loop())
