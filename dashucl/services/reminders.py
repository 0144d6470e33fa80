from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from dashucl.core.enums import REMINDER_SETTINGS
from dashucl.core.exceptions import ReminderSyncError
from dashucl.integrations.notifications import NotificationCenter, PendingReminder
from dashucl.integrations.ucl_api import ClassEvent
from dashucl.services.settings import SettingChange, SettingsStore

logger = logging.getLogger(__name__)

REMINDER_ID_PREFIX = "class-reminder-"
REMINDER_CATEGORY = "CLASS_REMINDER"
REMINDER_TITLE = "Class Reminder"

EventSource = Callable[[], Awaitable[Sequence[ClassEvent]]]


def calculate_fire_time(start_time: datetime, lead_minutes: int) -> datetime:
    return start_time - timedelta(minutes=lead_minutes)


def reminder_id_for(event_id: str) -> str:
    return f"{REMINDER_ID_PREFIX}{event_id}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PlannedReminder:
    event: ClassEvent
    lead_minutes: int
    fire_time: datetime

    @property
    def reminder_id(self) -> str:
        return reminder_id_for(self.event.event_id)

    def payload(self) -> dict[str, Any]:
        return {
            "event_id": self.event.event_id,
            "title": REMINDER_TITLE,
            "body": f"{self.event.title} starts in {self.lead_minutes} minutes at {self.event.location}",
            "category": REMINDER_CATEGORY,
            "class_title": self.event.title,
            "location": self.event.location,
            "start_time": self.event.start_time.isoformat(),
            "lead_minutes": self.lead_minutes,
        }


def plan_reminders(
    events: Iterable[ClassEvent],
    lead_minutes: int,
    now: datetime,
) -> tuple[list[PlannedReminder], int]:
    """Return the reminders to register and the number of events left out.

    Only events that have not started are candidates, and of those only the
    ones whose fire time is still ahead of ``now``. One reminder per event id;
    a later duplicate replaces an earlier one.
    """
    planned: dict[str, PlannedReminder] = {}
    skipped = 0
    for event in events:
        if event.start_time <= now:
            skipped += 1
            continue
        fire_time = calculate_fire_time(event.start_time, lead_minutes)
        if fire_time <= now:
            skipped += 1
            continue
        planned[event.event_id] = PlannedReminder(event=event, lead_minutes=lead_minutes, fire_time=fire_time)
    return sorted(planned.values(), key=lambda item: item.fire_time), skipped


@dataclass(slots=True)
class RescheduleResult:
    enabled: bool
    cancelled: int
    scheduled: int = 0
    skipped: int = 0
    reschedule_required: bool = False
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class ReminderScheduler:
    """Cancel-all-then-reschedule over a notification center.

    Not safe against overlapping calls for the same installation; callers
    serialise invocations.
    """

    def __init__(self, center: NotificationCenter, clock: Callable[[], datetime] = utcnow) -> None:
        self.center = center
        self.clock = clock

    async def cancel_all(self) -> int:
        cancelled = await self.center.cancel_all()
        logger.info("Cancelled class reminders", extra={"count": cancelled})
        return cancelled

    async def pending(self) -> list[PendingReminder]:
        return await self.center.describe_pending()

    async def reschedule(
        self,
        enabled: bool,
        lead_minutes: int,
        fetch_events: EventSource | None,
    ) -> RescheduleResult:
        cancelled = await self.cancel_all()
        if not enabled:
            return RescheduleResult(enabled=False, cancelled=cancelled)
        if fetch_events is None:
            logger.info("No event source available; reminders stay cancelled until the next reschedule")
            return RescheduleResult(enabled=True, cancelled=cancelled, reschedule_required=True)

        try:
            events = await fetch_events()
        except Exception as exc:
            logger.warning("Failed to fetch events for reminders", extra={"error": str(exc)})
            raise ReminderSyncError(details={"reason": str(exc), "cancelled": cancelled}) from exc

        planned, skipped = plan_reminders(events, lead_minutes, self.clock())
        for item in planned:
            await self.center.schedule_at(item.reminder_id, item.fire_time, item.payload())
        logger.info(
            "Scheduled class reminders",
            extra={"scheduled": len(planned), "skipped": skipped, "lead_minutes": lead_minutes},
        )
        return RescheduleResult(enabled=True, cancelled=cancelled, scheduled=len(planned), skipped=skipped)


class ReminderCoordinator:
    """Keeps registered reminders in line with the installation's settings."""

    def __init__(
        self,
        store: SettingsStore,
        scheduler: ReminderScheduler,
        fetch_events: EventSource | None = None,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.fetch_events = fetch_events
        self.last_result: RescheduleResult | None = None

    async def sync(self) -> RescheduleResult:
        enabled, lead_minutes = await self.store.reminder_preferences()
        self.last_result = await self.scheduler.reschedule(enabled, lead_minutes, self.fetch_events)
        return self.last_result

    async def handle_settings_changes(self, changes: list[SettingChange]) -> None:
        if not any(change.name in REMINDER_SETTINGS for change in changes):
            return
        try:
            await self.sync()
        except ReminderSyncError as exc:
            self.last_result = RescheduleResult(
                enabled=True,
                cancelled=int(exc.details.get("cancelled", 0)),
                reschedule_required=True,
                error=exc.message,
            )
