from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class PendingReminderRead(BaseModel):
    model_config = {"from_attributes": True}

    reminder_id: str
    fire_time: datetime
    payload: dict[str, Any] = Field(default_factory=dict)


class RescheduleRead(BaseModel):
    enabled: bool
    cancelled: int
    scheduled: int = 0
    skipped: int = 0
    reschedule_required: bool = False
    error: str | None = None
