from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from dashucl.core.config import get_settings
from dashucl.core.exceptions import UpstreamError
from dashucl.core.logging import mask_token

logger = logging.getLogger(__name__)

PERSONAL_TIMETABLE_PATH = "/timetable/personal"
OAUTH_TOKEN_PATH = "/oauth/token"
OAUTH_USER_DATA_PATH = "/oauth/user/data"


@dataclass(slots=True)
class ClassEvent:
    event_id: str
    title: str
    location: str
    start_time: datetime
    end_time: datetime | None = None


def _parse_moment(value: str, day: date | None, tz: ZoneInfo) -> datetime:
    value = value.strip()
    if len(value) <= 5 and ":" in value:
        if day is None:
            raise ValueError(f"time-only value {value!r} without a date")
        hours, minutes = value.split(":", 1)
        return datetime.combine(day, time(int(hours), int(minutes)), tzinfo=tz)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_class_event(raw: dict[str, Any], day: date | None, tz: ZoneInfo) -> ClassEvent:
    start_time = _parse_moment(str(raw["start_time"]), day, tz)
    end_raw = raw.get("end_time")
    end_time = _parse_moment(str(end_raw), day, tz) if end_raw else None

    module = raw.get("module") or {}
    location = raw.get("location") or {}
    title = module.get("name") or raw.get("session_title") or "Class"
    event_id = raw.get("session_id") or f"{module.get('module_id') or 'event'}-{start_time:%Y%m%dT%H%M}"
    return ClassEvent(
        event_id=str(event_id),
        title=str(title),
        location=str(location.get("name") or "Unknown location"),
        start_time=start_time,
        end_time=end_time,
    )


def parse_timetable(payload: dict[str, Any], tz: ZoneInfo) -> list[ClassEvent]:
    """Flatten ``{"timetable": {"YYYY-MM-DD": [event, ...]}}`` into class events.

    Entries that cannot be parsed are skipped, matching how the app tolerated
    partial timetables.
    """
    timetable = payload.get("timetable")
    if not isinstance(timetable, dict):
        return []

    events: list[ClassEvent] = []
    for date_key, raw_events in timetable.items():
        if not isinstance(raw_events, list):
            continue
        try:
            day: date | None = date.fromisoformat(date_key)
        except ValueError:
            day = None
        for raw in raw_events:
            try:
                events.append(parse_class_event(raw, day, tz))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping unparsable timetable entry", extra={"date": date_key, "error": str(exc)})
    events.sort(key=lambda item: item.start_time)
    return events


class UCLAPIClient:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        self.base_url = settings.upstream_base_url
        self.client_id = settings.ucl_client_id
        self.client_secret = settings.ucl_client_secret
        self.timeout = settings.upstream_timeout_sec
        self.tz = ZoneInfo(settings.campus_timezone)
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(details={"path": path, "reason": str(exc)}) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("UCL API returned invalid JSON", details={"path": path, "status": response.status_code}) from exc
        if not isinstance(data, dict):
            raise UpstreamError("UCL API returned unexpected payload", details={"path": path})
        return data

    async def personal_timetable(self, token: str) -> list[ClassEvent]:
        logger.info("Fetching personal timetable", extra={"token": mask_token(token)})
        data = await self._get_json(
            PERSONAL_TIMETABLE_PATH,
            {"token": token, "client_secret": self.client_secret},
        )
        if data.get("ok") is False:
            raise UpstreamError("UCL API rejected timetable request", details={"error": data.get("error")})
        return parse_timetable(data, self.tz)

    async def exchange_code(self, code: str) -> dict[str, Any]:
        return await self._get_json(
            OAUTH_TOKEN_PATH,
            {"client_id": self.client_id, "client_secret": self.client_secret, "code": code},
        )

    async def user_data(self, token: str) -> dict[str, Any]:
        return await self._get_json(
            OAUTH_USER_DATA_PATH,
            {"token": token, "client_secret": self.client_secret},
        )
