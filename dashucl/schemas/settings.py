from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dashucl.core.enums import ThemeOption


class SettingsRead(BaseModel):
    dark_mode_enabled: bool
    use_system_theme: bool
    notifications_enabled: bool
    course_reminders_enabled: bool
    course_reminder_lead_minutes: int
    use_direct_api: bool
    data_refresh_interval_seconds: float
    developer_mode_enabled: bool
    theme: ThemeOption


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dark_mode_enabled: bool | None = None
    use_system_theme: bool | None = None
    notifications_enabled: bool | None = None
    course_reminders_enabled: bool | None = None
    course_reminder_lead_minutes: int | None = Field(default=None, ge=1, le=1440)
    use_direct_api: bool | None = None
    data_refresh_interval_seconds: float | None = Field(default=None, gt=0)
    developer_mode_enabled: bool | None = None


class ThemeUpdate(BaseModel):
    theme: ThemeOption


class SettingsOptionsRead(BaseModel):
    reminder_lead_options: list[int]
    defaults: dict[str, bool | int | float]
