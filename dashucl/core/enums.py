from enum import Enum


class ThemeOption(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class SettingName(str, Enum):
    DARK_MODE_ENABLED = "dark_mode_enabled"
    USE_SYSTEM_THEME = "use_system_theme"
    NOTIFICATIONS_ENABLED = "notifications_enabled"
    COURSE_REMINDERS_ENABLED = "course_reminders_enabled"
    COURSE_REMINDER_LEAD_MINUTES = "course_reminder_lead_minutes"
    USE_DIRECT_API = "use_direct_api"
    DATA_REFRESH_INTERVAL_SECONDS = "data_refresh_interval_seconds"
    DEVELOPER_MODE_ENABLED = "developer_mode_enabled"


REMINDER_SETTINGS = frozenset(
    {
        SettingName.NOTIFICATIONS_ENABLED,
        SettingName.COURSE_REMINDERS_ENABLED,
        SettingName.COURSE_REMINDER_LEAD_MINUTES,
    }
)
