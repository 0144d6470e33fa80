from __future__ import annotations

import json

import fakeredis.aioredis
import pytest

from dashucl.core.config import get_settings
from dashucl.core.enums import SettingName, ThemeOption
from dashucl.core.exceptions import ValidationAppError
from dashucl.repositories.settings import SettingsRepository
from dashucl.services.settings import SettingsStore

DEFAULTS = {
    "dark_mode_enabled": False,
    "use_system_theme": True,
    "notifications_enabled": True,
    "course_reminders_enabled": True,
    "course_reminder_lead_minutes": 15,
    "use_direct_api": True,
    "data_refresh_interval_seconds": 300.0,
    "developer_mode_enabled": False,
}


@pytest.fixture()
def redis():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(redis) -> SettingsStore:
    return SettingsStore(SettingsRepository(redis, "device-1"), get_settings().model_copy())


@pytest.mark.asyncio
async def test_first_read_returns_defaults_and_persists_them(store, redis):
    assert await store.get(SettingName.COURSE_REMINDER_LEAD_MINUTES) == 15
    assert await store.get("data_refresh_interval_seconds") == 300.0

    assert await redis.hget("settings:device-1", "persistent.courseReminderTime") == "15"
    assert await store.snapshot() == DEFAULTS


@pytest.mark.asyncio
async def test_set_persists_immediately(store, redis):
    change = await store.set(SettingName.DARK_MODE_ENABLED, True)

    assert change is not None
    assert (change.old, change.new) == (False, True)
    assert json.loads(await redis.hget("settings:device-1", "persistent.appDarkModeEnabled")) is True

    reloaded = SettingsStore(SettingsRepository(redis, "device-1"), store.settings)
    assert await reloaded.get(SettingName.DARK_MODE_ENABLED) is True


@pytest.mark.asyncio
async def test_settings_are_isolated_per_installation(store, redis):
    await store.set(SettingName.DEVELOPER_MODE_ENABLED, True)
    other = SettingsStore(SettingsRepository(redis, "device-2"), store.settings)

    assert await other.get(SettingName.DEVELOPER_MODE_ENABLED) is False


@pytest.mark.asyncio
async def test_reset_to_defaults_restores_every_setting(store):
    await store.update(
        {
            "dark_mode_enabled": True,
            "use_system_theme": False,
            "notifications_enabled": False,
            "course_reminders_enabled": False,
            "course_reminder_lead_minutes": 60,
            "data_refresh_interval_seconds": 42.5,
            "developer_mode_enabled": True,
        }
    )

    changes = await store.reset_to_defaults()

    assert await store.snapshot() == DEFAULTS
    assert {change.name for change in changes} == {
        SettingName.DARK_MODE_ENABLED,
        SettingName.USE_SYSTEM_THEME,
        SettingName.NOTIFICATIONS_ENABLED,
        SettingName.COURSE_REMINDERS_ENABLED,
        SettingName.COURSE_REMINDER_LEAD_MINUTES,
        SettingName.DATA_REFRESH_INTERVAL_SECONDS,
        SettingName.DEVELOPER_MODE_ENABLED,
    }


@pytest.mark.asyncio
async def test_non_positive_stored_durations_fall_back_to_defaults(store, redis):
    await redis.hset("settings:device-1", mapping={"persistent.courseReminderTime": "0", "persistent.dataRefreshInterval": "-1"})

    assert await store.get(SettingName.COURSE_REMINDER_LEAD_MINUTES) == 15
    assert await store.get(SettingName.DATA_REFRESH_INTERVAL_SECONDS) == 300.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("course_reminder_lead_minutes", 7),
        ("course_reminder_lead_minutes", 0),
        ("data_refresh_interval_seconds", -5),
        ("dark_mode_enabled", "yes"),
        ("no_such_setting", True),
    ],
)
async def test_invalid_values_are_rejected_without_writing(store, redis, name, value):
    with pytest.raises(ValidationAppError):
        await store.update({name: value, "developer_mode_enabled": True})

    assert await redis.hget("settings:device-1", "persistent.developerModeEnabled") is None


@pytest.mark.asyncio
async def test_direct_api_stays_forced_on(store):
    assert store.settings.force_direct_api is True

    change = await store.set(SettingName.USE_DIRECT_API, False)

    assert change is None
    assert await store.get(SettingName.USE_DIRECT_API) is True


@pytest.mark.asyncio
async def test_direct_api_toggle_is_honoured_when_not_forced(redis):
    settings = get_settings().model_copy(update={"force_direct_api": False})
    store = SettingsStore(SettingsRepository(redis, "device-3"), settings)

    await store.set(SettingName.USE_DIRECT_API, False)

    assert await store.get(SettingName.USE_DIRECT_API) is False


@pytest.mark.asyncio
async def test_theme_follows_flags(store):
    assert await store.theme() == ThemeOption.SYSTEM

    await store.set_theme(ThemeOption.DARK)
    assert await store.theme() == ThemeOption.DARK
    assert await store.get(SettingName.DARK_MODE_ENABLED) is True

    await store.set_theme(ThemeOption.LIGHT)
    assert await store.theme() == ThemeOption.LIGHT

    await store.set_theme(ThemeOption.SYSTEM)
    assert await store.theme() == ThemeOption.SYSTEM
    assert await store.get(SettingName.DARK_MODE_ENABLED) is False


@pytest.mark.asyncio
async def test_observers_receive_only_real_changes(store):
    received = []

    async def observer(changes):
        received.append([change.name for change in changes])

    store.subscribe(observer)

    await store.set(SettingName.COURSE_REMINDER_LEAD_MINUTES, 15)
    await store.set(SettingName.COURSE_REMINDER_LEAD_MINUTES, 30)

    assert received == [[SettingName.COURSE_REMINDER_LEAD_MINUTES]]


@pytest.mark.asyncio
async def test_reminder_preferences_require_both_flags(store):
    assert await store.reminder_preferences() == (True, 15)

    await store.set(SettingName.NOTIFICATIONS_ENABLED, False)

    assert await store.reminder_preferences() == (False, 15)
