from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from dashucl.core.config import Settings, get_settings
from dashucl.core.enums import SettingName, ThemeOption
from dashucl.core.exceptions import ValidationAppError
from dashucl.repositories.settings import SettingsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SettingDefinition:
    name: SettingName
    storage_key: str
    kind: type
    default: Any


@dataclass(frozen=True, slots=True)
class SettingChange:
    name: SettingName
    old: Any
    new: Any


SettingsObserver = Callable[[list[SettingChange]], Awaitable[None] | None]


def build_definitions(settings: Settings) -> dict[SettingName, SettingDefinition]:
    definitions = [
        SettingDefinition(SettingName.DARK_MODE_ENABLED, "persistent.appDarkModeEnabled", bool, False),
        SettingDefinition(SettingName.USE_SYSTEM_THEME, "persistent.appUseSystemTheme", bool, True),
        SettingDefinition(SettingName.NOTIFICATIONS_ENABLED, "persistent.notificationsEnabled", bool, True),
        SettingDefinition(SettingName.COURSE_REMINDERS_ENABLED, "persistent.courseRemindersEnabled", bool, True),
        SettingDefinition(
            SettingName.COURSE_REMINDER_LEAD_MINUTES,
            "persistent.courseReminderTime",
            int,
            settings.default_reminder_lead_minutes,
        ),
        SettingDefinition(SettingName.USE_DIRECT_API, "persistent.appUseDirectAPI", bool, True),
        SettingDefinition(
            SettingName.DATA_REFRESH_INTERVAL_SECONDS,
            "persistent.dataRefreshInterval",
            float,
            settings.default_refresh_interval_sec,
        ),
        SettingDefinition(SettingName.DEVELOPER_MODE_ENABLED, "persistent.developerModeEnabled", bool, False),
    ]
    return {item.name: item for item in definitions}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_stored(definition: SettingDefinition, raw: Any) -> Any | None:
    # Zero or negative durations count as unset.
    if raw is None:
        return None
    if definition.kind is bool:
        return raw if isinstance(raw, bool) else None
    if not _is_number(raw) or raw <= 0:
        return None
    if definition.kind is int:
        return int(raw)
    return float(raw)


class SettingsStore:
    """Per-installation settings with documented defaults applied on first read."""

    def __init__(self, repository: SettingsRepository, settings: Settings | None = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()
        self.definitions = build_definitions(self.settings)
        self._observers: list[SettingsObserver] = []

    def subscribe(self, observer: SettingsObserver) -> None:
        self._observers.append(observer)

    def defaults(self) -> dict[SettingName, Any]:
        return {name: definition.default for name, definition in self.definitions.items()}

    def _definition(self, name: SettingName | str) -> SettingDefinition:
        try:
            return self.definitions[SettingName(name)]
        except ValueError as exc:
            raise ValidationAppError("Unknown setting", details={"field": str(name)}) from exc

    def _effective(self, definition: SettingDefinition, value: Any) -> Any:
        if definition.name == SettingName.USE_DIRECT_API and self.settings.force_direct_api:
            return True
        return value

    def _validate(self, definition: SettingDefinition, value: Any) -> Any:
        if definition.kind is bool:
            if not isinstance(value, bool):
                raise ValidationAppError("Expected a boolean", details={"field": definition.name.value})
            if definition.name == SettingName.USE_DIRECT_API and self.settings.force_direct_api and value is False:
                logger.warning("Direct API mode is forced on; ignoring request to disable it")
                return True
            return value

        if not _is_number(value) or value <= 0:
            raise ValidationAppError("Expected a positive number", details={"field": definition.name.value})
        if definition.kind is int:
            if int(value) != value:
                raise ValidationAppError("Expected a whole number", details={"field": definition.name.value})
            value = int(value)
            if definition.name == SettingName.COURSE_REMINDER_LEAD_MINUTES and value not in self.settings.reminder_lead_options:
                raise ValidationAppError(
                    "Unsupported reminder lead time",
                    details={"field": definition.name.value, "allowed": self.settings.reminder_lead_options},
                )
            return value
        return float(value)

    async def get(self, name: SettingName | str) -> Any:
        definition = self._definition(name)
        value = _coerce_stored(definition, await self.repository.load(definition.storage_key))
        if value is None:
            value = definition.default
            await self.repository.save(definition.storage_key, value)
        return self._effective(definition, value)

    async def snapshot(self) -> dict[str, Any]:
        stored = await self.repository.load_all()
        result: dict[str, Any] = {}
        missing: dict[str, Any] = {}
        for name, definition in self.definitions.items():
            value = _coerce_stored(definition, stored.get(definition.storage_key))
            if value is None:
                value = definition.default
                missing[definition.storage_key] = value
            result[name.value] = self._effective(definition, value)
        if missing:
            await self.repository.save_many(missing)
        return result

    async def update(self, values: Mapping[SettingName | str, Any]) -> list[SettingChange]:
        validated: dict[SettingName, Any] = {}
        for raw_name, value in values.items():
            definition = self._definition(raw_name)
            validated[definition.name] = self._validate(definition, value)
        if not validated:
            return []

        before = await self.snapshot()
        await self.repository.save_many(
            {self.definitions[name].storage_key: value for name, value in validated.items()}
        )
        changes = [
            SettingChange(name=name, old=before[name.value], new=self._effective(self.definitions[name], value))
            for name, value in validated.items()
            if before[name.value] != self._effective(self.definitions[name], value)
        ]
        if changes:
            logger.info("Settings updated", extra={"changed": [change.name.value for change in changes]})
            await self._notify(changes)
        return changes

    async def set(self, name: SettingName | str, value: Any) -> SettingChange | None:
        changes = await self.update({name: value})
        return changes[0] if changes else None

    async def reset_to_defaults(self) -> list[SettingChange]:
        before = await self.snapshot()
        defaults = self.defaults()
        await self.repository.save_many(
            {self.definitions[name].storage_key: value for name, value in defaults.items()}
        )
        changes = [
            SettingChange(name=name, old=before[name.value], new=self._effective(self.definitions[name], value))
            for name, value in defaults.items()
            if before[name.value] != self._effective(self.definitions[name], value)
        ]
        logger.info("Settings reset to defaults", extra={"changed": [change.name.value for change in changes]})
        if changes:
            await self._notify(changes)
        return changes

    async def theme(self) -> ThemeOption:
        snapshot = await self.snapshot()
        return theme_from_snapshot(snapshot)

    async def set_theme(self, option: ThemeOption) -> list[SettingChange]:
        if option == ThemeOption.SYSTEM:
            # Appearance of the device is unknown here; keep the last explicit dark flag.
            return await self.update({SettingName.USE_SYSTEM_THEME: True})
        return await self.update(
            {
                SettingName.USE_SYSTEM_THEME: False,
                SettingName.DARK_MODE_ENABLED: option == ThemeOption.DARK,
            }
        )

    async def reminder_preferences(self) -> tuple[bool, int]:
        snapshot = await self.snapshot()
        enabled = snapshot[SettingName.NOTIFICATIONS_ENABLED.value] and snapshot[SettingName.COURSE_REMINDERS_ENABLED.value]
        return enabled, snapshot[SettingName.COURSE_REMINDER_LEAD_MINUTES.value]

    async def _notify(self, changes: list[SettingChange]) -> None:
        for observer in self._observers:
            result = observer(changes)
            if inspect.isawaitable(result):
                await result


def theme_from_snapshot(snapshot: Mapping[str, Any]) -> ThemeOption:
    if snapshot[SettingName.USE_SYSTEM_THEME.value]:
        return ThemeOption.SYSTEM
    return ThemeOption.DARK if snapshot[SettingName.DARK_MODE_ENABLED.value] else ThemeOption.LIGHT
