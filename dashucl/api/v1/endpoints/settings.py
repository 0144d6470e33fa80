from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dashucl.api.deps import get_reminder_coordinator, get_settings_store
from dashucl.core.config import get_settings
from dashucl.core.responses import success_response
from dashucl.schemas.settings import SettingsOptionsRead, SettingsRead, SettingsUpdate, ThemeUpdate
from dashucl.services.reminders import ReminderCoordinator
from dashucl.services.settings import SettingChange, SettingsStore, build_definitions, theme_from_snapshot

router = APIRouter(prefix="/settings", tags=["Settings"])


async def _settings_data(store: SettingsStore) -> dict:
    snapshot = await store.snapshot()
    return SettingsRead(**snapshot, theme=theme_from_snapshot(snapshot)).model_dump(mode="json")


async def _mutation_data(coordinator: ReminderCoordinator, changes: list[SettingChange]) -> dict:
    return {
        "settings": await _settings_data(coordinator.store),
        "changed": [change.name.value for change in changes],
        "reminders": coordinator.last_result.as_dict() if coordinator.last_result else None,
    }


@router.get("")
async def read_settings(request: Request, store: SettingsStore = Depends(get_settings_store)):
    return success_response(data=await _settings_data(store), request=request)


@router.patch("")
async def update_settings(
    payload: SettingsUpdate,
    request: Request,
    coordinator: ReminderCoordinator = Depends(get_reminder_coordinator),
):
    changes = await coordinator.store.update(payload.model_dump(exclude_unset=True, exclude_none=True))
    return success_response(data=await _mutation_data(coordinator, changes), request=request)


@router.post("/reset")
async def reset_settings(request: Request, coordinator: ReminderCoordinator = Depends(get_reminder_coordinator)):
    changes = await coordinator.store.reset_to_defaults()
    return success_response(data=await _mutation_data(coordinator, changes), request=request)


@router.put("/theme")
async def update_theme(
    payload: ThemeUpdate,
    request: Request,
    store: SettingsStore = Depends(get_settings_store),
):
    await store.set_theme(payload.theme)
    return success_response(data=await _settings_data(store), request=request)


@router.get("/options")
async def settings_options(request: Request):
    settings = get_settings()
    defaults = {name.value: definition.default for name, definition in build_definitions(settings).items()}
    data = SettingsOptionsRead(reminder_lead_options=settings.reminder_lead_options, defaults=defaults)
    return success_response(data=data.model_dump(), request=request)
