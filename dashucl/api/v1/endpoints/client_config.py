from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dashucl.api.deps import get_settings_store
from dashucl.core.config import get_settings
from dashucl.core.enums import SettingName
from dashucl.core.responses import success_response
from dashucl.schemas.client_config import ClientConfigRead
from dashucl.services.settings import SettingsStore

router = APIRouter(tags=["Client"])


@router.get("/client-config")
async def client_config(request: Request, store: SettingsStore = Depends(get_settings_store)):
    settings = get_settings()
    snapshot = await store.snapshot()
    data = ClientConfigRead(
        use_direct_api=snapshot[SettingName.USE_DIRECT_API.value],
        direct_api_base_url=settings.upstream_base_url,
        proxy_path=settings.proxy_prefix,
        direct_api_endpoints=settings.direct_api_endpoints,
        data_refresh_interval_seconds=snapshot[SettingName.DATA_REFRESH_INTERVAL_SECONDS.value],
        reminder_lead_options=settings.reminder_lead_options,
        developer_mode_enabled=snapshot[SettingName.DEVELOPER_MODE_ENABLED.value],
    )
    return success_response(data=data.model_dump(), request=request)
