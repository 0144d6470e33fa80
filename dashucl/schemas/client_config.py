from __future__ import annotations

from pydantic import BaseModel


class ClientConfigRead(BaseModel):
    use_direct_api: bool
    direct_api_base_url: str
    proxy_path: str
    direct_api_endpoints: list[str]
    data_refresh_interval_seconds: float
    reminder_lead_options: list[int]
    developer_mode_enabled: bool
