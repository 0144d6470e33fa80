import json
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list(value: object) -> list[str]:
    if isinstance(value, str):
        if not value.strip():
            return []
        if value.strip().startswith("["):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    env: Literal["dev", "prod"] = "dev"
    project_name: str = "DashUCL Gateway"
    api_v1_prefix: str = "/api/v1"

    redis_url: str = "redis://redis:6379/0"

    ucl_client_id: str = ""
    ucl_client_secret: str = ""
    upstream_base_url: str = "https://uclapi.com"
    upstream_timeout_sec: float = 30.0

    proxy_prefix: str = "/ucl-proxy"
    proxy_cors_allow_origin: str = "*"
    proxy_cors_allow_headers: str = "authorization, x-client-info, apikey, content-type"
    proxy_cors_allow_methods: str = "GET, POST, PUT, PATCH, DELETE, OPTIONS"

    app_callback_url: str = "dashucl://callback"
    frontend_origins: list[str] = Field(default_factory=list)

    default_reminder_lead_minutes: int = 15
    reminder_lead_options: list[int] = Field(default_factory=lambda: [5, 10, 15, 30, 60])
    default_refresh_interval_sec: float = 300.0

    # Upstream /resources/desktops parsing is broken through the proxy; keep clients on direct access.
    force_direct_api: bool = True
    direct_api_endpoints: list[str] = Field(
        default_factory=lambda: [
            "/workspaces/sensors/summary",
            "/workspaces/sensors/averages/time",
            "/workspaces/historical/surveys",
        ]
    )

    campus_timezone: str = "Europe/London"
    worker_poll_interval_sec: int = 30

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: object) -> list[str]:
        # Browser `Origin` header never includes a trailing slash.
        return [origin.rstrip("/") for origin in _parse_list(value)]

    @field_validator("direct_api_endpoints", mode="before")
    @classmethod
    def parse_direct_endpoints(cls, value: object) -> list[str]:
        return ["/" + item.lstrip("/") for item in _parse_list(value)]

    @field_validator("reminder_lead_options", mode="before")
    @classmethod
    def parse_lead_options(cls, value: object) -> list[int]:
        if isinstance(value, (str, list)):
            return sorted({int(item) for item in _parse_list(value)})
        return value  # type: ignore[return-value]

    @model_validator(mode="after")
    def ensure_default_lead_selectable(self) -> "Settings":
        if self.default_reminder_lead_minutes not in self.reminder_lead_options:
            self.reminder_lead_options = sorted({*self.reminder_lead_options, self.default_reminder_lead_minutes})
        self.upstream_base_url = self.upstream_base_url.rstrip("/")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
