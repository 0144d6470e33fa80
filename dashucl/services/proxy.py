from __future__ import annotations

import json
import logging
import traceback
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from dashucl.core.config import Settings, get_settings
from dashucl.core.exceptions import (
    ClientInputError,
    ProxyError,
    ProxyInternalError,
    ServerConfigError,
    UpstreamProtocolError,
)
from dashucl.core.logging import mask_token, redact

logger = logging.getLogger(__name__)

LOG_PREVIEW_CHARS = 300
ERROR_PREVIEW_CHARS = 200


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-standard JSON constant {name}")


def cors_headers(settings: Settings) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.proxy_cors_allow_origin,
        "Access-Control-Allow-Headers": settings.proxy_cors_allow_headers,
        "Access-Control-Allow-Methods": settings.proxy_cors_allow_methods,
    }


def normalize_endpoint(endpoint: str) -> str:
    return "/" + endpoint.lstrip("/")


def build_upstream_url(
    base_url: str,
    endpoint: str,
    query_items: Sequence[tuple[str, str]],
    token: str,
    client_secret: str,
) -> httpx.URL:
    params = [(key, value) for key, value in query_items if key != "token"]
    params.append(("token", token))
    params.append(("client_secret", client_secret))
    return httpx.URL(f"{base_url.rstrip('/')}{normalize_endpoint(endpoint)}", params=params)


@dataclass(slots=True)
class ProxyResult:
    status_code: int
    payload: Any


class UCLProxyService:
    """Forwards a client request to the UCL API with the server-held client secret."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    async def forward(
        self,
        method: str,
        endpoint: str,
        query_items: Sequence[tuple[str, str]],
        body: bytes = b"",
    ) -> ProxyResult:
        try:
            return await self._forward(method, normalize_endpoint(endpoint), query_items, body)
        except ProxyError:
            raise
        except Exception as exc:
            logger.exception("Proxy error", extra={"endpoint": endpoint})
            stack = traceback.format_exc() if self.settings.env == "dev" else None
            raise ProxyInternalError(str(exc), stack=stack) from exc

    async def _forward(
        self,
        method: str,
        endpoint: str,
        query_items: Sequence[tuple[str, str]],
        body: bytes,
    ) -> ProxyResult:
        secret = self.settings.ucl_client_secret
        token = next((value for key, value in query_items if key == "token"), None)
        logger.info(
            "Proxy request",
            extra={
                "method": method,
                "endpoint": endpoint,
                "token": mask_token(token),
                "client_secret_configured": bool(secret),
            },
        )

        if not secret:
            logger.error("Missing UCL_CLIENT_SECRET configuration")
            raise ServerConfigError()
        if not token:
            logger.warning("Rejecting proxy request without token", extra={"endpoint": endpoint})
            raise ClientInputError()

        url = build_upstream_url(self.settings.upstream_base_url, endpoint, query_items, token, secret)
        logger.info("Making request to UCL API", extra={"url": redact(str(url), secret)})

        async with httpx.AsyncClient(timeout=self.settings.upstream_timeout_sec, transport=self._transport) as client:
            response = await client.request(
                method,
                url,
                content=body or None,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )

        if method == "HEAD":
            logger.info("UCL API response", extra={"status": response.status_code, "method": method})
            return ProxyResult(status_code=response.status_code, payload=None)

        content_type = response.headers.get("content-type")
        text = response.text
        logger.info(
            "UCL API response",
            extra={
                "status": response.status_code,
                "content_type": content_type,
                "preview": text[:LOG_PREVIEW_CHARS],
            },
        )

        if not content_type or "application/json" not in content_type:
            logger.error("UCL API returned non-JSON response", extra={"content_type": content_type or "unknown"})
            raise UpstreamProtocolError(
                "UCL API returned non-JSON response",
                details=f"Content-Type: {content_type or 'unknown'}",
                endpoint=endpoint,
                upstream_status=response.status_code,
                preview=text[:ERROR_PREVIEW_CHARS],
            )

        try:
            data = json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error("Failed to parse JSON response", extra={"error": str(exc)})
            raise UpstreamProtocolError(
                "Invalid JSON from UCL API",
                details=str(exc),
                endpoint=endpoint,
                upstream_status=response.status_code,
                preview=text[:ERROR_PREVIEW_CHARS],
            ) from exc

        if isinstance(data, dict):
            logger.info(
                "Parsed UCL API response",
                extra={"status": response.status_code, "ok": data.get("ok"), "error": data.get("error")},
            )
        return ProxyResult(status_code=response.status_code, payload=data)
