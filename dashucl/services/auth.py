from __future__ import annotations

import json
import logging
from urllib.parse import quote, urlencode

from dashucl.core.config import Settings, get_settings
from dashucl.integrations.ucl_api import UCLAPIClient

logger = logging.getLogger(__name__)


class OAuthCallbackService:
    """Completes the UCL OAuth flow and hands the result back to the app via its URL scheme."""

    def __init__(self, client: UCLAPIClient, settings: Settings | None = None) -> None:
        self.client = client
        self.settings = settings or get_settings()

    def _redirect(self, **params: str) -> str:
        query = urlencode(params, quote_via=quote)
        return f"{self.settings.app_callback_url}?{query}"

    async def handle_callback(
        self,
        *,
        code: str | None,
        state: str | None,
        error: str | None,
        result: str | None,
    ) -> str:
        if not self.settings.ucl_client_id or not self.settings.ucl_client_secret:
            logger.error(
                "Missing OAuth configuration",
                extra={
                    "client_id_configured": bool(self.settings.ucl_client_id),
                    "client_secret_configured": bool(self.settings.ucl_client_secret),
                },
            )
            return self._redirect(error="server_configuration_error")
        if error:
            logger.warning("UCL returned an OAuth error", extra={"error": error})
            return self._redirect(error=error)
        if not code:
            return self._redirect(error="no_code")
        if result != "allowed":
            logger.warning("Authorization not allowed", extra={"result": result})
            return self._redirect(error="not_allowed")

        try:
            token_data = await self.client.exchange_code(code)
            if not token_data.get("ok"):
                logger.warning("Token exchange failed", extra={"error": token_data.get("error")})
                return self._redirect(error="token_exchange_failed", details=json.dumps(token_data))

            user_data = await self.client.user_data(token_data["token"])
            if not user_data.get("ok"):
                logger.warning("User data fetch failed", extra={"error": user_data.get("error")})
                return self._redirect(error="user_data_failed", details=json.dumps(user_data))
        except Exception as exc:
            logger.exception("OAuth callback failed")
            return self._redirect(error="server_error", details=str(exc))

        payload = {"ok": True, "token": token_data["token"], "state": state, "user": user_data}
        logger.info("Redirecting back to app with OAuth result")
        return self._redirect(data=json.dumps(payload))
