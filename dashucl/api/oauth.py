from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from dashucl.api.deps import get_ucl_client
from dashucl.integrations.ucl_api import UCLAPIClient
from dashucl.services.auth import OAuthCallbackService

router = APIRouter(tags=["Auth"])


@router.get("/ucl-auth")
async def ucl_auth_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    result: str | None = None,
    client: UCLAPIClient = Depends(get_ucl_client),
):
    location = await OAuthCallbackService(client).handle_callback(code=code, state=state, error=error, result=result)
    return RedirectResponse(location, status_code=302, headers={"Cache-Control": "no-store"})
