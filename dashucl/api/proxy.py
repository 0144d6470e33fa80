from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from dashucl.api.deps import get_proxy_service
from dashucl.core.config import get_settings
from dashucl.services.proxy import UCLProxyService, cors_headers

router = APIRouter(prefix=get_settings().proxy_prefix, tags=["Proxy"])

FORWARDED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@router.options("/{endpoint:path}")
async def proxy_preflight(endpoint: str):
    return Response(status_code=200, headers=cors_headers(get_settings()))


@router.api_route("/{endpoint:path}", methods=FORWARDED_METHODS)
async def proxy_request(
    endpoint: str,
    request: Request,
    service: UCLProxyService = Depends(get_proxy_service),
):
    result = await service.forward(
        request.method,
        endpoint,
        request.query_params.multi_items(),
        await request.body(),
    )
    if request.method == "HEAD":
        return Response(status_code=result.status_code, headers=cors_headers(service.settings))
    return JSONResponse(
        status_code=result.status_code,
        content=result.payload,
        headers=cors_headers(service.settings),
    )
