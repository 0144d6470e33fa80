from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.exceptions import HTTPException as StarletteHTTPException

from dashucl.api import oauth, proxy
from dashucl.api.deps import get_redis_client
from dashucl.api.v1.router import api_router
from dashucl.core.config import get_settings
from dashucl.core.exceptions import AppError, ProxyError
from dashucl.core.logging import configure_logging
from dashucl.core.middleware import RequestIDMiddleware, ScopedCORSMiddleware
from dashucl.core.responses import error_response, success_response
from dashucl.integrations.redis import close_redis, ping_redis
from dashucl.services.proxy import cors_headers

logger = logging.getLogger(__name__)


def _sanitize_json(value):
    if isinstance(value, dict):
        return {key: _sanitize_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_sanitize_json(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_sanitize_json(item) for item in value)
    if isinstance(value, Exception):
        return str(value)
    return value


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Application startup")
    yield
    await close_redis()
    logger.info("Application shutdown")


settings = get_settings()
app = FastAPI(
    title=settings.project_name,
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Proxy", "description": "UCL API request forwarding"},
        {"name": "Auth", "description": "UCL OAuth callback"},
        {"name": "Settings", "description": "Per-installation app settings"},
        {"name": "Reminders", "description": "Class reminder scheduling"},
        {"name": "Client", "description": "Client configuration"},
    ],
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    ScopedCORSMiddleware,
    exclude_prefixes=[settings.proxy_prefix],
    allow_origins=settings.frontend_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(proxy.router)
app.include_router(oauth.router)
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/healthz", tags=["Health"])
async def healthz(request: Request, redis: Redis = Depends(get_redis_client)):
    redis_ok = await ping_redis(redis)
    data = {"status": "ok" if redis_ok else "degraded", "redis": redis_ok}
    return success_response(data=data, request=request)


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
        headers=cors_headers(get_settings()),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.warning("Request failed", extra={"code": exc.code, "details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details, request=request),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response("http_error", message, request=request),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    sanitized_errors = _sanitize_json(exc.errors())
    return JSONResponse(
        status_code=422,
        content=error_response(
            "validation_error",
            "Request validation failed",
            {"errors": sanitized_errors},
            request=request,
        ),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_error", "Internal server error", request=request),
    )
