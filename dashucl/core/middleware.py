from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ScopedCORSMiddleware(CORSMiddleware):
    """App-wide CORS that leaves the listed path prefixes alone.

    The UCL proxy answers its own preflights and sets its own CORS headers.
    """

    def __init__(self, app: ASGIApp, exclude_prefixes: Sequence[str] = (), **options: Any) -> None:
        super().__init__(app, **options)
        self.exclude_prefixes = tuple(prefix.rstrip("/") for prefix in exclude_prefixes if prefix)

    def _excluded(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self.exclude_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self._excluded(scope["path"]):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
