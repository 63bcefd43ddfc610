from __future__ import annotations

"""
promriak/api/middleware/request_id.py

Middleware:
- Inyecta/propaga X-Request-ID
- Log por request en debug (duración + status); los scrapes son frecuentes
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response

CallNext = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, CallNext], Awaitable[Response]]

logger = logging.getLogger("promriak")


def build_request_id_middleware() -> Middleware:
    async def middleware(request: Request, call_next: CallNext) -> Response:
        start = time.monotonic()
        req_id = (request.headers.get("x-request-id") or "").strip() or uuid.uuid4().hex
        request.state.request_id = req_id

        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = int(response.status_code)
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            logger.debug(
                "request",
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": status_code,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )

    return middleware
