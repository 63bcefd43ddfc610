# exception handlers (error_id)
from __future__ import annotations

import logging
import uuid

from fastapi import Request, Response

logger = logging.getLogger("promriak")


def build_exception_handler():
    async def handler(request: Request, exc: Exception) -> Response:
        error_id = uuid.uuid4().hex
        req_id = getattr(request.state, "request_id", None)

        logger.error(
            "unhandled_exception",
            exc_info=exc,
            extra={"error_id": error_id, "request_id": req_id, "path": request.url.path},
        )

        # misma forma que el resto de fallos: cuerpo vacío
        return Response(status_code=500, headers={"X-Error-ID": error_id})

    return handler
