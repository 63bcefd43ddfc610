from __future__ import annotations

from promriak.api.middleware.errors import build_exception_handler
from promriak.api.middleware.request_id import build_request_id_middleware

__all__ = ["build_exception_handler", "build_request_id_middleware"]
