from __future__ import annotations

from fastapi import APIRouter, Response

router = APIRouter()


@router.get("/health")
def health() -> Response:
    # liveness: no depende de instancias ni de caché
    return Response(status_code=200)
