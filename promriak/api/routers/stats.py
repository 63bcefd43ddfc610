# /stats/{id}
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from promriak.api.deps import get_app_state
from promriak.api.state import AppState

router = APIRouter()

EXPOSITION_MEDIA_TYPE = "text/plain; version=0.0.4"


@router.get("/stats/{instance_id}")
def stats(instance_id: str, state: AppState = Depends(get_app_state)) -> Response:
    """
    Snapshot cacheado de la instancia.

    404 con cuerpo vacío si el id no existe, si la caché nunca se ha llenado
    o si está caducada (los tres casos son indistinguibles para el cliente).
    """
    body = state.lookup(instance_id)
    if body is None:
        return Response(status_code=404)
    return Response(content=body, media_type=EXPOSITION_MEDIA_TYPE)
