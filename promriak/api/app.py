from __future__ import annotations

from fastapi import FastAPI

from promriak import APP_DESCRIPTION, APP_NAME, __version__
from promriak.api.middleware import build_exception_handler, build_request_id_middleware
from promriak.api.routers.health import router as health_router
from promriak.api.routers.stats import router as stats_router
from promriak.api.state import AppState


def create_app(state: AppState) -> FastAPI:
    app = FastAPI(title=APP_NAME, description=APP_DESCRIPTION, version=__version__)
    app.state.promriak = state

    app.middleware("http")(build_request_id_middleware())
    app.add_exception_handler(Exception, build_exception_handler())

    app.include_router(health_router)
    app.include_router(stats_router)

    return app
