"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, routes
from .config import settings


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, description="Crew route planning and live progress tracking.")
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def index() -> dict:
        prefix = settings.api_prefix
        return {
            "service": settings.app_name,
            "distance_source": "osrm" if settings.osrm_base_url else "haversine",
            "endpoints": {
                "health": f"{prefix}/health",
                "daily_routes": f"{prefix}/routes/daily",
                "stop_events": f"{prefix}/routes/stops/{{action}}",
            },
            "docs": "/docs",
        }

    for module in (health, routes):
        app.include_router(module.router, prefix=settings.api_prefix)
    return app


app = create_app()
