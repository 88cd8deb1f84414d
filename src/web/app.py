"""
FastAPI application factory for the passenger monitor status API.

Routes:
- /api/health -> host and configuration summary
- /api/status -> live count, regions, environment and pipeline counters
- /api/snapshots/latest -> most recent tick snapshot
- /api/camera/live.mjpg -> annotated preview stream
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Passenger Monitor",
        version="0.1.0",
        description="Camera-based passenger counting with periodic snapshots",
    )

    # Read-only API; dashboards may be served from anywhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    return app


# Exported application instance for uvicorn
app = create_app()
