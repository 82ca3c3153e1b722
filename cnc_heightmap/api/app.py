"""FastAPI application factory wiring routes and the height map store."""

from __future__ import annotations

from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cnc_heightmap._logging import get_logger
from cnc_heightmap.api.routes_heightmap import router as heightmap_router
from cnc_heightmap.core.state import HeightMapStore


_LOGGER = get_logger(__name__)


def create_app(store: HeightMapStore | None = None) -> FastAPI:
    """Construct the FastAPI application around ``store``."""

    app = FastAPI(title="CNC Height Map API", version="1.0")
    app.state.heightmap_store = store if store is not None else HeightMapStore()

    allowed_origins: List[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(heightmap_router)

    @app.get("/health")
    async def health() -> dict:
        """Simple health check endpoint."""

        return {"status": "ok"}

    _LOGGER.info("CNC height map API constructed")
    return app


app = create_app()

__all__ = ["app", "create_app"]
