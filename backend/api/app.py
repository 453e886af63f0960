"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  The
connection backs the YouTube transcript cache.  On shutdown it is closed.

Routers
-------
    /analyze   — batch analysis + ideal structure
    /search    — organic search results for a keyword
    /health    — liveness probe
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.db import get_connection, init_db

from backend.api.routers import analyze as analyze_router
from backend.api.routers import search as search_router

# Headers the wizard front end sends with every request.
CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="SERP Content Research API",
        description=(
            "Analyses the top-ranking pages for a keyword and recommends the "
            "structure of an article that can outrank them."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    app.include_router(analyze_router.router, prefix="/analyze", tags=["analyze"])
    app.include_router(search_router.router, prefix="/search", tags=["search"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn backend.api.app:app --reload
app = create_app()
