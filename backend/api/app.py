"""FastAPI application factory.

Routers
-------
All endpoints are mounted under ``/api``:

    /api/health      — liveness probe
    /api/scrape-job  — Upwork job page scraping
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import settings

from backend.api.routers import scrape as scrape_router


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Upwork Scraper API",
        description=(
            "Fetches Upwork job pages with a headless browser (plain HTTP as a "
            "fallback) and extracts title, description, budget and skills "
            "for proposal generation."
        ),
        version=scrape_router.API_VERSION,
    )

    # Only explicitly configured origins; an empty list blocks cross-origin calls.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/api", tags=["scrape"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn backend.api.app:app --reload
app = create_app()
