"""Job scraping endpoints.

Routes
------
GET  /api/health        Liveness probe
POST /api/scrape-job    Body: {"url": "https://www.upwork.com/jobs/..."}  → scrape_job_url

Failures are returned as ``{"success": false, "error": ..., "code": ...}``
with the status taken from :data:`HTTP_STATUS_BY_CODE`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.config import settings
from backend.scraper import ScrapeError, normalize_scrape_error, scrape_job_url

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.1.0"
GENERIC_SCRAPE_ERROR = "Failed to scrape job URL"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ScrapeJobRequest(BaseModel):
    # Untyped: validate_upwork_url owns URL checks and their error codes,
    # including non-string input.
    url: Any = None


class ScrapeJobData(BaseModel):
    url: str
    title: str
    description: str
    budget: str | None
    skills: str
    mode: str
    warnings: list[str]


class ScrapeJobResponse(BaseModel):
    success: bool
    data: ScrapeJobData


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def client_error_message(error: ScrapeError) -> str:
    """Hide server-side failure details from clients in production."""
    if settings.is_production and error.status_code >= 500:
        return GENERIC_SCRAPE_ERROR
    return error.message


def _error_response(error: ScrapeError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={
            "success": False,
            "error": client_error_message(error),
            "code": error.code.value,
        },
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    }


@router.post("/scrape-job", response_model=ScrapeJobResponse)
async def scrape_job_endpoint(body: ScrapeJobRequest) -> Any:
    """Scrape an Upwork job page and return its title, description, budget and skills."""
    try:
        result = await scrape_job_url(body.url)
    except Exception as exc:
        error = normalize_scrape_error(exc)
        logger.warning("Scrape failed for %r: %s (%s)", body.url, error.message, error.code.value)
        return _error_response(error)
    return {"success": True, "data": result.to_dict()}
