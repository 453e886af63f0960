"""Batch analysis endpoint.

Routes
------
POST /analyze    Body: {"urls": ["https://..."], "keyword": "..."}
                 → {"analyses": [...], "idealStructure": {...}}

A failed batch is reported as HTTP 500 with ``{"error", "details"}``;
``details`` carries the traceback only when ``SEO_DEBUG`` is on.
"""

from __future__ import annotations

import traceback
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from backend.config import settings
from backend.pipeline import run_batch_analysis

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1)
    keyword: str

    @field_validator("keyword")
    @classmethod
    def _keyword_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("keyword must not be blank")
        return value

    @field_validator("urls")
    @classmethod
    def _urls_not_blank(cls, value: list[str]) -> list[str]:
        cleaned = [url.strip() for url in value]
        if not all(cleaned):
            raise ValueError("URLs must not be blank")
        return cleaned


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error_response(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc),
            "details": traceback.format_exc() if settings.debug else None,
        },
    )


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post("")
async def analyze_endpoint(body: AnalyzeRequest, request: Request) -> Any:
    """Analyse every URL, then synthesize and enrich the ideal structure."""
    conn = getattr(request.app.state, "db", None)
    try:
        result = await run_batch_analysis(body.urls, body.keyword, conn=conn)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        print(f"[api] /analyze failed: {exc}")
        return _error_response(exc)
    return result.to_dict()
