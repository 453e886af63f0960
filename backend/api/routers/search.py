"""Search endpoint — organic results for a keyword.

Routes
------
POST /search    Body: {"keyword": "...", "num": 10}
                → {"organic_results": [{"position", "title", "link", "snippet"}]}
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from backend.pipeline.search_providers import build_default_chain

router = APIRouter()


class SearchRequest(BaseModel):
    keyword: str = Field(..., min_length=1)
    num: int = Field(10, ge=1, le=100)


@router.post("")
def search(body: SearchRequest) -> dict[str, Any]:
    """Return the organic results from the first provider that answers."""
    articles = build_default_chain().search(body.keyword, max_results=body.num)
    return {
        "organic_results": [
            {
                "position": article.rank,
                "title": article.title,
                "link": article.url,
                "snippet": article.snippet,
            }
            for article in articles
        ]
    }
