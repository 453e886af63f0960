"""State bag passed between the batch-analysis graph nodes."""

from __future__ import annotations

from typing import Optional, TypedDict

from backend.analysis.models import ArticleAnalysis, IdealStructure


class BatchState(TypedDict):
    keyword: str
    urls: list[str]
    analyses: list[ArticleAnalysis]
    ideal_structure: Optional[IdealStructure]
    # analysing → synthesising → enriching → done
    status: str
