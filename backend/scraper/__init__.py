"""Scraper package — per-source-kind content fetchers with fallbacks."""

from backend.scraper.fetcher import fetch_source, get_fetcher
from backend.scraper.models import ContentSource, SourceKind
from backend.scraper.urls import detect_source_kind, extract_domain

__all__ = [
    "fetch_source",
    "get_fetcher",
    "ContentSource",
    "SourceKind",
    "detect_source_kind",
    "extract_domain",
]
