"""Fetcher selection: route a URL to the fetcher for its source kind."""

from __future__ import annotations

import sqlite3
from typing import Optional

import httpx

from backend.scraper.article import ArticleFetcher
from backend.scraper.base import ContentFetcher
from backend.scraper.models import ContentSource, SourceKind
from backend.scraper.reddit import RedditFetcher
from backend.scraper.urls import detect_source_kind
from backend.scraper.youtube import YouTubeFetcher


def get_fetcher(
    url: str,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection] = None,
) -> ContentFetcher:
    """Return the fetcher for *url*'s host.

    ``reddit.com`` → :class:`RedditFetcher`, ``youtube.com`` / ``youtu.be`` →
    :class:`YouTubeFetcher` (cached in *conn* when given), anything else →
    :class:`ArticleFetcher`.
    """
    kind = detect_source_kind(url)
    if kind is SourceKind.REDDIT:
        return RedditFetcher(client)
    if kind is SourceKind.YOUTUBE:
        return YouTubeFetcher(client, conn)
    return ArticleFetcher(client)


async def fetch_source(
    url: str,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection] = None,
) -> ContentSource:
    """Fetch *url* with the fetcher for its source kind."""
    return await get_fetcher(url, client, conn).fetch(url)
