"""YouTube video fetcher.

Captions are not retrievable without elevated OAuth credentials, so the
"transcript" is a textual body built from the video's title and description.
The result is cached per video id in SQLite (see ``backend.db.transcripts``).

Metadata sources, in order:
  1. YouTube Data API v3 ``videos?part=snippet`` — requires YOUTUBE_API_KEY.
  2. The public watch page — ``<title>`` and ``<meta name="description">``.
"""

from __future__ import annotations

import html as html_lib
import re
import sqlite3
from typing import Optional

import httpx

from backend.config import settings
from backend.db import transcripts
from backend.errors import InvalidSourceError
from backend.scraper.base import (
    BROWSER_UA,
    ContentFetcher,
    FetchStrategy,
    StrategyChain,
    StrategyFailed,
)
from backend.scraper.models import ContentSource, SourceKind
from backend.scraper.urls import extract_youtube_video_id

YOUTUBE_VIDEOS_ENDPOINT = "https://www.googleapis.com/youtube/v3/videos"
YOUTUBE_WATCH_PAGE = "https://www.youtube.com/watch?v={video_id}"

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(
    r'<meta\s+name="description"\s+content="([^"]*)"', re.IGNORECASE
)


def build_transcript(title: str, description: str) -> str:
    """Fallback textual body for a video whose captions are unavailable."""
    return f"Title: {title}\n\nDescription: {description or 'No description available'}"


def _video_source(url: str, title: str, description: str) -> ContentSource:
    return ContentSource(
        url=url,
        kind=SourceKind.YOUTUBE,
        title=title,
        body_text=build_transcript(title, description),
        meta_description=description,
    )


class _LoggedStrategy(FetchStrategy):
    """Records every attempt in ``transcript_extraction_logs`` when a DB is given."""

    def __init__(self, conn: Optional[sqlite3.Connection] = None) -> None:
        self._conn = conn

    def _log(
        self,
        video_id: str,
        url: str,
        status: Optional[int],
        successful: bool,
        detail: str = "",
    ) -> None:
        if self._conn is None:
            return
        transcripts.log_attempt(
            self._conn, video_id, url, self.name, status, successful, detail
        )

    def _fail(self, video_id: str, url: str, reason: str, status: Optional[int]) -> StrategyFailed:
        self._log(video_id, url, status, False, reason)
        return StrategyFailed(reason, status)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class YouTubeDataApiStrategy(_LoggedStrategy):
    @property
    def name(self) -> str:
        return "YouTube Data API"

    @property
    def available(self) -> bool:
        return bool(settings.youtube_api_key)

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        response = await client.get(
            YOUTUBE_VIDEOS_ENDPOINT,
            params={"part": "snippet", "id": ref, "key": settings.youtube_api_key},
            timeout=settings.request_timeout,
        )
        if not response.is_success:
            raise self._fail(ref, url, f"HTTP {response.status_code}", response.status_code)

        data = response.json()
        if not isinstance(data, dict):
            raise self._fail(ref, url, "unexpected response shape", response.status_code)
        items = data.get("items") or []
        if not items:
            raise self._fail(ref, url, "video not found or private", response.status_code)

        snippet = items[0].get("snippet") if isinstance(items[0], dict) else None
        snippet = snippet if isinstance(snippet, dict) else {}
        title = snippet.get("title") or f"YouTube Video ({ref})"
        description = snippet.get("description") or ""
        self._log(ref, url, response.status_code, True)
        print(f"[YouTube] ✓ metadata for {ref} via Data API")
        return _video_source(url, title, description)


class YouTubeWatchPageStrategy(_LoggedStrategy):
    @property
    def name(self) -> str:
        return "YouTube watch page"

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        response = await client.get(
            YOUTUBE_WATCH_PAGE.format(video_id=ref),
            headers={"User-Agent": BROWSER_UA, "Accept-Language": "en-US,en;q=0.9"},
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        if not response.is_success:
            raise self._fail(ref, url, f"HTTP {response.status_code}", response.status_code)

        page = response.text
        title_match = _TITLE_RE.search(page)
        title = html_lib.unescape(title_match.group(1)) if title_match else ""
        title = title.replace(" - YouTube", "").strip()
        if not title or title == "YouTube":
            raise self._fail(ref, url, "no video title in page", response.status_code)

        desc_match = _DESCRIPTION_RE.search(page)
        description = html_lib.unescape(desc_match.group(1)).strip() if desc_match else ""
        self._log(ref, url, response.status_code, True, f"HTML length: {len(page)} bytes")
        print(f"[YouTube] ✓ metadata for {ref} via watch page")
        return _video_source(url, title, description)


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

class YouTubeFetcher(ContentFetcher):
    kind = SourceKind.YOUTUBE

    def __init__(
        self,
        client: httpx.AsyncClient,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        super().__init__(client)
        self._conn = conn
        self._chain = StrategyChain(
            [YouTubeDataApiStrategy(conn), YouTubeWatchPageStrategy(conn)]
        )

    async def fetch(self, url: str) -> ContentSource:
        video_id = extract_youtube_video_id(url)
        if not video_id:
            raise InvalidSourceError(url, f"No YouTube video id in {url!r}")

        if self._conn is not None:
            cached = transcripts.get_cached_video(self._conn, video_id)
            if cached is not None:
                print(f"[YouTube] using cached transcript for {video_id}")
                return ContentSource(
                    url=url,
                    kind=SourceKind.YOUTUBE,
                    title=cached.title,
                    body_text=cached.transcript,
                    meta_description=cached.description,
                )

        print(f"[YouTube] fetching metadata for {video_id}")
        source = await self._chain.fetch(self._client, url, video_id)

        if self._conn is not None:
            transcripts.upsert_video(
                self._conn,
                video_id,
                title=source.title,
                description=source.meta_description,
                transcript=source.body_text,
            )
        return source
