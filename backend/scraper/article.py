"""Generic web-article fetcher.

Sources, in order:
  1. Diffbot Article API — structured extraction; requires DIFFBOT_API_TOKEN.
     Rate limits (HTTP 429) honour ``Retry-After`` up to the largest backoff
     step; 429/5xx/transport errors otherwise back off exponentially
     (``base × 2^attempt``) up to ``settings.fetch_max_attempts`` attempts.
  2. Direct page fetch — plain GET, text extracted with trafilatura / bs4.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from backend.config import settings
from backend.scraper.base import (
    BROWSER_UA,
    ContentFetcher,
    FetchStrategy,
    StrategyChain,
    StrategyFailed,
)
from backend.scraper.extractor import extract_content
from backend.scraper.models import ContentSource, RawPage, SourceKind

DIFFBOT_ENDPOINT = "https://api.diffbot.com/v3/article"


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Parse a numeric ``Retry-After`` header; ``None`` when absent or a date."""
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


def backoff_delay(attempt: int) -> float:
    """Exponential delay for 0-based *attempt*: ``base × 2^attempt`` seconds."""
    return settings.fetch_retry_base_delay * (2 ** attempt)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class DiffbotStrategy(FetchStrategy):
    """Diffbot Article API with rate-limit aware retry."""

    @property
    def name(self) -> str:
        return "Diffbot"

    @property
    def available(self) -> bool:
        return bool(settings.diffbot_api_token)

    @staticmethod
    def _to_source(url: str, obj: dict[str, Any]) -> ContentSource:
        meta = obj.get("meta")
        description = ""
        if isinstance(meta, dict):
            description = meta.get("description") or ""
        description = description or obj.get("description") or ""
        return ContentSource(
            url=url,
            kind=SourceKind.ARTICLE,
            title=obj.get("title") or "",
            body_text=obj.get("text") or "",
            markup=obj.get("html") or "",
            meta_description=description,
        )

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        params = {"token": settings.diffbot_api_token, "url": url}
        max_attempts = settings.fetch_max_attempts
        last_status: Optional[int] = None

        for attempt in range(max_attempts):
            print(f"[Diffbot] attempt {attempt + 1}/{max_attempts} for {url}")
            try:
                response = await client.get(
                    DIFFBOT_ENDPOINT, params=params, timeout=settings.request_timeout
                )
            except httpx.TransportError as exc:
                delay = backoff_delay(attempt)
                print(f"[Diffbot] transport error: {exc!r:.120}")
            else:
                last_status = response.status_code
                if response.status_code == 429:
                    retry_after = _retry_after_seconds(response)
                    if retry_after is None:
                        delay = backoff_delay(attempt)
                    else:
                        # Never wait longer than the largest backoff step.
                        delay = min(retry_after, backoff_delay(max_attempts - 1))
                    print("[Diffbot] rate-limited (429).")
                elif response.status_code >= 500:
                    delay = backoff_delay(attempt)
                    print(f"[Diffbot] server error ({response.status_code}).")
                elif not response.is_success:
                    raise StrategyFailed(f"HTTP {response.status_code}", response.status_code)
                else:
                    data = response.json()
                    objects = data.get("objects") if isinstance(data, dict) else None
                    if not objects or not isinstance(objects[0], dict):
                        raise StrategyFailed("no article data returned", response.status_code)
                    print(f"[Diffbot] ✓ {url}")
                    return self._to_source(url, objects[0])

            if attempt < max_attempts - 1:
                print(f"[Diffbot] retrying in {delay:.1f}s …")
                await asyncio.sleep(delay)

        raise StrategyFailed(f"gave up after {max_attempts} attempts", last_status)


class DirectPageStrategy(FetchStrategy):
    """Plain HTTP GET of the article, readability-extracted locally."""

    @property
    def name(self) -> str:
        return "Direct"

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        response = await client.get(
            url,
            headers={"User-Agent": BROWSER_UA},
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        if not response.is_success:
            raise StrategyFailed(f"HTTP {response.status_code}", response.status_code)

        raw = RawPage(url=url, html=response.text, status_code=response.status_code)
        clean = extract_content(raw)
        if not clean.text.strip():
            raise StrategyFailed("no readable text on page", response.status_code)

        print(f"[Direct] ✓ {url} ({len(clean.text)} chars)")
        return ContentSource(
            url=url,
            kind=SourceKind.ARTICLE,
            title=clean.title,
            body_text=clean.text,
            markup=raw.html,
            meta_description=clean.description,
        )


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

class ArticleFetcher(ContentFetcher):
    kind = SourceKind.ARTICLE

    def __init__(
        self,
        client: httpx.AsyncClient,
        strategies: Optional[list[FetchStrategy]] = None,
    ) -> None:
        super().__init__(client)
        self._chain = StrategyChain(strategies or [DiffbotStrategy(), DirectPageStrategy()])

    async def fetch(self, url: str) -> ContentSource:
        return await self._chain.fetch(self._client, url, url)
