"""Organic search results with automatic failover.

Provider priority (highest to lowest):
  1. SerpAPI — Google organic results; requires SERPAPI_API_KEY.
  2. DuckDuckGo — free, scraping-based; retried with exponential backoff.

All providers share a common interface:
``search(query, max_results) -> list[Article]``.  The ``SearchProviderChain``
tries each provider in order and returns the first non-empty result set.  If
every provider fails the chain returns ``[]``.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

import httpx
from duckduckgo_search import DDGS
from duckduckgo_search.exceptions import DuckDuckGoSearchException, RatelimitException

from backend.analysis.models import Article
from backend.config import settings

SERPAPI_ENDPOINT = "https://serpapi.com/search.json"


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchProvider(ABC):
    """Abstract base class for a single search provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    def search(self, query: str, max_results: int = 10) -> list[Article]:
        """Return ranked results.  Must return ``[]`` (not raise) on failure."""


# ---------------------------------------------------------------------------
# SerpAPI provider
# ---------------------------------------------------------------------------

class SerpApiProvider(SearchProvider):
    """Google organic results via SerpAPI.

    Skipped if ``settings.serpapi_api_key`` is empty.
    """

    @property
    def name(self) -> str:
        return "SerpAPI"

    def search(self, query: str, max_results: int = 10) -> list[Article]:
        api_key = settings.serpapi_api_key
        if not api_key:
            return []

        try:
            with httpx.Client(timeout=settings.search_provider_timeout) as client:
                resp = client.get(
                    SERPAPI_ENDPOINT,
                    params={
                        "engine": "google",
                        "q": query.strip(),
                        "api_key": api_key,
                        "num": max_results,
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except Exception as exc:
            print(f"[SerpAPI] request failed: {exc}")
            return []

        results: list[Article] = []
        for index, item in enumerate(data.get("organic_results", []), start=1):
            link = item.get("link")
            if not link:
                continue
            results.append(
                Article(
                    title=item.get("title", ""),
                    url=link,
                    snippet=item.get("snippet", ""),
                    rank=int(item.get("position") or index),
                )
            )
            if len(results) >= max_results:
                break
        if results:
            print(f"[SerpAPI] ✓ {len(results)} result(s).")
        return results


# ---------------------------------------------------------------------------
# DuckDuckGo provider (with exponential backoff)
# ---------------------------------------------------------------------------

class DuckDuckGoProvider(SearchProvider):
    """Wrapper around ``duckduckgo_search.DDGS`` with retry on rate-limit."""

    @property
    def name(self) -> str:
        return "DuckDuckGo"

    def search(self, query: str, max_results: int = 10) -> list[Article]:
        base_delay = settings.search_retry_base_delay
        max_retries = settings.search_retry_max

        for attempt in range(max_retries + 1):
            try:
                with DDGS() as ddgs:
                    raw = ddgs.text(query.strip(), max_results=max_results)
            except RatelimitException:
                if attempt < max_retries:
                    delay = base_delay * (2 ** attempt)
                    print(
                        f"[DuckDuckGo] rate-limited (attempt {attempt + 1}/{max_retries}); "
                        f"retrying in {delay:.0f}s …"
                    )
                    time.sleep(delay)
                    continue
                print(f"[DuckDuckGo] gave up after {max_retries} retries (rate-limited).")
                return []
            except DuckDuckGoSearchException as exc:
                print(f"[DuckDuckGo] search error: {exc}")
                return []

            results = [
                Article(
                    title=item.get("title", ""),
                    url=item["href"],
                    snippet=item.get("body", ""),
                    rank=rank,
                )
                for rank, item in enumerate(
                    (r for r in raw or [] if r.get("href")), start=1
                )
            ]
            if results:
                print(f"[DuckDuckGo] ✓ {len(results)} result(s).")
            return results

        return []


# ---------------------------------------------------------------------------
# Provider chain
# ---------------------------------------------------------------------------

class SearchProviderChain:
    """Try providers in order; return the first non-empty result list."""

    def __init__(self, providers: list[SearchProvider]) -> None:
        self._providers = providers

    @property
    def providers(self) -> list[SearchProvider]:
        return list(self._providers)

    def search(self, query: str, max_results: int = 10) -> list[Article]:
        for provider in self._providers:
            results = provider.search(query, max_results=max_results)
            if results:
                return results
        print("[search chain] all providers returned no results.")
        return []


def build_default_chain() -> SearchProviderChain:
    """SerpAPI (if key) → DuckDuckGo."""
    providers: list[SearchProvider] = []
    if settings.serpapi_api_key:
        providers.append(SerpApiProvider())
    providers.append(DuckDuckGoProvider())
    return SearchProviderChain(providers)
