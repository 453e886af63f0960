"""Fetcher abstractions with ordered fallback strategies.

Each source kind owns an ordered list of :class:`FetchStrategy` objects
(an extraction API, a JSON mirror, a scraped HTML page, ...).  The
:class:`StrategyChain` tries them in order and returns the first success.
If every strategy fails the chain raises :class:`~backend.errors.FetchError`
carrying the last HTTP status any strategy saw.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from backend.errors import FetchError
from backend.scraper.models import ContentSource, SourceKind

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


class StrategyFailed(Exception):
    """One strategy could not produce content; the chain moves on."""

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Abstract bases
# ---------------------------------------------------------------------------

class FetchStrategy(ABC):
    """A single way of retrieving content for one source kind."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable strategy name used in log lines."""

    @property
    def available(self) -> bool:
        """``False`` when the strategy lacks credentials and must be skipped."""
        return True

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        """Return content for *url*; *ref* is the kind-specific id.

        Must raise :class:`StrategyFailed` (not return a partial record) when
        no usable content was obtained.
        """


class ContentFetcher(ABC):
    """Retrieves raw content for one source kind."""

    kind: SourceKind

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @abstractmethod
    async def fetch(self, url: str) -> ContentSource:
        """Return the :class:`ContentSource` for *url*.

        Raises:
            FetchError: Every data source for this kind failed.
            InvalidSourceError: *url* lacks the identifier this kind needs.
        """


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------

class StrategyChain:
    """Try strategies in order; return the first successful result."""

    def __init__(self, strategies: list[FetchStrategy]) -> None:
        self._strategies = strategies

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        last_status: Optional[int] = None
        last_reason = "no strategy available"

        for strategy in self._strategies:
            if not strategy.available:
                print(f"[{strategy.name}] skipped (not configured).")
                continue
            try:
                return await strategy.fetch(client, url, ref)
            except StrategyFailed as exc:
                if exc.status is not None:
                    last_status = exc.status
                last_reason = f"{strategy.name}: {exc}"
                print(f"[{strategy.name}] ✗ {url} — {exc}; trying next source.")
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
                last_reason = f"{strategy.name}: {exc!r:.120}"
                print(f"[{strategy.name}] ✗ {url} — {exc!r:.120}; trying next source.")

        print(f"[fetch] all sources exhausted for {url}.")
        raise FetchError(url, last_status, reason=last_reason)
