"""Reddit thread fetcher.

Rotates through equivalent JSON endpoints for the same post, then falls back
to scraping the old-Reddit HTML page.  Only the first
``settings.reddit_comment_limit`` comments are kept.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx

from backend.config import settings
from backend.errors import InvalidSourceError
from backend.scraper.base import (
    ContentFetcher,
    FetchStrategy,
    StrategyChain,
    StrategyFailed,
)
from backend.scraper.extractor import strip_tags
from backend.scraper.models import ContentSource, SourceKind
from backend.scraper.urls import extract_reddit_post_id, is_reddit_search_url

# JSON mirrors of the same post, tried in order.
REDDIT_JSON_MIRRORS = [
    "https://www.reddit.com/comments/{post_id}.json",
    "https://old.reddit.com/comments/{post_id}.json",
    "https://api.reddit.com/comments/{post_id}",
]

REDDIT_HTML_PAGE = "https://old.reddit.com/comments/{post_id}/"

_REDDIT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; SEOAnalyzer/1.0)",
    "Accept": "application/json",
}

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_POST_BODY_RE = re.compile(
    r'<div class="expando[^"]*"[^>]*>.*?<div class="md">(.*?)</div>',
    re.IGNORECASE | re.DOTALL,
)


def _join_body(selftext: str, comments: list[str]) -> str:
    return "\n\n".join(part for part in [selftext, *comments] if part)


def parse_listing(payload: Any, comment_limit: int) -> tuple[str, str, list[str]]:
    """Return ``(title, selftext, comments)`` from a Reddit comments listing.

    Raises:
        StrategyFailed: The payload is not the expected two-listing array.
    """
    try:
        post = payload[0]["data"]["children"][0]["data"]
        title = post["title"]
    except (KeyError, IndexError, TypeError) as exc:
        raise StrategyFailed(f"unexpected payload shape ({exc!r})") from exc

    comments: list[str] = []
    try:
        children = payload[1]["data"]["children"]
    except (KeyError, IndexError, TypeError):
        children = []
    for child in children:
        body = (child.get("data") or {}).get("body") if isinstance(child, dict) else None
        if body:
            comments.append(body)
        if len(comments) >= comment_limit:
            break

    return title, post.get("selftext") or "", comments


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class RedditJsonStrategy(FetchStrategy):
    """One JSON API mirror for a Reddit post."""

    def __init__(self, endpoint: str) -> None:
        self._endpoint = endpoint

    @property
    def name(self) -> str:
        return f"Reddit JSON {urlparse(self._endpoint).hostname}"

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        endpoint = self._endpoint.format(post_id=ref)
        response = await client.get(
            endpoint,
            headers=_REDDIT_HEADERS,
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        if not response.is_success:
            raise StrategyFailed(f"HTTP {response.status_code}", response.status_code)

        title, selftext, comments = parse_listing(
            response.json(), settings.reddit_comment_limit
        )
        print(f"[Reddit] ✓ {ref} via {endpoint} ({len(comments)} comment(s))")
        return ContentSource(
            url=url,
            kind=SourceKind.REDDIT,
            title=title,
            body_text=_join_body(selftext, comments),
            comments=comments,
        )


class RedditHtmlStrategy(FetchStrategy):
    """Last resort: pattern-extract title and post body from old Reddit HTML."""

    @property
    def name(self) -> str:
        return "Reddit HTML"

    async def fetch(self, client: httpx.AsyncClient, url: str, ref: str) -> ContentSource:
        page_url = REDDIT_HTML_PAGE.format(post_id=ref)
        response = await client.get(
            page_url,
            headers={"User-Agent": _REDDIT_HEADERS["User-Agent"]},
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        if not response.is_success:
            raise StrategyFailed(f"HTTP {response.status_code}", response.status_code)

        html = response.text
        title_match = _TITLE_RE.search(html)
        title = strip_tags(title_match.group(1)) if title_match else ""
        # Old Reddit titles read "Post title : subreddit".
        title = title.rsplit(" : ", 1)[0].strip()
        if not title:
            raise StrategyFailed("no title found in page", response.status_code)

        body_match = _POST_BODY_RE.search(html)
        body = strip_tags(body_match.group(1)) if body_match else ""

        print(f"[Reddit] ✓ {ref} via HTML scrape")
        return ContentSource(url=url, kind=SourceKind.REDDIT, title=title, body_text=body)


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

def _search_source(url: str) -> ContentSource:
    """Degenerate record for a Reddit search-results URL (no post to fetch)."""
    query = parse_qs(urlparse(url).query).get("q", [""])[0]
    title = f"Reddit search: {query}" if query else "Reddit search results"
    return ContentSource(url=url, kind=SourceKind.REDDIT, title=title, body_text="")


class RedditFetcher(ContentFetcher):
    kind = SourceKind.REDDIT

    def __init__(self, client: httpx.AsyncClient) -> None:
        super().__init__(client)
        strategies: list[FetchStrategy] = [
            RedditJsonStrategy(endpoint) for endpoint in REDDIT_JSON_MIRRORS
        ]
        strategies.append(RedditHtmlStrategy())
        self._chain = StrategyChain(strategies)

    async def fetch(self, url: str) -> ContentSource:
        if is_reddit_search_url(url):
            print(f"[Reddit] search URL, skipping post fetch: {url}")
            return _search_source(url)

        post_id = extract_reddit_post_id(url)
        if not post_id:
            raise InvalidSourceError(url, f"No Reddit post id in {url!r}")

        print(f"[Reddit] fetching post {post_id}")
        return await self._chain.fetch(self._client, url, post_id)
