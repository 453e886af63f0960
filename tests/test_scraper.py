"""Tests for the content fetchers (article, Reddit, YouTube) and extraction.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made; an unexpected request fails the test.
- ``asyncio.sleep`` is patched in the Diffbot retry tests so back-off delays
  are asserted rather than waited for.
- API credentials are set per test through ``monkeypatch`` on ``settings``.
"""

from __future__ import annotations

import sqlite3
from unittest.mock import AsyncMock, call, patch

import httpx
import pytest
import respx

from backend.config import settings
from backend.db import transcripts
from backend.errors import FetchError, InvalidSourceError
from backend.scraper.article import DIFFBOT_ENDPOINT, ArticleFetcher
from backend.scraper.base import FetchStrategy, StrategyChain, StrategyFailed
from backend.scraper.extractor import _bs4_fallback, _extract_title, extract_content
from backend.scraper.fetcher import get_fetcher
from backend.scraper.models import ContentSource, RawPage, SourceKind
from backend.scraper.reddit import RedditFetcher
from backend.scraper.youtube import (
    YOUTUBE_VIDEOS_ENDPOINT,
    YouTubeFetcher,
    build_transcript,
)


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_ARTICLE_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <title>Indoor Composting Guide</title>
  <meta name="description" content="How to compost in a small apartment.">
</head>
<body>
  <main>
    <h1>Indoor Composting Guide</h1>
    <p>Indoor composting turns kitchen scraps into rich soil without a garden.
       A sealed bin under the sink is enough to get started with composting.</p>
    <p>Balance green materials such as vegetable peels with brown materials
       such as shredded cardboard to keep the composting bin from smelling.</p>
    <p>Worm composting, also called vermicomposting, works well indoors because
       the worms process scraps quickly and quietly.</p>
  </main>
</body>
</html>
"""

_DIFFBOT_PAYLOAD = {
    "objects": [
        {
            "title": "Indoor Composting 101",
            "text": "Composting indoors is easy. Start with a small bin.",
            "html": "<h2>Getting started</h2><p>Composting indoors is easy.</p>",
            "meta": {"description": "A beginner's guide to indoor composting."},
        }
    ]
}

_REDDIT_LISTING = [
    {
        "data": {
            "children": [
                {"data": {"title": "Best indoor compost bin?", "selftext": "Small flat, no balcony."}}
            ]
        }
    },
    {
        "data": {
            "children": [
                {"data": {"body": "Get a bokashi bucket."}},
                {"data": {"body": "Worm bins never smell if you add cardboard."}},
                {"kind": "more", "data": {"count": 12}},
            ]
        }
    },
]

_REDDIT_POST_URL = "https://www.reddit.com/r/composting/comments/abc123/best_indoor_bin/"


@pytest.fixture()
def diffbot_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "diffbot_api_token", "test-token")


@pytest.fixture()
def no_diffbot(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "diffbot_api_token", "")


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class TestExtractor:
    def test_extracts_title(self) -> None:
        assert _extract_title(_ARTICLE_HTML) == "Indoor Composting Guide"

    def test_missing_title_returns_empty(self) -> None:
        assert _extract_title("<html><body></body></html>") == ""

    def test_bs4_fallback_strips_scripts(self) -> None:
        html = "<html><body><script>alert('x')</script><main><p>Real text</p></main></body></html>"
        text = _bs4_fallback(html)
        assert "Real text" in text
        assert "alert" not in text

    def test_extract_content_reads_description(self) -> None:
        clean = extract_content(
            RawPage(url="https://example.com/guide", html=_ARTICLE_HTML, status_code=200)
        )
        assert clean.title == "Indoor Composting Guide"
        assert clean.description == "How to compost in a small apartment."
        assert "compost" in clean.text.lower()

    def test_bs4_fallback_used_when_trafilatura_returns_nothing(self) -> None:
        with patch("backend.scraper.extractor.trafilatura.extract", return_value=None):
            clean = extract_content(
                RawPage(url="https://example.com/guide", html=_ARTICLE_HTML, status_code=200)
            )
        assert "vermicomposting" in clean.text


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------

class _Failing(FetchStrategy):
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    @property
    def name(self) -> str:
        return "failing"

    async def fetch(self, client, url, ref):  # type: ignore[no-untyped-def]
        raise self._exc


class _Succeeding(FetchStrategy):
    @property
    def name(self) -> str:
        return "ok"

    async def fetch(self, client, url, ref):  # type: ignore[no-untyped-def]
        return ContentSource(url=url, kind=SourceKind.ARTICLE, title="ok", body_text="text")


class TestStrategyChain:
    async def test_unexpected_errors_fall_through(self) -> None:
        chain = StrategyChain([_Failing(ValueError("bad json")), _Succeeding()])
        async with httpx.AsyncClient() as client:
            source = await chain.fetch(client, "https://example.com/", "ref")
        assert source.title == "ok"

    @pytest.mark.parametrize(
        "exc", [KeyError("items"), TypeError("bad payload"), AttributeError("no get")]
    )
    async def test_malformed_payload_errors_fall_through(self, exc: Exception) -> None:
        chain = StrategyChain([_Failing(exc), _Succeeding()])
        async with httpx.AsyncClient() as client:
            source = await chain.fetch(client, "https://example.com/", "ref")
        assert source.title == "ok"

    async def test_exhausted_chain_reports_last_status(self) -> None:
        chain = StrategyChain(
            [_Failing(StrategyFailed("HTTP 503", 503)), _Failing(StrategyFailed("HTTP 404", 404))]
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(FetchError) as excinfo:
                await chain.fetch(client, "https://example.com/", "ref")
        assert excinfo.value.last_status == 404
        assert excinfo.value.url == "https://example.com/"


# ---------------------------------------------------------------------------
# Article fetcher
# ---------------------------------------------------------------------------

class TestArticleFetcher:
    async def test_diffbot_success(self, diffbot_token: None) -> None:
        with respx.mock:
            route = respx.get(DIFFBOT_ENDPOINT).mock(
                return_value=httpx.Response(200, json=_DIFFBOT_PAYLOAD)
            )
            async with httpx.AsyncClient() as client:
                source = await ArticleFetcher(client).fetch("https://example.com/compost")

        assert route.calls.last.request.url.params["url"] == "https://example.com/compost"
        assert route.calls.last.request.url.params["token"] == "test-token"
        assert source.kind is SourceKind.ARTICLE
        assert source.title == "Indoor Composting 101"
        assert source.body_text.startswith("Composting indoors")
        assert "<h2>Getting started</h2>" in source.markup
        assert source.meta_description == "A beginner's guide to indoor composting."

    async def test_rate_limit_honours_retry_after(self, diffbot_token: None) -> None:
        with respx.mock:
            respx.get(DIFFBOT_ENDPOINT).mock(
                side_effect=[
                    httpx.Response(429, headers={"Retry-After": "1"}),
                    httpx.Response(200, json=_DIFFBOT_PAYLOAD),
                ]
            )
            with patch("backend.scraper.article.asyncio.sleep", new_callable=AsyncMock) as sleep:
                async with httpx.AsyncClient() as client:
                    source = await ArticleFetcher(client).fetch("https://example.com/compost")

        sleep.assert_awaited_once_with(1.0)
        assert source.title == "Indoor Composting 101"

    async def test_retry_after_is_capped_at_largest_backoff(
        self, diffbot_token: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "fetch_max_attempts", 8)
        monkeypatch.setattr(settings, "fetch_retry_base_delay", 1.0)
        with respx.mock:
            respx.get(DIFFBOT_ENDPOINT).mock(
                side_effect=[
                    httpx.Response(429, headers={"Retry-After": "86400"}),
                    httpx.Response(200, json=_DIFFBOT_PAYLOAD),
                ]
            )
            with patch("backend.scraper.article.asyncio.sleep", new_callable=AsyncMock) as sleep:
                async with httpx.AsyncClient() as client:
                    source = await ArticleFetcher(client).fetch("https://example.com/compost")

        sleep.assert_awaited_once_with(128.0)
        assert source.title == "Indoor Composting 101"

    async def test_rate_limit_without_header_uses_exponential_backoff(
        self, diffbot_token: None
    ) -> None:
        with respx.mock:
            respx.get(DIFFBOT_ENDPOINT).mock(
                side_effect=[
                    httpx.Response(429),
                    httpx.Response(503),
                    httpx.Response(200, json=_DIFFBOT_PAYLOAD),
                ]
            )
            with patch("backend.scraper.article.asyncio.sleep", new_callable=AsyncMock) as sleep:
                async with httpx.AsyncClient() as client:
                    await ArticleFetcher(client).fetch("https://example.com/compost")

        base = settings.fetch_retry_base_delay
        assert sleep.await_args_list == [call(base), call(base * 2)]

    async def test_exhausted_retries_fall_back_then_fail(
        self, diffbot_token: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "fetch_max_attempts", 3)
        with respx.mock:
            diffbot = respx.get(DIFFBOT_ENDPOINT).mock(return_value=httpx.Response(500))
            respx.get("https://example.com/compost").mock(return_value=httpx.Response(404))
            with patch("backend.scraper.article.asyncio.sleep", new_callable=AsyncMock) as sleep:
                async with httpx.AsyncClient() as client:
                    with pytest.raises(FetchError) as excinfo:
                        await ArticleFetcher(client).fetch("https://example.com/compost")

        assert diffbot.call_count == 3
        assert sleep.await_count == 2
        assert excinfo.value.last_status == 404

    async def test_client_error_skips_retries_and_uses_direct_page(
        self, diffbot_token: None
    ) -> None:
        with respx.mock:
            diffbot = respx.get(DIFFBOT_ENDPOINT).mock(return_value=httpx.Response(403))
            respx.get("https://example.com/compost").mock(
                return_value=httpx.Response(200, text=_ARTICLE_HTML)
            )
            async with httpx.AsyncClient() as client:
                source = await ArticleFetcher(client).fetch("https://example.com/compost")

        assert diffbot.call_count == 1
        assert source.title == "Indoor Composting Guide"
        assert source.markup == _ARTICLE_HTML
        assert "compost" in source.body_text.lower()

    async def test_without_token_goes_straight_to_page(self, no_diffbot: None) -> None:
        with respx.mock:
            respx.get("https://example.com/compost").mock(
                return_value=httpx.Response(200, text=_ARTICLE_HTML)
            )
            async with httpx.AsyncClient() as client:
                source = await ArticleFetcher(client).fetch("https://example.com/compost")

        assert source.meta_description == "How to compost in a small apartment."


# ---------------------------------------------------------------------------
# Reddit fetcher
# ---------------------------------------------------------------------------

class TestRedditFetcher:
    async def test_primary_mirror(self) -> None:
        with respx.mock:
            respx.get("https://www.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(200, json=_REDDIT_LISTING)
            )
            async with httpx.AsyncClient() as client:
                source = await RedditFetcher(client).fetch(_REDDIT_POST_URL)

        assert source.kind is SourceKind.REDDIT
        assert source.url == _REDDIT_POST_URL
        assert source.title == "Best indoor compost bin?"
        assert source.comments == [
            "Get a bokashi bucket.",
            "Worm bins never smell if you add cardboard.",
        ]
        assert source.body_text == (
            "Small flat, no balcony.\n\nGet a bokashi bucket.\n\n"
            "Worm bins never smell if you add cardboard."
        )

    async def test_rotates_mirrors(self) -> None:
        with respx.mock:
            respx.get("https://www.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(403)
            )
            respx.get("https://old.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(429)
            )
            respx.get("https://api.reddit.com/comments/abc123").mock(
                return_value=httpx.Response(200, json=_REDDIT_LISTING)
            )
            async with httpx.AsyncClient() as client:
                source = await RedditFetcher(client).fetch(_REDDIT_POST_URL)

        assert source.title == "Best indoor compost bin?"

    async def test_html_fallback(self) -> None:
        page = (
            "<html><head><title>Best indoor compost bin? : composting</title></head>"
            '<body><div class="expando expando-uninitialized"><form>'
            '<div class="md"><p>Small flat, no balcony.</p></div>'
            "</form></div></body></html>"
        )
        with respx.mock:
            respx.get("https://www.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(503)
            )
            respx.get("https://old.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(503)
            )
            respx.get("https://api.reddit.com/comments/abc123").mock(
                return_value=httpx.Response(200, text="<html>not json</html>")
            )
            respx.get("https://old.reddit.com/comments/abc123/").mock(
                return_value=httpx.Response(200, text=page)
            )
            async with httpx.AsyncClient() as client:
                source = await RedditFetcher(client).fetch(_REDDIT_POST_URL)

        assert source.title == "Best indoor compost bin?"
        assert source.body_text == "Small flat, no balcony."

    async def test_all_sources_fail(self) -> None:
        with respx.mock:
            respx.get(url__regex=r"https://(www|old|api)\.reddit\.com/.*").mock(
                return_value=httpx.Response(503)
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError) as excinfo:
                    await RedditFetcher(client).fetch(_REDDIT_POST_URL)

        assert excinfo.value.last_status == 503

    async def test_comment_limit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "reddit_comment_limit", 1)
        with respx.mock:
            respx.get("https://www.reddit.com/comments/abc123.json").mock(
                return_value=httpx.Response(200, json=_REDDIT_LISTING)
            )
            async with httpx.AsyncClient() as client:
                source = await RedditFetcher(client).fetch(_REDDIT_POST_URL)

        assert source.comments == ["Get a bokashi bucket."]

    async def test_search_url_is_degenerate(self) -> None:
        url = "https://www.reddit.com/r/composting/search/?q=bokashi"
        with respx.mock:
            async with httpx.AsyncClient() as client:
                source = await RedditFetcher(client).fetch(url)

        assert source.title == "Reddit search: bokashi"
        assert source.body_text == ""

    async def test_missing_post_id(self) -> None:
        async with httpx.AsyncClient() as client:
            with pytest.raises(InvalidSourceError):
                await RedditFetcher(client).fetch("https://www.reddit.com/r/composting/")


# ---------------------------------------------------------------------------
# YouTube fetcher
# ---------------------------------------------------------------------------

def _videos_response(title: str, description: str) -> httpx.Response:
    return httpx.Response(
        200, json={"items": [{"snippet": {"title": title, "description": description}}]}
    )


class TestYouTubeFetcher:
    @pytest.fixture(autouse=True)
    def _api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "youtube_api_key", "yt-key")

    def test_build_transcript(self) -> None:
        assert build_transcript("Bins", "") == (
            "Title: Bins\n\nDescription: No description available"
        )

    async def test_data_api_builds_body_and_caches(self, conn: sqlite3.Connection) -> None:
        with respx.mock:
            route = respx.get(YOUTUBE_VIDEOS_ENDPOINT).mock(
                return_value=_videos_response("Composting 101", "Start small.")
            )
            async with httpx.AsyncClient() as client:
                source = await YouTubeFetcher(client, conn).fetch("https://youtu.be/abc123")

        params = route.calls.last.request.url.params
        assert params["id"] == "abc123"
        assert params["part"] == "snippet"
        assert source.kind is SourceKind.YOUTUBE
        assert source.title == "Composting 101"
        assert source.body_text == "Title: Composting 101\n\nDescription: Start small."

        cached = transcripts.get_cached_video(conn, "abc123")
        assert cached is not None
        assert cached.transcript == source.body_text

        attempts = transcripts.list_attempts(conn, "abc123")
        assert [a.successful for a in attempts] == [True]
        assert attempts[0].service_name == "YouTube Data API"

    async def test_cache_hit_makes_no_request(self, conn: sqlite3.Connection) -> None:
        transcripts.upsert_video(
            conn, "abc123", title="Cached", description="d", transcript="Title: Cached"
        )
        with respx.mock:
            async with httpx.AsyncClient() as client:
                source = await YouTubeFetcher(client, conn).fetch(
                    "https://www.youtube.com/watch?v=abc123"
                )

        assert source.title == "Cached"
        assert source.body_text == "Title: Cached"

    async def test_watch_page_fallback(
        self, conn: sqlite3.Connection, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "youtube_api_key", "")
        page = (
            "<html><head><title>Worm Bins Explained - YouTube</title>"
            '<meta name="description" content="Worms &amp; scraps"></head></html>'
        )
        with respx.mock:
            respx.get("https://www.youtube.com/watch?v=abc123").mock(
                return_value=httpx.Response(200, text=page)
            )
            async with httpx.AsyncClient() as client:
                source = await YouTubeFetcher(client, conn).fetch(
                    "https://youtube.com/embed/abc123"
                )

        assert source.title == "Worm Bins Explained"
        assert source.body_text == "Title: Worm Bins Explained\n\nDescription: Worms & scraps"

    async def test_unknown_video_falls_back_and_logs_failure(
        self, conn: sqlite3.Connection
    ) -> None:
        with respx.mock:
            respx.get(YOUTUBE_VIDEOS_ENDPOINT).mock(
                return_value=httpx.Response(200, json={"items": []})
            )
            respx.get("https://www.youtube.com/watch?v=abc123").mock(
                return_value=httpx.Response(404)
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError):
                    await YouTubeFetcher(client, conn).fetch("https://youtu.be/abc123")

        attempts = transcripts.list_attempts(conn, "abc123")
        assert [a.successful for a in attempts] == [False, False]
        assert attempts[1].response_status == 404
        assert transcripts.get_cached_video(conn, "abc123") is None

    async def test_malformed_api_payload_falls_back_to_watch_page(
        self, conn: sqlite3.Connection
    ) -> None:
        with respx.mock:
            respx.get(YOUTUBE_VIDEOS_ENDPOINT).mock(return_value=httpx.Response(200, json=[]))
            watch = respx.get("https://www.youtube.com/watch?v=abc123").mock(
                return_value=httpx.Response(200, text="<title>Vid - YouTube</title>")
            )
            async with httpx.AsyncClient() as client:
                source = await YouTubeFetcher(client, conn).fetch("https://youtu.be/abc123")

        assert watch.called
        assert source.title == "Vid"
        attempts = transcripts.list_attempts(conn, "abc123")
        assert [a.successful for a in attempts] == [False, True]

    async def test_missing_video_id(self) -> None:
        async with httpx.AsyncClient() as client:
            with pytest.raises(InvalidSourceError):
                await YouTubeFetcher(client).fetch("https://www.youtube.com/@composting")


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TestGetFetcher:
    async def test_routes_by_kind(self) -> None:
        async with httpx.AsyncClient() as client:
            assert isinstance(get_fetcher(_REDDIT_POST_URL, client), RedditFetcher)
            assert isinstance(get_fetcher("https://youtu.be/abc123", client), YouTubeFetcher)
            assert isinstance(get_fetcher("https://example.com/a", client), ArticleFetcher)
