"""URL helpers: domain extraction, source-kind detection and id parsing."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from backend.scraper.models import SourceKind

_REDDIT_POST_PATTERNS = [
    re.compile(r"/r/[^/]+/comments/([a-zA-Z0-9]+)"),
    re.compile(r"/comments/([a-zA-Z0-9]+)"),
]

_YOUTUBE_PATH_PATTERNS = [
    re.compile(r"^/embed/([^/?]+)"),
    re.compile(r"^/v/([^/?]+)"),
    re.compile(r"^/watch/([^/?]+)"),
]


def extract_domain(url: str) -> str:
    """Return the lower-cased host of *url* without a leading ``www.``.

    Returns an empty string when *url* has no parseable host.
    """
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def detect_source_kind(url: str) -> SourceKind:
    """Classify *url* by host: Reddit, YouTube, or a generic article."""
    host = extract_domain(url)
    if _host_matches(host, "reddit.com"):
        return SourceKind.REDDIT
    if _host_matches(host, "youtube.com") or _host_matches(host, "youtu.be"):
        return SourceKind.YOUTUBE
    return SourceKind.ARTICLE


def is_reddit_search_url(url: str) -> bool:
    """``True`` for Reddit search-result pages (path contains ``/search/``)."""
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return "/search/" in path or path.rstrip("/").endswith("/search")


def extract_reddit_post_id(url: str) -> Optional[str]:
    """Return the post id from a standard or subreddit-qualified comments URL."""
    if detect_source_kind(url) is not SourceKind.REDDIT:
        return None
    path = urlparse(url).path
    for pattern in _REDDIT_POST_PATTERNS:
        match = pattern.search(path)
        if match:
            return match.group(1)
    return None


def extract_youtube_video_id(url: str) -> Optional[str]:
    """Return the video id from any of the common YouTube URL forms.

    Supported: ``youtu.be/<id>``, ``?v=<id>``, ``/embed/<id>``, ``/v/<id>``
    and ``/watch/<id>``.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    host = extract_domain(url)
    if _host_matches(host, "youtu.be"):
        video_id = parsed.path.lstrip("/").split("/")[0]
        return video_id or None
    if not _host_matches(host, "youtube.com"):
        return None

    values = parse_qs(parsed.query).get("v")
    if values and values[0]:
        return values[0]

    for pattern in _YOUTUBE_PATH_PATTERNS:
        match = pattern.match(parsed.path)
        if match:
            return match.group(1)
    return None
