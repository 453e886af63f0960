"""Structural metrics and readability for fetched content.

``parse`` walks the source markup with BeautifulSoup; the text metrics
(``word_count``, ``character_count``, ``readability_score``) operate on the
plain body text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from backend.analysis.models import ExternalLinkEntry, HeadingEntry
from backend.scraper.models import ContentSource
from backend.scraper.urls import extract_domain

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
_VIDEO_EMBED_RE = re.compile(r"youtube|vimeo", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


@dataclass
class ParsedContent:
    heading_structure: list[HeadingEntry] = field(default_factory=list)
    external_links: list[ExternalLinkEntry] = field(default_factory=list)
    paragraphs_count: int = 0
    images_count: int = 0
    videos_count: int = 0


# ---------------------------------------------------------------------------
# Text metrics
# ---------------------------------------------------------------------------

def word_count(text: str) -> int:
    """Number of whitespace-delimited tokens; blank text counts as 0."""
    stripped = text.strip()
    if not stripped:
        return 0
    return len(stripped.split())


def character_count(text: str) -> int:
    return len(text)


def sentence_count(text: str) -> int:
    """Number of non-empty ``.!?``-delimited segments."""
    return sum(1 for segment in _SENTENCE_SPLIT_RE.split(text) if segment.strip())


def readability_score(text: str) -> float:
    """Approximate Flesch reading ease.

    ``206.835 − 1.015 × (words / sentences) − 84.6 × (characters / words)``,
    with character length standing in for syllables.  Returns 0 when the text
    has no words or no sentences.
    """
    words = word_count(text)
    sentences = sentence_count(text)
    if words == 0 or sentences == 0:
        return 0.0
    score = 206.835 - 1.015 * (words / sentences) - 84.6 * (character_count(text) / words)
    return round(score, 2)


# ---------------------------------------------------------------------------
# Markup metrics
# ---------------------------------------------------------------------------

def _resolve_link(base_url: str, href: str) -> str | None:
    """Absolute http(s) URL for *href*, or ``None`` when it cannot be resolved."""
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    try:
        resolved = urljoin(base_url, href)
        parsed = urlparse(resolved)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return resolved


def _is_video_embed(iframe) -> bool:  # type: ignore[no-untyped-def]
    src = iframe.get("src") or iframe.get("data-src") or ""
    return bool(_VIDEO_EMBED_RE.search(src))


def parse(source: ContentSource, current_domain: str) -> ParsedContent:
    """Extract headings, external links and element tallies from *source*.

    Links are resolved against ``source.url``; a link is external when its
    domain differs from *current_domain*.  Anchors with empty or unparseable
    hrefs are dropped.
    """
    if not source.markup.strip():
        return ParsedContent()

    soup = BeautifulSoup(source.markup, "html.parser")

    headings = [
        HeadingEntry(level=tag.name, text=tag.get_text(" ", strip=True))  # type: ignore[arg-type]
        for tag in soup.find_all(_HEADING_TAGS)
    ]

    own_domain = current_domain.lower()
    if own_domain.startswith("www."):
        own_domain = own_domain[4:]

    links: list[ExternalLinkEntry] = []
    for anchor in soup.find_all("a", href=True):
        resolved = _resolve_link(source.url, anchor["href"])
        if resolved is None:
            continue
        domain = extract_domain(resolved)
        if not domain or domain == own_domain:
            continue
        links.append(
            ExternalLinkEntry(
                url=resolved,
                text=anchor.get_text(" ", strip=True),
                domain=domain,
            )
        )

    videos = len(soup.find_all("video")) + sum(
        1 for iframe in soup.find_all("iframe") if _is_video_embed(iframe)
    )

    return ParsedContent(
        heading_structure=headings,
        external_links=links,
        paragraphs_count=len(soup.find_all("p")),
        images_count=len(soup.find_all("img")),
        videos_count=videos,
    )
