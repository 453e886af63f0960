"""Content extraction: turns a :class:`RawPage` into a :class:`CleanPage`."""

from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass

import trafilatura
from bs4 import BeautifulSoup

from backend.scraper.models import RawPage


@dataclass
class CleanPage:
    """Cleaned, readable content extracted from a :class:`RawPage`."""

    url: str
    title: str
    text: str
    description: str = ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _extract_title(html: str) -> str:
    """Return the text content of the first ``<title>`` tag, or empty string."""
    match = re.search(r"<title[^>]*>([^<]+)</title>", html, re.IGNORECASE)
    if match:
        return html_lib.unescape(match.group(1)).strip()
    return ""


def _extract_meta_description(html: str) -> str:
    """Return the ``<meta name="description">`` content, or empty string."""
    soup = BeautifulSoup(html, "html.parser")
    tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    if tag is None:
        tag = soup.find("meta", attrs={"property": "og:description"})
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def _bs4_fallback(html: str) -> str:
    """Extract readable text using BeautifulSoup ``<main>``/``<article>`` heuristics."""
    soup = BeautifulSoup(html, "html.parser")
    # Strip non-content elements
    for tag in soup(["script", "style", "nav", "footer", "header"]):
        tag.decompose()
    # Prefer structural content containers
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return soup.get_text(separator=" ", strip=True)
    return container.get_text(separator=" ", strip=True)


def strip_tags(fragment: str) -> str:
    """Collapse an HTML fragment into plain text (used by regex scrapers)."""
    text = re.sub(r"<br\s*/?>|</p>", "\n", fragment, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = html_lib.unescape(text)
    return re.sub(r"[ \t]+", " ", text).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_content(raw: RawPage) -> CleanPage:
    """Extract clean, readable text from *raw*.

    Tries ``trafilatura`` first for best-in-class readability.  Falls back to
    a BeautifulSoup heuristic when trafilatura returns ``None`` or an empty
    string (e.g., highly dynamic or minimal pages).
    """
    text: str | None = trafilatura.extract(
        raw.html,
        include_links=False,
        include_images=False,
        include_tables=True,
        no_fallback=False,
        url=raw.url,
    )

    if not text:
        text = _bs4_fallback(raw.html)

    return CleanPage(
        url=raw.url,
        title=_extract_title(raw.html),
        text=text or "",
        description=_extract_meta_description(raw.html),
    )
