"""Per-URL analysis: fetch → parse → extract keywords → one record."""

from __future__ import annotations

import sqlite3
from typing import Optional

import httpx

from backend.analysis.keywords import count_mentions, extract_keywords
from backend.analysis.models import ArticleAnalysis
from backend.analysis.parser import character_count, parse, readability_score, word_count
from backend.scraper.fetcher import fetch_source
from backend.scraper.urls import extract_domain


async def analyze(
    url: str,
    focus_keyword: str,
    *,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection] = None,
) -> ArticleAnalysis:
    """Analyze one source URL.

    Any stage failure propagates unchanged; no degraded record is produced.

    Args:
        url: The article, Reddit thread or YouTube video to analyze.
        focus_keyword: The keyword the batch is optimising for.
        client: Shared async HTTP client.
        conn: Optional DB connection backing the YouTube transcript cache.

    Raises:
        FetchError, InvalidSourceError, KeywordExtractionError
    """
    print(f"[ANALYSING] {url}")
    domain = extract_domain(url)

    source = await fetch_source(url, client, conn)
    parsed = parse(source, domain)
    keywords = await extract_keywords(source.body_text, focus_keyword)

    analysis = ArticleAnalysis.build(
        title=source.title,
        url=url,
        domain=domain,
        word_count=word_count(source.body_text),
        character_count=character_count(source.body_text),
        paragraphs_count=parsed.paragraphs_count,
        images_count=parsed.images_count,
        videos_count=parsed.videos_count,
        external_links=parsed.external_links,
        meta_description=source.meta_description,
        keywords=keywords,
        readability_score=readability_score(source.body_text),
        heading_structure=parsed.heading_structure,
        keyword_mentions=count_mentions(source.body_text, keywords),
    )
    print(
        f"[ANALYSING] ✓ {url} — {analysis.word_count} words, "
        f"{analysis.headings_count} headings, {len(keywords)} key phrase(s)"
    )
    return analysis
