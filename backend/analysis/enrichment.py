"""Recommendation enrichment.

Fills in what :func:`backend.analysis.outline.synthesize` leaves empty: the
outbound links the competing articles agree on, and suggested titles and
meta descriptions.  Title/description suggestions come from the chat model
and fall back to keyword templates when the model is unavailable.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Sequence

from backend.analysis.models import ArticleAnalysis, ExternalLinkEntry, IdealStructure
from backend.config import settings
from backend.llm import complete

_SUGGESTION_COUNT = 3

_META_SYSTEM_PROMPT = (
    "You are an SEO copywriter. Given the titles and meta descriptions of the "
    "top-ranking articles for a keyword, write better ones. Return strict JSON "
    'of the form {"titles": ["..."], "descriptions": ["..."]} with exactly '
    f"{_SUGGESTION_COUNT} titles (under 60 characters) and "
    f"{_SUGGESTION_COUNT} descriptions (under 160 characters)."
)


def fallback_titles(focus_keyword: str) -> list[str]:
    return [
        f"Complete Guide to {focus_keyword}",
        f"{focus_keyword} Tutorial",
        f"Understanding {focus_keyword}",
    ]


def fallback_descriptions(focus_keyword: str) -> list[str]:
    return [
        f"Learn everything about {focus_keyword} in our comprehensive guide.",
        f"A step-by-step {focus_keyword} tutorial with practical examples.",
        f"Understand {focus_keyword}: key concepts, common mistakes and expert tips.",
    ]


# ---------------------------------------------------------------------------
# External links
# ---------------------------------------------------------------------------

def rank_external_links(
    analyses: Sequence[ArticleAnalysis], limit: int = 10
) -> list[ExternalLinkEntry]:
    """Outbound links shared across *analyses*, most widely cited first.

    ``frequency`` counts the analyses linking to a URL; ``total_mentions``
    counts every occurrence.  Ties keep first-seen order.
    """
    first: dict[str, ExternalLinkEntry] = {}
    frequency: dict[str, int] = {}
    totals: dict[str, int] = {}

    for analysis in analyses:
        seen_here: set[str] = set()
        for link in analysis.external_links:
            if link.url not in first:
                first[link.url] = link
            totals[link.url] = totals.get(link.url, 0) + 1
            if link.url not in seen_here:
                seen_here.add(link.url)
                frequency[link.url] = frequency.get(link.url, 0) + 1

    # sorted() is stable, so dict insertion order breaks the remaining ties.
    ordered = sorted(first, key=lambda url: (-frequency[url], -totals[url]))
    return [
        replace(first[url], frequency=frequency[url], total_mentions=totals[url])
        for url in ordered[:limit]
    ]


# ---------------------------------------------------------------------------
# Titles and descriptions
# ---------------------------------------------------------------------------

def _meta_prompt(analyses: Sequence[ArticleAnalysis], focus_keyword: str) -> str:
    lines = [f'Keyword: "{focus_keyword}"', "", "Top-ranking articles:"]
    for analysis in analyses:
        lines.append(f"- Title: {analysis.meta_title or analysis.title or analysis.url}")
        if analysis.meta_description:
            lines.append(f"  Description: {analysis.meta_description}")
    return "\n".join(lines)


def _clean_strings(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


async def suggest_meta(
    analyses: Sequence[ArticleAnalysis], focus_keyword: str
) -> tuple[list[str], list[str]]:
    """Return ``(titles, descriptions)`` suggestions for *focus_keyword*."""
    try:
        raw = await complete(
            _META_SYSTEM_PROMPT,
            _meta_prompt(analyses, focus_keyword),
            json_output=True,
            temperature=0.7,
        )
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        titles = _clean_strings(data.get("titles"))[:_SUGGESTION_COUNT]
        descriptions = _clean_strings(data.get("descriptions"))[:_SUGGESTION_COUNT]
        if not titles or not descriptions:
            raise ValueError("missing titles or descriptions")
    except Exception as exc:  # noqa: BLE001
        print(f"[ENRICH] Meta suggestions unavailable ({exc}); using templates.")
        return fallback_titles(focus_keyword), fallback_descriptions(focus_keyword)
    return titles, descriptions


async def enrich(
    structure: IdealStructure,
    analyses: Sequence[ArticleAnalysis],
    focus_keyword: str,
) -> IdealStructure:
    """Return a copy of *structure* with links, titles and descriptions filled in."""
    if not settings.enrich_recommendations:
        return structure

    print(f"[ENRICH] Ranking links and drafting titles for {focus_keyword!r} …")
    links = rank_external_links(analyses)
    titles, descriptions = await suggest_meta(analyses, focus_keyword)
    return replace(
        structure,
        recommended_external_links=tuple(links),
        suggested_titles=tuple(titles),
        suggested_descriptions=tuple(descriptions),
    )
