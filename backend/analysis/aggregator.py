"""Cross-article statistics: target length and keyword ranking."""

from __future__ import annotations

from typing import Iterable

from backend.analysis.models import ArticleAnalysis, KeywordFrequency

DEFAULT_TARGET_WORD_COUNT = 1500


def normalize_keyword(text: str) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    return " ".join(text.lower().split())


def target_word_count(analyses: Iterable[ArticleAnalysis]) -> int:
    """Rounded mean of the positive word counts, or 1500 when there are none."""
    counts = [a.word_count for a in analyses if a.word_count > 0]
    if not counts:
        return DEFAULT_TARGET_WORD_COUNT
    # Half-up rounding; Python's round() would bank 2.5 down to 2.
    return int(sum(counts) / len(counts) + 0.5)


def rank_keywords(analyses: Iterable[ArticleAnalysis]) -> list[KeywordFrequency]:
    """Aggregate keywords across *analyses* and rank them.

    ``frequency`` counts distinct analyses containing the normalized phrase;
    ``total_mentions`` sums each analysis's body-text mention count for it
    (1 when the analysis carries no count).  Order: frequency desc, total
    mentions desc, shorter phrase first, then alphabetical.
    """
    frequency: dict[str, int] = {}
    totals: dict[str, int] = {}

    for analysis in analyses:
        per_article: dict[str, int] = {}
        for keyword in analysis.keywords:
            norm = normalize_keyword(keyword)
            if not norm:
                continue
            mentions = analysis.keyword_mentions.get(keyword, 1)
            per_article[norm] = max(per_article.get(norm, 0), mentions)

        for norm, mentions in per_article.items():
            frequency[norm] = frequency.get(norm, 0) + 1
            totals[norm] = totals.get(norm, 0) + mentions

    ranked = [
        KeywordFrequency(text=text, frequency=count, total_mentions=totals[text])
        for text, count in frequency.items()
    ]
    ranked.sort(key=lambda k: (-k.frequency, -k.total_mentions, len(k.text), k.text))
    return ranked
