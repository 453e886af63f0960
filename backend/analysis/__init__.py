"""Analysis package — per-article metrics, aggregation and outline synthesis."""

from backend.analysis.aggregator import rank_keywords, target_word_count
from backend.analysis.analyzer import analyze
from backend.analysis.enrichment import enrich
from backend.analysis.outline import parse_outline, synthesize

__all__ = [
    "analyze",
    "enrich",
    "parse_outline",
    "rank_keywords",
    "synthesize",
    "target_word_count",
]
