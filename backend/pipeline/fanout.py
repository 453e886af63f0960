"""Concurrent per-URL analysis.

Every URL gets its own task on the running event loop; the batch waits for
all of them before deciding the outcome, so no request is left in flight.
Results are positional: ``result[i]`` belongs to ``urls[i]``.
"""

from __future__ import annotations

import asyncio
import sqlite3
from typing import Optional, Sequence

import httpx

from backend.analysis.analyzer import analyze
from backend.analysis.models import AnalysisOutcome, ArticleAnalysis
from backend.errors import BatchAnalysisError
from backend.scraper.urls import extract_domain


async def _gather(
    urls: Sequence[str],
    focus_keyword: str,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection],
) -> list:
    print(f"[ANALYSING] Fanning out {len(urls)} URL(s) …")
    return await asyncio.gather(
        *(analyze(url, focus_keyword, client=client, conn=conn) for url in urls),
        return_exceptions=True,
    )


async def analyze_all(
    urls: Sequence[str],
    focus_keyword: str,
    *,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection] = None,
) -> list[ArticleAnalysis]:
    """Analyze every URL concurrently; any failure rejects the whole batch.

    Raises:
        BatchAnalysisError: At least one URL failed.  ``__cause__`` is the
            first failure in input order and ``failures`` lists all of them.
    """
    results = await _gather(urls, focus_keyword, client, conn)

    failures = [
        (url, result)
        for url, result in zip(urls, results)
        if isinstance(result, BaseException)
    ]
    if failures:
        url, first = failures[0]
        raise BatchAnalysisError(
            f"{len(failures)} of {len(urls)} source(s) failed; first was {url}: {first}",
            failures,
        ) from first
    return list(results)


async def analyze_all_settled(
    urls: Sequence[str],
    focus_keyword: str,
    *,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection] = None,
) -> list[AnalysisOutcome]:
    """Like :func:`analyze_all`, but report each URL's outcome instead of raising."""
    results = await _gather(urls, focus_keyword, client, conn)
    outcomes: list[AnalysisOutcome] = []
    for url, result in zip(urls, results):
        if isinstance(result, BaseException):
            print(f"[ANALYSING] ✗ {url}: {result}")
            degraded = ArticleAnalysis.failed(url, extract_domain(url), str(result))
            outcomes.append(AnalysisOutcome(url=url, analysis=degraded, error=result))
        else:
            outcomes.append(AnalysisOutcome(url=url, analysis=result))
    return outcomes
