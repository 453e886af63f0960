"""High-level runner for batch content analysis.

``run_batch_analysis`` is the caller-facing entry point.  It owns the HTTP
client and DB connection for the duration of a run (unless the caller passes
its own), drives the compiled graph, and retries the whole batch on failure.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import AsyncExitStack
from typing import Optional, Sequence

import httpx

from backend.analysis.models import BatchResult
from backend.config import settings
from backend.db import get_connection, init_db
from backend.errors import BatchAnalysisError
from backend.pipeline.fanout import analyze_all, analyze_all_settled
from backend.pipeline.graph import build_graph
from backend.pipeline.state import BatchState

__all__ = ["analyze_all", "analyze_all_settled", "run_batch_analysis"]


async def _run_once(
    urls: list[str],
    focus_keyword: str,
    client: httpx.AsyncClient,
    conn: Optional[sqlite3.Connection],
) -> BatchResult:
    graph = build_graph(client, conn)
    initial_state: BatchState = {
        "keyword": focus_keyword,
        "urls": urls,
        "analyses": [],
        "ideal_structure": None,
        "status": "analysing",
    }
    final = await graph.ainvoke(initial_state)
    return BatchResult(
        analyses=tuple(final["analyses"]),
        ideal_structure=final["ideal_structure"],
    )


async def run_batch_analysis(
    urls: Sequence[str],
    focus_keyword: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> BatchResult:
    """Analyze *urls* for *focus_keyword* and synthesize the ideal structure.

    The batch is retried up to ``settings.batch_max_attempts`` times, waiting
    ``settings.batch_retry_delay × attempt`` seconds between attempts.

    Args:
        urls: Source URLs, analysed concurrently; result order follows input order.
        focus_keyword: The keyword to optimise for.
        client: Optional shared HTTP client; one is created (and closed) if omitted.
        conn: Optional initialised DB connection for the transcript cache.

    Returns:
        A :class:`BatchResult` with the analyses and the enriched ideal structure.

    Raises:
        ValueError: *urls* is empty, any URL is blank, or *focus_keyword* is blank.
        BatchAnalysisError: Every attempt failed.  ``__cause__`` is the last
            attempt's error.
    """
    url_list = [(url or "").strip() for url in urls]
    if not url_list:
        raise ValueError("At least one URL is required")
    if not all(url_list):
        raise ValueError("URLs must not be blank")
    keyword = focus_keyword.strip()
    if not keyword:
        raise ValueError("A focus keyword is required")

    max_attempts = max(1, settings.batch_max_attempts)
    print(f"[BATCH] Analysing {len(url_list)} URL(s) for {keyword!r} …")

    async with AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(
                httpx.AsyncClient(timeout=settings.request_timeout, follow_redirects=True)
            )
        if conn is None:
            conn = get_connection()
            stack.callback(conn.close)
            init_db(conn)

        last_error: Optional[Exception] = None
        for attempt in range(1, max_attempts + 1):
            try:
                result = await _run_once(url_list, keyword, client, conn)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                print(f"[BATCH] Attempt {attempt}/{max_attempts} failed: {exc}")
                if attempt < max_attempts:
                    await asyncio.sleep(settings.batch_retry_delay * attempt)
                continue
            print(f"[BATCH] ✓ Completed on attempt {attempt}.")
            return result

    failures = last_error.failures if isinstance(last_error, BatchAnalysisError) else []
    raise BatchAnalysisError(
        f"Batch analysis failed after {max_attempts} attempt(s): {last_error}",
        failures,
    ) from last_error
