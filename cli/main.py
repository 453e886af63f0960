"""SERP content-research CLI — entry-point for all backend operations.

Usage:
    python cli/main.py --help

Commands:
    analyze   → batch analysis + ideal structure for a keyword
    fetch     → fetch one source and print its structural metrics
    search    → organic search results for a keyword
    cache     → transcript cache maintenance
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from backend.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import List

import httpx
import typer

from backend.analysis.parser import character_count, parse, readability_score, word_count
from backend.config import settings
from backend.db import get_connection, init_db, transcripts
from backend.errors import BatchAnalysisError, PipelineError
from backend.pipeline import run_batch_analysis
from backend.pipeline.search_providers import build_default_chain
from backend.scraper import extract_domain, fetch_source
from cli.rendering import render_analysis, render_structure

app = typer.Typer(
    name="serp-research",
    help="SERP content-research CLI.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
@app.command("analyze")
def analyze(
    keyword: str = typer.Option(..., "--keyword", help="Focus keyword."),
    urls: List[str] = typer.Option(..., "--url", help="Source URL (repeatable)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
) -> None:
    """Analyse the given URLs and recommend an article structure."""
    typer.echo(f"[analyze] {len(urls)} URL(s) for {keyword!r} …")
    try:
        result = asyncio.run(run_batch_analysis(urls, keyword))
    except ValueError as exc:
        typer.echo(f"[analyze] {exc}")
        raise typer.Exit(1)
    except BatchAnalysisError as exc:
        typer.echo(f"[analyze] Failed: {exc}")
        for url, error in exc.failures:
            typer.echo(f"  ✗ {url}: {error}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    for analysis in result.analyses:
        typer.echo(render_analysis(analysis))
        typer.echo("")
    typer.echo("=" * 72)
    typer.echo(render_structure(result.ideal_structure, keyword))


# ---------------------------------------------------------------------------
# Single source
# ---------------------------------------------------------------------------
async def _fetch_one(url: str):  # type: ignore[no-untyped-def]
    conn = get_connection()
    init_db(conn)
    try:
        async with httpx.AsyncClient(
            timeout=settings.request_timeout, follow_redirects=True
        ) as client:
            return await fetch_source(url, client, conn)
    finally:
        conn.close()


@app.command("fetch")
def fetch(
    url: str = typer.Option(..., "--url", help="URL to fetch."),
) -> None:
    """Fetch one source and print its structural metrics (no model calls)."""
    typer.echo(f"[fetch] Fetching {url!r} …")
    try:
        source = asyncio.run(_fetch_one(url))
    except PipelineError as exc:
        typer.echo(f"[fetch] Failed: {exc}")
        raise typer.Exit(1)

    parsed = parse(source, extract_domain(url))
    typer.echo(f"[fetch] Kind        : {source.kind.value}")
    typer.echo(f"[fetch] Title       : {source.title or '(none)'}")
    typer.echo(f"[fetch] Words       : {word_count(source.body_text)}")
    typer.echo(f"[fetch] Characters  : {character_count(source.body_text)}")
    typer.echo(f"[fetch] Headings    : {len(parsed.heading_structure)}")
    typer.echo(f"[fetch] Paragraphs  : {parsed.paragraphs_count}")
    typer.echo(f"[fetch] Images      : {parsed.images_count}")
    typer.echo(f"[fetch] Videos      : {parsed.videos_count}")
    typer.echo(f"[fetch] Ext. links  : {len(parsed.external_links)}")
    typer.echo(f"[fetch] Readability : {readability_score(source.body_text)}")


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
@app.command("search")
def search(
    keyword: str = typer.Option(..., "--keyword", help="Keyword to search for."),
    num: int = typer.Option(10, "--num", help="Maximum number of results."),
) -> None:
    """Print the organic search results for a keyword."""
    results = build_default_chain().search(keyword, max_results=num)
    if not results:
        typer.echo(f"[search] No results for {keyword!r}.")
        raise typer.Exit(1)
    for article in results:
        typer.echo(f"{article.rank:>3}. {article.title}")
        typer.echo(f"     {article.url}")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
cache_app = typer.Typer(help="Transcript cache operations.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


@cache_app.command("clear")
def cache_clear() -> None:
    """Delete every cached YouTube video record."""
    conn = get_connection()
    init_db(conn)
    try:
        removed = transcripts.clear_cache(conn)
    finally:
        conn.close()
    typer.echo(f"[cache clear] Removed {removed} cached video(s) from {settings.db_path}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
