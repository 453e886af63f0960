"""LangGraph node functions for the batch-analysis pipeline.

Each public symbol is a *factory* returning an async callable
``(BatchState) -> dict``.  The HTTP client and DB connection are captured by
the closures so they never travel through the state bag.

Public factories
----------------
``make_analyser``    — fetches and analyses every URL **concurrently**.
``make_synthesiser`` — aggregates the analyses and generates the outline.
``make_enricher``    — adds recommended links, titles and descriptions.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

import httpx

from backend.analysis.enrichment import enrich
from backend.analysis.outline import synthesize
from backend.pipeline import fanout
from backend.pipeline.state import BatchState


def make_analyser(client: httpx.AsyncClient, conn: Optional[sqlite3.Connection] = None):
    """Return an *analyser* node; any per-URL failure aborts the run."""

    async def analyser(state: BatchState) -> dict:
        analyses = await fanout.analyze_all(
            state["urls"], state["keyword"], client=client, conn=conn
        )
        return {"analyses": analyses, "status": "synthesising"}

    return analyser


def make_synthesiser():
    """Return a *synthesiser* node producing the unenriched ``IdealStructure``."""

    async def synthesiser(state: BatchState) -> dict:
        structure = await synthesize(state["analyses"], state["keyword"])
        return {"ideal_structure": structure, "status": "enriching"}

    return synthesiser


def make_enricher():
    async def enricher(state: BatchState) -> dict:
        structure = state["ideal_structure"]
        if structure is None:
            raise RuntimeError("enricher reached without an ideal structure")
        enriched = await enrich(structure, state["analyses"], state["keyword"])
        print("[BATCH] Recommendations ready.")
        return {"ideal_structure": enriched, "status": "done"}

    return enricher
