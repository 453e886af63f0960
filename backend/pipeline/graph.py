"""Build and compile the batch-analysis StateGraph.

The graph topology is linear:

    START → analyser → synthesiser → enricher → END

Nodes come from the ``make_*`` factories in ``backend.pipeline.nodes`` so the
HTTP client and DB connection stay out of the state bag.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

import httpx
from langgraph.graph import END, START, StateGraph

from backend.pipeline.nodes import make_analyser, make_enricher, make_synthesiser
from backend.pipeline.state import BatchState


def build_graph(client: httpx.AsyncClient, conn: Optional[sqlite3.Connection] = None):
    """Compile and return the batch-analysis graph.

    Every run is a single pass, so no checkpointer is attached; invoke it with
    ``await graph.ainvoke(initial_state)``.
    """
    graph = StateGraph(BatchState)

    graph.add_node("analyser", make_analyser(client, conn))
    graph.add_node("synthesiser", make_synthesiser())
    graph.add_node("enricher", make_enricher())

    graph.add_edge(START, "analyser")
    graph.add_edge("analyser", "synthesiser")
    graph.add_edge("synthesiser", "enricher")
    graph.add_edge("enricher", END)

    return graph.compile()
