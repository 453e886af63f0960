"""Shared fixtures: in-memory DB and an ``ArticleAnalysis`` factory."""

from __future__ import annotations

import sqlite3
from typing import Callable, Generator, Optional

import pytest

from backend.analysis.models import ArticleAnalysis, ExternalLinkEntry, HeadingEntry
from backend.db.connection import get_connection
from backend.db.migrations import init_db


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def make_analysis() -> Callable[..., ArticleAnalysis]:
    """Build a minimal analysis record; only the fields under test vary."""

    def _make(
        url: str = "https://example.com/post",
        keywords: tuple[str, ...] = (),
        word_count: int = 1000,
        mentions: Optional[dict[str, int]] = None,
        links: tuple[str, ...] = (),
        title: str = "A post",
    ) -> ArticleAnalysis:
        return ArticleAnalysis.build(
            title=title,
            url=url,
            domain="example.com",
            word_count=word_count,
            character_count=word_count * 5,
            paragraphs_count=3,
            images_count=1,
            videos_count=0,
            external_links=[
                ExternalLinkEntry(url=link, text="ref", domain="ref.org") for link in links
            ],
            meta_description=f"About {title}",
            keywords=list(keywords),
            readability_score=60.0,
            heading_structure=[HeadingEntry(level="h2", text="Intro")],
            keyword_mentions=mentions,
        )

    return _make
