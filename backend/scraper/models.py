"""Data models for the fetch stage of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class SourceKind(str, Enum):
    """Category of content origin; decides which fetcher applies."""

    ARTICLE = "article"
    REDDIT = "reddit"
    YOUTUBE = "youtube"


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int


@dataclass
class ContentSource:
    """Raw content for one URL as returned by a fetcher.

    ``markup`` is the HTML the parser walks for structural metrics; it is
    empty for sources that only yield text (Reddit threads, video
    transcripts).  ``body_text`` is the plain text used for word counts,
    readability and keyword extraction.
    """

    url: str
    kind: SourceKind
    title: str
    body_text: str
    markup: str = ""
    meta_description: str = ""
    comments: List[str] = field(default_factory=list)
