"""Analysis records produced and consumed by the pipeline.

Records are dataclasses with snake_case attributes.  ``to_dict()`` renders the
camelCase JSON shape the HTTP layer and the wizard front end exchange.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

HeadingLevel = Literal["h1", "h2", "h3", "h4", "h5", "h6"]
OutlineLevel = Literal["h2", "h3"]


@dataclass(frozen=True)
class Article:
    """One organic search result."""

    title: str
    url: str
    snippet: str
    rank: int

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "snippet": self.snippet, "rank": self.rank}


@dataclass(frozen=True)
class HeadingEntry:
    level: HeadingLevel
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "text": self.text}


@dataclass(frozen=True)
class ExternalLinkEntry:
    """An outbound link.  ``frequency``/``total_mentions`` are set by enrichment."""

    url: str
    text: str
    domain: str
    frequency: Optional[int] = None
    total_mentions: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "text": self.text, "domain": self.domain}
        if self.frequency is not None:
            data["frequency"] = self.frequency
        if self.total_mentions is not None:
            data["totalMentions"] = self.total_mentions
        return data


@dataclass(frozen=True)
class ArticleAnalysis:
    """Normalized analysis of one source.

    Build instances with :meth:`build` so ``headings_count`` and
    ``external_links_count`` always match their sequences.
    """

    title: str
    url: str
    domain: str
    word_count: int
    character_count: int
    headings_count: int
    paragraphs_count: int
    images_count: int
    videos_count: int
    external_links: tuple[ExternalLinkEntry, ...]
    external_links_count: int
    meta_title: str
    meta_description: str
    keywords: tuple[str, ...]
    readability_score: float
    heading_structure: tuple[HeadingEntry, ...]
    error: Optional[str] = None
    keyword_mentions: dict[str, int] = field(default_factory=dict, compare=False)

    @classmethod
    def build(
        cls,
        *,
        title: str,
        url: str,
        domain: str,
        word_count: int,
        character_count: int,
        paragraphs_count: int,
        images_count: int,
        videos_count: int,
        external_links: list[ExternalLinkEntry] | tuple[ExternalLinkEntry, ...],
        meta_description: str,
        keywords: list[str] | tuple[str, ...],
        readability_score: float,
        heading_structure: list[HeadingEntry] | tuple[HeadingEntry, ...],
        keyword_mentions: Optional[dict[str, int]] = None,
        meta_title: Optional[str] = None,
    ) -> "ArticleAnalysis":
        links = tuple(external_links)
        headings = tuple(heading_structure)
        return cls(
            title=title,
            url=url,
            domain=domain,
            word_count=word_count,
            character_count=character_count,
            headings_count=len(headings),
            paragraphs_count=paragraphs_count,
            images_count=images_count,
            videos_count=videos_count,
            external_links=links,
            external_links_count=len(links),
            meta_title=title if meta_title is None else meta_title,
            meta_description=meta_description,
            keywords=tuple(keywords),
            readability_score=readability_score,
            heading_structure=headings,
            keyword_mentions=dict(keyword_mentions or {}),
        )

    @classmethod
    def failed(cls, url: str, domain: str, reason: str) -> "ArticleAnalysis":
        """Zero-valued record carrying a failure marker."""
        return cls(
            title="",
            url=url,
            domain=domain,
            word_count=0,
            character_count=0,
            headings_count=0,
            paragraphs_count=0,
            images_count=0,
            videos_count=0,
            external_links=(),
            external_links_count=0,
            meta_title="",
            meta_description="",
            keywords=(),
            readability_score=0.0,
            heading_structure=(),
            error=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "url": self.url,
            "domain": self.domain,
            "wordCount": self.word_count,
            "characterCount": self.character_count,
            "headingsCount": self.headings_count,
            "paragraphsCount": self.paragraphs_count,
            "imagesCount": self.images_count,
            "videosCount": self.videos_count,
            "externalLinks": [link.to_dict() for link in self.external_links],
            "externalLinksCount": self.external_links_count,
            "metaTitle": self.meta_title,
            "metaDescription": self.meta_description,
            "keywords": list(self.keywords),
            "readabilityScore": self.readability_score,
            "headingStructure": [h.to_dict() for h in self.heading_structure],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class KeywordFrequency:
    text: str
    frequency: int
    total_mentions: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "frequency": self.frequency,
            "totalMentions": self.total_mentions,
        }


@dataclass
class OutlineHeading:
    """One outline entry; only ``h2`` entries carry ``h3`` children."""

    id: str
    level: OutlineLevel
    text: str
    children: list["OutlineHeading"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "level": self.level, "text": self.text}
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(frozen=True)
class IdealStructure:
    target_word_count: int
    recommended_keywords: tuple[KeywordFrequency, ...]
    recommended_external_links: tuple[ExternalLinkEntry, ...]
    suggested_titles: tuple[str, ...]
    suggested_descriptions: tuple[str, ...]
    outline: tuple[OutlineHeading, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetWordCount": self.target_word_count,
            "recommendedKeywords": [k.to_dict() for k in self.recommended_keywords],
            "recommendedExternalLinks": [
                link.to_dict() for link in self.recommended_external_links
            ],
            "suggestedTitles": list(self.suggested_titles),
            "suggestedDescriptions": list(self.suggested_descriptions),
            "outline": [heading.to_dict() for heading in self.outline],
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Tagged per-URL result.

    ``analysis`` is always set; on failure it is the zero-valued record from
    :meth:`ArticleAnalysis.failed` and ``error`` holds the exception.
    """

    url: str
    analysis: ArticleAnalysis
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "ok": self.ok,
            "analysis": self.analysis.to_dict(),
        }
        if self.error is not None:
            data["error"] = str(self.error)
        return data


@dataclass(frozen=True)
class BatchResult:
    analyses: tuple[ArticleAnalysis, ...]
    ideal_structure: IdealStructure

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyses": [a.to_dict() for a in self.analyses],
            "idealStructure": self.ideal_structure.to_dict(),
        }
