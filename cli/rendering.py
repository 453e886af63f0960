"""Utilities for rendering analysis results in the CLI."""

from __future__ import annotations

from typing import List, Sequence

from backend.analysis.models import ArticleAnalysis, IdealStructure, OutlineHeading


def render_outline(outline: Sequence[OutlineHeading], title: str = "") -> str:
    """Render an outline as an ASCII tree.

    Args:
        outline: Top-level ``h2`` headings, each with optional ``h3`` children.
        title: Optional root label printed above the tree.

    Returns:
        String representation of the tree.
    """
    lines: List[str] = []
    if title:
        lines.append(title)

    count = len(outline)
    for i, heading in enumerate(outline):
        is_last = i == count - 1
        connector = "└── " if is_last else "├── "
        lines.append(f"{connector}[H2] {heading.text}")

        child_prefix = "    " if is_last else "│   "
        for j, child in enumerate(heading.children):
            child_connector = "└── " if j == len(heading.children) - 1 else "├── "
            lines.append(f"{child_prefix}{child_connector}[H3] {child.text}")

    if not outline:
        lines.append("(empty outline)")
    return "\n".join(lines)


def render_analysis(analysis: ArticleAnalysis) -> str:
    """One-paragraph summary of a single analysed source."""
    keywords = ", ".join(analysis.keywords) or "(none)"
    return "\n".join(
        [
            f"{analysis.title or analysis.url}",
            f"  {analysis.url}",
            f"  words={analysis.word_count}  headings={analysis.headings_count}  "
            f"paragraphs={analysis.paragraphs_count}  images={analysis.images_count}  "
            f"videos={analysis.videos_count}  links={analysis.external_links_count}  "
            f"readability={analysis.readability_score}",
            f"  keywords: {keywords}",
        ]
    )


def render_structure(structure: IdealStructure, focus_keyword: str) -> str:
    """Full ideal-structure report: target, keywords, links, titles, outline."""
    lines = [f"Target word count: {structure.target_word_count}", ""]

    lines.append("Recommended keywords:")
    for kw in structure.recommended_keywords[:15]:
        lines.append(f"  {kw.text}  (in {kw.frequency} article(s), {kw.total_mentions} mention(s))")

    if structure.recommended_external_links:
        lines.append("")
        lines.append("Recommended external links:")
        for link in structure.recommended_external_links:
            lines.append(f"  {link.url}  (linked from {link.frequency} article(s))")

    if structure.suggested_titles:
        lines.append("")
        lines.append("Suggested titles:")
        lines.extend(f"  - {title}" for title in structure.suggested_titles)

    if structure.suggested_descriptions:
        lines.append("")
        lines.append("Suggested meta descriptions:")
        lines.extend(f"  - {desc}" for desc in structure.suggested_descriptions)

    lines.append("")
    lines.append(render_outline(structure.outline, title=f"Outline: {focus_keyword}"))
    return "\n".join(lines)
