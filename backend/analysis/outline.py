"""Outline synthesis and editing.

``synthesize`` turns a batch of analyses into an :class:`IdealStructure`
whose outline comes from one JSON-mode model call.  The response is
validated explicitly by :func:`parse_outline`: only ``h2``/``h3`` levels,
``h3`` strictly nested under an ``h2``, non-empty text.  Ids are assigned
here, never taken from the model.

The editing helpers (``add_heading``, ``rename_heading``, ``delete_heading``,
``toggle_level``, ``move_heading``) are pure: they return a new outline and
keep ids unique and nesting one level deep.
"""

from __future__ import annotations

import copy
import json
import uuid
from typing import Any, Optional, Sequence

from backend.analysis.aggregator import rank_keywords, target_word_count
from backend.analysis.models import (
    ArticleAnalysis,
    IdealStructure,
    KeywordFrequency,
    OutlineHeading,
)
from backend.errors import OutlineParseError
from backend.llm import complete

_SYSTEM_PROMPT = (
    "You are an SEO content strategist. You design article outlines that "
    "outrank the current top search results. Return strict JSON only."
)

_MAX_HEADINGS_PER_ARTICLE = 20
_MAX_KEYWORDS_PER_ARTICLE = 7
_MAX_RANKED_KEYWORDS = 15


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_outline_prompt(
    analyses: Sequence[ArticleAnalysis],
    focus_keyword: str,
    target_words: int,
    ranked_keywords: Optional[Sequence[KeywordFrequency]] = None,
) -> str:
    """Render the user prompt describing every analysed source, in input order."""
    sections: list[str] = []
    for index, analysis in enumerate(analyses, start=1):
        headings = "\n".join(
            f"    {h.level}: {h.text}"
            for h in analysis.heading_structure[:_MAX_HEADINGS_PER_ARTICLE]
        ) or "    (none)"
        keywords = ", ".join(analysis.keywords[:_MAX_KEYWORDS_PER_ARTICLE]) or "(none)"
        sections.append(
            f"Article {index}: {analysis.title or analysis.url}\n"
            f"  Description: {analysis.meta_description or '(none)'}\n"
            f"  Word count: {analysis.word_count}\n"
            f"  Headings:\n{headings}\n"
            f"  Key phrases: {keywords}"
        )

    shared = ""
    if ranked_keywords:
        shared = "Most common key phrases across articles: " + ", ".join(
            k.text for k in ranked_keywords[:_MAX_RANKED_KEYWORDS]
        ) + "\n\n"

    return (
        f'Focus keyword: "{focus_keyword}"\n\n'
        "Competing articles:\n\n"
        + "\n\n".join(sections)
        + "\n\n"
        + shared
        + "Create the outline for a new article that covers the topic more "
        "comprehensively than all of the articles above.\n"
        "Requirements:\n"
        "- Use only H2 and H3 headings; every H3 belongs to the H2 before it.\n"
        f"- Size the outline for roughly {target_words} words of body text.\n"
        "- Cover every subtopic the competing articles share, plus the gaps they miss.\n"
        "- Use the focus keyword naturally in at least one H2.\n\n"
        'Respond with JSON of the form {"headings": [{"level": "h2", "text": "...", '
        '"children": [{"level": "h3", "text": "..."}]}]}'
    )


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------

def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def _heading_fields(entry: Any, where: str) -> tuple[str, str]:
    if not isinstance(entry, dict):
        raise OutlineParseError(f"{where}: expected an object, got {type(entry).__name__}")
    level = str(entry.get("level", "")).strip().lower()
    text = entry.get("text")
    if level not in ("h2", "h3"):
        raise OutlineParseError(f"{where}: level must be h2 or h3, got {level!r}")
    if not isinstance(text, str) or not text.strip():
        raise OutlineParseError(f"{where}: heading text is missing")
    return level, text.strip()


def parse_outline(raw: str) -> list[OutlineHeading]:
    """Validate a model response and build the outline.

    Top-level ``h3`` entries are attached to the preceding ``h2``.  Ids are
    assigned positionally (``"1"``, ``"1.1"``, ...).

    Raises:
        OutlineParseError: Non-JSON input or any schema violation.
    """
    try:
        data = json.loads(_strip_code_fence(raw))
    except (json.JSONDecodeError, TypeError) as exc:
        raise OutlineParseError(f"Outline response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("headings"), list):
        raise OutlineParseError("Outline response must be an object with a 'headings' list")
    if not data["headings"]:
        raise OutlineParseError("Outline response contains no headings")

    outline: list[OutlineHeading] = []
    for position, entry in enumerate(data["headings"], start=1):
        level, text = _heading_fields(entry, f"headings[{position - 1}]")

        if level == "h3":
            if not outline:
                raise OutlineParseError("An h3 heading appears before any h2")
            parent = outline[-1]
            parent.children.append(
                OutlineHeading(id=f"{parent.id}.{len(parent.children) + 1}", level="h3", text=text)
            )
            continue

        heading = OutlineHeading(id=str(len(outline) + 1), level="h2", text=text)
        children = entry.get("children") or []
        if not isinstance(children, list):
            raise OutlineParseError(f"headings[{position - 1}].children must be a list")
        for child_index, child in enumerate(children):
            where = f"headings[{position - 1}].children[{child_index}]"
            if isinstance(child, dict) and "level" not in child:
                child = {**child, "level": "h3"}
            child_level, child_text = _heading_fields(child, where)
            if child_level != "h3":
                raise OutlineParseError(f"{where}: only h3 headings may be nested")
            if child.get("children"):
                raise OutlineParseError(f"{where}: h3 headings cannot have children")
            heading.children.append(
                OutlineHeading(
                    id=f"{heading.id}.{len(heading.children) + 1}", level="h3", text=child_text
                )
            )
        outline.append(heading)

    return outline


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------

async def synthesize(
    analyses: Sequence[ArticleAnalysis],
    focus_keyword: str,
) -> IdealStructure:
    """Aggregate *analyses* and generate the recommended outline.

    Links, titles and descriptions are left empty for the enrichment stage.

    Raises:
        OutlineParseError: The model response failed validation.
    """
    target = target_word_count(analyses)
    ranked = rank_keywords(analyses)

    print(f"[SYNTHESISING] Generating outline for {focus_keyword!r} (target {target} words) …")
    raw = await complete(
        _SYSTEM_PROMPT,
        build_outline_prompt(analyses, focus_keyword, target, ranked),
        json_output=True,
        temperature=0.7,
    )
    outline = parse_outline(raw)
    print(f"[SYNTHESISING] Outline ready: {len(outline)} section(s).")

    return IdealStructure(
        target_word_count=target,
        recommended_keywords=tuple(ranked),
        recommended_external_links=(),
        suggested_titles=(),
        suggested_descriptions=(),
        outline=tuple(outline),
    )


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

def _all_ids(outline: Sequence[OutlineHeading]) -> set[str]:
    ids: set[str] = set()
    for heading in outline:
        ids.add(heading.id)
        ids.update(child.id for child in heading.children)
    return ids


def _new_id(outline: Sequence[OutlineHeading]) -> str:
    taken = _all_ids(outline)
    while True:
        candidate = uuid.uuid4().hex[:8]
        if candidate not in taken:
            return candidate


def _locate(
    outline: list[OutlineHeading], heading_id: str
) -> tuple[Optional[OutlineHeading], int]:
    """Return ``(parent, index)``; ``parent`` is ``None`` for top-level headings."""
    for index, heading in enumerate(outline):
        if heading.id == heading_id:
            return None, index
        for child_index, child in enumerate(heading.children):
            if child.id == heading_id:
                return heading, child_index
    raise KeyError(heading_id)


def add_heading(
    outline: Sequence[OutlineHeading],
    text: str,
    parent_id: Optional[str] = None,
) -> list[OutlineHeading]:
    """Append a new heading: an ``h2`` at the end, or an ``h3`` under *parent_id*."""
    result = copy.deepcopy(list(outline))
    heading_text = text.strip()
    if not heading_text:
        raise ValueError("Heading text must not be empty")

    if parent_id is None:
        result.append(OutlineHeading(id=_new_id(result), level="h2", text=heading_text))
        return result

    parent, index = _locate(result, parent_id)
    if parent is not None:
        raise ValueError("h3 headings can only be added under an h2")
    result[index].children.append(
        OutlineHeading(id=_new_id(result), level="h3", text=heading_text)
    )
    return result


def rename_heading(
    outline: Sequence[OutlineHeading], heading_id: str, text: str
) -> list[OutlineHeading]:
    result = copy.deepcopy(list(outline))
    heading_text = text.strip()
    if not heading_text:
        raise ValueError("Heading text must not be empty")
    parent, index = _locate(result, heading_id)
    siblings = result if parent is None else parent.children
    siblings[index].text = heading_text
    return result


def delete_heading(outline: Sequence[OutlineHeading], heading_id: str) -> list[OutlineHeading]:
    """Remove a heading; deleting an ``h2`` removes its ``h3`` children too."""
    result = copy.deepcopy(list(outline))
    parent, index = _locate(result, heading_id)
    siblings = result if parent is None else parent.children
    del siblings[index]
    return result


def toggle_level(outline: Sequence[OutlineHeading], heading_id: str) -> list[OutlineHeading]:
    """Demote an ``h2`` to ``h3`` or promote an ``h3`` to ``h2``.

    Demotion moves the heading (and its former children, flattened) under the
    preceding ``h2``; the first ``h2`` cannot be demoted.  Promotion places
    the heading right after its parent and adopts the ``h3`` siblings that
    followed it.
    """
    result = copy.deepcopy(list(outline))
    parent, index = _locate(result, heading_id)

    if parent is None:
        if index == 0:
            raise ValueError("The first h2 has no preceding section to nest under")
        heading = result.pop(index)
        new_parent = result[index - 1]
        orphans = heading.children
        heading.children = []
        heading.level = "h3"
        new_parent.children.append(heading)
        new_parent.children.extend(orphans)
        return result

    heading = parent.children[index]
    adopted = parent.children[index + 1:]
    del parent.children[index:]
    heading.level = "h2"
    heading.children = adopted
    top_index = result.index(parent)
    result.insert(top_index + 1, heading)
    return result


def move_heading(
    outline: Sequence[OutlineHeading], heading_id: str, offset: int
) -> list[OutlineHeading]:
    """Move a heading *offset* places among its siblings (clamped to the ends)."""
    result = copy.deepcopy(list(outline))
    parent, index = _locate(result, heading_id)
    siblings = result if parent is None else parent.children
    target = max(0, min(len(siblings) - 1, index + offset))
    heading = siblings.pop(index)
    siblings.insert(target, heading)
    return result
