"""Key-phrase extraction through the generative model."""

from __future__ import annotations

import re

from backend.config import settings
from backend.errors import KeywordExtractionError
from backend.llm import complete

# Leading bullets ("-", "*", "•") and list numbering ("1.", "2)").
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")


def _system_prompt(focus_keyword: str) -> str:
    return (
        "Analyze the content and extract 5-7 key phrases that are:\n"
        "1. Most frequently mentioned across the text\n"
        f'2. Highly relevant to the main topic "{focus_keyword}"\n'
        "3. Technical or industry-specific terms\n\n"
        "Format each key phrase as a simple string without any additional "
        "explanation, numbering or bullet points.\n"
        "Return only the key phrases, one per line."
    )


def parse_key_phrases(raw: str) -> list[str]:
    """Split a model response into clean phrases, one per non-empty line."""
    phrases: list[str] = []
    seen: set[str] = set()
    for line in raw.splitlines():
        phrase = _LIST_MARKER_RE.sub("", line).strip().strip('"').strip()
        if not phrase:
            continue
        key = phrase.lower()
        if key in seen:
            continue
        seen.add(key)
        phrases.append(phrase)
    return phrases


def count_mentions(body_text: str, phrases: list[str]) -> dict[str, int]:
    """Case-insensitive occurrences of each phrase in *body_text* (at least 1)."""
    lowered = body_text.lower()
    return {phrase: max(lowered.count(phrase.lower()), 1) for phrase in phrases}


async def extract_keywords(body_text: str, focus_keyword: str) -> list[str]:
    """Return representative key phrases for *body_text*.

    Only the first ``settings.keyword_content_limit`` characters are sent to
    the model.  Blank text yields ``[]`` without a model call.

    Raises:
        KeywordExtractionError: The model call failed or returned nothing usable.
    """
    if not body_text.strip():
        return []

    try:
        raw = await complete(
            _system_prompt(focus_keyword),
            body_text[: settings.keyword_content_limit],
            temperature=0.3,
        )
    except Exception as exc:  # noqa: BLE001
        raise KeywordExtractionError(f"Key-phrase extraction failed: {exc}") from exc

    if not isinstance(raw, str):
        raise KeywordExtractionError("Model returned a non-text response")

    phrases = parse_key_phrases(raw)
    if not phrases:
        raise KeywordExtractionError("Model returned no key phrases")
    return phrases
