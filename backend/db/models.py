"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CachedVideo:
    video_id: str
    title: str
    description: str
    transcript: str
    language_code: str
    created_at: int
    updated_at: int


@dataclass
class TranscriptAttempt:
    video_id: str
    video_url: str
    service_name: str
    response_status: int | None
    successful: bool
    detail: str | None
    created_at: int
