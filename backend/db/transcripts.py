"""Persistent YouTube transcript cache keyed by video id.

Reads and writes are not serialised across concurrent requests for the same
video: the cached transcript is derived deterministically from the video's
title and description, so a lost update rewrites an identical value.  Revisit
this if the cached value ever stops being deterministic.
"""

from __future__ import annotations

import sqlite3
from time import time
from typing import Optional

from backend.db.models import CachedVideo, TranscriptAttempt


def _row_to_video(row: sqlite3.Row) -> CachedVideo:
    return CachedVideo(
        video_id=row["video_id"],
        title=row["title"],
        description=row["description"],
        transcript=row["transcript"],
        language_code=row["language_code"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_cached_video(conn: sqlite3.Connection, video_id: str) -> Optional[CachedVideo]:
    """Return the cached row for *video_id*, or ``None`` when absent or empty."""
    row = conn.execute(
        "SELECT * FROM youtube_video_metadata WHERE video_id = ?", (video_id,)
    ).fetchone()
    if row is None or not row["transcript"]:
        return None
    return _row_to_video(row)


def upsert_video(
    conn: sqlite3.Connection,
    video_id: str,
    title: str,
    description: str,
    transcript: str,
    language_code: str = "en",
) -> CachedVideo:
    """Insert or replace the cached transcript for *video_id* (last writer wins)."""
    now = int(time())
    with conn:
        conn.execute(
            """
            INSERT INTO youtube_video_metadata
                (video_id, title, description, transcript, language_code, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(video_id) DO UPDATE SET
                title = excluded.title,
                description = excluded.description,
                transcript = excluded.transcript,
                language_code = excluded.language_code,
                updated_at = excluded.updated_at
            """,
            (video_id, title, description, transcript, language_code, now, now),
        )
    return get_cached_video(conn, video_id)  # type: ignore[return-value]


def clear_cache(conn: sqlite3.Connection) -> int:
    """Delete every cached transcript and return how many rows were removed."""
    with conn:
        cursor = conn.execute("DELETE FROM youtube_video_metadata")
    return cursor.rowcount


def log_attempt(
    conn: sqlite3.Connection,
    video_id: str,
    video_url: str,
    service_name: str,
    response_status: Optional[int],
    successful: bool,
    detail: Optional[str] = None,
) -> None:
    """Record one metadata/transcript retrieval attempt for later inspection."""
    with conn:
        conn.execute(
            """
            INSERT INTO transcript_extraction_logs
                (video_id, video_url, service_name, response_status, successful, detail, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                video_id,
                video_url,
                service_name,
                response_status,
                int(successful),
                (detail or "")[:500] or None,
                int(time()),
            ),
        )


def list_attempts(conn: sqlite3.Connection, video_id: str) -> list[TranscriptAttempt]:
    """Return the logged attempts for *video_id*, oldest first."""
    rows = conn.execute(
        "SELECT * FROM transcript_extraction_logs WHERE video_id = ? ORDER BY id",
        (video_id,),
    ).fetchall()
    return [
        TranscriptAttempt(
            video_id=row["video_id"],
            video_url=row["video_url"],
            service_name=row["service_name"],
            response_status=row["response_status"],
            successful=bool(row["successful"]),
            detail=row["detail"],
            created_at=row["created_at"],
        )
        for row in rows
    ]
