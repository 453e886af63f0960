"""Exception hierarchy for the content-research pipeline.

Fetch-level errors are raised only after a fetcher has exhausted its own
retry budget and fallback sources.  Parse- and keyword-level errors are
raised immediately.  ``BatchAnalysisError`` is the single error type that
crosses the orchestrator boundary.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for every error raised by the analysis pipeline."""


class FetchError(PipelineError):
    """A content source was unreachable or returned no usable content."""

    def __init__(self, url: str, last_status: Optional[int] = None, reason: str = "") -> None:
        self.url = url
        self.last_status = last_status
        self.reason = reason
        message = f"Could not fetch {url!r}"
        if last_status is not None:
            message += f" (last status {last_status})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidSourceError(PipelineError):
    """The URL does not carry the identifier its source kind requires."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        super().__init__(reason or f"Unsupported or malformed source URL: {url!r}")


class KeywordExtractionError(PipelineError):
    """The generative model failed or returned unusable key phrases."""


class OutlineParseError(PipelineError):
    """The generative model returned non-JSON or schema-violating outline data."""


class BatchAnalysisError(PipelineError):
    """A batch analysis failed at the orchestrator boundary.

    ``failures`` lists ``(url, exception)`` pairs for every per-URL failure
    that caused the batch to be rejected (empty when the failure came from a
    later stage, e.g. outline synthesis).
    """

    def __init__(
        self,
        message: str,
        failures: Optional[list[tuple[str, BaseException]]] = None,
    ) -> None:
        self.failures = failures or []
        super().__init__(message)
