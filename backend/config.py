"""Centralised settings for the SERP content-research backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("RESEARCH_WORKSPACE", Path.home() / ".serp_research")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite cache database."""
        return self.workspace_dir / "cache.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Third-party content sources
    # ------------------------------------------------------------------
    diffbot_api_token: str = field(
        default_factory=lambda: os.environ.get("DIFFBOT_API_TOKEN", "")
    )
    youtube_api_key: str = field(
        default_factory=lambda: os.environ.get("YOUTUBE_API_KEY", "")
    )
    serpapi_api_key: str = field(
        default_factory=lambda: os.environ.get("SERPAPI_API_KEY", "")
    )

    # ------------------------------------------------------------------
    # Chat / generative model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "openai")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    keyword_content_limit: int = field(
        default_factory=lambda: int(os.environ.get("KEYWORD_CONTENT_LIMIT", "4000"))
    )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    fetch_max_attempts: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_MAX_ATTEMPTS", "8"))
    )
    fetch_retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_RETRY_BASE_DELAY", "2.0"))
    )
    reddit_comment_limit: int = field(
        default_factory=lambda: int(os.environ.get("REDDIT_COMMENT_LIMIT", "10"))
    )

    # ------------------------------------------------------------------
    # Batch orchestration
    # ------------------------------------------------------------------
    batch_max_attempts: int = field(
        default_factory=lambda: int(os.environ.get("BATCH_MAX_ATTEMPTS", "3"))
    )
    batch_retry_delay: float = field(
        default_factory=lambda: float(os.environ.get("BATCH_RETRY_DELAY", "2.0"))
    )
    enrich_recommendations: bool = field(
        default_factory=lambda: _env_flag("ENRICH_RECOMMENDATIONS", "true")
    )

    # ------------------------------------------------------------------
    # Search provider chain
    # ------------------------------------------------------------------
    search_provider_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_PROVIDER_TIMEOUT", "15.0"))
    )
    search_retry_max: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_RETRY_MAX", "3"))
    )
    search_retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_RETRY_BASE_DELAY", "2.0"))
    )

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------
    debug: bool = field(default_factory=lambda: _env_flag("SEO_DEBUG", "false"))

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this everywhere:
#   from backend.config import settings
settings = Settings()
