"""HTTP layer tests via the FastAPI TestClient.

The batch runner and search chain are mocked; the lifespan DB lives in a
temporary workspace.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.analysis.models import Article, BatchResult, IdealStructure, OutlineHeading
from backend.api.app import create_app
from backend.config import settings
from backend.errors import BatchAnalysisError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    """TestClient whose lifespan DB is created under *tmp_path*."""
    monkeypatch.setattr(settings, "workspace_dir", tmp_path)
    with TestClient(create_app()) as c:
        yield c


def _batch_result(make_analysis) -> BatchResult:
    return BatchResult(
        analyses=(make_analysis(url="https://example.com/a", keywords=("compost",)),),
        ideal_structure=IdealStructure(
            target_word_count=1000,
            recommended_keywords=(),
            recommended_external_links=(),
            suggested_titles=("Complete Guide to compost",),
            suggested_descriptions=(),
            outline=(
                OutlineHeading(
                    id="1",
                    level="h2",
                    text="Basics",
                    children=[OutlineHeading(id="1.1", level="h3", text="Bins")],
                ),
            ),
        ),
    )


# ---------------------------------------------------------------------------
# /analyze
# ---------------------------------------------------------------------------

class TestAnalyze:
    def test_returns_camel_case_result(self, client: TestClient, make_analysis) -> None:
        runner = AsyncMock(return_value=_batch_result(make_analysis))
        with patch("backend.api.routers.analyze.run_batch_analysis", runner):
            resp = client.post(
                "/analyze", json={"urls": ["https://example.com/a"], "keyword": " compost "}
            )

        assert resp.status_code == 200
        body = resp.json()
        assert body["analyses"][0]["wordCount"] == 1000
        assert body["analyses"][0]["headingsCount"] == 1
        assert body["idealStructure"]["targetWordCount"] == 1000
        assert body["idealStructure"]["outline"][0]["children"][0]["id"] == "1.1"
        assert runner.await_args.args == (["https://example.com/a"], "compost")
        assert runner.await_args.kwargs["conn"] is client.app.state.db

    @pytest.mark.parametrize(
        "payload",
        [
            {"urls": [], "keyword": "compost"},
            {"urls": ["https://example.com"], "keyword": "   "},
            {"keyword": "compost"},
            {
                "urls": ["https://example.com/a", " ", "https://example.com/b"],
                "keyword": "compost",
            },
        ],
    )
    def test_validation_errors(self, client: TestClient, payload: dict) -> None:
        assert client.post("/analyze", json=payload).status_code == 422

    def test_batch_failure_is_reported(self, client: TestClient) -> None:
        runner = AsyncMock(side_effect=BatchAnalysisError("Batch analysis failed after 3 attempt(s)"))
        with patch("backend.api.routers.analyze.run_batch_analysis", runner):
            resp = client.post(
                "/analyze", json={"urls": ["https://example.com/a"], "keyword": "compost"}
            )

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Batch analysis failed after 3 attempt(s)",
            "details": None,
        }

    def test_debug_includes_traceback(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "debug", True)
        runner = AsyncMock(side_effect=BatchAnalysisError("nope"))
        with patch("backend.api.routers.analyze.run_batch_analysis", runner):
            resp = client.post(
                "/analyze", json={"urls": ["https://example.com/a"], "keyword": "compost"}
            )

        assert resp.status_code == 500
        assert "BatchAnalysisError" in resp.json()["details"]


# ---------------------------------------------------------------------------
# /search, /health, CORS
# ---------------------------------------------------------------------------

class TestSearch:
    def test_organic_results(self, client: TestClient) -> None:
        chain = MagicMock()
        chain.search.return_value = [
            Article(title="Guide", url="https://a.com", snippet="s", rank=1)
        ]
        with patch("backend.api.routers.search.build_default_chain", return_value=chain):
            resp = client.post("/search", json={"keyword": "compost", "num": 5})

        assert resp.status_code == 200
        assert resp.json() == {
            "organic_results": [
                {"position": 1, "title": "Guide", "link": "https://a.com", "snippet": "s"}
            ]
        }
        chain.search.assert_called_once_with("compost", max_results=5)


class TestMisc:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}

    def test_cors_preflight(self, client: TestClient) -> None:
        resp = client.options(
            "/analyze",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type, apikey",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        allowed = resp.headers["access-control-allow-headers"].lower()
        for header in ("authorization", "x-client-info", "apikey", "content-type"):
            assert header in allowed
