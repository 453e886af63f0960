"""Batch pipeline — fan-out analysis, outline synthesis and enrichment."""

from backend.pipeline.runner import analyze_all, analyze_all_settled, run_batch_analysis

__all__ = ["analyze_all", "analyze_all_settled", "run_batch_analysis"]
