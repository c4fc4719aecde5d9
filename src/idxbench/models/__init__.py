# models/__init__.py
"""
Data models returned by services and the pipeline.

All models are dataclasses with a to_dict() method for JSON output.
"""

from idxbench.models.base import ToDictMixin
from idxbench.models.dataset import DatasetSummary, IdxHeader
from idxbench.models.report import BenchmarkResult, PerformanceReport, RunReport, ScoreBucket, StageTiming

__all__ = [
    "ToDictMixin",
    # Dataset
    "IdxHeader",
    "DatasetSummary",
    # Reports
    "ScoreBucket",
    "PerformanceReport",
    "BenchmarkResult",
    "StageTiming",
    "RunReport",
]
