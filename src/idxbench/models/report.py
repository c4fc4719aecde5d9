"""Evaluation, benchmark and run report models."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from idxbench.models.base import ToDictMixin


@dataclass
class ScoreBucket(ToDictMixin):
    """
    One error tier of a performance report.

    A sample falls into the bucket when ``lower <= deviation < upper``;
    the last bucket has no upper bound.
    """

    name: str
    lower: float
    upper: Optional[float]
    count: int = 0
    percentage: float = 0.0

    def contains(self, deviation: float) -> bool:
        if deviation < self.lower:
            return False
        return self.upper is None or deviation < self.upper


@dataclass
class PerformanceReport(ToDictMixin):
    """Bucketed error distribution and aggregate score for one split."""

    total: int
    buckets: List[ScoreBucket]
    failures: int
    score: float
    correct: int = 0
    split: Optional[str] = None

    @property
    def accuracy(self) -> float:
        """Fraction of samples whose predicted class equals the expected one."""
        return self.correct / self.total if self.total else 0.0

    @property
    def bucket_counts(self) -> Dict[str, int]:
        return {bucket.name: bucket.count for bucket in self.buckets}

    def _to_dict_extra(self):
        return {"accuracy": self.accuracy}


@dataclass
class BenchmarkResult(ToDictMixin):
    """
    Latency comparison of the reference and accelerated backends.

    ``accelerated_seconds`` and ``speedup`` are None when the accelerated
    backend could not be initialized; ``fallback_reason`` then says why.
    """

    iterations: int
    reference_backend: str
    reference_seconds: float
    accelerated_backend: str
    accelerated_seconds: Optional[float] = None
    speedup: Optional[float] = None
    warmup: int = 1
    fallback_reason: Optional[str] = None

    @property
    def fell_back(self) -> bool:
        return self.accelerated_seconds is None

    @property
    def reference_latency_ms(self) -> float:
        return self.reference_seconds / self.iterations * 1000 if self.iterations else 0.0

    @property
    def accelerated_latency_ms(self) -> Optional[float]:
        if self.accelerated_seconds is None or not self.iterations:
            return None
        return self.accelerated_seconds / self.iterations * 1000

    def _to_dict_extra(self):
        return {
            "fell_back": self.fell_back,
            "reference_latency_ms": self.reference_latency_ms,
            "accelerated_latency_ms": self.accelerated_latency_ms,
        }


@dataclass
class StageTiming(ToDictMixin):
    """Wall-clock duration of one orchestrator stage."""

    stage: str
    seconds: float


@dataclass
class RunReport(ToDictMixin):
    """Everything a pipeline run produced."""

    model_path: str
    model_source: str = "trained"
    train_size: int = 0
    test_size: int = 0
    train_report: Optional[PerformanceReport] = None
    test_report: Optional[PerformanceReport] = None
    benchmark: Optional[BenchmarkResult] = None
    training_losses: List[float] = field(default_factory=list)
    stage_timings: List[StageTiming] = field(default_factory=list)

    @property
    def total_seconds(self) -> float:
        return sum(timing.seconds for timing in self.stage_timings)

    def timing(self, stage: str) -> Optional[StageTiming]:
        for timing in self.stage_timings:
            if timing.stage == stage:
                return timing
        return None

    def _to_dict_extra(self):
        return {"total_seconds": self.total_seconds}
