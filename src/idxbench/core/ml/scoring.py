"""
Evaluation Scorer
=================

Runs a model over a dataset split, pairs predicted and expected class
indices, and buckets the absolute percentage deviation between them into
contiguous error tiers.

Example:
    >>> from idxbench.core.ml.scoring import ScoringPolicy, evaluate_model
    >>> report = evaluate_model(model, test_set, ScoringPolicy())
    >>> print(report.score, report.bucket_counts)
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from idxbench.core.datasets import Dataset
from idxbench.core.exceptions import ValidationError
from idxbench.core.logger import get_logger
from idxbench.core.ml.base import ModelAdapter
from idxbench.models.report import PerformanceReport, ScoreBucket

logger = get_logger(__name__)

DEFAULT_THRESHOLDS = (10.0, 20.0, 30.0, 40.0, 50.0, 100.0)


class ScoringPolicy:
    """
    Buckets per-sample error magnitude into tiers and derives an aggregate score.

    Error magnitude is ``|actual - expected| / |expected| * 100``, with a
    denominator of 1 when the expected value is 0. The thresholds split
    ``[0, inf)`` into ``len(thresholds) + 1`` tiers; the last, unbounded
    tier counts as failures.

    The aggregate score is the mean of ``max(0, 100 - deviation)`` over all
    samples, so it lies in [0, 100] and is 0 for an empty split.
    """

    def __init__(self, thresholds: Sequence[float] = DEFAULT_THRESHOLDS):
        thresholds = [float(t) for t in thresholds]
        if not thresholds:
            raise ValidationError("At least one scoring threshold is required")
        if thresholds[0] <= 0 or any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValidationError(f"Thresholds must be positive and strictly increasing, got {thresholds}")
        self.thresholds = thresholds

    @property
    def tier_names(self) -> List[str]:
        return [bucket.name for bucket in self._empty_buckets()]

    def _empty_buckets(self) -> List[ScoreBucket]:
        buckets = []
        lower = 0.0
        for upper in self.thresholds:
            buckets.append(ScoreBucket(name=f"{lower:g}-{upper:g}%", lower=lower, upper=upper))
            lower = upper
        buckets.append(ScoreBucket(name=f"{lower:g}%+", lower=lower, upper=None))
        return buckets

    @staticmethod
    def deviations(expected: np.ndarray, actual: np.ndarray) -> np.ndarray:
        """Absolute percentage deviation of each actual value from its expected value."""
        denominator = np.where(expected == 0, 1.0, np.abs(expected))
        return np.abs(actual - expected) / denominator * 100.0

    def score(
        self,
        expected: Sequence[float],
        actual: Sequence[float],
        split: Optional[str] = None,
    ) -> PerformanceReport:
        """
        Score index-aligned expected/actual arrays.

        Raises:
            ValidationError: If the arrays differ in length
        """
        expected = np.asarray(expected, dtype=np.float64).reshape(-1)
        actual = np.asarray(actual, dtype=np.float64).reshape(-1)
        if len(expected) != len(actual):
            raise ValidationError(
                f"expected and actual differ in length: {len(expected)} != {len(actual)}"
            )

        total = len(expected)
        buckets = self._empty_buckets()
        deviations = self.deviations(expected, actual)

        # searchsorted with side="right" puts a value equal to a threshold in the upper tier
        tiers = np.searchsorted(np.asarray(self.thresholds), deviations, side="right")
        counts = np.bincount(tiers, minlength=len(buckets))
        for bucket, count in zip(buckets, counts):
            bucket.count = int(count)
            bucket.percentage = bucket.count / total * 100.0 if total else 0.0

        score = float(np.mean(np.maximum(0.0, 100.0 - deviations))) if total else 0.0

        return PerformanceReport(
            total=total,
            buckets=buckets,
            failures=buckets[-1].count,
            score=score,
            correct=int(np.sum(expected == actual)),
            split=split,
        )


def collect_predictions(model: ModelAdapter, dataset: Dataset) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run inference over every sample and return (expected, actual) class indices.

    Model errors propagate unchanged.
    """
    expected = np.zeros(len(dataset), dtype=np.float64)
    actual = np.zeros(len(dataset), dtype=np.float64)
    for i in range(len(dataset)):
        sample, target = dataset[i]
        output = np.asarray(model.forward(sample))
        actual[i] = int(np.argmax(output))
        expected[i] = int(np.argmax(target))
    return expected, actual


def evaluate_model(
    model: ModelAdapter,
    dataset: Dataset,
    policy: Optional[ScoringPolicy] = None,
    split: Optional[str] = None,
) -> PerformanceReport:
    """Score a model on one dataset split."""
    policy = policy or ScoringPolicy()
    expected, actual = collect_predictions(model, dataset)
    report = policy.score(expected, actual, split=split)
    logger.info(
        f"Evaluated {report.total} samples{f' ({split})' if split else ''}: "
        f"score {report.score:.2f}, failures {report.failures}"
    )
    return report
