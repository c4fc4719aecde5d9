"""
Benchmark Runner
================

Measures steady-state single-sample inference latency on the reference
backend and on the accelerated backend of the same model, and reports the
speedup (reference time / accelerated time).

Protocol:
    1. put the model on the reference backend and time ``iterations``
       forward calls there
    2. enable the accelerated backend (not timed)
    3. run ``warmup`` untimed forward calls
    4. time ``iterations`` forward calls on the accelerated backend
    5. release the accelerated backend (not timed), on every exit path

If the accelerated backend fails to initialize the run falls back to a
reference-only result and logs a warning.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator

import numpy as np

from idxbench.core.exceptions import BackendInitError, ValidationError
from idxbench.core.logger import get_logger
from idxbench.core.ml.base import ModelAdapter
from idxbench.models.report import BenchmarkResult

logger = get_logger(__name__)


@contextmanager
def accelerated_backend(model: ModelAdapter) -> Iterator[ModelAdapter]:
    """
    Enable the model's accelerated backend for the duration of the block.

    BackendInitError from enabling propagates before the block runs; once
    enabled, the backend is disabled exactly once however the block exits.
    """
    model.enable_accelerated_backend()
    try:
        yield model
    finally:
        model.disable_accelerated_backend()


class BenchmarkRunner:
    """
    Times repeated inference calls on two backends.

    Args:
        iterations: Timed forward calls per backend.
        warmup: Untimed forward calls after enabling the accelerated backend.
        clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        iterations: int = 1000,
        warmup: int = 1,
        clock: Callable[[], float] = time.perf_counter,
    ):
        if iterations <= 0:
            raise ValidationError(f"iterations must be positive, got {iterations}")
        if warmup < 0:
            raise ValidationError(f"warmup must be >= 0, got {warmup}")
        self.iterations = iterations
        self.warmup = warmup
        self.clock = clock

    def _time(self, model: ModelAdapter, sample: np.ndarray) -> float:
        start = self.clock()
        for _ in range(self.iterations):
            model.forward(sample)
        return self.clock() - start

    def run(self, model: ModelAdapter, sample: np.ndarray) -> BenchmarkResult:
        """Benchmark ``model`` on ``sample``; the same sample and count are used on both backends."""
        if model.accelerated:
            logger.debug(f"Returning {model!r} to {model.reference_backend_name} before timing")
            model.disable_accelerated_backend()

        logger.info(f"Benchmarking {self.iterations} inferences on {model.reference_backend_name}")
        reference_seconds = self._time(model, sample)

        result = BenchmarkResult(
            iterations=self.iterations,
            reference_backend=model.reference_backend_name,
            reference_seconds=reference_seconds,
            accelerated_backend=model.accelerated_backend_name,
            warmup=self.warmup,
        )

        try:
            with accelerated_backend(model):
                for _ in range(self.warmup):
                    model.forward(sample)
                logger.info(f"Benchmarking {self.iterations} inferences on {model.accelerated_backend_name}")
                result.accelerated_seconds = self._time(model, sample)
        except BackendInitError as err:
            result.fallback_reason = str(err)
            logger.warning(f"Accelerated backend unavailable, reporting reference results only: {err}")
            return result

        if result.accelerated_seconds > 0:
            result.speedup = reference_seconds / result.accelerated_seconds
        else:
            result.speedup = float("inf")
        logger.info(
            f"{result.reference_backend}: {reference_seconds:.4f}s, "
            f"{result.accelerated_backend}: {result.accelerated_seconds:.4f}s, "
            f"speedup {result.speedup:.2f}x"
        )
        return result
