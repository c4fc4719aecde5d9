"""
idxbench - IDX Dataset Ingestion & Inference Benchmark Harness
==============================================================

Version: 0.1.0
"""

__version__ = "0.1.0"

from idxbench.core.datasets import Dataset, load_mnist, one_hot_encode, split_dataset
from idxbench.core.exceptions import (
    BackendInitError,
    DataIOError,
    FormatError,
    IdxBenchError,
    StageError,
    ValidationError,
)

__all__ = [
    "__version__",
    # Datasets
    "Dataset",
    "load_mnist",
    "one_hot_encode",
    "split_dataset",
    # Errors
    "IdxBenchError",
    "DataIOError",
    "FormatError",
    "ValidationError",
    "BackendInitError",
    "StageError",
]
