"""CLI command modules for idxbench."""

from .config import config
from .dataset import dataset
from .run import run

__all__ = [
    "config",
    "dataset",
    "run",
]
