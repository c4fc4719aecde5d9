# tests/conftest.py
"""
Global pytest fixtures for idxbench tests.
"""

from pathlib import Path

import numpy as np
import pytest
import torch

from idxbench.core.config import reset_config
from idxbench.core.idx import write_idx_images, write_idx_labels
from tests.mocks.idx_data import make_images, write_mnist


def pytest_collection_modifyitems(config, items):
    """Skip requires_cuda tests on machines without a CUDA device."""
    if torch.cuda.is_available():
        return
    skip_cuda = pytest.mark.skip(reason="CUDA not available")
    for item in items:
        if "requires_cuda" in item.keywords:
            item.add_marker(skip_cuda)


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Keep the global configuration from leaking between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def mnist_root(tmp_path):
    """10 training items (labels 0..9) and 5 t10k items, all 28x28."""
    root = tmp_path / "mnist"
    write_mnist(root, make_images(10), np.arange(10))
    write_mnist(root, make_images(5, seed=1), np.array([3, 1, 4, 1, 5]), training=False)
    return root


@pytest.fixture
def large_mnist_root(tmp_path):
    """100 training items with labels cycling through 0..9."""
    root = tmp_path / "mnist100"
    write_mnist(root, make_images(100), np.arange(100) % 10)
    return root


@pytest.fixture
def image_file(tmp_path):
    """A valid 10x28x28 IDX image file."""
    return Path(write_idx_images(tmp_path / "images-idx3-ubyte", make_images(10)))


@pytest.fixture
def label_file(tmp_path):
    """A valid 10-item IDX label file."""
    return Path(write_idx_labels(tmp_path / "labels-idx1-ubyte", np.arange(10)))
