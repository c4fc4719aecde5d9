"""Shared fixtures for service tests."""

import pytest

from idxbench.core.config import Config, get_default_config
import tests.mocks.mock_model  # noqa: F401  registers the "mock" model type


@pytest.fixture
def run_config(mnist_root, tmp_path) -> Config:
    """Default configuration pointed at the small test dataset and the mock model."""
    config = get_default_config()
    config.set("dataset", "root", str(mnist_root))
    config.set("model", "type", "mock")
    config.set("model", "path", str(tmp_path / "model.json"))
    config.set("model", "layers", [[28, 28], [10, 1]])
    config.set("model", "activations", ["linear", "softmax"])
    config.set("model", "fully_connected", [True, True])
    config.set("model", "accelerated_device", "mock-gpu")
    config.set("benchmark", "iterations", 5)
    return config
