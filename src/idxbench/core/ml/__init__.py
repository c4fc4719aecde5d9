"""
ML Package
==========

Model adapter contract, the torch dense network, the evaluation scorer and
the benchmark runner.

Example:
    >>> from idxbench.core.ml import create_model, list_models
    >>>
    >>> print(list_models())
    ['dense']
    >>> model = create_model("dense", layers)
    >>> history = model.train(inputs, targets, epochs=3, learning_rate=0.01)
"""


def _ensure_models_registered():
    """Import model modules to trigger @register_model decorators."""
    from idxbench.core.ml import network  # noqa: F401


def __getattr__(name):
    """Lazy import so that importing the package does not pull in torch."""
    if name in (
        "LayerSpec", "ModelAdapter", "TrainingHistory",
        "build_layer_specs", "register_model",
    ):
        from idxbench.core.ml import base
        return getattr(base, name)

    if name == "list_models":
        _ensure_models_registered()
        from idxbench.core.ml import base
        return base.list_models

    if name == "get_model_class":
        _ensure_models_registered()
        from idxbench.core.ml import base
        return base.get_model_class

    if name == "DenseNetwork":
        from idxbench.core.ml.network import DenseNetwork
        return DenseNetwork

    if name in ("ScoringPolicy", "collect_predictions", "evaluate_model"):
        from idxbench.core.ml import scoring
        return getattr(scoring, name)

    if name in ("BenchmarkRunner", "accelerated_backend"):
        from idxbench.core.ml import benchmark
        return getattr(benchmark, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Contract
    "LayerSpec",
    "ModelAdapter",
    "TrainingHistory",
    "build_layer_specs",
    # Registry
    "register_model",
    "get_model_class",
    "list_models",
    "create_model",
    "load_model",
    # Implementations
    "DenseNetwork",
    # Evaluation
    "ScoringPolicy",
    "collect_predictions",
    "evaluate_model",
    "BenchmarkRunner",
    "accelerated_backend",
]


def create_model(model_type: str, layers, **kwargs):
    """
    Construct an untrained model by registered type name.

    Args:
        model_type: Registered model name (e.g. "dense").
        layers: Sequence of LayerSpec from input to output.
        **kwargs: Additional constructor arguments.
    """
    _ensure_models_registered()
    from idxbench.core.ml.base import get_model_class

    return get_model_class(model_type)(layers, **kwargs)


def load_model(model_type: str, model_path: str, **kwargs):
    """
    Load a persisted model by type and path.

    The architecture is read from the checkpoint itself.
    """
    _ensure_models_registered()
    from idxbench.core.ml.base import get_model_class

    return get_model_class(model_type).from_file(model_path, **kwargs)
