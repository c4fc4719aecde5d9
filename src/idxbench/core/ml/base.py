"""
Model Adapter Contract
======================

Abstract interface between the pipeline and a trainable classification
model. The pipeline only constructs, trains, invokes, persists and toggles
the execution backend of a model; everything about how predictions are
computed stays behind this boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from idxbench.core.exceptions import ValidationError

ACTIVATIONS = ("linear", "relu", "leaky_relu", "sigmoid", "tanh", "softmax", "elu")


@dataclass(frozen=True)
class LayerSpec:
    """One layer of a grid-shaped network: width x height neurons."""

    width: int
    height: int
    activation: str = "linear"
    fully_connected: bool = True

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(f"Layer shape must be positive, got {self.width}x{self.height}")
        if self.activation not in ACTIVATIONS:
            raise ValidationError(
                f"Unknown activation '{self.activation}'. Available: {list(ACTIVATIONS)}"
            )

    @property
    def size(self) -> int:
        return self.width * self.height

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_layer_specs(
    shapes: Sequence[Sequence[int]],
    activations: Sequence[str],
    fully_connected: Sequence[bool],
) -> List[LayerSpec]:
    """
    Zip parallel shape/activation/connectivity lists into LayerSpecs.

    Raises:
        ValidationError: If the lists differ in length or describe fewer than two layers
    """
    if not (len(shapes) == len(activations) == len(fully_connected)):
        raise ValidationError(
            f"Layer lists differ in length: shapes={len(shapes)}, "
            f"activations={len(activations)}, fully_connected={len(fully_connected)}"
        )
    if len(shapes) < 2:
        raise ValidationError("A network needs at least an input and an output layer")

    return [
        LayerSpec(width=int(shape[0]), height=int(shape[1]), activation=act, fully_connected=bool(fc))
        for shape, act, fc in zip(shapes, activations, fully_connected)
    ]


@dataclass
class TrainingHistory:
    """Per-epoch mean loss recorded during training."""

    epoch_losses: List[float] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def epochs_run(self) -> int:
        return len(self.epoch_losses)

    @property
    def final_loss(self) -> Optional[float]:
        return self.epoch_losses[-1] if self.epoch_losses else None


class ModelAdapter(ABC):
    """
    Abstract base class for models driven by the pipeline.

    Implementations start on the reference backend. The accelerated backend
    is acquired by enable_accelerated_backend() and must be released by
    disable_accelerated_backend(); the benchmark runner guarantees the pairing.
    """

    @property
    @abstractmethod
    def layers(self) -> List[LayerSpec]:
        """Architecture the model was built from."""
        pass

    @property
    def num_classes(self) -> int:
        """Length of the output vector."""
        return self.layers[-1].size

    @property
    @abstractmethod
    def accelerated(self) -> bool:
        """True while the accelerated backend is active."""
        pass

    @abstractmethod
    def train(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs: int,
        learning_rate: float,
        **options: Any,
    ) -> TrainingHistory:
        """
        Train on the full (inputs, targets) set.

        Args:
            inputs: Array of shape (N, rows, cols)
            targets: One-hot array of shape (N, num_classes)
            epochs: Number of passes over the data
            learning_rate: Optimizer step size
            **options: Implementation-specific options

        Returns:
            Training history.
        """
        pass

    @abstractmethod
    def forward(self, sample: np.ndarray) -> np.ndarray:
        """Run read-only inference on one sample; returns a (num_classes,) vector."""
        pass

    @abstractmethod
    def save_state(self, path: Union[str, Path]) -> str:
        """Persist the complete model state; returns the written path."""
        pass

    @abstractmethod
    def load_state(self, path: Union[str, Path]) -> "ModelAdapter":
        """Restore the complete model state from ``path``; returns self."""
        pass

    @abstractmethod
    def enable_accelerated_backend(self) -> None:
        """
        Switch inference to the accelerated backend.

        Raises:
            BackendInitError: If the backend is unavailable
        """
        pass

    @abstractmethod
    def disable_accelerated_backend(self) -> None:
        """Release accelerated resources and return to the reference backend."""
        pass

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs: Any) -> "ModelAdapter":
        """Construct a model whose architecture and weights come from ``path``."""
        raise NotImplementedError(f"{cls.__name__} cannot be constructed from a file")

    @property
    def reference_backend_name(self) -> str:
        return "cpu"

    @property
    def accelerated_backend_name(self) -> str:
        return "accelerated"

    def __repr__(self) -> str:
        shape = " -> ".join(f"{layer.width}x{layer.height}" for layer in self.layers)
        return f"{self.__class__.__name__}({shape})"


# Model registry for dynamic construction
_MODEL_REGISTRY: Dict[str, type] = {}


def register_model(name: str):
    """Decorator to register a model class."""

    def decorator(cls):
        _MODEL_REGISTRY[name] = cls
        return cls

    return decorator


def get_model_class(name: str) -> type:
    """Get a registered model class by name."""
    if name not in _MODEL_REGISTRY:
        raise ValueError(f"Unknown model: {name}. Available: {list(_MODEL_REGISTRY.keys())}")
    return _MODEL_REGISTRY[name]


def list_models() -> List[str]:
    """List all registered model names."""
    return list(_MODEL_REGISTRY.keys())
