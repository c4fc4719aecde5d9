"""
Dense Network
=============

Torch implementation of the model adapter: a stack of fully connected
grid-shaped layers (e.g. 28x28 -> 32x32 -> 32x32 -> 10x1) with per-layer
activations. Training uses plain SGD with element-wise gradient clipping.
The reference backend is the CPU; the accelerated backend moves the
network to a CUDA or MPS device.
"""

import pickle
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
from torch.optim import SGD

from idxbench.core.device import release_device, resolve_accelerated_device
from idxbench.core.exceptions import BackendInitError, DataIOError, FormatError, ValidationError
from idxbench.core.files import ensure_parent_dir
from idxbench.core.logger import get_logger
from idxbench.core.ml.base import LayerSpec, ModelAdapter, TrainingHistory, register_model

logger = get_logger(__name__)

CHECKPOINT_VERSION = 1

_ACTIVATION_MODULES: Dict[str, Callable[[], nn.Module]] = {
    "linear": nn.Identity,
    "relu": nn.ReLU,
    "leaky_relu": nn.LeakyReLU,
    "sigmoid": nn.Sigmoid,
    "tanh": nn.Tanh,
    "softmax": lambda: nn.Softmax(dim=-1),
    "elu": nn.ELU,
}


def _build_network(layers: Sequence[LayerSpec]) -> nn.Sequential:
    modules: List[nn.Module] = [nn.Flatten(start_dim=1), _ACTIVATION_MODULES[layers[0].activation]()]
    for previous, layer in zip(layers[:-1], layers[1:]):
        modules.append(nn.Linear(previous.size, layer.size))
        modules.append(_ACTIVATION_MODULES[layer.activation]())
    return nn.Sequential(*modules)


@register_model("dense")
class DenseNetwork(ModelAdapter):
    """
    Fully connected classifier over grid-shaped layers.

    Example:
        >>> from idxbench.core.ml.base import build_layer_specs
        >>> layers = build_layer_specs(
        ...     [(28, 28), (32, 32), (10, 1)],
        ...     ["linear", "relu", "softmax"],
        ...     [True, True, True],
        ... )
        >>> model = DenseNetwork(layers)
        >>> history = model.train(inputs, targets, epochs=3, learning_rate=0.01)
        >>> probabilities = model.forward(inputs[0])
    """

    def __init__(
        self,
        layers: Sequence[LayerSpec],
        seed: Optional[int] = 0,
        accelerated_device: str = "cuda",
    ):
        """
        Initialize the network.

        Args:
            layers: Layer descriptors from input to output.
            seed: Seed for weight initialization; None leaves torch's RNG untouched.
            accelerated_device: Device used by enable_accelerated_backend().
        """
        layers = list(layers)
        if len(layers) < 2:
            raise ValidationError("A network needs at least an input and an output layer")
        partial = [i for i, layer in enumerate(layers) if not layer.fully_connected]
        if partial:
            raise ValidationError(f"DenseNetwork only supports fully connected layers; layers {partial} are not")

        self._layers = layers
        self.accelerated_device = accelerated_device
        if seed is None:
            self.network = _build_network(layers)
        else:
            # Seeded initialization leaves the global CPU generator as it was
            with torch.random.fork_rng(devices=[]):
                torch.default_generator.manual_seed(seed)
                self.network = _build_network(layers)
        self.network.eval()
        self._device = torch.device("cpu")
        self._accelerated = False

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs: Any) -> "DenseNetwork":
        """Construct a network from a checkpoint written by save_state()."""
        checkpoint = _read_checkpoint(path)
        model = cls(_layers_from_checkpoint(checkpoint, path), seed=None, **kwargs)
        model._apply_checkpoint(checkpoint, path)
        return model

    @property
    def layers(self) -> List[LayerSpec]:
        return list(self._layers)

    @property
    def accelerated(self) -> bool:
        return self._accelerated

    @property
    def device(self) -> torch.device:
        return self._device

    @property
    def accelerated_backend_name(self) -> str:
        return self.accelerated_device

    @property
    def parameter_count(self) -> int:
        return sum(p.numel() for p in self.network.parameters())

    # ------------------------------------------------------------------
    # Training / inference
    # ------------------------------------------------------------------

    def _to_tensor(self, array: np.ndarray) -> torch.Tensor:
        tensor = torch.as_tensor(np.asarray(array), dtype=torch.float32)
        return tensor.reshape(tensor.shape[0], -1).to(self._device)

    def _loss(self, outputs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        if self._layers[-1].activation == "softmax":
            return -(targets * torch.log(outputs.clamp_min(1e-12))).sum(dim=1).mean()
        return F.mse_loss(outputs, targets)

    def train(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs: int,
        learning_rate: float,
        batch_size: int = 1,
        early_stop: bool = False,
        clip_upper: float = 1.0,
        clip_lower: float = -1.0,
        progress_callback: Optional[Callable[[int, int, float], None]] = None,
        **options: Any,
    ) -> TrainingHistory:
        """
        Train with SGD over the samples in order.

        Args:
            inputs: Array of shape (N, rows, cols).
            targets: One-hot array of shape (N, num_classes).
            epochs: Number of passes over the data.
            learning_rate: SGD step size.
            batch_size: Samples per update.
            early_stop: Stop once an epoch's mean loss exceeds the previous one.
            clip_upper: Upper bound for every gradient element.
            clip_lower: Lower bound for every gradient element.
            progress_callback: Optional callback(epoch, total_epochs, loss).

        Returns:
            TrainingHistory with the mean loss of each epoch.
        """
        if options:
            logger.debug(f"Ignoring unsupported training options: {sorted(options)}")
        if len(inputs) != len(targets):
            raise ValidationError(f"inputs ({len(inputs)}) and targets ({len(targets)}) differ in length")
        if epochs < 0 or batch_size <= 0:
            raise ValidationError(f"epochs must be >= 0 and batch_size > 0, got {epochs}, {batch_size}")
        if clip_lower > clip_upper:
            raise ValidationError(f"clip_lower ({clip_lower}) exceeds clip_upper ({clip_upper})")

        history = TrainingHistory()
        if len(inputs) == 0:
            return history

        x = self._to_tensor(inputs)
        y = torch.as_tensor(np.asarray(targets), dtype=torch.float32).to(self._device)
        if x.shape[1] != self._layers[0].size:
            raise ValidationError(f"Sample size {x.shape[1]} does not match input layer size {self._layers[0].size}")
        if y.shape[1] != self.num_classes:
            raise ValidationError(f"Target width {y.shape[1]} does not match output layer size {self.num_classes}")

        optimizer = SGD(self.network.parameters(), lr=learning_rate)
        total = x.shape[0]

        self.network.train()
        try:
            for epoch in range(1, epochs + 1):
                running = 0.0
                for start in range(0, total, batch_size):
                    xb = x[start:start + batch_size]
                    yb = y[start:start + batch_size]

                    optimizer.zero_grad()
                    loss = self._loss(self.network(xb), yb)
                    loss.backward()
                    for param in self.network.parameters():
                        if param.grad is not None:
                            param.grad.clamp_(clip_lower, clip_upper)
                    optimizer.step()

                    running += float(loss.item()) * xb.shape[0]

                epoch_loss = running / total
                previous = history.final_loss
                history.epoch_losses.append(epoch_loss)
                logger.debug(f"Epoch {epoch}/{epochs} loss {epoch_loss:.5f}")
                if progress_callback:
                    progress_callback(epoch, epochs, epoch_loss)

                if early_stop and previous is not None and epoch_loss > previous:
                    history.stopped_early = True
                    logger.info(f"Early stop at epoch {epoch} (loss {epoch_loss:.5f} > {previous:.5f})")
                    break
        finally:
            self.network.eval()

        return history

    def forward(self, sample: np.ndarray) -> np.ndarray:
        x = torch.as_tensor(np.asarray(sample), dtype=torch.float32).reshape(1, -1)
        if x.shape[1] != self._layers[0].size:
            raise ValidationError(f"Sample size {x.shape[1]} does not match input layer size {self._layers[0].size}")
        with torch.no_grad():
            output = self.network(x.to(self._device))
        return output[0].cpu().numpy()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_state(self, path: Union[str, Path]) -> str:
        """Save layers and weights in PyTorch format."""
        state = {
            "format_version": CHECKPOINT_VERSION,
            "layers": [layer.to_dict() for layer in self._layers],
            "model_state_dict": {k: v.detach().cpu() for k, v in self.network.state_dict().items()},
        }
        try:
            path = ensure_parent_dir(path)
            torch.save(state, str(path))
        except (OSError, RuntimeError) as err:
            raise DataIOError(f"Cannot save model state to {path}: {err}", path=path) from err
        logger.debug(f"Saved model state to {path}")
        return str(path)

    def load_state(self, path: Union[str, Path]) -> "DenseNetwork":
        """Replace architecture and weights with the checkpoint at ``path``."""
        checkpoint = _read_checkpoint(path)
        layers = _layers_from_checkpoint(checkpoint, path)
        if layers != self._layers:
            self._layers = layers
            self.network = _build_network(layers).to(self._device)
            self.network.eval()
        self._apply_checkpoint(checkpoint, path)
        return self

    def _apply_checkpoint(self, checkpoint: Dict[str, Any], path: Union[str, Path]) -> None:
        try:
            self.network.load_state_dict(checkpoint["model_state_dict"])
        except (KeyError, RuntimeError) as err:
            raise FormatError(f"Checkpoint {path} does not match its architecture: {err}", path=path) from err
        self.network.eval()
        logger.debug(f"Loaded model state from {path}")

    # ------------------------------------------------------------------
    # Backends
    # ------------------------------------------------------------------

    def enable_accelerated_backend(self) -> None:
        if self._accelerated:
            return
        device = resolve_accelerated_device(self.accelerated_device)
        try:
            self.network.to(device)
        except RuntimeError as err:
            self.network.to(torch.device("cpu"))
            raise BackendInitError(f"Failed to move network to {device}: {err}", backend=str(device)) from err
        self._device = device
        self._accelerated = True
        logger.debug(f"Accelerated backend enabled on {device}")

    def disable_accelerated_backend(self) -> None:
        if not self._accelerated:
            return
        previous = self._device
        self.network.to(torch.device("cpu"))
        self._device = torch.device("cpu")
        self._accelerated = False
        release_device(previous)
        logger.debug(f"Accelerated backend on {previous} released")


def _read_checkpoint(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.is_file():
        raise DataIOError(f"Model state not found: {path}", path=path)
    try:
        checkpoint = torch.load(str(path), map_location="cpu", weights_only=True)
    except OSError as err:
        raise DataIOError(f"Cannot read model state {path}: {err}", path=path) from err
    except (RuntimeError, ValueError, pickle.UnpicklingError, EOFError) as err:
        raise FormatError(f"Corrupt model state {path}: {err}", path=path) from err
    if not isinstance(checkpoint, dict) or "layers" not in checkpoint or "model_state_dict" not in checkpoint:
        raise FormatError(f"{path} is not an idxbench model checkpoint", path=path)
    return checkpoint


def _layers_from_checkpoint(checkpoint: Dict[str, Any], path: Union[str, Path]) -> List[LayerSpec]:
    try:
        return [LayerSpec(**layer) for layer in checkpoint["layers"]]
    except (TypeError, ValidationError) as err:
        raise FormatError(f"Invalid layer description in {path}: {err}", path=path) from err
