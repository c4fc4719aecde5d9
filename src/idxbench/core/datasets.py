"""
Dataset Preparation
===================

In-memory dataset container, one-hot label encoding and order-preserving
train/test partitioning for IDX image/label data.

A Dataset pairs an (N, rows, cols) input array with an (N, num_classes)
one-hot target array. Pairing by index is never broken: every derived
dataset is built by taking the same indices from both arrays.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from idxbench.core.exceptions import ValidationError
from idxbench.core.idx import read_idx_images, read_idx_labels
from idxbench.core.logger import get_logger

logger = get_logger(__name__)

TRAIN_IMAGES = "train-images-idx3-ubyte"
TRAIN_LABELS = "train-labels-idx1-ubyte"
TEST_IMAGES = "t10k-images-idx3-ubyte"
TEST_LABELS = "t10k-labels-idx1-ubyte"


def _read_only(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class Dataset:
    """Ordered, read-only sequence of (image, one-hot target) pairs."""

    inputs: np.ndarray
    targets: np.ndarray

    def __post_init__(self) -> None:
        if len(self.inputs) != len(self.targets):
            raise ValidationError(
                f"Inputs and targets differ in length: {len(self.inputs)} != {len(self.targets)}"
            )
        object.__setattr__(self, "inputs", _read_only(self.inputs))
        object.__setattr__(self, "targets", _read_only(self.targets))

    def __len__(self) -> int:
        return len(self.inputs)

    def __getitem__(self, idx: int) -> Tuple[np.ndarray, np.ndarray]:
        return self.inputs[idx], self.targets[idx]

    @property
    def num_classes(self) -> int:
        return int(self.targets.shape[1]) if self.targets.ndim == 2 else 0

    @property
    def sample_shape(self) -> Tuple[int, ...]:
        return tuple(self.inputs.shape[1:])

    @property
    def labels(self) -> np.ndarray:
        """Class index of every target (argmax of the one-hot rows)."""
        if len(self) == 0:
            return np.zeros(0, dtype=np.int64)
        return np.argmax(self.targets, axis=1)

    def take(self, indices: Sequence[int]) -> "Dataset":
        """Return the pairs at ``indices`` in the given order."""
        idx = np.asarray(indices, dtype=np.int64)
        return Dataset(inputs=self.inputs[idx], targets=self.targets[idx])

    def head(self, count: int) -> "Dataset":
        """Return the first ``count`` pairs."""
        return Dataset(inputs=self.inputs[:count], targets=self.targets[:count])


def one_hot_encode(labels: Sequence[int], num_classes: int = 10) -> np.ndarray:
    """
    Encode integer class labels as one-hot rows.

    Args:
        labels: Integer labels, each in [0, num_classes)
        num_classes: Width of every target row

    Returns:
        float64 array of shape (N, num_classes)

    Raises:
        ValidationError: If num_classes is not positive or a label is out of range
    """
    if num_classes <= 0:
        raise ValidationError(f"num_classes must be positive, got {num_classes}")

    labels = np.asarray(labels, dtype=np.int64).reshape(-1)
    bad = (labels < 0) | (labels >= num_classes)
    if bad.any():
        first = int(np.flatnonzero(bad)[0])
        raise ValidationError(
            f"Label {int(labels[first])} at index {first} is outside [0, {num_classes})"
        )

    encoded = np.zeros((labels.shape[0], num_classes), dtype=np.float64)
    encoded[np.arange(labels.shape[0]), labels] = 1.0
    return encoded


def _rounded_share(ratio: float, total: int) -> int:
    # Half-up rounding; Python's round() would round 2.5 down to 2
    return int(math.floor(ratio * total + 0.5))


def split_dataset(
    dataset: Dataset,
    ratio: Optional[float] = None,
    count: Optional[int] = None,
) -> Tuple[Dataset, Dataset]:
    """
    Partition a dataset into leading training pairs and the remaining test pairs.

    Exactly one of ``ratio`` or ``count`` must be given. Selection is an
    order-preserving prefix; no shuffling is performed.

    Args:
        dataset: Dataset to split
        ratio: Training fraction in (0, 1); train size is round(ratio * len)
        count: Absolute training size, clamped to [0, len]

    Returns:
        Tuple of (train, test) with len(train) + len(test) == len(dataset)

    Raises:
        ValidationError: If both/neither options are given or ratio is out of range
    """
    if (ratio is None) == (count is None):
        raise ValidationError("Specify exactly one of ratio or count")

    total = len(dataset)
    if ratio is not None:
        if not 0.0 < ratio < 1.0:
            raise ValidationError(f"Split ratio must be in (0, 1), got {ratio}")
        n_train = _rounded_share(ratio, total)
    else:
        if count < 0:
            raise ValidationError(f"Split count must be non-negative, got {count}")
        n_train = min(count, total)

    indices = np.arange(total)
    train = dataset.take(indices[:n_train])
    test = dataset.take(indices[n_train:])
    logger.debug(f"Split {total} samples into train={len(train)} test={len(test)}")
    return train, test


def truncate_dataset(dataset: Dataset, limit: int) -> Dataset:
    """
    Keep only the first ``limit`` pairs; a non-positive limit keeps everything.
    """
    if limit <= 0 or limit >= len(dataset):
        return dataset
    train, _ = split_dataset(dataset, count=limit)
    return train


def mnist_paths(data_root: Union[str, Path], training: bool = True) -> Tuple[Path, Path]:
    """Return the (images, labels) file paths for the train or t10k split."""
    root = Path(data_root)
    if training:
        return root / TRAIN_IMAGES, root / TRAIN_LABELS
    return root / TEST_IMAGES, root / TEST_LABELS


def load_mnist(
    data_root: Union[str, Path],
    training: bool = True,
    num_classes: int = 10,
    strict_magic: bool = True,
) -> Dataset:
    """
    Load an MNIST-layout IDX dataset from ``data_root``.

    Args:
        data_root: Directory holding the train-* / t10k-* files
        training: Load the train-* files (True) or the t10k-* files (False)
        num_classes: Width of the one-hot targets
        strict_magic: Validate IDX magic numbers

    Returns:
        Dataset of normalized images and one-hot targets

    Raises:
        DataIOError: If a file is missing or unreadable
        FormatError: If a file is malformed
        ValidationError: If image and label counts differ or a label is out of range
    """
    image_path, label_path = mnist_paths(data_root, training)

    images = read_idx_images(image_path, strict_magic=strict_magic)
    labels = read_idx_labels(label_path, strict_magic=strict_magic)

    if len(images) != len(labels):
        raise ValidationError(
            f"{image_path.name} has {len(images)} images but {label_path.name} has {len(labels)} labels"
        )

    targets = one_hot_encode(labels, num_classes=num_classes)
    logger.info(f"Loaded {len(images)} samples from {Path(data_root)} ({'train' if training else 't10k'})")
    return Dataset(inputs=images, targets=targets)
