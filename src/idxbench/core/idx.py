"""
IDX Binary Format
=================

Reader and writer for the big-endian, length-prefixed IDX layout used by
MNIST-style image/label datasets.

Image files:
    4 big-endian uint32 (magic, N, rows, cols) followed by N*rows*cols bytes,
    item-major then row-major.

Label files:
    2 big-endian uint32 (magic, N) followed by N bytes.

Images are returned as float64 arrays scaled by 1/255 into [0.0, 1.0];
labels as int64 arrays. Any disagreement between the declared extents and
the bytes actually present raises FormatError, never a short array.
"""

import struct
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from idxbench.core.exceptions import DataIOError, FormatError
from idxbench.core.files import BinaryFile, ensure_parent_dir
from idxbench.core.logger import get_logger
from idxbench.models.dataset import IdxHeader

logger = get_logger(__name__)

IMAGE_MAGIC = 0x00000803
LABEL_MAGIC = 0x00000801

_UINT32 = struct.Struct(">I")

PathLike = Union[str, Path]


def _read_file(path: PathLike) -> bytes:
    """Read the whole file, mapping OS failures onto DataIOError."""
    try:
        with BinaryFile(path, mode="rb") as f:
            return f.read()
    except OSError as err:
        raise DataIOError(f"Cannot read IDX file {path}: {err}", path=path) from err


def _parse_header(raw: bytes, path: PathLike, ndims: int) -> Tuple[int, Tuple[int, ...]]:
    header_bytes = _UINT32.size * (ndims + 1)
    if len(raw) < header_bytes:
        raise FormatError(
            f"{path}: header needs {header_bytes} bytes, file has {len(raw)}",
            path=path,
            expected_bytes=header_bytes,
            actual_bytes=len(raw),
        )
    values = struct.unpack(f">{ndims + 1}I", raw[:header_bytes])
    return values[0], tuple(values[1:])


def _check_magic(magic: int, expected: int, path: PathLike, strict: bool) -> None:
    if magic == expected:
        return
    if strict:
        raise FormatError(f"{path}: magic number {magic:#010x} != expected {expected:#010x}", path=path)
    logger.debug(f"Ignoring unexpected magic {magic:#010x} in {path}")


def _payload(raw: bytes, path: PathLike, header_bytes: int, dims: Tuple[int, ...]) -> bytes:
    expected = int(np.prod(dims, dtype=np.int64))
    actual = len(raw) - header_bytes
    if actual != expected:
        problem = "truncated" if actual < expected else "has trailing data"
        raise FormatError(
            f"{path}: payload {problem}; header {list(dims)} implies {expected} bytes, found {actual}",
            path=path,
            expected_bytes=expected,
            actual_bytes=actual,
        )
    return raw[header_bytes:]


def read_idx_images(path: PathLike, strict_magic: bool = True) -> np.ndarray:
    """
    Read an IDX3 image file.

    Args:
        path: Path to the image file (e.g. train-images-idx3-ubyte)
        strict_magic: Reject files whose magic number is not 0x00000803

    Returns:
        float64 array of shape (N, rows, cols) with values in [0.0, 1.0]

    Raises:
        DataIOError: If the file cannot be opened or read
        FormatError: If the header or payload size is inconsistent
    """
    raw = _read_file(path)
    magic, dims = _parse_header(raw, path, ndims=3)
    _check_magic(magic, IMAGE_MAGIC, path, strict_magic)
    payload = _payload(raw, path, _UINT32.size * 4, dims)

    images = np.frombuffer(payload, dtype=np.uint8).reshape(dims).astype(np.float64) / 255.0
    logger.debug(f"Read {dims[0]} images of {dims[1]}x{dims[2]} from {path}")
    return images


def read_idx_labels(path: PathLike, strict_magic: bool = True) -> np.ndarray:
    """
    Read an IDX1 label file.

    Args:
        path: Path to the label file (e.g. train-labels-idx1-ubyte)
        strict_magic: Reject files whose magic number is not 0x00000801

    Returns:
        int64 array of shape (N,)

    Raises:
        DataIOError: If the file cannot be opened or read
        FormatError: If the header or payload size is inconsistent
    """
    raw = _read_file(path)
    magic, dims = _parse_header(raw, path, ndims=1)
    _check_magic(magic, LABEL_MAGIC, path, strict_magic)
    payload = _payload(raw, path, _UINT32.size * 2, dims)

    labels = np.frombuffer(payload, dtype=np.uint8).astype(np.int64)
    logger.debug(f"Read {dims[0]} labels from {path}")
    return labels


def read_idx_header(path: PathLike) -> IdxHeader:
    """
    Decode the header of an IDX file without validating its payload.

    The number of dimensions is taken from the low byte of the magic number,
    as defined by the IDX format.
    """
    raw = _read_file(path)
    if len(raw) < _UINT32.size:
        raise FormatError(f"{path}: file too small for an IDX magic number", path=path)

    (magic,) = _UINT32.unpack(raw[: _UINT32.size])
    ndims = magic & 0xFF
    _, dims = _parse_header(raw, path, ndims=ndims)
    header_bytes = _UINT32.size * (ndims + 1)

    return IdxHeader(
        path=str(path),
        magic=magic,
        dims=list(dims),
        header_bytes=header_bytes,
        expected_payload_bytes=int(np.prod(dims, dtype=np.int64)) if dims else 0,
        actual_payload_bytes=len(raw) - header_bytes,
    )


def write_idx_images(path: PathLike, images: np.ndarray, magic: int = IMAGE_MAGIC) -> str:
    """
    Write a uint8 image stack of shape (N, rows, cols) as an IDX3 file.

    Float input in [0.0, 1.0] is scaled back to bytes.
    """
    images = np.asarray(images)
    if images.ndim != 3:
        raise ValueError(f"Expected a (N, rows, cols) array, got shape {images.shape}")
    if images.dtype != np.uint8:
        images = np.clip(np.rint(images * 255.0), 0, 255).astype(np.uint8)

    n, rows, cols = images.shape
    path = ensure_parent_dir(path)
    with BinaryFile(path, mode="wb") as f:
        f.write(struct.pack(">4I", magic, n, rows, cols))
        f.write(images.tobytes(order="C"))
    return str(path)


def write_idx_labels(path: PathLike, labels: np.ndarray, magic: int = LABEL_MAGIC) -> str:
    """Write integer labels in [0, 255] as an IDX1 file."""
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise ValueError(f"Expected a 1-D label array, got shape {labels.shape}")
    if labels.size and (labels.min() < 0 or labels.max() > 255):
        raise ValueError("Labels must fit in an unsigned byte")

    path = ensure_parent_dir(path)
    with BinaryFile(path, mode="wb") as f:
        f.write(struct.pack(">2I", magic, labels.shape[0]))
        f.write(labels.astype(np.uint8).tobytes())
    return str(path)
