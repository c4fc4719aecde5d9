"""
Device Management
=================

Device discovery for the accelerated inference backend.

Usage:
    from idxbench.core.device import resolve_accelerated_device

    device = resolve_accelerated_device("cuda")
"""

from typing import Any, Dict, Optional

import torch

from idxbench.core.exceptions import BackendInitError
from idxbench.core.logger import get_logger

logger = get_logger(__name__)

ACCELERATED_DEVICES = ("cuda", "mps")


def is_cuda_available() -> bool:
    """Check if CUDA is available."""
    return torch.cuda.is_available()


def is_mps_available() -> bool:
    """Check if Apple MPS is available."""
    backend = getattr(torch.backends, "mps", None)
    return bool(backend is not None and backend.is_available())


def resolve_accelerated_device(name: str = "cuda") -> torch.device:
    """
    Resolve the accelerated backend device.

    Args:
        name: "cuda", "cuda:<index>", "mps" or "auto" (first available of cuda, mps)

    Returns:
        The torch.device to run accelerated inference on

    Raises:
        BackendInitError: If the requested device is unknown or unavailable
    """
    if name == "auto":
        if is_cuda_available():
            return torch.device("cuda")
        if is_mps_available():
            return torch.device("mps")
        raise BackendInitError("No accelerated device available (tried cuda, mps)", backend=name)

    try:
        device = torch.device(name)
    except RuntimeError as err:
        raise BackendInitError(f"Invalid accelerated device '{name}': {err}", backend=name) from err

    if device.type not in ACCELERATED_DEVICES:
        raise BackendInitError(
            f"Device '{name}' is not an accelerated backend; expected one of {ACCELERATED_DEVICES}",
            backend=name,
        )
    if device.type == "cuda":
        if not is_cuda_available():
            raise BackendInitError("CUDA is not available", backend=name)
        if device.index is not None and device.index >= torch.cuda.device_count():
            raise BackendInitError(
                f"CUDA device index {device.index} out of range ({torch.cuda.device_count()} devices)",
                backend=name,
            )
    if device.type == "mps" and not is_mps_available():
        raise BackendInitError("Apple MPS is not available", backend=name)

    logger.debug(f"Resolved accelerated device: {device}")
    return device


def release_device(device: Optional[torch.device]) -> None:
    """Free cached allocator memory held on ``device``."""
    if device is None:
        return
    if device.type == "cuda" and is_cuda_available():
        torch.cuda.synchronize(device)
        torch.cuda.empty_cache()
    elif device.type == "mps" and is_mps_available():
        torch.mps.empty_cache()


def get_device_info() -> Dict[str, Any]:
    """
    Get information about available devices.

    Returns:
        dict with cuda_available, mps_available, device_count and devices
    """
    info: Dict[str, Any] = {
        "cuda_available": is_cuda_available(),
        "mps_available": is_mps_available(),
        "device_count": torch.cuda.device_count() if is_cuda_available() else 0,
        "devices": [],
    }
    if info["cuda_available"]:
        for i in range(torch.cuda.device_count()):
            info["devices"].append({"index": i, "name": torch.cuda.get_device_name(i)})
    return info
