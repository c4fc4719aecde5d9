# models/dataset.py
"""
Data models for IDX files and prepared datasets.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from idxbench.models.base import ToDictMixin


@dataclass
class IdxHeader(ToDictMixin):
    """Decoded header of an IDX file plus the payload sizes it implies."""

    path: str
    magic: int
    dims: List[int]
    header_bytes: int
    expected_payload_bytes: int
    actual_payload_bytes: int

    @property
    def item_count(self) -> int:
        """Number of items declared by the first dimension."""
        return self.dims[0] if self.dims else 0

    @property
    def kind(self) -> str:
        """'images' for 3-dimensional files, 'labels' for 1-dimensional ones."""
        if len(self.dims) == 3:
            return "images"
        if len(self.dims) == 1:
            return "labels"
        return "unknown"

    @property
    def is_complete(self) -> bool:
        """True when the payload matches the declared extents exactly."""
        return self.expected_payload_bytes == self.actual_payload_bytes

    def _to_dict_extra(self):
        return {
            "item_count": self.item_count,
            "kind": self.kind,
            "is_complete": self.is_complete,
        }


@dataclass
class DatasetSummary(ToDictMixin):
    """Summary of a loaded dataset split."""

    data_root: str
    training: bool
    num_samples: int
    image_shape: List[int]
    num_classes: int
    class_counts: List[int] = field(default_factory=list)
    pixel_mean: Optional[float] = None
