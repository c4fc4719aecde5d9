# services/dataset.py
"""
Service for IDX file inspection and dataset summaries.
"""

from pathlib import Path

import numpy as np

from idxbench.core.datasets import load_mnist
from idxbench.core.exceptions import IdxBenchError
from idxbench.core.idx import read_idx_header
from idxbench.models.dataset import DatasetSummary, IdxHeader

from .base import BaseService, ServiceResult


class DatasetService(BaseService):
    """
    Service for dataset inspection.

    Provides ServiceResult-wrapped methods over the IDX reader and the
    dataset loader.
    """

    def inspect(self, path: str) -> ServiceResult[IdxHeader]:
        """
        Decode the header of an IDX file.

        Args:
            path: IDX image or label file

        Returns:
            ServiceResult containing the IdxHeader on success
        """
        error = self._validate_input_path(path)
        if error:
            return ServiceResult.fail(error)

        try:
            header = read_idx_header(path)
        except IdxBenchError as e:
            return ServiceResult.fail(f"Failed to read {path}: {e}")

        warnings = []
        if not header.is_complete:
            warnings.append(
                f"Payload is {header.actual_payload_bytes} bytes, "
                f"header declares {header.expected_payload_bytes}"
            )

        return ServiceResult.ok(
            data=header,
            message=f"{Path(path).name}: {header.kind}, {header.item_count} items",
            warnings=warnings,
        )

    def load_summary(
        self,
        data_root: str,
        training: bool = True,
        num_classes: int = 10,
        strict_magic: bool = True,
    ) -> ServiceResult[DatasetSummary]:
        """
        Load a dataset split and summarize it.

        Args:
            data_root: Directory holding the train-* / t10k-* files
            training: Summarize the train-* files (True) or the t10k-* files (False)
            num_classes: Number of classes
            strict_magic: Validate IDX magic numbers

        Returns:
            ServiceResult containing the DatasetSummary on success
        """
        error = self._validate_input_path(data_root)
        if error:
            return ServiceResult.fail(error)

        try:
            dataset = load_mnist(data_root, training=training, num_classes=num_classes, strict_magic=strict_magic)
        except IdxBenchError as e:
            return ServiceResult.fail(f"Failed to load dataset: {e}")

        counts = np.bincount(dataset.labels, minlength=num_classes) if len(dataset) else np.zeros(num_classes)
        summary = DatasetSummary(
            data_root=str(data_root),
            training=training,
            num_samples=len(dataset),
            image_shape=list(dataset.sample_shape),
            num_classes=num_classes,
            class_counts=[int(c) for c in counts],
            pixel_mean=float(dataset.inputs.mean()) if len(dataset) else None,
        )

        return ServiceResult.ok(
            data=summary,
            message=f"Loaded {summary.num_samples} samples from {data_root}",
        )
