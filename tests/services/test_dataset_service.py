"""Tests for DatasetService."""

import numpy as np

from idxbench.services.dataset import DatasetService


class TestDatasetServiceInspect:
    """Tests for IDX header inspection."""

    def test_inspect_images(self, image_file) -> None:
        """Test decoding an image file header."""
        result = DatasetService().inspect(str(image_file))

        assert result.success, f"Inspect failed: {result.error}"
        assert result.data.kind == "images"
        assert result.data.dims == [10, 28, 28]
        assert result.data.magic == 0x00000803
        assert result.warnings == []

    def test_inspect_labels(self, label_file) -> None:
        """Test decoding a label file header."""
        result = DatasetService().inspect(str(label_file))

        assert result.success
        assert result.data.kind == "labels"
        assert result.data.item_count == 10

    def test_inspect_truncated(self, image_file) -> None:
        """Test that a short payload is reported as a warning."""
        image_file.write_bytes(image_file.read_bytes()[:-100])

        result = DatasetService().inspect(str(image_file))

        assert result.success
        assert not result.data.is_complete
        assert len(result.warnings) == 1

    def test_inspect_missing(self, tmp_path) -> None:
        """Test that a missing file fails."""
        result = DatasetService().inspect(str(tmp_path / "nothing"))

        assert not result.success
        assert "does not exist" in result.error

    def test_inspect_too_small(self, tmp_path) -> None:
        """Test that a file without a full magic number fails."""
        path = tmp_path / "tiny"
        path.write_bytes(b"\x00\x00")

        result = DatasetService().inspect(str(path))

        assert not result.success


class TestDatasetServiceSummary:
    """Tests for dataset summaries."""

    def test_train_summary(self, mnist_root) -> None:
        """Test summarizing the training split."""
        result = DatasetService().load_summary(str(mnist_root))

        assert result.success
        summary = result.data
        assert summary.num_samples == 10
        assert summary.image_shape == [28, 28]
        assert summary.class_counts == [1] * 10
        assert 0.0 <= summary.pixel_mean <= 1.0

    def test_t10k_summary(self, mnist_root) -> None:
        """Test summarizing the t10k split."""
        result = DatasetService().load_summary(str(mnist_root), training=False)

        assert result.success
        assert result.data.num_samples == 5
        expected = np.bincount([3, 1, 4, 1, 5], minlength=10).tolist()
        assert result.data.class_counts == expected

    def test_summary_label_out_of_range(self, mnist_root) -> None:
        """Test that labels beyond num_classes fail the load."""
        result = DatasetService().load_summary(str(mnist_root), num_classes=5)

        assert not result.success
        assert "outside" in result.error

    def test_summary_missing_root(self, tmp_path) -> None:
        """Test that a missing directory fails."""
        result = DatasetService().load_summary(str(tmp_path / "missing"))

        assert not result.success
