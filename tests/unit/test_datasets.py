"""
Unit tests for idxbench.core.datasets module.
"""

import numpy as np
import pytest

from idxbench.core.datasets import (
    Dataset,
    load_mnist,
    mnist_paths,
    one_hot_encode,
    split_dataset,
    truncate_dataset,
)
from idxbench.core.exceptions import DataIOError, FormatError, ValidationError
from tests.mocks.idx_data import make_images, write_mnist


def _dataset(count: int, num_classes: int = 10) -> Dataset:
    images = make_images(count, rows=2, cols=2) / 255.0
    return Dataset(inputs=images, targets=one_hot_encode(np.arange(count) % num_classes, num_classes))


class TestOneHotEncode:
    """Tests for one_hot_encode."""

    def test_hot_index_matches_label(self):
        """Test that every row has a single 1.0 at the label index."""
        labels = np.array([0, 3, 9, 3])
        encoded = one_hot_encode(labels, num_classes=10)

        assert encoded.shape == (4, 10)
        np.testing.assert_array_equal(np.argmax(encoded, axis=1), labels)
        np.testing.assert_array_equal(encoded.sum(axis=1), np.ones(4))
        assert set(np.unique(encoded)) == {0.0, 1.0}

    def test_empty_labels(self):
        """Test that no labels give a (0, num_classes) array."""
        assert one_hot_encode([], num_classes=10).shape == (0, 10)

    def test_is_deterministic(self):
        """Test that encoding the same labels twice gives equal arrays."""
        labels = [1, 2, 3]
        np.testing.assert_array_equal(one_hot_encode(labels), one_hot_encode(labels))

    @pytest.mark.parametrize("label", [-1, 10, 255])
    def test_out_of_range_label_raises(self, label):
        """Test that labels outside [0, num_classes) fail loudly."""
        with pytest.raises(ValidationError, match=str(label)):
            one_hot_encode([0, label], num_classes=10)

    def test_invalid_num_classes(self):
        """Test that num_classes must be positive."""
        with pytest.raises(ValidationError):
            one_hot_encode([0], num_classes=0)


class TestDataset:
    """Tests for the Dataset container."""

    def test_length_mismatch_raises(self):
        """Test that inputs and targets must have equal length."""
        with pytest.raises(ValidationError):
            Dataset(inputs=np.zeros((3, 2, 2)), targets=np.zeros((2, 10)))

    def test_arrays_are_read_only(self):
        """Test that dataset arrays cannot be mutated in place."""
        dataset = _dataset(3)

        with pytest.raises(ValueError):
            dataset.inputs[0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            dataset.targets[0, 0] = 5.0

    def test_source_arrays_are_copied(self):
        """Test that mutating the source array does not affect the dataset."""
        inputs = np.zeros((2, 2, 2))
        dataset = Dataset(inputs=inputs, targets=one_hot_encode([0, 1]))
        inputs[0, 0, 0] = 1.0

        assert dataset.inputs[0, 0, 0] == 0.0

    def test_indexing_and_properties(self):
        """Test __getitem__, labels, num_classes and sample_shape."""
        dataset = _dataset(4)
        image, target = dataset[2]

        assert len(dataset) == 4
        assert image.shape == (2, 2)
        assert np.argmax(target) == 2
        np.testing.assert_array_equal(dataset.labels, [0, 1, 2, 3])
        assert dataset.num_classes == 10
        assert dataset.sample_shape == (2, 2)

    def test_take_preserves_pairing(self):
        """Test that take() keeps every input with its own target."""
        dataset = _dataset(5)
        subset = dataset.take([4, 1])

        np.testing.assert_array_equal(subset.inputs[0], dataset.inputs[4])
        np.testing.assert_array_equal(subset.labels, [4, 1])


class TestSplitDataset:
    """Tests for split_dataset."""

    def test_nominal_ratio_split(self):
        """Test that 10 items at ratio 0.8 give train=8, test=2."""
        dataset = _dataset(10)
        train, test = split_dataset(dataset, ratio=0.8)

        assert len(train) == 8
        assert len(test) == 2
        np.testing.assert_array_equal(train.labels, np.arange(8))
        np.testing.assert_array_equal(test.labels, [8, 9])

    @pytest.mark.parametrize("count", [0, 1, 2, 3, 7, 10, 33])
    @pytest.mark.parametrize("ratio", [0.1, 0.25, 0.5, 0.8, 0.99])
    def test_split_is_complete_and_disjoint(self, count, ratio):
        """Test that train + test covers the dataset exactly, in order."""
        dataset = _dataset(count)
        train, test = split_dataset(dataset, ratio=ratio)

        assert len(train) + len(test) == count
        joined = np.concatenate([train.inputs, test.inputs]) if count else np.zeros((0, 2, 2))
        np.testing.assert_array_equal(joined, dataset.inputs)

    def test_half_rounds_up(self):
        """Test that a .5 share is rounded up."""
        train, test = split_dataset(_dataset(5), ratio=0.5)

        assert len(train) == 3
        assert len(test) == 2

    def test_count_split(self):
        """Test an absolute training count."""
        train, test = split_dataset(_dataset(10), count=3)

        assert len(train) == 3
        assert len(test) == 7

    def test_count_is_clamped(self):
        """Test that a count larger than the dataset takes everything."""
        train, test = split_dataset(_dataset(4), count=100)

        assert len(train) == 4
        assert len(test) == 0

    @pytest.mark.parametrize("ratio", [0.0, 1.0, -0.5, 1.5])
    def test_ratio_out_of_range(self, ratio):
        """Test that the ratio must lie strictly between 0 and 1."""
        with pytest.raises(ValidationError):
            split_dataset(_dataset(4), ratio=ratio)

    def test_exactly_one_option(self):
        """Test that ratio and count are mutually exclusive and one is required."""
        with pytest.raises(ValidationError):
            split_dataset(_dataset(4))
        with pytest.raises(ValidationError):
            split_dataset(_dataset(4), ratio=0.5, count=2)

    def test_negative_count(self):
        """Test that a negative count is rejected."""
        with pytest.raises(ValidationError):
            split_dataset(_dataset(4), count=-1)


class TestTruncateDataset:
    """Tests for truncate_dataset."""

    def test_truncation_keeps_first_k(self):
        """Test that 100 items truncated to 10 keep the first 10 in order."""
        dataset = _dataset(100)
        truncated = truncate_dataset(dataset, 10)

        assert len(truncated) == 10
        np.testing.assert_array_equal(truncated.inputs, dataset.inputs[:10])
        np.testing.assert_array_equal(truncated.targets, dataset.targets[:10])

    @pytest.mark.parametrize("limit", [0, -1, 100, 500])
    def test_no_op_limits(self, limit):
        """Test that non-positive or oversized limits keep everything."""
        dataset = _dataset(100)

        assert len(truncate_dataset(dataset, limit)) == 100


class TestLoadMnist:
    """Tests for load_mnist."""

    def test_nominal_load(self, mnist_root):
        """Test loading 10 items of 28x28 with labels 0..9."""
        dataset = load_mnist(mnist_root)

        assert len(dataset) == 10
        assert dataset.sample_shape == (28, 28)
        np.testing.assert_array_equal(dataset.labels, np.arange(10))

    def test_load_t10k(self, mnist_root):
        """Test loading the t10k files."""
        dataset = load_mnist(mnist_root, training=False)

        np.testing.assert_array_equal(dataset.labels, [3, 1, 4, 1, 5])

    def test_count_mismatch(self, tmp_path):
        """Test that image and label counts must agree."""
        write_mnist(tmp_path, make_images(3), np.array([0, 1]))

        with pytest.raises(ValidationError):
            load_mnist(tmp_path)

    def test_out_of_range_label(self, tmp_path):
        """Test that a corrupt label fails the load."""
        write_mnist(tmp_path, make_images(2), np.array([0, 12]))

        with pytest.raises(ValidationError):
            load_mnist(tmp_path, num_classes=10)

    def test_missing_files(self, tmp_path):
        """Test that a missing dataset raises DataIOError."""
        with pytest.raises(DataIOError):
            load_mnist(tmp_path)

    def test_corrupt_header_is_not_silently_short(self, tmp_path):
        """Test that a truncated image file aborts instead of yielding fewer items."""
        write_mnist(tmp_path, make_images(4), np.arange(4))
        images = tmp_path / "train-images-idx3-ubyte"
        images.write_bytes(images.read_bytes()[:-100])

        with pytest.raises(FormatError):
            load_mnist(tmp_path)

    def test_mnist_paths(self, tmp_path):
        """Test the fixed MNIST file names."""
        images, labels = mnist_paths(tmp_path, training=False)

        assert images.name == "t10k-images-idx3-ubyte"
        assert labels.name == "t10k-labels-idx1-ubyte"
