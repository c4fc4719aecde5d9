"""
Unit tests for idxbench.core.idx module.
"""

import struct

import numpy as np
import pytest

from idxbench.core.exceptions import DataIOError, FormatError
from idxbench.core.idx import (
    IMAGE_MAGIC,
    LABEL_MAGIC,
    read_idx_header,
    read_idx_images,
    read_idx_labels,
    write_idx_images,
    write_idx_labels,
)
from tests.mocks.idx_data import make_images


class TestReadImages:
    """Tests for read_idx_images."""

    def test_shape_and_dtype(self, image_file):
        """Test that N images of R x C float64 values are produced."""
        images = read_idx_images(image_file)

        assert images.shape == (10, 28, 28)
        assert images.dtype == np.float64

    def test_values_are_bytes_over_255(self, tmp_path):
        """Test that each byte is divided by 255.0 and nothing else."""
        raw = np.array([[[0, 51], [255, 128]]], dtype=np.uint8)
        path = write_idx_images(tmp_path / "img", raw)

        images = read_idx_images(path)

        np.testing.assert_allclose(images[0], raw[0] / 255.0)
        assert images.min() >= 0.0
        assert images.max() <= 1.0

    def test_item_major_row_major_order(self, tmp_path):
        """Test that the payload is laid out item by item, row by row."""
        raw = np.arange(2 * 2 * 3, dtype=np.uint8).reshape(2, 2, 3)
        path = write_idx_images(tmp_path / "img", raw)

        images = read_idx_images(path)

        assert images[1, 0, 2] == pytest.approx(raw[1, 0, 2] / 255.0)
        assert images[0, 1, 0] == pytest.approx(3 / 255.0)

    def test_zero_items(self, tmp_path):
        """Test that an empty but well-formed file yields an empty array."""
        path = write_idx_images(tmp_path / "img", np.zeros((0, 28, 28), dtype=np.uint8))

        images = read_idx_images(path)

        assert images.shape == (0, 28, 28)

    def test_missing_file_raises_io_error(self, tmp_path):
        """Test that a missing file raises DataIOError chained to the OS error."""
        with pytest.raises(DataIOError) as exc_info:
            read_idx_images(tmp_path / "missing")

        assert isinstance(exc_info.value, OSError)
        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.path.endswith("missing")

    def test_truncated_payload_raises_format_error(self, tmp_path):
        """Test that a header declaring more items than present is rejected."""
        path = tmp_path / "corrupt"
        payload = make_images(3).tobytes()
        path.write_bytes(struct.pack(">4I", IMAGE_MAGIC, 10, 28, 28) + payload)

        with pytest.raises(FormatError) as exc_info:
            read_idx_images(path)

        assert exc_info.value.expected_bytes == 10 * 28 * 28
        assert exc_info.value.actual_bytes == 3 * 28 * 28

    def test_trailing_data_raises_format_error(self, tmp_path):
        """Test that bytes beyond the declared extents are rejected."""
        path = tmp_path / "long"
        path.write_bytes(struct.pack(">4I", IMAGE_MAGIC, 1, 2, 2) + bytes(5))

        with pytest.raises(FormatError):
            read_idx_images(path)

    def test_short_header_raises_format_error(self, tmp_path):
        """Test that a file shorter than the header is rejected."""
        path = tmp_path / "short"
        path.write_bytes(struct.pack(">2I", IMAGE_MAGIC, 10))

        with pytest.raises(FormatError):
            read_idx_images(path)

    def test_format_error_is_io_error(self, tmp_path):
        """Test that FormatError can be caught as an I/O error."""
        path = tmp_path / "short"
        path.write_bytes(b"\x00\x00")

        with pytest.raises(OSError):
            read_idx_images(path)

    def test_wrong_magic_rejected_when_strict(self, tmp_path):
        """Test that a label magic in an image file is rejected by default."""
        path = write_idx_images(tmp_path / "img", make_images(2), magic=LABEL_MAGIC)

        with pytest.raises(FormatError, match="magic"):
            read_idx_images(path)

    def test_wrong_magic_accepted_when_permissive(self, tmp_path):
        """Test that strict_magic=False accepts any magic number."""
        path = write_idx_images(tmp_path / "img", make_images(2), magic=0xDEADBEEF)

        images = read_idx_images(path, strict_magic=False)

        assert images.shape == (2, 28, 28)


class TestReadLabels:
    """Tests for read_idx_labels."""

    def test_reads_labels(self, label_file):
        """Test that labels are returned as int64 in file order."""
        labels = read_idx_labels(label_file)

        assert labels.dtype == np.int64
        np.testing.assert_array_equal(labels, np.arange(10))

    def test_truncated_labels(self, tmp_path):
        """Test that a short label payload raises FormatError."""
        path = tmp_path / "labels"
        path.write_bytes(struct.pack(">2I", LABEL_MAGIC, 5) + bytes([1, 2]))

        with pytest.raises(FormatError):
            read_idx_labels(path)

    def test_image_magic_rejected(self, image_file):
        """Test that an image file is not accepted as a label file."""
        with pytest.raises(FormatError):
            read_idx_labels(image_file)


class TestReadHeader:
    """Tests for read_idx_header."""

    def test_image_header(self, image_file):
        """Test decoding an image file header."""
        header = read_idx_header(image_file)

        assert header.magic == IMAGE_MAGIC
        assert header.dims == [10, 28, 28]
        assert header.kind == "images"
        assert header.item_count == 10
        assert header.header_bytes == 16
        assert header.is_complete

    def test_label_header(self, label_file):
        """Test decoding a label file header."""
        header = read_idx_header(label_file)

        assert header.kind == "labels"
        assert header.dims == [10]

    def test_incomplete_payload_reported(self, tmp_path):
        """Test that a truncated file is reported, not rejected."""
        path = tmp_path / "corrupt"
        path.write_bytes(struct.pack(">4I", IMAGE_MAGIC, 2, 2, 2) + bytes(3))

        header = read_idx_header(path)

        assert not header.is_complete
        assert header.expected_payload_bytes == 8
        assert header.actual_payload_bytes == 3

    def test_to_dict(self, label_file):
        """Test that derived fields appear in to_dict."""
        d = read_idx_header(label_file).to_dict()

        assert d["kind"] == "labels"
        assert d["item_count"] == 10
        assert d["is_complete"] is True


class TestWriters:
    """Tests for write_idx_images / write_idx_labels."""

    def test_image_file_is_byte_exact(self, tmp_path):
        """Test the exact byte layout of a written image file."""
        raw = np.array([[[1, 2], [3, 4]]], dtype=np.uint8)
        path = write_idx_images(tmp_path / "img", raw)

        data = (tmp_path / "img").read_bytes()

        assert path == str(tmp_path / "img")
        assert data == struct.pack(">4I", 0x803, 1, 2, 2) + bytes([1, 2, 3, 4])

    def test_label_file_is_byte_exact(self, tmp_path):
        """Test the exact byte layout of a written label file."""
        write_idx_labels(tmp_path / "lbl", np.array([7, 0, 9]))

        assert (tmp_path / "lbl").read_bytes() == struct.pack(">2I", 0x801, 3) + bytes([7, 0, 9])

    def test_rejects_wrong_rank(self, tmp_path):
        """Test that non-3D image input is rejected."""
        with pytest.raises(ValueError):
            write_idx_images(tmp_path / "img", np.zeros((4, 4)))

    def test_rejects_labels_out_of_byte_range(self, tmp_path):
        """Test that labels above 255 are rejected."""
        with pytest.raises(ValueError):
            write_idx_labels(tmp_path / "lbl", np.array([256]))
