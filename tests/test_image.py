"""Unit tests for the rescale pyramid and color sampling."""

from __future__ import annotations

import numpy as np
import pytest

from sfmfeatures.core.exceptions import DescriptorMismatchError
from sfmfeatures.utils.image import (
    image_size,
    rescale_half_size,
    rescale_to_max_area,
    rescale_to_size,
    sample_colors,
)

from tests.factories import create_gradient_image, create_textured_image


class TestRescaleHalfSize:
    """Tests for rescale_half_size."""

    def test_even_size_averages_blocks(self) -> None:
        """Should average each 2x2 block."""
        img = np.array([[0, 2, 10, 10], [4, 6, 10, 14]], dtype=np.uint8)

        result = rescale_half_size(img)

        assert result.shape == (1, 2)
        assert result.dtype == np.uint8
        assert result.tolist() == [[3, 11]]

    def test_odd_size_rounds_up(self) -> None:
        """Should produce ceil(w / 2) x ceil(h / 2) images."""
        img = create_textured_image(width=101, height=75)

        result = rescale_half_size(img)

        assert image_size(result) == (51, 38)
        assert result.shape[2] == 3

    def test_odd_size_replicates_border(self) -> None:
        """Last column should be averaged with itself."""
        img = np.array([[10, 20, 30]], dtype=np.uint8)

        result = rescale_half_size(img)

        assert result.tolist() == [[15, 30]]

    def test_rounds_to_nearest(self) -> None:
        img = np.array([[1, 2], [2, 2]], dtype=np.uint8)

        assert rescale_half_size(img).tolist() == [[2]]

    def test_single_pixel_stays(self) -> None:
        img = np.array([[[1, 2, 3]]], dtype=np.uint8)

        assert rescale_half_size(img).tolist() == [[[1, 2, 3]]]


class TestRescaleToMaxArea:
    """Tests for rescale_to_max_area."""

    def test_no_rescale_when_within_ceiling(self) -> None:
        img = create_textured_image(width=64, height=48)

        result, num_halvings = rescale_to_max_area(img, 64 * 48)

        assert num_halvings == 0
        assert result is img

    def test_minimal_number_of_halvings(self) -> None:
        """Should stop at the first power of two meeting the ceiling."""
        img = create_textured_image(width=256, height=128)

        result, num_halvings = rescale_to_max_area(img, 64 * 32)

        assert num_halvings == 2
        assert image_size(result) == (256 >> 2, 128 >> 2)

    def test_one_pixel_over_ceiling_halves_once(self) -> None:
        img = create_textured_image(width=64, height=48)

        result, num_halvings = rescale_to_max_area(img, 64 * 48 - 1)

        assert num_halvings == 1
        assert image_size(result) == (32, 24)

    def test_odd_sizes_round_up(self) -> None:
        img = np.zeros((5, 5, 3), dtype=np.uint8)

        result, num_halvings = rescale_to_max_area(img, 4)

        assert num_halvings == 2
        assert image_size(result) == (2, 2)

    def test_deterministic(self) -> None:
        img = create_textured_image(width=200, height=150)

        first, k1 = rescale_to_max_area(img, 5000)
        second, k2 = rescale_to_max_area(img, 5000)

        assert k1 == k2
        assert np.array_equal(first, second)

    def test_idempotent(self) -> None:
        """Rescaling an already rescaled image should be a no-op."""
        img = create_textured_image(width=200, height=150)

        first, _ = rescale_to_max_area(img, 5000)
        second, num_halvings = rescale_to_max_area(first, 5000)

        assert num_halvings == 0
        assert np.array_equal(first, second)
        w, h = image_size(second)
        assert w * h <= 5000

    def test_rejects_non_positive_ceiling(self) -> None:
        img = create_textured_image(width=16, height=16)

        with pytest.raises(ValueError):
            rescale_to_max_area(img, 0)


class TestRescaleToSize:
    """Tests for rescale_to_size."""

    def test_matches_rescale_to_max_area(self) -> None:
        """Should reproduce the image descriptors were computed on."""
        img = create_textured_image(width=320, height=240)
        reduced, _ = rescale_to_max_area(img, 100 * 100)
        width, height = image_size(reduced)

        result = rescale_to_size(img, width, height)

        assert np.array_equal(result, reduced)

    def test_same_size_is_noop(self) -> None:
        img = create_textured_image(width=40, height=30)

        assert rescale_to_size(img, 40, 30) is img

    def test_mismatch_raises(self) -> None:
        """Should fail when halving cannot reach the target size."""
        img = create_textured_image(width=100, height=70)

        with pytest.raises(DescriptorMismatchError) as exc_info:
            rescale_to_size(img, 64, 48)

        assert exc_info.value.expected == (64, 48)
        assert exc_info.value.actual == (50, 35)

    def test_larger_target_raises(self) -> None:
        img = create_textured_image(width=40, height=30)

        with pytest.raises(DescriptorMismatchError):
            rescale_to_size(img, 80, 60)


class TestSampleColors:
    """Tests for bilinear color sampling."""

    def test_integer_positions_hit_pixels(self) -> None:
        img = create_gradient_image(11, 5)
        positions = np.array([[0, 0], [10, 4], [3, 2]], dtype=np.float32)

        colors = sample_colors(img, positions)

        assert colors.dtype == np.uint8
        assert colors.tolist() == [img[0, 0].tolist(), img[4, 10].tolist(), img[2, 3].tolist()]

    def test_interpolates_between_pixels(self) -> None:
        img = np.zeros((2, 2, 3), dtype=np.uint8)
        img[:, 1] = 100

        colors = sample_colors(img, np.array([[0.5, 0.5]]))

        assert colors.tolist() == [[50, 50, 50]]

    def test_clamps_outside_positions(self) -> None:
        img = create_gradient_image(8, 8)

        colors = sample_colors(img, np.array([[-5.0, -5.0], [100.0, 100.0]]))

        assert colors[0].tolist() == img[0, 0].tolist()
        assert colors[1].tolist() == img[7, 7].tolist()

    def test_grayscale_replicated(self) -> None:
        img = np.full((4, 4), 77, dtype=np.uint8)

        colors = sample_colors(img, np.array([[1.3, 2.7]]))

        assert colors.tolist() == [[77, 77, 77]]

    def test_empty_positions(self) -> None:
        img = create_gradient_image(8, 8)

        colors = sample_colors(img, np.zeros((0, 2), dtype=np.float32))

        assert colors.shape == (0, 3)
