"""Unit tests for the SIFT and SURF extractor variants."""

from __future__ import annotations

import numpy as np
import pytest
import torch

from sfmfeatures.models.base import DescriptorSet
from sfmfeatures.models.sift import SiftExtractor
from sfmfeatures.models.surf import SurfExtractor

from tests.factories import create_textured_image


@pytest.fixture
def cpu():
    return torch.device('cpu')


class TestSiftExtractor:
    """Tests for SiftExtractor."""

    def test_extract_returns_keypoints(self, cpu) -> None:
        image = create_textured_image(width=200, height=150)

        descriptors = SiftExtractor(device=cpu).extract(image)

        assert len(descriptors) > 0
        assert descriptors.positions.shape == (len(descriptors), 2)
        assert descriptors.data.shape == (len(descriptors), 128)

    def test_positions_inside_image(self, cpu) -> None:
        image = create_textured_image(width=200, height=150)

        descriptors = SiftExtractor(device=cpu).extract(image)

        assert np.all(descriptors.positions[:, 0] >= 0)
        assert np.all(descriptors.positions[:, 0] < 200)
        assert np.all(descriptors.positions[:, 1] >= 0)
        assert np.all(descriptors.positions[:, 1] < 150)

    def test_descriptors_are_normalized(self, cpu) -> None:
        descriptors = SiftExtractor(device=cpu).extract(create_textured_image())

        norms = np.linalg.norm(descriptors.data, axis=1)

        assert np.allclose(norms, 1.0, atol=1e-4)

    def test_max_features(self, cpu) -> None:
        extractor = SiftExtractor({'max_features': 5}, device=cpu)

        descriptors = extractor.extract(create_textured_image(width=200, height=150))

        assert 0 < len(descriptors) <= 10

    def test_blank_image_has_no_keypoints(self, cpu) -> None:
        image = np.full((64, 64, 3), 128, dtype=np.uint8)

        descriptors = SiftExtractor(device=cpu).extract(image)

        assert len(descriptors) == 0
        assert descriptors.data.shape == (0, 128)

    def test_accepts_grayscale(self, cpu) -> None:
        gray = create_textured_image()[:, :, 1].copy()

        descriptors = SiftExtractor(device=cpu).extract(gray)

        assert len(descriptors) > 0

    def test_deterministic(self, cpu) -> None:
        image = create_textured_image()

        first = SiftExtractor(device=cpu).extract(image)
        second = SiftExtractor(device=cpu).extract(image)

        assert np.array_equal(first.positions, second.positions)
        assert np.array_equal(first.data, second.data)


class TestSurfExtractor:
    """Tests for SurfExtractor."""

    def test_descriptor_length(self, cpu) -> None:
        extractor = SurfExtractor({'num_features': 64}, device=cpu)

        descriptors = extractor.extract(create_textured_image(width=128, height=96))

        assert isinstance(descriptors, DescriptorSet)
        assert descriptors.data.shape == (len(descriptors), 64)
        assert descriptors.positions.shape == (len(descriptors), 2)
        assert len(descriptors) <= 64

    def test_upright(self, cpu) -> None:
        extractor = SurfExtractor({'num_features': 32, 'upright': True}, device=cpu)

        descriptors = extractor.extract(create_textured_image(width=128, height=96))

        assert descriptors.data.shape[1] == 64
        assert np.allclose(descriptors.orientations, 0.0, atol=1e-5)


class TestBaseExtractor:
    """Shared extractor behavior."""

    def test_process_without_image(self, cpu) -> None:
        with pytest.raises(RuntimeError):
            SiftExtractor(device=cpu).process()

    def test_descriptors_before_process(self, cpu) -> None:
        extractor = SiftExtractor(device=cpu)
        extractor.set_image(create_textured_image())

        with pytest.raises(RuntimeError):
            extractor.get_descriptors()

    def test_rejects_float_images(self, cpu) -> None:
        with pytest.raises(ValueError):
            SiftExtractor(device=cpu).set_image(np.zeros((8, 8), dtype=np.float32))

    def test_config_merged_over_defaults(self, cpu) -> None:
        extractor = SiftExtractor({'contrast_threshold': 0.01}, device=cpu)

        assert extractor.config['contrast_threshold'] == 0.01
        assert extractor.config['num_samples_per_octave'] == 3

    def test_descriptor_set_validates_shapes(self) -> None:
        with pytest.raises(ValueError):
            DescriptorSet(
                positions=np.zeros((2, 2), dtype=np.float32),
                data=np.zeros((3, 8), dtype=np.float32),
                scales=np.zeros(2, dtype=np.float32),
                orientations=np.zeros(2, dtype=np.float32),
            )
