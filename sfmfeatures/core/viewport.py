"""
Per-view output record consumed by matching and pose estimation.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np


def _empty_positions() -> np.ndarray:
    return np.zeros((0, 2), dtype=np.float32)


def _empty_colors() -> np.ndarray:
    return np.zeros((0, 3), dtype=np.uint8)


def _empty_descr_data() -> np.ndarray:
    return np.zeros((0,), dtype=np.float32)


@dataclass
class Viewport:
    """
    Keypoints, colors and descriptors of a single view.

    Row ``i`` of ``positions`` and ``colors`` belongs to the descriptor stored
    at ``descr_data[i * descriptor_length:(i + 1) * descriptor_length]``.

    Attributes:
        width: Width of the image the features were computed on
        height: Height of the image the features were computed on
        positions: Keypoint positions (N x 2, float32)
        colors: RGB colors sampled at the keypoints (N x 3, uint8)
        descr_data: Flat descriptor buffer (N * descriptor_length, float32)
        descriptor_length: Length of a single descriptor vector
    """

    width: int = 0
    height: int = 0
    positions: np.ndarray = field(default_factory=_empty_positions)
    colors: np.ndarray = field(default_factory=_empty_colors)
    descr_data: np.ndarray = field(default_factory=_empty_descr_data)
    descriptor_length: int = 0

    @property
    def num_features(self) -> int:
        return len(self.positions)

    @property
    def descriptors(self) -> np.ndarray:
        """Descriptor buffer reshaped to N x descriptor_length."""
        if self.descriptor_length == 0:
            return self.descr_data.reshape(0, 0)
        return self.descr_data.reshape(-1, self.descriptor_length)

    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0 and self.num_features == 0


ViewportList = List[Viewport]
