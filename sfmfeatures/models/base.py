"""
Base extractor interface for all keypoint detectors.

This module defines the common interface that all feature extractors (SIFT,
SURF, etc.) must implement, and the container type they return, so the
orchestrator can treat every variant the same way.
"""

import cv2
import numpy as np
import torch
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class DescriptorSet:
    """
    Ordered keypoints with their descriptor vectors.

    Attributes:
        positions: Keypoint positions in image coordinates (N x 2, float32)
        data: Descriptor vectors (N x L, float32)
        scales: Keypoint scales (N,, float32)
        orientations: Keypoint orientations in radians (N,, float32)
    """

    positions: np.ndarray
    data: np.ndarray
    scales: np.ndarray
    orientations: np.ndarray

    def __post_init__(self):
        n = len(self.positions)
        if self.data.ndim != 2 or len(self.data) != n:
            raise ValueError(f"Descriptor data shape {self.data.shape} does not match {n} positions")
        if len(self.scales) != n or len(self.orientations) != n:
            raise ValueError("Scales and orientations must have one entry per keypoint")

    @classmethod
    def empty(cls, descriptor_length: int) -> "DescriptorSet":
        return cls(
            positions=np.zeros((0, 2), dtype=np.float32),
            data=np.zeros((0, descriptor_length), dtype=np.float32),
            scales=np.zeros((0,), dtype=np.float32),
            orientations=np.zeros((0,), dtype=np.float32),
        )

    @property
    def descriptor_length(self) -> int:
        return self.data.shape[1]

    def __len__(self) -> int:
        return len(self.positions)


class BaseExtractor(ABC):
    """
    Abstract base class for all feature extractors.

    Subclasses are constructed from a variant specific configuration, receive
    an image through ``set_image``, run detection and description in
    ``process`` and expose the result through ``get_descriptors``.

    Attributes:
        name: Short variant name
        descriptor_length: Fixed length of every descriptor of this variant
        device: PyTorch device for computation
        config: Configuration dictionary
    """

    name: str = ""
    descriptor_length: int = 0

    def __init__(self, config: Optional[Dict] = None, device: Optional[torch.device] = None):
        """
        Initialize the extractor.

        Args:
            config: Configuration dictionary, merged over the defaults
            device: PyTorch device (cuda/cpu)
        """
        self.config = self.get_default_config()
        if config:
            self.config.update(config)
        self.device = device or torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        self._image = None
        self._descriptors = None
        logger.debug(f"Initialized {self.__class__.__name__} on device: {self.device}")

    @abstractmethod
    def get_default_config(self) -> Dict:
        """Get default configuration for the extractor."""
        pass

    @abstractmethod
    def _detect_and_describe(self, image: np.ndarray) -> DescriptorSet:
        """
        Detect keypoints and compute descriptors.

        Args:
            image: RGB or grayscale uint8 image (H x W x 3 or H x W)

        Returns:
            Descriptors in detection order
        """
        pass

    def set_image(self, image: np.ndarray):
        if image.dtype != np.uint8:
            raise ValueError(f"Expected uint8 image, got {image.dtype}")
        self._image = image
        self._descriptors = None

    def process(self):
        """Run detection and description on the current image."""
        if self._image is None:
            raise RuntimeError(f"{self.__class__.__name__}: no image set")
        descriptors = self._detect_and_describe(self._image)
        if len(descriptors) and descriptors.descriptor_length != self.descriptor_length:
            raise RuntimeError(
                f"{self.__class__.__name__} produced descriptors of length "
                f"{descriptors.descriptor_length}, expected {self.descriptor_length}"
            )
        self._descriptors = descriptors

    def get_descriptors(self) -> DescriptorSet:
        if self._descriptors is None:
            raise RuntimeError(f"{self.__class__.__name__}: process() has not been run")
        return self._descriptors

    def extract(self, image: np.ndarray) -> DescriptorSet:
        """Convenience wrapper for set_image, process and get_descriptors."""
        self.set_image(image)
        self.process()
        return self.get_descriptors()

    @staticmethod
    def to_grayscale(image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        if image.shape[2] == 1:
            return image[:, :, 0]
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
