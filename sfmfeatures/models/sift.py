"""
SIFT extractor implementation.

Wraps OpenCV's SIFT detector. Descriptors are L2-normalized floats of
length 128 so they can be compared with plain Euclidean distances downstream.
"""

import cv2
import numpy as np
from typing import Dict
import logging

from .base import BaseExtractor, DescriptorSet

logger = logging.getLogger(__name__)


class SiftExtractor(BaseExtractor):
    """
    SIFT (Scale-Invariant Feature Transform) extractor.

    Config keys:
        max_features: Keep the strongest N keypoints (0 keeps all)
        num_samples_per_octave: Scale samples per octave (DoG layers)
        contrast_threshold: Minimum DoG contrast for a keypoint
        edge_ratio_threshold: Principal curvature ratio above which edges are rejected
        base_blur_sigma: Sigma of the Gaussian applied at octave zero
    """

    name = "sift"
    descriptor_length = 128

    def __init__(self, config=None, device=None):
        super().__init__(config, device)
        self._sift = cv2.SIFT_create(
            nfeatures=self.config['max_features'],
            nOctaveLayers=self.config['num_samples_per_octave'],
            contrastThreshold=self.config['contrast_threshold'],
            edgeThreshold=self.config['edge_ratio_threshold'],
            sigma=self.config['base_blur_sigma'],
        )

    def get_default_config(self) -> Dict:
        """Get default SIFT configuration."""
        return {
            'max_features': 0,
            'num_samples_per_octave': 3,
            'contrast_threshold': 0.04,
            'edge_ratio_threshold': 10.0,
            'base_blur_sigma': 1.6,
        }

    def _detect_and_describe(self, image: np.ndarray) -> DescriptorSet:
        gray = self.to_grayscale(image)
        keypoints, descriptors = self._sift.detectAndCompute(gray, None)

        if not keypoints or descriptors is None:
            logger.debug("SIFT found no keypoints")
            return DescriptorSet.empty(self.descriptor_length)

        data = descriptors.astype(np.float32)
        norms = np.linalg.norm(data, axis=1, keepdims=True)
        data /= np.maximum(norms, 1e-12)

        positions = np.array([kp.pt for kp in keypoints], dtype=np.float32)
        scales = np.array([kp.size for kp in keypoints], dtype=np.float32)
        orientations = np.deg2rad(np.array([kp.angle for kp in keypoints], dtype=np.float32))

        return DescriptorSet(
            positions=positions,
            data=data,
            scales=scales,
            orientations=orientations.astype(np.float32),
        )
