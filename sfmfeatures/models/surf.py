"""
SURF-style extractor implementation.

This module pairs kornia's scale-space Hessian blob detector (the detector
SURF is built on) with a 4x4 spatial / 4 orientation bin gradient histogram,
which gives 64-dimensional descriptors like SURF.
"""

import numpy as np
import torch
import kornia as K
import kornia.feature as KF
from typing import Dict
import logging

from .base import BaseExtractor, DescriptorSet

logger = logging.getLogger(__name__)


class SurfExtractor(BaseExtractor):
    """
    Hessian blob detector with 64-dimensional descriptors.

    Config keys:
        num_features: Maximum number of keypoints returned by the detector
        patch_size: Side length of the patch the descriptor is computed on
        orientation_patch_size: Patch size used to estimate dominant orientation
        upright: Skip orientation estimation (upright descriptors)
        mr_size: Multiplier from detection scale to descriptor region size
    """

    name = "surf"
    descriptor_length = 64

    def __init__(self, config=None, device=None):
        super().__init__(config, device)

        if self.config['upright']:
            ori_module = KF.PassLAF()
        else:
            ori_module = KF.LAFOrienter(self.config['orientation_patch_size'])

        self._detector = KF.ScaleSpaceDetector(
            num_features=self.config['num_features'],
            mr_size=self.config['mr_size'],
            resp_module=KF.BlobHessian(),
            ori_module=ori_module,
        ).to(self.device).eval()

        patch_size = self.config['patch_size']
        self._descriptor = KF.LAFDescriptor(
            KF.SIFTDescriptor(patch_size, num_ang_bins=4, num_spatial_bins=4, rootsift=False),
            patch_size=patch_size,
        ).to(self.device).eval()

    def get_default_config(self) -> Dict:
        """Get default SURF configuration."""
        return {
            'num_features': 2048,
            'patch_size': 32,
            'orientation_patch_size': 19,
            'upright': False,
            'mr_size': 6.0,
        }

    def _image_to_tensor(self, gray: np.ndarray) -> torch.Tensor:
        """Convert a grayscale image to a 1 x 1 x H x W float tensor."""
        tensor = K.image_to_tensor(gray, False).float() / 255.0
        return tensor.to(self.device)

    def _detect_and_describe(self, image: np.ndarray) -> DescriptorSet:
        gray = self.to_grayscale(image)
        tensor = self._image_to_tensor(gray)

        with torch.no_grad():
            lafs, responses = self._detector(tensor)
            descs = self._descriptor(tensor, lafs)

        if lafs.shape[1] == 0:
            logger.debug("Hessian detector found no keypoints")
            return DescriptorSet.empty(self.descriptor_length)

        positions = KF.get_laf_center(lafs)[0].cpu().numpy().astype(np.float32)
        scales = KF.get_laf_scale(lafs)[0, :, 0, 0].cpu().numpy().astype(np.float32)
        orientations = KF.get_laf_orientation(lafs)[0, :, 0].cpu().numpy()
        data = descs[0].cpu().numpy().astype(np.float32)

        return DescriptorSet(
            positions=positions,
            data=data,
            scales=scales,
            orientations=np.deg2rad(orientations).astype(np.float32),
        )
