"""
Visualization utilities for sfmfeatures.

This module provides functions for visualizing:
- Keypoints of a single viewport over its image
- Feature statistics across a scene
"""

import cv2
import numpy as np
import matplotlib.pyplot as plt
from matplotlib import cm
from pathlib import Path
from typing import Optional, Sequence, Union
import logging

from ..core.viewport import Viewport
from .image import rescale_to_size

logger = logging.getLogger(__name__)


def visualize_viewport(
    image: np.ndarray,
    viewport: Viewport,
    max_keypoints: int = 2000,
    radius: int = 3,
    save_path: Optional[Union[str, Path]] = None
) -> np.ndarray:
    """
    Draw the keypoints of a viewport on its image.

    The image is halved until it matches the viewport size, so the original
    full resolution photograph can be passed in.

    Args:
        image: RGB image of the view
        viewport: Viewport computed for that view
        max_keypoints: Maximum number of keypoints to draw
        radius: Circle radius in pixels
        save_path: Path to save visualization

    Returns:
        Visualization image (RGB)
    """
    if image.ndim == 2:
        image = np.repeat(image[:, :, None], 3, axis=2)
    vis = rescale_to_size(image, viewport.width, viewport.height).copy()

    positions = viewport.positions
    if len(positions) > max_keypoints:
        # Evenly subsample so the drawing stays deterministic
        indices = np.linspace(0, len(positions) - 1, max_keypoints).astype(int)
        positions = positions[indices]

    if len(positions):
        colors = cm.plasma(np.linspace(0.0, 1.0, len(positions)))[:, :3] * 255
        for pt, color in zip(positions, colors):
            center = (int(round(pt[0])), int(round(pt[1])))
            cv2.circle(vis, center, radius, tuple(int(c) for c in color), 1, lineType=cv2.LINE_AA)

    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(save_path), cv2.cvtColor(vis, cv2.COLOR_RGB2BGR))
        logger.info(f"Saved keypoint visualization to {save_path}")

    return vis


def plot_feature_statistics(
    viewports: Sequence[Viewport],
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """
    Plot the number of features and the image size per view.

    Args:
        viewports: Viewports indexed by view id
        save_path: Path to save the figure

    Returns:
        Matplotlib figure
    """
    view_ids = np.arange(len(viewports))
    counts = np.array([vp.num_features for vp in viewports])
    megapixels = np.array([vp.width * vp.height / 1e6 for vp in viewports])

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(15, 5))

    ax1.bar(view_ids, counts, color='steelblue', edgecolor='black')
    ax1.set_xlabel('View ID')
    ax1.set_ylabel('Number of Features')
    ax1.set_title('Features per View')
    if len(counts):
        ax1.axhline(np.mean(counts), color='red', linestyle='--',
                    label=f'Mean: {np.mean(counts):.0f}')
        ax1.legend()

    ax2.scatter(megapixels, counts, alpha=0.7, color='green')
    ax2.set_xlabel('Image Size (megapixels)')
    ax2.set_ylabel('Number of Features')
    ax2.set_title('Features vs. Image Size')

    plt.tight_layout()

    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Saved feature statistics to {save_path}")

    return fig
