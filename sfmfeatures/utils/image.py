"""
Image pyramid and sampling helpers.

Images are numpy arrays laid out as H x W (grayscale) or H x W x C.
"""

import numpy as np
from typing import Tuple
import logging

from ..core.exceptions import DescriptorMismatchError

logger = logging.getLogger(__name__)


def image_size(image: np.ndarray) -> Tuple[int, int]:
    """Return (width, height) of an image array."""
    return int(image.shape[1]), int(image.shape[0])


def rescale_half_size(image: np.ndarray) -> np.ndarray:
    """
    Downscale an image by a factor of two.

    The result has size ``((w + 1) // 2, (h + 1) // 2)``. Every output pixel is
    the mean of a 2x2 block; for odd sizes the last row/column is replicated.
    Integer images are rounded to the nearest value.

    Args:
        image: Input image (H x W or H x W x C)

    Returns:
        Half-size image with the same dtype and channel count
    """
    # Not cv2.resize with INTER_AREA: on odd sizes it weights the last row/column
    # differently instead of replicating it as the (w + 1) // 2 pyramid does.
    h, w = image.shape[:2]
    if h % 2:
        image = np.concatenate([image, image[-1:]], axis=0)
    if w % 2:
        image = np.concatenate([image, image[:, -1:]], axis=1)

    if np.issubdtype(image.dtype, np.integer):
        acc = image.astype(np.int64)
        total = acc[0::2, 0::2] + acc[1::2, 0::2] + acc[0::2, 1::2] + acc[1::2, 1::2]
        return ((total + 2) // 4).astype(image.dtype)

    acc = image.astype(np.float64)
    total = acc[0::2, 0::2] + acc[1::2, 0::2] + acc[0::2, 1::2] + acc[1::2, 1::2]
    return (total / 4.0).astype(image.dtype)


def rescale_to_max_area(image: np.ndarray, max_area: int) -> Tuple[np.ndarray, int]:
    """
    Halve an image until its pixel area is at most ``max_area``.

    Each halving rounds odd sizes up, so after ``k`` halvings the size is
    ``ceil(dims / 2**k)``; this equals ``dims >> k`` only while the sizes stay
    even.

    Args:
        image: Input image
        max_area: Pixel area ceiling, must be positive

    Returns:
        Rescaled image and the number of halvings applied
    """
    if max_area <= 0:
        raise ValueError(f"max_area must be positive, got {max_area}")

    num_halvings = 0
    width, height = image_size(image)
    while width * height > max_area:
        image = rescale_half_size(image)
        width, height = image_size(image)
        num_halvings += 1
    return image, num_halvings


def rescale_to_size(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Halve an image until it matches a previously recorded size.

    Halving stops once either dimension is no longer strictly larger than
    the target.

    Raises:
        DescriptorMismatchError: If the halved image does not match exactly
    """
    img_width, img_height = image_size(image)
    while img_width > width and img_height > height:
        image = rescale_half_size(image)
        img_width, img_height = image_size(image)

    if img_width != width or img_height != height:
        raise DescriptorMismatchError(
            f"Error rescaling image to match descriptors: image is "
            f"{img_width}x{img_height}, descriptors were computed on {width}x{height}",
            expected=(width, height),
            actual=(img_width, img_height),
        )
    return image


def sample_colors(image: np.ndarray, positions: np.ndarray) -> np.ndarray:
    """
    Bilinearly sample RGB colors at sub-pixel positions.

    Integer coordinates address pixel centers. Positions outside the image are
    clamped to the border. Grayscale images are replicated to three channels
    and an alpha channel is dropped.

    Args:
        image: uint8 image (H x W, H x W x 1, H x W x 3 or H x W x 4)
        positions: N x 2 array of (x, y) coordinates

    Returns:
        N x 3 uint8 colors
    """
    if image.ndim == 2:
        image = image[:, :, None]
    if image.shape[2] == 1:
        image = np.repeat(image, 3, axis=2)
    elif image.shape[2] > 3:
        image = image[:, :, :3]

    h, w = image.shape[:2]
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
    x = np.clip(positions[:, 0], 0.0, w - 1)
    y = np.clip(positions[:, 1], 0.0, h - 1)

    x0 = np.floor(x).astype(np.intp)
    y0 = np.floor(y).astype(np.intp)
    x1 = np.minimum(x0 + 1, w - 1)
    y1 = np.minimum(y0 + 1, h - 1)
    wx = (x - x0)[:, None]
    wy = (y - y0)[:, None]

    pixels = image.astype(np.float64)
    top = pixels[y0, x0] * (1.0 - wx) + pixels[y0, x1] * wx
    bottom = pixels[y1, x0] * (1.0 - wx) + pixels[y1, x1] * wx
    colors = top * (1.0 - wy) + bottom * wy

    return np.clip(np.rint(colors), 0, 255).astype(np.uint8)
