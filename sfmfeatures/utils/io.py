"""
I/O utilities for sfmfeatures.

This module provides functions for loading images and for reading and
writing per-view HDF5 files.
"""

import h5py
import numpy as np
import cv2
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

logger = logging.getLogger(__name__)

EMBEDDINGS_GROUP = "embeddings"


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from disk as RGB.

    Args:
        image_path: Path to the image file

    Returns:
        Loaded image as H x W x 3 uint8 array (RGB)

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be loaded
    """
    image_path = Path(image_path)

    if not image_path.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    img = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError(f"Failed to load image: {image_path}")

    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def encode_image(image: np.ndarray, ext: str = '.png') -> bytes:
    """Encode an RGB or grayscale uint8 image to compressed bytes."""
    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    ok, encoded = cv2.imencode(ext, image)
    if not ok:
        raise ValueError(f"Failed to encode image as {ext}")
    return encoded.tobytes()


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode compressed image bytes to an RGB uint8 array.

    Raises:
        ValueError: If the bytes are not a decodable image
    """
    if not data:
        raise ValueError("Failed to decode image data: empty buffer")
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Failed to decode image data")
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def write_view_file(
    output_path: Union[str, Path],
    view_id: int,
    embeddings: Dict[str, bytes],
    name: Optional[str] = None
) -> None:
    """
    Write a view and all of its embeddings to an HDF5 file.

    The file is written to a temporary sibling and renamed into place, so a
    reader never observes a half-written view.

    Args:
        output_path: Destination file
        view_id: View identifier
        embeddings: Mapping of embedding name to bytes
        name: Optional human readable view name
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output_path.with_name(output_path.name + '.tmp')

    with h5py.File(str(tmp_path), 'w') as f:
        f.attrs['view_id'] = int(view_id)
        if name is not None:
            f.attrs['name'] = name
        group = f.create_group(EMBEDDINGS_GROUP)
        for key, data in embeddings.items():
            if len(data):
                values = np.frombuffer(bytes(data), dtype=np.uint8)
            else:
                values = np.zeros(0, dtype=np.uint8)
            group.create_dataset(key, data=values)

    tmp_path.replace(output_path)
    logger.debug(f"Saved view {view_id} to {output_path}")


def read_view_header(input_path: Union[str, Path]) -> Dict:
    """
    Read view attributes and embedding names without loading embedding data.

    Returns:
        Dictionary with 'view_id', 'name' and 'embeddings' (list of names)
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"View file not found: {input_path}")

    with h5py.File(str(input_path), 'r') as f:
        names: List[str] = list(f[EMBEDDINGS_GROUP].keys()) if EMBEDDINGS_GROUP in f else []
        name = f.attrs.get('name')
        return {
            'view_id': int(f.attrs['view_id']),
            'name': str(name) if name is not None else None,
            'embeddings': names,
        }


def read_embedding(input_path: Union[str, Path], key: str) -> bytes:
    """
    Read a single embedding from a view file.

    Raises:
        KeyError: If the embedding does not exist
    """
    with h5py.File(str(input_path), 'r') as f:
        if EMBEDDINGS_GROUP not in f or key not in f[EMBEDDINGS_GROUP]:
            raise KeyError(f"Embedding '{key}' not found in {input_path}")
        return f[EMBEDDINGS_GROUP][key][()].tobytes()
