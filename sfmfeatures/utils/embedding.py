"""
Descriptor embedding codec.

Descriptors are cached on a view as an opaque byte buffer. The layout is
little-endian:

    magic      8 bytes   b"SFMDESC1"
    count      uint32    number of descriptors
    length     uint32    descriptor length L
    width      uint32    width of the image the descriptors were computed on
    height     uint32    height of that image
    records    count x (4 + L) float32: x, y, scale, orientation, data[0..L)
"""

import numpy as np
from typing import Optional, Tuple, Union

from ..core.exceptions import EmbeddingFormatError
from ..models.base import DescriptorSet

EMBEDDING_MAGIC = b"SFMDESC1"
_HEADER_DTYPE = np.dtype([
    ('magic', 'S8'),
    ('count', '<u4'),
    ('length', '<u4'),
    ('width', '<u4'),
    ('height', '<u4'),
])
_RECORD_PREFIX = 4

BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


def descriptors_to_embedding(descriptors: DescriptorSet, width: int, height: int) -> bytes:
    """
    Serialize descriptors and the image size they belong to.

    Args:
        descriptors: Descriptors to store
        width: Width of the image the descriptors were computed on
        height: Height of that image

    Returns:
        Embedding bytes
    """
    count = len(descriptors)
    length = descriptors.descriptor_length

    records = np.empty((count, _RECORD_PREFIX + length), dtype="<f4")
    records[:, 0:2] = descriptors.positions
    records[:, 2] = descriptors.scales
    records[:, 3] = descriptors.orientations
    records[:, _RECORD_PREFIX:] = descriptors.data

    header = np.array([(EMBEDDING_MAGIC, count, length, int(width), int(height))], dtype=_HEADER_DTYPE)
    return header.tobytes() + records.tobytes()


def embedding_to_descriptors(
    buffer: BufferLike,
    descriptor_length: Optional[int] = None
) -> Tuple[DescriptorSet, int, int]:
    """
    Deserialize an embedding produced by ``descriptors_to_embedding``.

    Args:
        buffer: Embedding bytes (or a uint8 array holding them)
        descriptor_length: Expected descriptor length, checked if given

    Returns:
        Descriptors, width, height

    Raises:
        EmbeddingFormatError: If the buffer is malformed
    """
    if isinstance(buffer, np.ndarray):
        buffer = buffer.astype(np.uint8, copy=False).tobytes()
    buffer = bytes(buffer)

    if len(buffer) < _HEADER_DTYPE.itemsize:
        raise EmbeddingFormatError(f"Embedding too short: {len(buffer)} bytes")

    header = np.frombuffer(buffer, dtype=_HEADER_DTYPE, count=1)[0]
    magic = bytes(header['magic'])
    count = int(header['count'])
    length = int(header['length'])
    width = int(header['width'])
    height = int(header['height'])
    if magic != EMBEDDING_MAGIC:
        raise EmbeddingFormatError(f"Invalid embedding signature: {magic!r}")

    if descriptor_length is not None and count > 0 and length != descriptor_length:
        raise EmbeddingFormatError(
            f"Embedding holds descriptors of length {length}, expected {descriptor_length}"
        )

    record_size = (_RECORD_PREFIX + length) * 4
    expected_size = _HEADER_DTYPE.itemsize + count * record_size
    if len(buffer) != expected_size:
        raise EmbeddingFormatError(
            f"Embedding size mismatch: {len(buffer)} bytes, expected {expected_size}"
        )

    if count == 0:
        records = np.zeros((0, _RECORD_PREFIX + length), dtype=np.float32)
    else:
        records = np.frombuffer(buffer, dtype="<f4", offset=_HEADER_DTYPE.itemsize)
        records = records.reshape(count, _RECORD_PREFIX + length).astype(np.float32)

    descriptors = DescriptorSet(
        positions=np.ascontiguousarray(records[:, 0:2]),
        data=np.ascontiguousarray(records[:, _RECORD_PREFIX:]),
        scales=np.ascontiguousarray(records[:, 2]),
        orientations=np.ascontiguousarray(records[:, 3]),
    )
    return descriptors, int(width), int(height)
