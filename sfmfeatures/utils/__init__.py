"""Utility functions for sfmfeatures."""

from .image import rescale_half_size, rescale_to_max_area, rescale_to_size, sample_colors
from .embedding import descriptors_to_embedding, embedding_to_descriptors
from .io import load_image

__all__ = [
    "rescale_half_size",
    "rescale_to_max_area",
    "rescale_to_size",
    "sample_colors",
    "descriptors_to_embedding",
    "embedding_to_descriptors",
    "load_image",
]
