"""
Feature extractors for sfmfeatures.
"""

from .base import BaseExtractor, DescriptorSet
from .sift import SiftExtractor
from .surf import SurfExtractor

__all__ = [
    "BaseExtractor",
    "DescriptorSet",
    "SiftExtractor",
    "SurfExtractor",
]
