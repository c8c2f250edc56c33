"""
Core components of the feature pipeline.
"""

from .features import Features, FeatureType, FeatureEvent
from .scene import Scene, View
from .viewport import Viewport

__all__ = [
    "Features",
    "FeatureType",
    "FeatureEvent",
    "Scene",
    "View",
    "Viewport",
]
