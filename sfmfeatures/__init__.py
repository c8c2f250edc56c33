"""
sfmfeatures: Per-view feature extraction for structure-from-motion

Computes keypoints and descriptors for every view of a scene in parallel,
caches them in view embeddings and fills one Viewport per view for the
matching stage.
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Import main orchestrator
from .core.features import Features, FeatureType, FeatureEvent, EXTRACTORS
from .core.viewport import Viewport
from .core.scene import Scene, View
from .core.exceptions import (
    FeatureError,
    FeatureConfigError,
    DescriptorMismatchError,
    EmbeddingFormatError,
    FeatureComputationError,
)

# Import extractors
from .models.base import BaseExtractor, DescriptorSet
from .models.sift import SiftExtractor
from .models.surf import SurfExtractor

# Import utilities
from .utils.embedding import descriptors_to_embedding, embedding_to_descriptors

__all__ = [
    "Features",
    "FeatureType",
    "FeatureEvent",
    "EXTRACTORS",
    "Viewport",
    "Scene",
    "View",
    "FeatureError",
    "FeatureConfigError",
    "DescriptorMismatchError",
    "EmbeddingFormatError",
    "FeatureComputationError",
    "BaseExtractor",
    "DescriptorSet",
    "SiftExtractor",
    "SurfExtractor",
    "descriptors_to_embedding",
    "embedding_to_descriptors",
]
