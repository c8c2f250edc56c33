"""
Exception types raised by the feature extraction pipeline.
"""

from typing import List, Tuple


class FeatureError(Exception):
    """Base class for all feature pipeline errors."""


class FeatureConfigError(FeatureError, ValueError):
    """Invalid arguments or configuration detected before work starts."""


class DescriptorMismatchError(FeatureError, RuntimeError):
    """Cached descriptors cannot be reconciled with the current source image."""

    def __init__(self, message: str, expected: Tuple[int, int], actual: Tuple[int, int]):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class EmbeddingFormatError(FeatureError, ValueError):
    """A descriptor embedding buffer is corrupt or has an unexpected layout."""


class FeatureComputationError(FeatureError):
    """
    One or more views failed during a compute run.

    Attributes:
        errors: List of (view_id, exception) pairs in view index order
    """

    def __init__(self, errors: List[Tuple[int, BaseException]]):
        self.errors = errors
        details = "; ".join(f"view {view_id}: {exc}" for view_id, exc in errors)
        super().__init__(f"Feature computation failed for {len(errors)} view(s): {details}")
