"""
Per-view feature extraction orchestration.

This module coordinates feature extraction for every view of a scene:
- Dispatching one unit of work per view to a thread pool
- Reusing descriptors cached in a view embedding
- Downscaling images to a maximum pixel area before extraction
- Filling one Viewport per view for the matching stage
"""

import os
import numbers
import logging
import numpy as np
import torch
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Type, Union
from tqdm import tqdm

from .exceptions import FeatureComputationError, FeatureConfigError
from .scene import Scene, View
from .viewport import Viewport, ViewportList
from ..models.base import BaseExtractor, DescriptorSet
from ..models.sift import SiftExtractor
from ..models.surf import SurfExtractor
from ..utils.embedding import descriptors_to_embedding, embedding_to_descriptors
from ..utils.image import image_size, rescale_to_max_area, rescale_to_size, sample_colors

logger = logging.getLogger(__name__)


class FeatureType(Enum):
    """Feature extractor variants."""

    SIFT = 'sift'
    SURF = 'surf'

    @classmethod
    def parse(cls, value: Union["FeatureType", str]) -> "FeatureType":
        """
        Convert an enum member or its name to a FeatureType.

        Raises:
            FeatureConfigError: If the value names no known variant
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise FeatureConfigError(f"Invalid feature type: {value!r}") from None


EXTRACTORS: Dict[FeatureType, Type[BaseExtractor]] = {
    FeatureType.SIFT: SiftExtractor,
    FeatureType.SURF: SurfExtractor,
}


@dataclass
class FeatureEvent:
    """
    Progress notification for a single view.

    ``kind`` is one of 'start', 'cached', 'rescaled' or 'done'.
    """

    kind: str
    view_id: int
    width: int = 0
    height: int = 0
    num_features: int = 0


ProgressCallback = Callable[[FeatureEvent], None]


def _is_positive_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool) and value > 0


@dataclass
class _ViewResult:
    index: int
    view_id: int
    viewport: Optional[Viewport] = None
    error: Optional[BaseException] = None


class Features:
    """
    Computes features for all views of a scene.

    This class handles:
    - Precondition checks and viewport list initialization
    - Parallel per-view extraction with a bounded worker pool
    - Descriptor caching in a named view embedding
    - Viewport population (positions, colors, descriptors)

    Example:
        >>> features = Features({'feature_embedding': 'original-sift'})
        >>> viewports = []
        >>> features.compute(scene, FeatureType.SIFT, viewports)
    """

    def __init__(self, config: Optional[Dict] = None,
                 device: Optional[torch.device] = None,
                 progress_callback: Optional[ProgressCallback] = None,
                 verbose: bool = False):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration dictionary, merged over the defaults
            device: PyTorch device passed to extractors
            progress_callback: Called with a FeatureEvent as views progress
            verbose: Show a progress bar over completed views
        """
        self.config = self._merge_config(config)
        self.device = device or torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        self.progress_callback = progress_callback
        self.verbose = verbose

    def _get_default_config(self) -> Dict:
        """Get default configuration."""
        return {
            'force_recompute': False,
            'feature_embedding': '',
            'image_embedding': 'original',
            'max_image_size': 6000000,
            'skip_saving_views': False,
            'num_workers': None,
            'sift': {},
            'surf': {},
        }

    def _merge_config(self, config: Optional[Dict]) -> Dict:
        merged = self._get_default_config()
        if config:
            unknown = set(config) - set(merged)
            if unknown:
                raise FeatureConfigError(f"Unknown configuration keys: {sorted(unknown)}")
            for key, value in config.items():
                if isinstance(merged[key], dict) and isinstance(value, dict):
                    merged[key] = {**merged[key], **value}
                else:
                    merged[key] = value

        if not _is_positive_integer(merged['max_image_size']):
            raise FeatureConfigError(
                f"max_image_size must be a positive integer, got {merged['max_image_size']!r}"
            )
        merged['max_image_size'] = int(merged['max_image_size'])
        if merged['num_workers'] is not None:
            if not _is_positive_integer(merged['num_workers']):
                raise FeatureConfigError(
                    f"num_workers must be a positive integer, got {merged['num_workers']!r}"
                )
            merged['num_workers'] = int(merged['num_workers'])
        if not merged['image_embedding']:
            raise FeatureConfigError("image_embedding must not be empty")
        return merged

    def construct(self, feature_type: FeatureType) -> BaseExtractor:
        """Create an extractor for the given variant from its sub-configuration."""
        extractor_cls = EXTRACTORS[feature_type]
        return extractor_cls(config=self.config[feature_type.value], device=self.device)

    @staticmethod
    def descriptor_length(feature_type: FeatureType) -> int:
        return EXTRACTORS[feature_type].descriptor_length

    def compute(
        self,
        scene: Scene,
        feature_type: Union[FeatureType, str],
        viewports: Optional[ViewportList] = None
    ) -> Optional[ViewportList]:
        """
        Compute features for every view of a scene.

        Args:
            scene: Scene whose views are processed
            feature_type: Extractor variant
            viewports: List to fill with one Viewport per view index. May be
                None if a feature embedding is configured, in which case
                features are only cached on the views.

        Returns:
            The ``viewports`` list

        Raises:
            FeatureConfigError: On missing scene, missing output or unknown type
            FeatureComputationError: If any view fails; ``viewports`` then
                only holds default entries
        """
        if scene is None:
            raise FeatureConfigError("NULL scene given")

        if viewports is None and not self.config['feature_embedding']:
            raise FeatureConfigError("No viewports or feature embedding given")

        feature_type = FeatureType.parse(feature_type)
        views = scene.get_views()

        if viewports is not None:
            viewports.clear()
            viewports.extend(Viewport() for _ in views)

        tasks = []
        for index, view in enumerate(views):
            if view is None:
                logger.debug(f"Skipping missing view at index {index}")
                continue
            tasks.append((index, view))

        logger.info(f"Computing {feature_type.value.upper()} features for "
                    f"{len(tasks)} of {len(views)} views")

        results = self._run_parallel(tasks, feature_type, viewports is not None)

        errors = [(r.view_id, r.error) for r in results if r.error is not None]
        if errors:
            for view_id, error in errors:
                logger.error(f"Feature computation failed for view {view_id}: {error}")
            raise FeatureComputationError(errors) from errors[0][1]

        if viewports is not None:
            for result in results:
                if result.viewport is not None:
                    viewports[result.index] = result.viewport

        return viewports

    def _num_workers(self, num_tasks: int) -> int:
        num_workers = self.config['num_workers'] or os.cpu_count() or 1
        return max(1, min(num_workers, num_tasks))

    def _run_parallel(
        self,
        tasks: List[Tuple[int, View]],
        feature_type: FeatureType,
        want_viewport: bool
    ) -> List[_ViewResult]:
        """
        Run one unit of work per view and collect results in index order.

        After the first failure, units that have not started are cancelled;
        running units finish before this returns.
        """
        results: List[_ViewResult] = []
        if not tasks:
            return results

        with ThreadPoolExecutor(max_workers=self._num_workers(len(tasks))) as executor:
            futures = [
                executor.submit(self._compute_view, index, view, feature_type, want_viewport)
                for index, view in tasks
            ]

            iterator = as_completed(futures)
            if self.verbose:
                iterator = tqdm(iterator, total=len(futures), desc="Computing features")

            failed = False
            for future in iterator:
                if future.cancelled():
                    continue
                result = future.result()
                results.append(result)
                if result.error is not None and not failed:
                    failed = True
                    for pending in futures:
                        pending.cancel()

        results.sort(key=lambda r: r.index)
        return results

    def _compute_view(self, index: int, view: View, feature_type: FeatureType,
                      want_viewport: bool) -> _ViewResult:
        result = _ViewResult(index=index, view_id=view.id)
        try:
            result.viewport = self._compute_view_features(view, feature_type, want_viewport)
        except Exception as e:
            result.error = e
        return result

    def _compute_view_features(self, view: View, feature_type: FeatureType,
                               want_viewport: bool) -> Optional[Viewport]:
        """
        Compute or load descriptors for one view.

        Args:
            view: View to process
            feature_type: Extractor variant
            want_viewport: Build a Viewport for the view

        Returns:
            Populated Viewport, or None if not requested
        """
        opts = self.config
        descr_len = self.descriptor_length(feature_type)
        self._emit(FeatureEvent('start', view.id))

        try:
            # Check if descriptors can be loaded from the embedding
            descriptors: Optional[DescriptorSet] = None
            cached_width = cached_height = 0
            if not opts['force_recompute'] and view.has_data_embedding(opts['feature_embedding']):
                if not want_viewport:
                    logger.debug(f"Features for view {view.id} already cached, skipping")
                    self._emit(FeatureEvent('done', view.id))
                    return None

                data = view.get_data(opts['feature_embedding'])
                descriptors, cached_width, cached_height = embedding_to_descriptors(data, descr_len)
                self._emit(FeatureEvent('cached', view.id, cached_width, cached_height, len(descriptors)))

            # The image is needed either for extraction or for coloring
            # cached descriptors at the size they were computed on.
            img = view.get_byte_image(opts['image_embedding'])
            if descriptors is None or len(descriptors) == 0:
                width, height = image_size(img)
                logger.info(f"Computing features for view ID {view.id} ({width}x{height})...")

                img, num_halvings = rescale_to_max_area(img, opts['max_image_size'])
                if num_halvings:
                    width, height = image_size(img)
                    logger.info(f"  scaled to {width}x{height} pixels.")
                    self._emit(FeatureEvent('rescaled', view.id, width, height))

                extractor = self.construct(feature_type)
                extractor.set_image(img)
                extractor.process()
                descriptors = extractor.get_descriptors()
            else:
                img = rescale_to_size(img, cached_width, cached_height)

            width, height = image_size(img)

            # Update feature embedding if requested
            if opts['feature_embedding']:
                view.set_data(opts['feature_embedding'],
                              descriptors_to_embedding(descriptors, width, height))
                if not opts['skip_saving_views']:
                    view.save_view_file()

            viewport = None
            if want_viewport:
                viewport = self._build_viewport(img, descriptors, descr_len)

            self._emit(FeatureEvent('done', view.id, width, height, len(descriptors)))
            return viewport
        finally:
            view.cache_cleanup()

    @staticmethod
    def _build_viewport(img: np.ndarray, descriptors: DescriptorSet, descr_len: int) -> Viewport:
        num = len(descriptors)
        width, height = image_size(img)
        descr_data = np.array(descriptors.data, dtype=np.float32).reshape(num * descr_len)
        positions = np.array(descriptors.positions, dtype=np.float32).reshape(num, 2)

        return Viewport(
            width=width,
            height=height,
            positions=positions,
            colors=sample_colors(img, positions),
            descr_data=descr_data,
            descriptor_length=descr_len,
        )

    def _emit(self, event: FeatureEvent):
        if self.progress_callback is not None:
            self.progress_callback(event)
