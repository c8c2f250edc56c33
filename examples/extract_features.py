"""
Feature extraction example.

This example builds a scene from a directory of photographs, computes
features for every view and caches them in the view files.

Usage:
    python extract_features.py --images examples/images --scene ./scene
"""

import argparse
from pathlib import Path
import logging
import sys
import os

# Add parent directory to path to import sfmfeatures
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sfmfeatures import Features, FeatureType, Scene, FeatureError
from sfmfeatures.utils.visualization import plot_feature_statistics

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png'}


def main():
    """Run feature extraction over a directory of images."""
    parser = argparse.ArgumentParser(
        description='Per-view feature extraction example',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # SIFT features, cached as 'original-sift'
  python extract_features.py --images ./images --scene ./scene

  # SURF-style features on images capped at 2 megapixels
  python extract_features.py --images ./images --scene ./scene --type surf --max-size 2000000
        """
    )
    parser.add_argument('--images', type=str, default='examples/images',
                        help='Directory containing input images')
    parser.add_argument('--scene', type=str, default='./scene',
                        help='Scene directory (created from --images if empty)')
    parser.add_argument('--type', type=str, default='sift',
                        choices=[t.value for t in FeatureType],
                        help='Feature type to compute')
    parser.add_argument('--max-size', type=int, default=6000000,
                        help='Maximum image area in pixels before extraction')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of worker threads (default: CPU count)')
    parser.add_argument('--force', action='store_true',
                        help='Ignore cached features')
    parser.add_argument('--stats', type=str, default=None,
                        help='Optional path for a feature statistics plot')
    args = parser.parse_args()

    scene_dir = Path(args.scene)
    if scene_dir.is_dir() and any(scene_dir.glob('view_*.h5')):
        scene = Scene.load(scene_dir)
    else:
        image_paths = sorted(
            p for p in Path(args.images).iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS
        )
        logger.info(f"Creating scene with {len(image_paths)} images in {scene_dir}")
        scene = Scene.create_from_images(image_paths, scene_dir)

    features = Features({
        'feature_embedding': f'original-{args.type}',
        'max_image_size': args.max_size,
        'num_workers': args.workers,
        'force_recompute': args.force,
    }, verbose=True)

    try:
        viewports = features.compute(scene, args.type, [])
    except FeatureError as e:
        logger.error(f"Feature extraction failed: {e}")
        sys.exit(1)

    total = sum(vp.num_features for vp in viewports)
    logger.info(f"Computed {total} features for {len(viewports)} views")

    if args.stats:
        plot_feature_statistics(viewports, save_path=args.stats)


if __name__ == '__main__':
    main()
