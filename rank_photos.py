#!/usr/bin/env python3
"""
Photo ranking CLI.

Scores photos for technical quality, aesthetics and (optionally) facial
expressions, then prints them best first. The scoring engine is in
processing/scorer.py.
"""
import os
import sys

# Ensure the script's directory is in Python path for local imports
# This allows running the script from any directory
_script_dir = os.path.dirname(os.path.abspath(__file__))
if _script_dir not in sys.path:
    sys.path.insert(0, _script_dir)

import json
import logging
from pathlib import Path

from config import ScoringConfig

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tif', '.tiff', '.heic', '.heif'}
DEFAULT_CONFIG_FILE = os.path.join(_script_dir, 'scoring_config.json')


def collect_image_paths(paths):
    """Expand folders (non-recursive) and files into a sorted, de-duplicated photo list."""
    collected = []
    seen = set()
    for p in paths:
        path = Path(p)
        if path.is_dir():
            candidates = sorted(c for c in path.iterdir() if c.suffix.lower() in IMAGE_EXTENSIONS)
        elif path.is_file():
            candidates = [path]
        else:
            print(f"Warning: {p} not found, skipping", file=sys.stderr)
            continue
        for c in candidates:
            key = str(c.resolve())
            if key not in seen:
                seen.add(key)
                collected.append(c)
    return collected


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(
        description='Rank photos by technical quality, aesthetics and expressions',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python rank_photos.py /path/to/photos                 # Rank a folder, top 20
  python rank_photos.py /path/to/photos --all           # Print every scored photo
  python rank_photos.py a.jpg b.jpg --output ranked.json
  python rank_photos.py /path --expressions faces.json  # Use precomputed expression detections
  python rank_photos.py /path --workers 1               # Strictly sequential
        '''
    )

    parser.add_argument('photo_paths', nargs='+', help='Folders or image files to rank')

    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--top', type=int, default=20,
                              help='Print only the top N photos (default: 20)')
    output_group.add_argument('--all', action='store_true',
                              help='Print every scored photo')
    output_group.add_argument('--output', type=str, default=None,
                              help='Write full results as JSON to this file')
    output_group.add_argument('--verbose', '-v', action='store_true',
                              help='Show component scores and a batch summary')

    scan_group = parser.add_argument_group('Scoring options')
    scan_group.add_argument('--expressions', type=str, default=None,
                            help='JSON file of expression detections keyed by file name')
    scan_group.add_argument('--workers', type=int, default=None,
                            help='Worker threads (default: CPU count)')
    scan_group.add_argument('--max-size', type=int, default=None,
                            help='Longest side of the working raster (default: 1024)')

    config_group = parser.add_argument_group('Configuration')
    config_group.add_argument('--config', type=str, default=None,
                              help='Path to custom scoring config JSON file')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(levelname)s: %(message)s')

    if args.top < 1 and not args.all:
        parser.error("--top must be at least 1")

    config_path = args.config
    if config_path is None and os.path.exists(DEFAULT_CONFIG_FILE):
        config_path = DEFAULT_CONFIG_FILE
    try:
        config = ScoringConfig(config_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    photo_paths = collect_image_paths(args.photo_paths)
    if not photo_paths:
        print("Error: no images found", file=sys.stderr)
        return 1

    # Deferred so --help doesn't load numpy/OpenCV
    from processing.batch_processor import BatchProcessor
    from utils.image_loading import RasterLoader
    from utils.detection import load_expression_file, lookup_detections

    if args.expressions:
        try:
            detections = load_expression_file(args.expressions)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        photos = [(str(p), str(p), lookup_detections(detections, p)) for p in photo_paths]
    else:
        photos = [(str(p), str(p)) for p in photo_paths]

    max_size = args.max_size or config.get_processing_settings().get('max_size')
    processor = BatchProcessor(
        RasterLoader(max_size=max_size),
        config=config,
        num_workers=args.workers,
        show_progress=True,
        show_metrics=args.verbose,
    )
    ranked = processor.run(photos)

    if not ranked:
        print("No photos could be scored.")
        return 1

    shown = ranked if args.all else ranked[:args.top]
    for result in shown:
        line = f"{result.overall_score:.4f}\t{result.photo_id}"
        if args.verbose:
            t = result.technical_quality
            line += (f"\t[tech {t.overall_score:.2f} blur {t.blur_score:.2f} noise {t.noise_score:.2f} "
                     f"exp {t.exposure_score:.2f} | aesthetic {result.aesthetics.mean_score:.2f} | "
                     f"faces {result.face_expressions.face_count}]")
        print(line)

    if args.output:
        with open(args.output, 'w') as f:
            json.dump({
                'config_version': config.version_hash,
                'results': [r.to_dict() for r in ranked],
            }, f, indent=2)
            f.write('\n')
        print(f"\nWrote {len(ranked)} results to {args.output}", file=sys.stderr)

    return 0


if __name__ == '__main__':
    sys.exit(main())
