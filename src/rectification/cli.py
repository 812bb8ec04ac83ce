"""
Command-line interface for drawer rectification.

Rectifies an angled drawer photo into a flat, metrically scaled underlay.

Usage:
    python -m src.rectification.cli photo.jpg \\
        --corners 412,300 3580,355 3820,2810 190,2760 \\
        --width-mm 210 --length-mm 297 \\
        --output underlay.jpg --metadata underlay.json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from src.rectification import (
    PhysicalDimensions,
    RectificationError,
    RectificationProcessor,
)
from src.rectification.codec import load_image, to_data_url
from src.rectification.config_loader import load_config
from src.utils.io import save_json, write_bytes

logger = logging.getLogger(__name__)


def parse_corner(value: str) -> Tuple[float, float]:
    """Parse an 'X,Y' corner argument."""
    try:
        x, y = (float(v) for v in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Corner must be 'X,Y', got '{value}'")
    return x, y


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rectify an angled drawer photo into a flat underlay image"
    )
    parser.add_argument("image", type=Path, help="Source photo")
    parser.add_argument(
        "--corners",
        type=parse_corner,
        nargs=4,
        required=True,
        metavar="X,Y",
        help="The 4 drawer corners in source pixels (any order)",
    )
    parser.add_argument("--width-mm", type=float, help="Physical drawer width (mm)")
    parser.add_argument("--length-mm", type=float, help="Physical drawer length (mm)")
    parser.add_argument(
        "--px-per-mm", type=float, help="Output resolution when dimensions are known"
    )
    parser.add_argument("--config", type=Path, help="Path to config YAML")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("rectified.jpg"),
        help="Output JPEG path (default: rectified.jpg)",
    )
    parser.add_argument("--metadata", type=Path, help="Output JSON metadata path")
    parser.add_argument(
        "--embed-image",
        action="store_true",
        help="Include the rectified image as a data URL in the metadata",
    )
    parser.add_argument(
        "--preserve-order",
        action="store_true",
        help="Corners are given as top-left, top-right, bottom-right, bottom-left",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if (args.width_mm is None) != (args.length_mm is None):
        logger.error("--width-mm and --length-mm must be given together")
        return 2

    if args.px_per_mm is not None and args.px_per_mm <= 0:
        logger.error(f"--px-per-mm must be positive, got {args.px_per_mm}")
        return 2

    try:
        physical = None
        if args.width_mm is not None:
            physical = PhysicalDimensions(
                width_mm=args.width_mm, length_mm=args.length_mm
            )
        config = load_config(args.config) if args.config else None
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid arguments: {e}")
        return 2

    processor = RectificationProcessor(config=config)

    try:
        image = load_image(args.image)
        result = processor.process(
            image,
            args.corners,
            physical,
            resolution_px_per_mm=args.px_per_mm,
            preserve_order=args.preserve_order,
        )
    except RectificationError as e:
        logger.error(f"Rectification failed: {e}")
        return 1

    write_bytes(result.encoded_image, args.output)
    logger.info(f"Saved rectified image to {args.output}")

    if args.metadata:
        metadata = result.to_dict()
        if args.embed_image:
            metadata["underlay_image"] = to_data_url(result.encoded_image)
        save_json(metadata, args.metadata)
        logger.info(f"Saved metadata to {args.metadata}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
