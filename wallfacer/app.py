"""
Ingest entry point: upscale, optimize and detect faces for new wallpapers.

Usage:
    wallfacer-add ~/Downloads/new-walls --format webp
    python -m wallfacer.app image.png
"""

import argparse
import logging
import sys
from pathlib import Path

from wallfacer import __version__
from wallfacer.config import OUTPUT_FORMATS
from wallfacer.errors import WallfacerError
from wallfacer.image_io import expand_paths
from wallfacer.pipeline import WallpaperPipeline
from wallfacer.settings import load_config

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wallfacer-add",
        description="Process new wallpapers and record their crops.",
    )
    parser.add_argument("paths", nargs="*", type=Path, help="images or directories to add")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, help="output image format")
    parser.add_argument("--min-width", type=int, help="minimum width after upscaling")
    parser.add_argument("--min-height", type=int, help="minimum height after upscaling")
    parser.add_argument("--version", action="store_true", help="print version and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    if args.version:
        print(f"wallfacer {__version__}")
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        cfg = load_config()
        pipeline = WallpaperPipeline(
            cfg,
            fmt=args.format,
            min_width=args.min_width,
            min_height=args.min_height,
        )
        for img in expand_paths(args.paths):
            pipeline.add_image(img)
        pipeline.run()
    except WallfacerError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
