"""
Add a new resolution to every known wallpaper.

Each image without a crop for the new ratio gets the cropper's default.
When the closest already-configured ratio moves along the same axis and
the user adjusted its crop by hand, the new crop is re-centered on that
crop instead, and the image is reported for visual review.

Usage:
    wallfacer-add-resolution 32x9 --name "Super Ultrawide"
"""

import argparse
import logging
import sys

from wallfacer import __version__
from wallfacer.errors import GeometryError, WallfacerError
from wallfacer.models import Direction, Geometry
from wallfacer.ratios import AspectRatio
from wallfacer.settings import load_config, save_config
from wallfacer.tools import launch_editor
from wallfacer.wallpapers import WallInfo, WallpaperStore

logger = logging.getLogger(__name__)


def center_new_crop(old_crop: Geometry, new_crop: Geometry, info: WallInfo) -> Geometry:
    """Move *new_crop* so its center lines up with *old_crop*'s on the active axis."""
    axis = info.direction(old_crop)
    if axis == Direction.X:
        mid = old_crop.x + old_crop.w / 2
        start = mid - new_crop.w / 2
    else:
        mid = old_crop.y + old_crop.h / 2
        start = mid - new_crop.h / 2
    return info.cropper().clamp(start, axis, new_crop.w, new_crop.h)


def retrofit_info(
    info: WallInfo, ratio: AspectRatio, closest: AspectRatio | None,
) -> tuple[WallInfo, bool]:
    """
    Return *info* with a crop for *ratio*, and whether that crop was
    re-centered (and so needs review).  Images that already have a crop
    for *ratio* are returned unchanged.
    """
    if ratio in info.geometries:
        return info, False

    cropper = info.cropper()
    default_crop = cropper.crop(ratio)

    if closest is None:
        return info.with_geometry(ratio, default_crop), False

    closest_crop = info.get_geometry(closest)
    if info.direction(default_crop) != info.direction(closest_crop):
        return info.with_geometry(ratio, default_crop), False

    # user never touched the closest crop, nothing to follow
    if closest_crop == cropper.crop(closest):
        return info.with_geometry(ratio, default_crop), False

    return info.with_geometry(ratio, center_new_crop(closest_crop, default_crop, info)), True


def add_resolution(
    store: WallpaperStore, ratio: AspectRatio, closest: AspectRatio | None,
) -> list[str]:
    """
    Give every image in *store* a crop for *ratio*.

    Returns the sorted filenames whose crop was re-centered.  Running it
    again for the same ratio changes nothing.
    """
    to_review = []
    for filename, info in list(store.items()):
        updated, recentered = retrofit_info(info, ratio, closest)
        if updated is not info:
            store.insert(filename, updated)
        if recentered:
            to_review.append(filename)
    return sorted(to_review)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wallfacer-add-resolution",
        description="Add a new resolution and compute its crop for every wallpaper.",
    )
    parser.add_argument("resolution", nargs="?", help="aspect ratio, e.g. 32x9 or 32:9")
    parser.add_argument("--name", default="", help="display name for the resolution")
    parser.add_argument(
        "--no-preview", action="store_true",
        help="do not open re-centered wallpapers in the editor",
    )
    parser.add_argument("--version", action="store_true", help="print version and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"wallfacer-add-resolution {__version__}")
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    if not args.resolution:
        parser.error("the following arguments are required: resolution")

    try:
        new_res = AspectRatio.parse(args.resolution, args.name)
    except GeometryError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    try:
        cfg = load_config()
        closest = cfg.closest_resolution(new_res)

        if cfg.add_resolution(args.name, new_res):
            save_config(cfg)

        store = WallpaperStore(cfg.csv_path, cfg.wallpapers_dir).load()
        to_review = add_resolution(store, new_res, closest)
        store.save(cfg.sorted_resolutions())

        for fname in to_review:
            print(fname)

        if not args.no_preview:
            launch_editor(cfg.editor, [cfg.wallpapers_dir / fname for fname in to_review])
    except WallfacerError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
