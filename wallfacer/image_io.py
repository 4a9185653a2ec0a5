"""
Image file helpers.

Provides helpers to read image dimensions without full loading (PSD via
psd-tools, everything else via Pillow), compute content fingerprints for
duplicate detection, and discover images in a directory.
"""

import hashlib
from pathlib import Path

from PIL import Image
from psd_tools import PSDImage

from wallfacer.config import IMAGE_EXTENSIONS
from wallfacer.errors import ImageReadError

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

# Number of bytes read for fingerprinting (64 KB)
_FINGERPRINT_READ_SIZE = 65_536


def compute_fingerprint(path: Path) -> str:
    """
    Compute a fast content fingerprint for an image file.

    Reads the first 64 KB of the file and combines it with the file size
    to produce a truncated SHA-256 hex string.  Format: ``"{size_hex}_{hash16}"``.

    Identical files under different names produce the same fingerprint,
    which is what the duplicate check relies on.
    """
    size = path.stat().st_size
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        sha.update(f.read(_FINGERPRINT_READ_SIZE))
    return f"{size:x}_{sha.hexdigest()[:16]}"


def get_image_size(path: Path) -> tuple[int, int]:
    """
    Get image dimensions without fully loading/compositing.

    Raises ImageReadError if the file cannot be opened as an image.
    """
    try:
        if path.suffix.lower() == ".psd":
            psd = PSDImage.open(str(path))
            return psd.width, psd.height
        with Image.open(path) as img:
            return img.size
    # UnidentifiedImageError is an OSError
    except (OSError, ValueError) as exc:
        raise ImageReadError(f"could not read image {path}: {exc}") from exc


def is_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def filter_images(directory: Path) -> list[Path]:
    """Images directly inside *directory*, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if is_image(p))


def expand_paths(paths: list[Path]) -> list[Path]:
    """Resolve a mix of image files and directories to image files."""
    images: list[Path] = []
    for p in paths:
        p = p.expanduser().resolve()
        if p.is_dir():
            images.extend(filter_images(p))
        elif is_image(p):
            images.append(p)
    return images


def with_directory(path: Path, directory: Path) -> Path:
    """Same filename, different parent."""
    return Path(directory) / path.name


def output_path(path: Path, directory: Path, fmt: str | None) -> Path:
    """Where *path* ends up in *directory*, with its extension swapped for *fmt* if given."""
    if fmt:
        path = path.with_suffix(f".{fmt}")
    return with_directory(path, directory)
