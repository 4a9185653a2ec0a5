"""
Application constants and configuration directory.

DEFAULT_CONFIG provides the built-in fallback written on first launch.
Runtime configuration is loaded from config.json via the settings module.
All other constants control image discovery, upscaling limits and the
external tools the pipeline drives.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "wallfacer"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# DEFAULT CONFIG: written when config.json is missing
# =============================================================================
DEFAULT_RESOLUTIONS = [
    {"name": "HD", "ratio": "16x9"},
    {"name": "Ultrawide", "ratio": "21x9"},
    {"name": "Vertical", "ratio": "9x16"},
    {"name": "Square", "ratio": "1x1"},
]

DEFAULT_CONFIG = {
    "wallpapers_dir": str(Path.home() / "Pictures" / "Wallpapers"),
    "csv_path": None,  # None means <wallpapers_dir>/wallpapers.csv
    "min_width": 1920,
    "min_height": 1080,
    "resolutions": DEFAULT_RESOLUTIONS,
    "upscaler": ["realcugan-ncnn-vulkan"],
    "detector": ["anime-face-detector"],
    "editor": ["wallpaper-ui"],
}

CSV_FILENAME = "wallpapers.csv"

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".psd"}

# Output formats accepted by --format, mapped to their optimizer
OUTPUT_FORMATS = ["jpg", "jpeg", "png", "webp"]

# Upscale factors tried in order when an image is below the minimum size
SCALE_FACTORS = range(1, 5)

# Poll interval (seconds) while waiting for another process to write a file
WAIT_POLL_INTERVAL = 0.2

# Tolerance for comparing aspect ratios as floats
RATIO_EPSILON = 1e-9
