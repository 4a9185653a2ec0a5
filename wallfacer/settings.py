"""
Configuration persistence: load, save, and validate the user config.

The config is stored as JSON in the user's config directory (provided by
``config.config_dir()``).  On first launch the file is created from
DEFAULT_CONFIG.  Unlike a corrupt preference file, a corrupt config is
never replaced silently: its resolution list decides which columns the
metadata table keeps, so a reset would drop user crops on the next save.

The on-disk format uses a versioned envelope::

    {"version": 1, "config": {"wallpapers_dir": "...", "resolutions": [...], ...}}
"""

import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path

from wallfacer.config import CSV_FILENAME, DEFAULT_CONFIG, config_dir
from wallfacer.errors import ConfigError, GeometryError
from wallfacer.ratios import AspectRatio, closest_ratio, sort_ratios

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "config.json"
_FORMAT_VERSION = 1

_INT_KEYS = ("min_width", "min_height")
_COMMAND_KEYS = ("upscaler", "detector", "editor")


@dataclass
class WallpaperConfig:
    """Runtime configuration for one run."""
    wallpapers_dir: Path
    csv_path: Path
    min_width: int = 1920
    min_height: int = 1080
    resolutions: list[AspectRatio] = field(default_factory=list)
    upscaler: list[str] = field(default_factory=lambda: ["realcugan-ncnn-vulkan"])
    detector: list[str] = field(default_factory=lambda: ["anime-face-detector"])
    editor: list[str] = field(default_factory=lambda: ["wallpaper-ui"])
    path: Path | None = None  # file this config was loaded from

    def sorted_resolutions(self) -> list[AspectRatio]:
        return sort_ratios(self.resolutions)

    def closest_resolution(self, ratio: AspectRatio) -> AspectRatio | None:
        return closest_ratio(ratio, self.resolutions)

    def add_resolution(self, name: str, ratio: AspectRatio) -> bool:
        """Register *ratio* under *name*.  Returns False if it was already present."""
        if ratio in self.resolutions:
            return False
        self.resolutions.append(AspectRatio(ratio.w, ratio.h, name or ratio.key()))
        return True

    def to_dict(self) -> dict:
        return {
            "wallpapers_dir": str(self.wallpapers_dir),
            "csv_path": str(self.csv_path),
            "min_width": self.min_width,
            "min_height": self.min_height,
            "resolutions": [{"name": r.name, "ratio": r.key()} for r in self.resolutions],
            "upscaler": list(self.upscaler),
            "detector": list(self.detector),
            "editor": list(self.editor),
        }


# =============================================================================
# Validation
# =============================================================================
def validate_config(data: object) -> list[str]:
    """
    Validate a config data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Config must be a dict")
        return errors

    wall_dir = data.get("wallpapers_dir")
    if not isinstance(wall_dir, str) or not wall_dir.strip():
        errors.append("wallpapers_dir must be a non-empty string")

    csv_path = data.get("csv_path")
    if csv_path is not None and (not isinstance(csv_path, str) or not csv_path.strip()):
        errors.append("csv_path must be a non-empty string or null")

    for key in _INT_KEYS:
        val = data.get(key)
        if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
            errors.append(f"{key} must be a positive integer, got {val!r}")

    for key in _COMMAND_KEYS:
        val = data.get(key)
        if not isinstance(val, list) or not val or not all(isinstance(v, str) and v for v in val):
            errors.append(f"{key} must be a non-empty list of strings, got {val!r}")

    resolutions = data.get("resolutions")
    if not isinstance(resolutions, list) or not resolutions:
        errors.append("resolutions must be a non-empty list")
        return errors

    seen: dict[AspectRatio, str] = {}
    for i, entry in enumerate(resolutions):
        prefix = f"Resolution #{i + 1}"
        if not isinstance(entry, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")

        try:
            ratio = AspectRatio.parse(entry.get("ratio"))
        except (GeometryError, TypeError):
            errors.append(f"{prefix}: invalid ratio {entry.get('ratio')!r}")
            continue

        if ratio in seen:
            errors.append(f"{prefix} ('{name}'): ratio {ratio} duplicates '{seen[ratio]}'")
        else:
            seen[ratio] = name

    return errors


def _from_dict(data: dict, path: Path | None) -> WallpaperConfig:
    wall_dir = Path(data["wallpapers_dir"]).expanduser()
    csv_path = data.get("csv_path")
    return WallpaperConfig(
        wallpapers_dir=wall_dir,
        csv_path=Path(csv_path).expanduser() if csv_path else wall_dir / CSV_FILENAME,
        min_width=data["min_width"],
        min_height=data["min_height"],
        resolutions=[AspectRatio.parse(r["ratio"], r["name"]) for r in data["resolutions"]],
        upscaler=list(data["upscaler"]),
        detector=list(data["detector"]),
        editor=list(data["editor"]),
        path=path,
    )


# =============================================================================
# Load / Save
# =============================================================================
def _config_path() -> Path:
    """Return the full path to config.json."""
    return config_dir() / _CONFIG_FILENAME


def load_config(path: Path | None = None) -> WallpaperConfig:
    """
    Load the configuration from config.json.

    If the file is missing, writes the defaults and returns them.  Raises
    ConfigError if the file cannot be read or fails validation.
    """
    path = path or _config_path()

    if not path.exists():
        logger.info("config.json not found, creating with defaults at %s", path)
        _write_defaults(path)
        return _from_dict(deepcopy(DEFAULT_CONFIG), path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc

    if not isinstance(raw, dict) or "version" not in raw or "config" not in raw:
        raise ConfigError(f"{path} is missing its version envelope")

    data = raw["config"]
    errors = validate_config(data)
    if errors:
        raise ConfigError(f"invalid config {path}:\n  " + "\n  ".join(errors))

    cfg = _from_dict(data, path)
    logger.debug("Loaded config with %d resolution(s) from %s", len(cfg.resolutions), path)
    return cfg


def save_config(cfg: WallpaperConfig, path: Path | None = None) -> None:
    """
    Validate and write the config in its versioned envelope.

    Raises ConfigError if validation fails or the file cannot be written.
    """
    data = cfg.to_dict()
    errors = validate_config(data)
    if errors:
        raise ConfigError("Invalid config:\n  " + "\n  ".join(errors))

    path = path or cfg.path or _config_path()
    envelope = {"version": _FORMAT_VERSION, "config": data}
    try:
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not write {path}: {exc}") from exc
    logger.info("Saved config with %d resolution(s) to %s", len(cfg.resolutions), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_CONFIG to the given path in versioned envelope."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        envelope = {"version": _FORMAT_VERSION, "config": deepcopy(DEFAULT_CONFIG)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default config to %s: %s", path, exc)
