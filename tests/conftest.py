import sys
from pathlib import Path

import pytest
from PIL import Image

from wallfacer.ratios import AspectRatio
from wallfacer.settings import WallpaperConfig


def write_image(path: Path, width: int, height: int, color=(40, 80, 120)) -> Path:
    """Create a solid RGB image on disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color).save(path)
    return path


def write_script(path: Path, body: str) -> list[str]:
    """Write a Python script and return the argv prefix that runs it."""
    path.write_text(body, encoding="utf-8")
    return [sys.executable, str(path)]


@pytest.fixture
def wall_dir(tmp_path) -> Path:
    d = tmp_path / "walls"
    d.mkdir()
    return d


@pytest.fixture
def cfg(tmp_path, wall_dir) -> WallpaperConfig:
    return WallpaperConfig(
        wallpapers_dir=wall_dir,
        csv_path=wall_dir / "wallpapers.csv",
        min_width=1000,
        min_height=900,
        resolutions=[AspectRatio(16, 9, "HD"), AspectRatio(1, 1, "Square")],
        editor=["wallpaper-ui-test"],
        path=tmp_path / "config.json",
    )
