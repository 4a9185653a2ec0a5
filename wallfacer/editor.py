"""
Editor session: the geometry and metadata contract the crop editor uses.

The session holds the list of files being reviewed, the last-saved
("source") record of the current file and a working ("current") copy.
A resolution counts as modified when the two disagree.  Rendering and
input handling live in the editor itself; nothing here draws.
"""

import logging
import math
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path

from wallfacer.config import RATIO_EPSILON
from wallfacer.errors import StoreError
from wallfacer.models import Geometry, align_center, align_end, align_start, move_by
from wallfacer.ratios import AspectRatio
from wallfacer.wallpapers import WallInfo, WallpaperStore

logger = logging.getLogger(__name__)


@dataclass
class EditorSession:
    store: WallpaperStore
    files: list[Path]
    source: WallInfo | None
    current: WallInfo | None
    ratio: AspectRatio
    resolutions: list[AspectRatio] = field(default_factory=list)
    index: int = 0

    @classmethod
    def open(
        cls, store: WallpaperStore, files: list[Path], resolutions: list[AspectRatio],
    ) -> "EditorSession":
        """Start a session on the first of *files*.  The table must already exist."""
        store.load(required=True)
        if not files:
            raise StoreError("no wallpapers to edit")
        if not resolutions:
            raise StoreError("no resolutions configured")
        loaded = cls._lookup(store, files[0].name)
        return cls(
            store=store,
            files=list(files),
            source=loaded,
            current=deepcopy(loaded),
            ratio=resolutions[0],
            resolutions=list(resolutions),
        )

    @staticmethod
    def _lookup(store: WallpaperStore, fname: str) -> WallInfo:
        info = store.get(fname)
        if info is None:
            raise StoreError(f"could not get wallpaper info for {fname}")
        return info

    def _load_index(self, index: int) -> None:
        if not self.files:
            raise StoreError("no wallpapers left to edit")
        self.index = index
        loaded = self._lookup(self.store, self.files[index].name)
        self.source = loaded
        self.current = deepcopy(loaded)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------
    def prev_wall(self) -> None:
        # loop back to the last wallpaper
        self._load_index(self.index - 1 if self.index > 0 else len(self.files) - 1)

    def next_wall(self) -> None:
        # loop back to the first wallpaper
        self._load_index(self.index + 1 if self.index < len(self.files) - 1 else 0)

    def remove(self) -> None:
        """
        Drop the current wallpaper from the list and show the next one.
        Removing the last one leaves nothing open.
        """
        if not self.files:
            raise StoreError("no wallpapers left to edit")
        current_index = self.index
        self.files.pop(current_index)
        if self.files:
            self._load_index(min(current_index, len(self.files) - 1))
        else:
            self.index = 0
            self.source = None
            self.current = None

    def set_from_filename(self, fname: str) -> None:
        for i, f in enumerate(self.files):
            if f.name == fname:
                self._load_index(i)
                return
        raise StoreError(f"could not find wallpaper: {fname}")

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------
    def get_geometry(self, ratio: AspectRatio | None = None) -> Geometry:
        """Crop for *ratio* (default: the selected ratio) in the working copy."""
        return self.current.get_geometry(ratio or self.ratio)

    def set_geometry(self, ratio: AspectRatio, geom: Geometry) -> None:
        self.current.set_geometry(ratio, geom)

    def crop_candidates(self) -> list[Geometry]:
        return self.current.cropper().crop_candidates(self.ratio)

    def candidate_geometries(self) -> list[Geometry]:
        return list(dict.fromkeys(self.crop_candidates()))

    def move_geometry_by(self, delta: int) -> Geometry:
        return move_by(self.get_geometry(), delta, *self.current.image_dimensions())

    def align_start(self) -> Geometry:
        return align_start(self.get_geometry(), *self.current.image_dimensions())

    def align_center(self) -> Geometry:
        return align_center(self.get_geometry(), *self.current.image_dimensions())

    def align_end(self) -> Geometry:
        return align_end(self.get_geometry(), *self.current.image_dimensions())

    def image_ratios(self) -> list[tuple[str, AspectRatio, bool]]:
        """
        ``(name, ratio, modified)`` for every resolution worth editing.

        Resolutions with the image's own aspect are left out, since they
        allow only one crop.
        """
        img_ratio = self.current.width / self.current.height
        return [
            (ratio.name, ratio, self.current.get_geometry(ratio) != self.source.get_geometry(ratio))
            for ratio in self.resolutions
            if not math.isclose(img_ratio, ratio.value, rel_tol=RATIO_EPSILON)
        ]

    def save(self) -> None:
        """Persist the working copy and make it the new source."""
        if self.current is None:
            raise StoreError("no wallpaper open")
        self.store.insert(self.current.filename, deepcopy(self.current))
        self.store.save(self.resolutions)
        self.source = deepcopy(self.current)
        logger.info("Saved crops for %s", self.current.filename)
