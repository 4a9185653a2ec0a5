"""
Persistent wallpaper metadata: one row per image in a CSV table.

Rows are keyed by filename.  The table is loaded wholesale, mutated in
memory, and rewritten wholesale on save; there is a single writer per run
and no locking.

On-disk layout::

    filename,width,height,faces,16x9,21x9,wallust
    a.png,3840,2160,"[{""xmin"": 10, ...}]",0+0,0+537,

Each ratio column holds only the crop offset ``"{x}+{y}"``.  Width and
height are implied by the column's ratio and the row's image dimensions,
and are reconstructed on load through the cropper; the full
``"{w}x{h}+{x}+{y}"`` form is accepted as well.  An empty cell means the
image has no crop for that ratio yet.
"""

import csv
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from wallfacer.cropper import Cropper
from wallfacer.errors import GeometryError, ImageTooSmallError, StoreError
from wallfacer.image_io import compute_fingerprint
from wallfacer.models import Direction, Face, Geometry, direction
from wallfacer.ratios import AspectRatio

logger = logging.getLogger(__name__)

_FIXED_COLUMNS = ("filename", "width", "height", "faces")
_WALLUST_COLUMN = "wallust"


# =============================================================================
# Data classes
# =============================================================================
@dataclass
class WallInfo:
    """Dimensions, faces and per-ratio crops for one image."""
    filename: str
    width: int
    height: int
    faces: list[Face] = field(default_factory=list)
    geometries: dict[AspectRatio, Geometry] = field(default_factory=dict)
    wallust: str = ""

    def image_dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    def cropper(self) -> Cropper:
        return Cropper(self.faces, self.width, self.height)

    def direction(self, geom: Geometry) -> Direction:
        return direction(geom, self.width, self.height)

    def get_geometry(self, ratio: AspectRatio) -> Geometry:
        """Stored crop for *ratio*, or the default crop if none is stored."""
        geom = self.geometries.get(ratio)
        if geom is None:
            return self.cropper().crop(ratio)
        return geom

    def set_geometry(self, ratio: AspectRatio, geom: Geometry) -> None:
        self.geometries[ratio] = geom

    def with_geometry(self, ratio: AspectRatio, geom: Geometry) -> "WallInfo":
        """Copy of this record with *geom* stored for *ratio*."""
        return replace(self, geometries={**self.geometries, ratio: geom})

    def is_default_crops(self, ratios: list[AspectRatio]) -> bool:
        """True if every crop in *ratios* is still the cropper's default."""
        cropper = self.cropper()
        return all(self.get_geometry(r) == cropper.crop(r) for r in ratios)

    def path(self, wallpapers_dir: Path) -> Path:
        return Path(wallpapers_dir) / self.filename


# =============================================================================
# Serialization helpers
# =============================================================================
def _faces_to_cell(faces: list[Face]) -> str:
    return json.dumps([f.to_json() for f in faces], separators=(",", ":"))


def _cell_to_faces(cell: str) -> list[Face]:
    if not cell.strip():
        return []
    try:
        data = json.loads(cell)
    except json.JSONDecodeError as exc:
        raise StoreError(f"invalid faces column {cell!r}: {exc}") from exc
    if not isinstance(data, list):
        raise StoreError(f"faces column must be a list, got {cell!r}")
    return [Face.from_json(face) for face in data]


def _cell_to_geometry(cell: str, ratio: AspectRatio, width: int, height: int) -> Geometry:
    """Parse ``"{x}+{y}"`` (size implied by *ratio*) or the full geometry form."""
    if "x" in cell:
        return Geometry.parse(cell)
    w, h = Cropper([], width, height).crop_dimensions(ratio)
    return Geometry.parse(f"{w}x{h}+{cell}")


# =============================================================================
# Store
# =============================================================================
class WallpaperStore:
    """Filename-keyed metadata table backed by a CSV file."""

    def __init__(self, csv_path: Path, wallpapers_dir: Path | None = None):
        self.csv_path = Path(csv_path)
        self.wallpapers_dir = Path(wallpapers_dir) if wallpapers_dir else self.csv_path.parent
        self._rows: dict[str, WallInfo] = {}

    def __len__(self):
        return len(self._rows)

    def __contains__(self, filename: str):
        return filename in self._rows

    def items(self):
        return self._rows.items()

    def load(self, required: bool = False) -> "WallpaperStore":
        """
        Read the whole table from disk, replacing anything in memory.

        A missing file yields an empty table, unless *required* is set (the
        editor cannot work without existing entries), in which case
        StoreError is raised.
        """
        if not self.csv_path.exists():
            if required:
                raise StoreError(f"wallpaper metadata not found at {self.csv_path}")
            logger.debug("No metadata found at %s, starting fresh", self.csv_path)
            self._rows = {}
            return self

        rows: dict[str, WallInfo] = {}
        try:
            with open(self.csv_path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f)
                ratio_columns = self._ratio_columns(reader.fieldnames or [])
                for line_no, row in enumerate(reader, start=2):
                    info = self._parse_row(row, ratio_columns, line_no)
                    rows[info.filename] = info
        except OSError as exc:
            raise StoreError(f"could not read {self.csv_path}: {exc}") from exc

        self._rows = rows
        logger.info("Loaded %d wallpaper(s) from %s", len(rows), self.csv_path)
        return self

    def _ratio_columns(self, fieldnames: list[str]) -> dict[str, AspectRatio]:
        missing = [c for c in _FIXED_COLUMNS if c not in fieldnames]
        if missing:
            raise StoreError(f"{self.csv_path} is missing columns: {', '.join(missing)}")
        columns = {}
        for name in fieldnames:
            if name in _FIXED_COLUMNS or name == _WALLUST_COLUMN:
                continue
            try:
                columns[name] = AspectRatio.parse(name)
            except GeometryError as exc:
                raise StoreError(f"{self.csv_path}: unknown column {name!r}") from exc
        return columns

    def _parse_row(self, row: dict, ratio_columns: dict[str, AspectRatio], line_no: int) -> WallInfo:
        try:
            width = int(row["width"])
            height = int(row["height"])
            info = WallInfo(
                filename=row["filename"],
                width=width,
                height=height,
                faces=_cell_to_faces(row["faces"] or ""),
                wallust=row.get(_WALLUST_COLUMN) or "",
            )
            for column, ratio in ratio_columns.items():
                cell = (row.get(column) or "").strip()
                if cell:
                    info.geometries[ratio] = _cell_to_geometry(cell, ratio, width, height)
        except (ValueError, TypeError, ImageTooSmallError) as exc:
            raise StoreError(f"{self.csv_path}:{line_no}: {exc}") from exc
        return info

    def get(self, filename: str) -> WallInfo | None:
        return self._rows.get(filename)

    def insert(self, filename: str, info: WallInfo) -> None:
        """Add or replace the row for *filename*."""
        self._rows[filename] = info

    def save(self, resolutions: list[AspectRatio]) -> None:
        """
        Rewrite the whole table.  Ratio columns follow *resolutions* in
        order; crops for ratios not listed are not written.
        """
        fieldnames = [*_FIXED_COLUMNS, *(r.key() for r in resolutions), _WALLUST_COLUMN]
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.csv_path, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                for filename in sorted(self._rows):
                    info = self._rows[filename]
                    row = {
                        "filename": info.filename,
                        "width": info.width,
                        "height": info.height,
                        "faces": _faces_to_cell(info.faces),
                        _WALLUST_COLUMN: info.wallust,
                    }
                    for ratio in resolutions:
                        geom = info.geometries.get(ratio)
                        row[ratio.key()] = geom.offset() if geom is not None else ""
                    writer.writerow(row)
        except OSError as exc:
            raise StoreError(f"could not write {self.csv_path}: {exc}") from exc
        logger.info("Saved %d wallpaper(s) to %s", len(self._rows), self.csv_path)

    def find_duplicates(self) -> list[list[str]]:
        """
        Group known images whose files have identical content.

        Read-only; each group is logged as a warning.  Rows whose file is
        missing from the wallpapers directory are skipped.
        """
        by_fingerprint: dict[str, list[str]] = {}
        for filename in sorted(self._rows):
            path = self.wallpapers_dir / filename
            if not path.is_file():
                continue
            by_fingerprint.setdefault(compute_fingerprint(path), []).append(filename)

        duplicates = [names for names in by_fingerprint.values() if len(names) > 1]
        for names in duplicates:
            logger.warning("Duplicate wallpapers: %s", ", ".join(names))
        return duplicates
