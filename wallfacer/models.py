"""
Data models and crop-geometry utilities.

Geometry, Direction and Face are the core value types shared by the
cropper, the metadata store and the editor session.  Every value is
immutable; the alignment helpers return new geometries.  The text form
``"{w}x{h}+{x}+{y}"`` round-trips through ``Geometry.parse``.
"""

import enum
from dataclasses import dataclass, replace

from wallfacer.errors import GeometryError


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class Geometry:
    """Crop rectangle in image coordinates."""
    w: int = 0
    h: int = 0
    x: int = 0
    y: int = 0

    def __str__(self):
        return f"{self.w}x{self.h}+{self.x}+{self.y}"

    @classmethod
    def parse(cls, text: str) -> "Geometry":
        """Parse ``"{w}x{h}+{x}+{y}"``."""
        size, _, offset = text.partition("+")
        parts = size.split("x") + offset.split("+")
        if len(parts) != 4:
            raise GeometryError(f"invalid geometry format: {text!r}")
        try:
            w, h, x, y = (int(p) for p in parts)
        except ValueError:
            raise GeometryError(f"invalid geometry coordinates: {text!r}") from None
        if min(w, h, x, y) < 0:
            raise GeometryError(f"negative geometry coordinates: {text!r}")
        return cls(w, h, x, y)

    def offset(self) -> str:
        """Persisted form, e.g. ``"420+0"``."""
        return f"{self.x}+{self.y}"


class Direction(enum.Enum):
    """Axis along which a crop is narrower (X) or shorter (Y) than its image."""
    X = "x"
    Y = "y"


@dataclass(frozen=True)
class Face:
    """Face bounding box as reported by the detector."""
    xmin: int
    xmax: int
    ymin: int
    ymax: int

    @classmethod
    def from_json(cls, data: dict) -> "Face":
        try:
            return cls(
                int(data["xmin"]), int(data["xmax"]),
                int(data["ymin"]), int(data["ymax"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GeometryError(f"invalid face box {data!r}: {exc}") from None

    def to_json(self) -> dict:
        return {"xmin": self.xmin, "xmax": self.xmax, "ymin": self.ymin, "ymax": self.ymax}

    def clamped(self, img_w: int, img_h: int) -> "Face":
        """Clip the box to the image bounds."""
        return Face(
            xmin=max(0, min(self.xmin, img_w)),
            xmax=max(0, min(self.xmax, img_w)),
            ymin=max(0, min(self.ymin, img_h)),
            ymax=max(0, min(self.ymax, img_h)),
        )

    def span(self, direction: Direction) -> tuple[int, int]:
        """The box interval on the given axis."""
        if direction == Direction.X:
            return min(self.xmin, self.xmax), max(self.xmin, self.xmax)
        return min(self.ymin, self.ymax), max(self.ymin, self.ymax)


# =============================================================================
# Crop math utilities
# =============================================================================
def direction(geom: Geometry, img_w: int, img_h: int) -> Direction:
    """
    Compare the crop's aspect against the image's.  A crop narrower than
    the image moves along X, a shorter one along Y.  A crop with the same
    aspect as the image resolves to X.
    """
    if geom.w * img_h > img_w * geom.h:
        return Direction.Y
    return Direction.X


def align_start(geom: Geometry, img_w: int, img_h: int) -> Geometry:
    """Anchor the crop to the top-left corner."""
    return replace(geom, x=0, y=0)


def align_center(geom: Geometry, img_w: int, img_h: int) -> Geometry:
    """Center the crop on its active axis."""
    if img_h == geom.h:
        return replace(geom, x=(img_w - geom.w) // 2, y=0)
    return replace(geom, x=0, y=(img_h - geom.h) // 2)


def align_end(geom: Geometry, img_w: int, img_h: int) -> Geometry:
    """Anchor the crop to the right or bottom edge."""
    if img_h == geom.h:
        return replace(geom, x=img_w - geom.w, y=0)
    return replace(geom, x=0, y=img_h - geom.h)


def move_by(geom: Geometry, delta: int, img_w: int, img_h: int) -> Geometry:
    """Shift the crop along its active axis, saturating at both image edges."""
    if direction(geom, img_w, img_h) == Direction.X:
        if delta < 0:
            return replace(geom, x=max(geom.x + delta, 0))
        return replace(geom, x=min(geom.x + delta, img_w - geom.w))
    if delta < 0:
        return replace(geom, y=max(geom.y + delta, 0))
    return replace(geom, y=min(geom.y + delta, img_h - geom.h))
