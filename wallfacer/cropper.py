"""
Face-aware crop candidates.

A ``Cropper`` is built from an image's dimensions and its detected faces.
For any aspect ratio it fits the largest crop inside the image, then
proposes positions along the crop's active axis:

1. centered on the bounding interval of all faces,
2. centered on each face, in detection order,
3. centered on the image.

Duplicates are removed while keeping that order, so the first candidate
is stable across runs and serves as the default crop.  Without faces the
only candidate is the centered crop.
"""

from wallfacer.errors import ImageTooSmallError
from wallfacer.models import Direction, Face, Geometry, align_center, direction
from wallfacer.ratios import AspectRatio


class Cropper:
    def __init__(self, faces: list[Face], width: int, height: int):
        if width <= 0 or height <= 0:
            raise ImageTooSmallError(f"invalid image dimensions {width}x{height}")
        self.width = width
        self.height = height
        # Out-of-bounds boxes are clipped, not rejected
        self.faces = [face.clamped(width, height) for face in faces]

    def crop_dimensions(self, ratio: AspectRatio) -> tuple[int, int]:
        """Largest ``(w, h)`` of the given ratio that fits inside the image."""
        if self.width * ratio.h > self.height * ratio.w:
            # Image is wider than the ratio: full height
            w, h = self.height * ratio.w // ratio.h, self.height
        else:
            w, h = self.width, self.width * ratio.h // ratio.w
        if w <= 0 or h <= 0:
            raise ImageTooSmallError(
                f"image {self.width}x{self.height} is too small for ratio {ratio}"
            )
        return w, h

    def direction(self, ratio: AspectRatio) -> Direction:
        w, h = self.crop_dimensions(ratio)
        return direction(Geometry(w, h), self.width, self.height)

    def clamp(self, start: float, axis: Direction, w: int, h: int) -> Geometry:
        """
        Place a ``w`` x ``h`` crop starting at *start* on *axis*, clipped to
        ``[0, image_dim - crop_dim]``.  The other axis is pinned to 0.
        """
        if axis == Direction.X:
            x = int(max(0.0, min(start, float(self.width - w))))
            return Geometry(w, h, x, 0)
        y = int(max(0.0, min(start, float(self.height - h))))
        return Geometry(w, h, 0, y)

    def _centered_on(self, center: float, axis: Direction, w: int, h: int) -> Geometry:
        length = w if axis == Direction.X else h
        return self.clamp(center - length / 2, axis, w, h)

    def crop_candidates(self, ratio: AspectRatio) -> list[Geometry]:
        """Ranked, deduplicated crops for *ratio*; the first is the default."""
        w, h = self.crop_dimensions(ratio)
        default = align_center(Geometry(w, h), self.width, self.height)

        if not self.faces:
            return [default]

        axis = direction(default, self.width, self.height)
        spans = [face.span(axis) for face in self.faces]

        candidates = []
        lo = min(start for start, _ in spans)
        hi = max(end for _, end in spans)
        candidates.append(self._centered_on((lo + hi) / 2, axis, w, h))
        for start, end in spans:
            candidates.append(self._centered_on((start + end) / 2, axis, w, h))
        image_len = self.width if axis == Direction.X else self.height
        candidates.append(self._centered_on(image_len / 2, axis, w, h))

        return list(dict.fromkeys(candidates))

    def crop(self, ratio: AspectRatio) -> Geometry:
        """Default crop for *ratio*."""
        return self.crop_candidates(ratio)[0]
