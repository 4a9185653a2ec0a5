"""
Aspect-ratio value type and helpers.

An ``AspectRatio`` is an immutable ``w:h`` pair with an optional display
name.  Two ratios compare equal when their float values agree within
``RATIO_EPSILON``; the name never takes part in comparison, so ``16x9``
and ``32x18`` are the same ratio.  The text form ``"16x9"`` is what the
metadata table uses as a column header.
"""

import math
import re
from dataclasses import dataclass, field
from math import gcd

from wallfacer.config import RATIO_EPSILON
from wallfacer.errors import GeometryError

_RATIO_RE = re.compile(r"^\s*(\d+)\s*[x:]\s*(\d+)\s*$")


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (21, 9) → (7, 3)"""
    g = gcd(w, h)
    return w // g, h // g


@dataclass(frozen=True, eq=False)
class AspectRatio:
    """Named target width:height ratio."""
    w: int
    h: int
    name: str = field(default="")

    def __post_init__(self):
        if self.w <= 0 or self.h <= 0:
            raise GeometryError(f"aspect ratio must be positive, got {self.w}x{self.h}")
        if not self.name:
            object.__setattr__(self, "name", f"{self.w}x{self.h}")

    @classmethod
    def parse(cls, text: str, name: str = "") -> "AspectRatio":
        """Parse ``"16x9"`` or ``"16:9"``."""
        match = _RATIO_RE.match(text or "")
        if match is None:
            raise GeometryError(f"invalid aspect ratio: {text!r}")
        return cls(int(match.group(1)), int(match.group(2)), name)

    @property
    def value(self) -> float:
        return self.w / self.h

    def key(self) -> str:
        """Text form used for persistence, e.g. ``"16x9"``."""
        return f"{self.w}x{self.h}"

    def __float__(self) -> float:
        return self.value

    def __eq__(self, other):
        if not isinstance(other, AspectRatio):
            return NotImplemented
        return math.isclose(self.value, other.value, rel_tol=RATIO_EPSILON)

    def __hash__(self):
        return hash(normalize_ratio(self.w, self.h))

    def __str__(self):
        return self.key()


def sort_ratios(ratios: list[AspectRatio]) -> list[AspectRatio]:
    """Ratios in ascending order of their float value."""
    return sorted(ratios, key=lambda r: r.value)


def closest_ratio(target: AspectRatio, ratios: list[AspectRatio]) -> AspectRatio | None:
    """
    Return the ratio in *ratios* nearest to *target*, ignoring any that
    are equal to it.  ``None`` if nothing else is available.
    """
    others = [r for r in ratios if r != target]
    if not others:
        return None
    return min(others, key=lambda r: abs(r.value - target.value))
