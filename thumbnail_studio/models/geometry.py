from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, as browsers do."""
    return int(math.floor(value + 0.5))


class CoordinateSpace(str, Enum):
    """Coordinate system a rectangle is expressed in."""

    # Rendered, possibly CSS-scaled, canvas pixels.
    DISPLAY = "display"
    # Native pixel grid of the stored image.
    TRUE = "true"


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    """
    Width/height pair of an image or of the canvas it is rendered on.

    True dimensions are always positive. Display dimensions can be zero while
    the canvas has not been laid out yet; the mask projector rejects those.
    """

    width: float
    height: float

    @property
    def is_resolved(self) -> bool:
        return self.width > 0 and self.height > 0

    def as_tuple(self) -> tuple[float, float]:
        return (self.width, self.height)


@dataclass(frozen=True, slots=True)
class Rectangle:
    """
    Axis-aligned rectangle tagged with the coordinate space it lives in.

    Width and height are never negative: drags that go up or left are
    normalized by `from_drag`.
    """

    x: float
    y: float
    width: float
    height: float
    space: CoordinateSpace

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("Rectangle width and height must be non-negative.")

    @classmethod
    def from_drag(cls, start: Point, end: Point, space: CoordinateSpace) -> "Rectangle":
        """Build the rectangle spanned by a drag from `start` to `end`."""
        return cls(
            x=min(start.x, end.x),
            y=min(start.y, end.y),
            width=abs(end.x - start.x),
            height=abs(end.y - start.y),
            space=space,
        )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def clip(self, bounds: ImageDimensions) -> "Rectangle":
        """Clip to `[0, bounds.width] x [0, bounds.height]` in the same space."""
        left = min(max(self.x, 0), bounds.width)
        top = min(max(self.y, 0), bounds.height)
        right = min(max(self.right, 0), bounds.width)
        bottom = min(max(self.bottom, 0), bounds.height)
        return replace(self, x=left, y=top, width=right - left, height=bottom - top)

    def as_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "space": self.space.value,
        }
