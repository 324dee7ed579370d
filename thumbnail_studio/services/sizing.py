"""
Aspect-ratio preserving dimension snapping.

The inpainting model only accepts edge lengths from a fixed lattice of
multiples of 64. Requested sizes are snapped onto that lattice in a way that
minimizes aspect-ratio distortion rather than absolute pixel distance.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence, Tuple

from thumbnail_studio.models.geometry import round_half_up
from thumbnail_studio.services.errors import InvalidDimension

logger = logging.getLogger(__name__)

SIZE_LATTICE: Tuple[int, ...] = (
    64, 128, 192, 256, 320, 384, 448, 512,
    576, 640, 704, 768, 832, 896, 960, 1024,
)


def nearest_lattice_value(value: float, lattice: Sequence[int] = SIZE_LATTICE) -> int:
    """
    Return the lattice value closest to `value`.

    The lattice is scanned in ascending order and only a strictly smaller
    distance replaces the current best, so ties go to the smaller value.
    """
    best = lattice[0]
    for candidate in lattice[1:]:
        if abs(candidate - value) < abs(best - value):
            best = candidate
    return best


def _validate(width: float, height: float) -> None:
    for name, value in (("width", width), ("height", height)):
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
            raise InvalidDimension(
                f"Invalid {name}: {value!r}",
                details="Width and height must be positive, finite numbers.",
            )


def snap_dimensions(width: float, height: float) -> Tuple[int, int]:
    """
    Snap `(width, height)` onto the size lattice.

    Two candidates are built: one anchored on the nearest lattice width, one
    anchored on the nearest lattice height. The candidate whose height/width
    ratio is closest to the requested ratio wins; on a tie the width-anchored
    candidate is kept.

    Raises:
        InvalidDimension: if either side is zero, negative or not finite.
    """
    _validate(width, height)
    ratio = height / width

    # Width-first candidate.
    nearest_width = nearest_lattice_value(width)
    scaled_height = round_half_up(nearest_width * height / width)
    width_first = (nearest_width, nearest_lattice_value(scaled_height))

    # Height-first candidate.
    nearest_height = nearest_lattice_value(height)
    width_from_height = round_half_up(nearest_height * width / height)
    height_first = (nearest_lattice_value(width_from_height), nearest_height)

    width_first_error = abs(width_first[1] / width_first[0] - ratio)
    height_first_error = abs(height_first[1] / height_first[0] - ratio)

    chosen = height_first if height_first_error < width_first_error else width_first
    logger.debug(
        f"Snapped {width}x{height} -> {chosen[0]}x{chosen[1]} "
        f"(width-first error {width_first_error:.4f}, height-first error {height_first_error:.4f})"
    )
    return chosen
