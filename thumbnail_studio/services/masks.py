"""
Projection of on-screen selections into inpainting masks.

Selections are always captured in display space (the rendered, possibly
CSS-scaled canvas) and projected into the image's true pixel space exactly
once, here. The resulting mask is a single-channel uint8 bitmap with the
image's true dimensions: 255 marks the region the model may repaint, 0 marks
pixels it must preserve.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from thumbnail_studio.models.geometry import (
    CoordinateSpace,
    ImageDimensions,
    Rectangle,
    round_half_up,
)
from thumbnail_studio.services.data_uri import image_to_data_uri
from thumbnail_studio.services.errors import (
    CoordinateSpaceError,
    DegenerateSelection,
    InvalidDimension,
    UnresolvedCanvas,
)

logger = logging.getLogger(__name__)

PRESERVE = 0
EDIT = 255


@dataclass(frozen=True, slots=True)
class Mask:
    """Binary mask in true pixel space plus the rectangle it was drawn from."""

    pixels: np.ndarray
    region: Rectangle

    @property
    def size(self) -> ImageDimensions:
        height, width = self.pixels.shape[:2]
        return ImageDimensions(width=width, height=height)


def _check_finite(what: str, *values: float) -> None:
    if not all(math.isfinite(value) for value in values):
        raise InvalidDimension(f"{what} must be finite numbers.", details=f"Got {values}.")


def _check_true_size(true_size: ImageDimensions) -> None:
    _check_finite("Image dimensions", true_size.width, true_size.height)
    if true_size.width <= 0 or true_size.height <= 0:
        raise InvalidDimension(
            f"Invalid image size {true_size.width}x{true_size.height}",
            details="The source image must have positive pixel dimensions.",
        )
    if int(true_size.width) != true_size.width or int(true_size.height) != true_size.height:
        raise InvalidDimension("Image pixel dimensions must be whole numbers.")


def project_selection(
    selection: Rectangle,
    display_size: ImageDimensions,
    true_size: ImageDimensions,
) -> Rectangle:
    """
    Map a display-space selection onto the true pixel grid.

    Horizontal and vertical scale factors are computed independently, so a
    canvas rendered at a different aspect ratio than the stored image is
    handled. The projected rectangle is clipped to the image bounds.

    Raises:
        CoordinateSpaceError: if `selection` is not in display space.
        UnresolvedCanvas: if the canvas has a zero display dimension.
        InvalidDimension: if the true size is not a positive pixel size, or any
            coordinate is infinite or NaN.
        DegenerateSelection: if nothing is left to edit after projection.
    """
    if selection.space is not CoordinateSpace.DISPLAY:
        raise CoordinateSpaceError(
            f"Selections must be captured in display space, got {selection.space.value!r}."
        )
    _check_finite("Selection coordinates", selection.x, selection.y, selection.width, selection.height)
    _check_finite("Display dimensions", display_size.width, display_size.height)
    if not display_size.is_resolved:
        raise UnresolvedCanvas(
            "Canvas has not been rendered yet",
            details=f"Display size is {display_size.width}x{display_size.height}.",
        )
    _check_true_size(true_size)
    if selection.is_degenerate:
        raise DegenerateSelection("Selection must have a non-zero width and height.")

    scale_x = true_size.width / display_size.width
    scale_y = true_size.height / display_size.height

    projected = Rectangle(
        x=round_half_up(selection.x * scale_x),
        y=round_half_up(selection.y * scale_y),
        width=round_half_up(selection.width * scale_x),
        height=round_half_up(selection.height * scale_y),
        space=CoordinateSpace.TRUE,
    ).clip(true_size)

    if projected.is_degenerate:
        raise DegenerateSelection(
            "Selection lies outside the image.",
            details=f"Projected selection: {projected.as_dict()}",
        )
    return projected


def render_mask(region: Rectangle, true_size: ImageDimensions) -> Mask:
    """Rasterize a true-space rectangle into a black mask with a white hole."""
    if region.space is not CoordinateSpace.TRUE:
        raise CoordinateSpaceError("Masks can only be rendered from true-space rectangles.")
    _check_true_size(true_size)

    width, height = int(true_size.width), int(true_size.height)
    pixels = np.full((height, width), PRESERVE, dtype=np.uint8)
    if not region.is_degenerate:
        # cv2.rectangle treats the second corner as inclusive.
        cv2.rectangle(
            pixels,
            (int(region.x), int(region.y)),
            (int(region.right) - 1, int(region.bottom) - 1),
            color=EDIT,
            thickness=cv2.FILLED,
        )
    return Mask(pixels=pixels, region=region)


def build_mask(
    selection: Rectangle,
    display_size: ImageDimensions,
    true_size: ImageDimensions,
) -> Mask:
    """Project a display-space selection and rasterize it as a true-size mask."""
    region = project_selection(selection, display_size, true_size)
    mask = render_mask(region, true_size)
    logger.info(
        f"Built mask {int(true_size.width)}x{int(true_size.height)} "
        f"from display {display_size.width}x{display_size.height}, "
        f"region {region.as_dict()}, coverage {mask_coverage(mask):.1%}"
    )
    return mask


def mask_coverage(mask: Mask) -> float:
    """Fraction of pixels the model is allowed to repaint."""
    return float(np.count_nonzero(mask.pixels)) / mask.pixels.size


def mask_to_image(mask: Mask) -> Image.Image:
    # A 2-D uint8 array maps to a grayscale ("L") image.
    return Image.fromarray(mask.pixels)


def mask_to_data_uri(mask: Mask) -> str:
    """Encode the mask as a grayscale PNG data URI."""
    return image_to_data_uri(mask_to_image(mask), format="PNG")
