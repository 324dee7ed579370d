from typing import List

from pydantic import BaseModel, ConfigDict, Field, PositiveInt
from pydantic.alias_generators import to_camel

from thumbnail_studio.models.geometry import CoordinateSpace, ImageDimensions, Point, Rectangle
from thumbnail_studio.models.sessions import SessionStatus


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire, as the browser client sends them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class GenerateRequest(CamelModel):
    """Text-to-image request."""

    prompt: str | None = Field(default=None, description="What the thumbnail should show.")


class GenerateResponse(CamelModel):
    image_url: str = Field(..., description="URL of the generated image.")
    id: str = Field(..., description="Identifier of the thumbnail log record.")


class EditRequest(CamelModel):
    """Inpainting request: the white area of `mask` is repainted following `prompt`."""

    prompt: str | None = Field(default=None, description="Description of the change to make.")
    image: str | None = Field(default=None, description="Source image as a data URI or URL.")
    mask: str | None = Field(
        default=None,
        description="PNG data URI with the source image's dimensions; white = edit, black = preserve.",
    )
    width: PositiveInt | None = Field(
        default=None, description="Source width; snapped to the model's size lattice. Requires `height`."
    )
    height: PositiveInt | None = Field(
        default=None, description="Source height; snapped to the model's size lattice. Requires `width`."
    )


class EditResponse(CamelModel):
    image_url: str = Field(..., description="URL of the edited image.")


class SaveMaskRequest(CamelModel):
    mask_data: str | None = Field(default=None, description="Mask as a PNG data URI.")
    timestamp: float | None = Field(
        default=None,
        description="Client timestamp (ms) used in the file name; defaults to the server time.",
    )


class SaveMaskResponse(CamelModel):
    success: bool = True
    path: str = Field(..., description="Served path of the stored preview.")


class SizePayload(CamelModel):
    """A width/height pair. Zero means 'not rendered yet' for display sizes."""

    width: float = Field(..., description="Width in pixels.")
    height: float = Field(..., description="Height in pixels.")

    def to_dimensions(self) -> ImageDimensions:
        return ImageDimensions(width=self.width, height=self.height)

    @classmethod
    def from_dimensions(cls, dimensions: ImageDimensions) -> "SizePayload":
        return cls(width=dimensions.width, height=dimensions.height)


class SnappedSize(CamelModel):
    width: int = Field(..., description="Lattice width.")
    height: int = Field(..., description="Lattice height.")


class PointPayload(CamelModel):
    x: float
    y: float

    def to_point(self) -> Point:
        return Point(x=self.x, y=self.y)


class RectanglePayload(CamelModel):
    """Axis-aligned rectangle in display pixels."""

    x: float = Field(..., description="Left edge.")
    y: float = Field(..., description="Top edge.")
    width: float = Field(..., ge=0, description="Width, never negative.")
    height: float = Field(..., ge=0, description="Height, never negative.")

    def to_rectangle(self, space: CoordinateSpace = CoordinateSpace.DISPLAY) -> Rectangle:
        return Rectangle(x=self.x, y=self.y, width=self.width, height=self.height, space=space)


class RectangleOut(RectanglePayload):
    space: CoordinateSpace = Field(..., description="Coordinate space the rectangle is expressed in.")

    @classmethod
    def from_rectangle(cls, rectangle: Rectangle) -> "RectangleOut":
        return cls(
            x=rectangle.x,
            y=rectangle.y,
            width=rectangle.width,
            height=rectangle.height,
            space=rectangle.space,
        )


class MaskRequest(CamelModel):
    """Project a display-space selection onto the image's true pixel grid."""

    selection: RectanglePayload
    display_size: SizePayload = Field(..., description="Rendered canvas size.")
    true_size: SizePayload = Field(..., description="Native pixel size of the image.")


class MaskResponse(CamelModel):
    mask: str = Field(..., description="PNG data URI of the mask, sized like the image.")
    rectangle: RectangleOut = Field(..., description="White region in true pixel space.")
    coverage: float = Field(..., description="Fraction of the image that may be repainted.")


class ThumbnailOut(CamelModel):
    id: str
    prompt: str
    image_url: str
    created_at: str = Field(..., description="Creation timestamp in ISO 8601 format (UTC).")


class SessionCreateRequest(CamelModel):
    image_url: str | None = Field(default=None, description="Image to edit, as a URL or data URI.")
    true_size: SizePayload | None = Field(
        default=None,
        description="Native size of the image; read from the image itself for data URIs.",
    )
    display_size: SizePayload | None = Field(default=None, description="Rendered canvas size, if known.")


class SelectionRequest(CamelModel):
    """A finished drag gesture, in display pixels."""

    start: PointPayload = Field(..., description="Mouse-down position.")
    end: PointPayload = Field(..., description="Mouse-up position.")


class SessionEditRequest(CamelModel):
    prompt: str | None = Field(default=None, description="Description of the change to make.")


class SessionResponse(CamelModel):
    id: str
    status: SessionStatus
    image_url: str = Field(..., description="Current source image (the latest edit output after a success).")
    true_size: SizePayload
    display_size: SizePayload
    selection: RectangleOut | None = Field(default=None, description="Current selection in display space.")
    mask_region: RectangleOut | None = Field(
        default=None,
        description="The selection projected into true pixel space, when it can be projected.",
    )
    selection_ready: bool = Field(..., description="Whether an edit may be submitted once a prompt is given.")
    last_error: str | None = None
    history: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
