"""
Error taxonomy for the thumbnail studio.

Every error carries the HTTP status it maps to, so the API layer can report
it without a per-route translation table. Geometry errors (bad dimensions,
unrendered canvas, empty selections) are raised before anything is submitted
to Replicate and are never reported as a generic remote failure.
"""

from __future__ import annotations


class ThumbnailStudioError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class MissingField(ThumbnailStudioError):
    """A required request field (prompt, image, mask, ...) is absent or empty."""

    status_code = 400


class InvalidImageData(ThumbnailStudioError):
    """An image payload is not a decodable base64 data URI."""

    status_code = 400


class GeometryError(ThumbnailStudioError):
    """Degenerate geometry caught before submission."""

    status_code = 422


class InvalidDimension(GeometryError):
    """A width or height is zero, negative or not finite."""


class UnresolvedCanvas(GeometryError):
    """The canvas display size is zero, i.e. it has not been rendered yet."""


class DegenerateSelection(GeometryError):
    """The selection covers no pixels (zero width or height)."""


class CoordinateSpaceError(GeometryError):
    """A rectangle was passed in the wrong coordinate space."""


class MaskDimensionMismatch(GeometryError):
    """Image and mask do not share the same pixel dimensions."""


class NotFound(ThumbnailStudioError):
    status_code = 404


class SessionNotFound(NotFound):
    pass


class ThumbnailNotFound(NotFound):
    pass


class SessionBusy(ThumbnailStudioError):
    """An edit is already in flight for this session."""

    status_code = 409


class InvalidTransition(ThumbnailStudioError):
    """The requested session transition is not allowed from its current state."""

    status_code = 409


class RemoteServiceError(ThumbnailStudioError):
    """Replicate reported a failure or an error payload."""

    status_code = 500


class PredictionTimeout(RemoteServiceError):
    """Polling bound exceeded without reaching a terminal state."""

    def __init__(self, message: str = "Timeout waiting for image generation", details: str | None = None) -> None:
        super().__init__(message, details)


class PreviewStorageError(ThumbnailStudioError):
    """Raised when a mask preview cannot be written to disk."""

    status_code = 500
