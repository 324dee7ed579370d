"""Encoding and decoding of `data:image/<fmt>;base64,<payload>` URIs."""

from __future__ import annotations

import base64
import binascii
import re
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from thumbnail_studio.services.errors import InvalidImageData

_DATA_URI_RE = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)


def is_data_uri(value: str | None) -> bool:
    return bool(value) and _DATA_URI_RE.match(value) is not None


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Split an image data URI into its MIME type and raw bytes.

    The `data:image/<fmt>;base64,` prefix is stripped before decoding.
    """
    match = _DATA_URI_RE.match(uri or "")
    if match is None:
        raise InvalidImageData("Expected an image data URI (data:image/<format>;base64,...).")

    payload = uri[match.end():]
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageData("Image data URI is not valid base64.") from exc
    return match.group(1).lower(), raw


def load_image(uri: str) -> Image.Image:
    """Decode an image data URI into a Pillow image."""
    _, raw = parse_data_uri(uri)
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageData("Image data URI does not contain a readable image.") from exc
    return image


def image_to_data_uri(pil_image: Image.Image, format: str = "PNG") -> str:
    """Convert a Pillow image to a base64 data URI."""
    buffer = BytesIO()
    pil_image.save(buffer, format=format)
    b64_data = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/{format.lower()};base64,{b64_data}"
