"""
Thumbnail generation and inpainting on top of Replicate.

Generation runs a fast text-to-image model and logs every result. Editing
sends an (image, mask, prompt) triple to an inpainting model; the mask must
share the image's pixel dimensions or the model rejects the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from thumbnail_studio.services.data_uri import is_data_uri, load_image
from thumbnail_studio.services.errors import MaskDimensionMismatch, MissingField
from thumbnail_studio.services.replicate_http_client import ReplicateHTTPClient, get_replicate_client
from thumbnail_studio.services.sizing import snap_dimensions
from thumbnail_studio.services.thumbnails import ThumbnailStore, get_thumbnail_store

logger = logging.getLogger(__name__)

GENERATION_MODEL = "black-forest-labs/flux-schnell"
INPAINTING_VERSION = "e490d072a34a94a11e9711ed5a6ba621c3fab884eda1665d9d3a282d65a21180"

GENERATION_PROMPT_PREFIX = "YouTube Thumbnail: "
INPAINTING_PROMPT_SUFFIX = ", highly detailed, perfect quality, 4k"
INPAINTING_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, ugly, bad anatomy, bad proportions, watermark"
)


@dataclass(slots=True)
class GeneratedThumbnail:
    id: str
    image_url: str


def generate_thumbnail(
    prompt: str,
    client: Optional[ReplicateHTTPClient] = None,
    store: Optional[ThumbnailStore] = None,
) -> GeneratedThumbnail:
    """Generate a 16:9 thumbnail for `prompt` and record it in the thumbnail log."""
    if not prompt or not prompt.strip():
        raise MissingField("Prompt is required")

    client = client or get_replicate_client()
    store = store or get_thumbnail_store()

    logger.info(f"Generating thumbnail for prompt: {prompt!r}")
    image_url = client.run(
        {
            "prompt": f"{GENERATION_PROMPT_PREFIX}{prompt}",
            "go_fast": True,
            "megapixels": "1",
            "num_outputs": 1,
            "aspect_ratio": "16:9",
            "output_format": "webp",
            "output_quality": 80,
            "num_inference_steps": 4,
        },
        model=GENERATION_MODEL,
    )
    logger.info(f"Final image URL: {image_url}")

    record = store.create(prompt=prompt, image_url=image_url)
    return GeneratedThumbnail(id=record.id, image_url=record.image_url)


def check_mask_matches_image(image: str, mask: str) -> None:
    """
    Ensure image and mask decode to the same pixel size.

    Only possible when both are inline data URIs; remote image URLs are passed
    through unchecked.
    """
    if not (is_data_uri(image) and is_data_uri(mask)):
        return
    image_size = load_image(image).size
    mask_size = load_image(mask).size
    if image_size != mask_size:
        raise MaskDimensionMismatch(
            "Image and mask dimensions differ",
            details=f"image {image_size[0]}x{image_size[1]}, mask {mask_size[0]}x{mask_size[1]}",
        )


def edit_image(
    prompt: str,
    image: str,
    mask: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    client: Optional[ReplicateHTTPClient] = None,
) -> str:
    """
    Inpaint the white region of `mask` on `image`, guided by `prompt`.

    `image` may be a data URI or a URL; `mask` is normally a PNG data URI.
    When `width` and `height` are supplied they are snapped onto the model's
    size lattice before being forwarded. They come as a pair: one without
    the other is rejected.

    Returns:
        URL of the edited image.
    """
    if not prompt or not image or not mask:
        raise MissingField("Missing required fields (prompt, image, mask)")
    if (width is None) != (height is None):
        raise MissingField("Both width and height are required when either is given")

    check_mask_matches_image(image, mask)

    model_input = {
        "prompt": f"{prompt}{INPAINTING_PROMPT_SUFFIX}",
        "image": image,
        "mask": mask,
        "num_inference_steps": 30,
        "guidance_scale": 7.5,
        "negative_prompt": INPAINTING_NEGATIVE_PROMPT,
    }
    if width is not None and height is not None:
        model_input["width"], model_input["height"] = snap_dimensions(width, height)

    client = client or get_replicate_client()
    logger.info(f"Processing edit request: {prompt!r}")
    return client.run(model_input, version=INPAINTING_VERSION)
