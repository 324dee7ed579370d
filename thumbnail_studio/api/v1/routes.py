import time
from typing import List

from fastapi import APIRouter, status

from thumbnail_studio.api.v1.schemas import (
    EditRequest,
    EditResponse,
    GenerateRequest,
    GenerateResponse,
    MaskRequest,
    MaskResponse,
    RectangleOut,
    SaveMaskRequest,
    SaveMaskResponse,
    SelectionRequest,
    SessionCreateRequest,
    SessionEditRequest,
    SessionResponse,
    SizePayload,
    SnappedSize,
    ThumbnailOut,
)
from thumbnail_studio.models.sessions import EditSession
from thumbnail_studio.services.errors import GeometryError, MissingField, ThumbnailNotFound
from thumbnail_studio.services.generation import edit_image, generate_thumbnail
from thumbnail_studio.services.mask_previews import get_mask_preview_store
from thumbnail_studio.services.masks import build_mask, mask_coverage, mask_to_data_uri, project_selection
from thumbnail_studio.services.sessions import get_session_store
from thumbnail_studio.services.sizing import snap_dimensions
from thumbnail_studio.services.thumbnails import get_thumbnail_store

router = APIRouter(prefix="/api/v1")


@router.get("/health", tags=["health"])
async def health_check() -> dict:
    """API v1 health check endpoint."""
    return {"status": "ok", "api_version": "v1"}


# Generation and editing block on Replicate polling, so these routes are
# plain functions and run in FastAPI's threadpool.


@router.post(
    "/generate",
    response_model=GenerateResponse,
    tags=["thumbnails"],
    summary="Generate a thumbnail from a text prompt",
)
def generate(request: GenerateRequest) -> GenerateResponse:
    """
    Generate a 16:9 thumbnail with a fast text-to-image model.

    Every generated image is recorded in the thumbnail log; the returned `id`
    refers to that record.
    """
    thumbnail = generate_thumbnail(request.prompt or "")
    return GenerateResponse(image_url=thumbnail.image_url, id=thumbnail.id)


@router.post(
    "/edit",
    response_model=EditResponse,
    tags=["thumbnails"],
    summary="Inpaint a masked region of an image",
)
def edit(request: EditRequest) -> EditResponse:
    """
    Repaint the white region of `mask` on `image` following `prompt`.

    The mask must have the same pixel dimensions as the image. Use
    `POST /masks` (or an edit session) to build one from an on-screen
    selection.
    """
    image_url = edit_image(
        prompt=request.prompt or "",
        image=request.image or "",
        mask=request.mask or "",
        width=request.width,
        height=request.height,
    )
    return EditResponse(image_url=image_url)


@router.post(
    "/saveMask",
    response_model=SaveMaskResponse,
    tags=["masks"],
    summary="Store a mask preview for debugging",
)
async def save_mask(request: SaveMaskRequest) -> SaveMaskResponse:
    """Persist a mask PNG under `/previews/`. Purely diagnostic."""
    if not request.mask_data:
        raise MissingField("Missing mask data")
    timestamp = request.timestamp if request.timestamp is not None else int(time.time() * 1000)
    path = get_mask_preview_store().save(request.mask_data, timestamp)
    return SaveMaskResponse(success=True, path=path)


@router.post(
    "/sizes/snap",
    response_model=SnappedSize,
    tags=["masks"],
    summary="Snap a size onto the model's size lattice",
)
async def snap_size(request: SizePayload) -> SnappedSize:
    width, height = snap_dimensions(request.width, request.height)
    return SnappedSize(width=width, height=height)


@router.post(
    "/masks",
    response_model=MaskResponse,
    tags=["masks"],
    summary="Build an inpainting mask from an on-screen selection",
)
async def create_mask(request: MaskRequest) -> MaskResponse:
    """
    Convert a selection drawn on the rendered canvas into a mask.

    The selection is given in display pixels; the mask has the image's true
    dimensions with the projected, clipped selection painted white.
    """
    mask = build_mask(
        request.selection.to_rectangle(),
        request.display_size.to_dimensions(),
        request.true_size.to_dimensions(),
    )
    return MaskResponse(
        mask=mask_to_data_uri(mask),
        rectangle=RectangleOut.from_rectangle(mask.region),
        coverage=mask_coverage(mask),
    )


@router.get(
    "/thumbnails",
    response_model=List[ThumbnailOut],
    tags=["thumbnails"],
    summary="List generated thumbnails",
)
async def list_thumbnails() -> List[ThumbnailOut]:
    return [_thumbnail_response(record) for record in get_thumbnail_store().list()]


@router.get(
    "/thumbnails/{thumbnail_id}",
    response_model=ThumbnailOut,
    tags=["thumbnails"],
    summary="Get a generated thumbnail",
)
async def get_thumbnail(thumbnail_id: str) -> ThumbnailOut:
    record = get_thumbnail_store().get(thumbnail_id)
    if record is None:
        raise ThumbnailNotFound("Thumbnail not found.")
    return _thumbnail_response(record)


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["sessions"],
    summary="Open an edit session on an image",
)
async def create_session(request: SessionCreateRequest) -> SessionResponse:
    session = get_session_store().create(
        source_image=request.image_url or "",
        true_size=request.true_size.to_dimensions() if request.true_size else None,
        display_size=request.display_size.to_dimensions() if request.display_size else None,
    )
    return _session_response(session)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get an edit session",
)
async def get_session(session_id: str) -> SessionResponse:
    return _session_response(get_session_store().get(session_id))


@router.put(
    "/sessions/{session_id}/display",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Report the rendered canvas size",
)
async def update_display(session_id: str, request: SizePayload) -> SessionResponse:
    """Changing the canvas size drops any selection drawn at the previous size."""
    session = get_session_store().resize_display(session_id, request.to_dimensions())
    return _session_response(session)


@router.post(
    "/sessions/{session_id}/selection",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Record a drag selection in display pixels",
)
async def select_region(session_id: str, request: SelectionRequest) -> SessionResponse:
    session = get_session_store().select(session_id, request.start.to_point(), request.end.to_point())
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}/selection",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Cancel the current selection",
)
async def cancel_selection(session_id: str) -> SessionResponse:
    return _session_response(get_session_store().cancel(session_id))


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["sessions"],
    summary="Close an edit session",
)
async def delete_session(session_id: str) -> None:
    """Forget the session. Refused with 409 while its edit is in flight."""
    get_session_store().delete(session_id)


@router.post(
    "/sessions/{session_id}/edit",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Inpaint the session's selection",
)
def edit_session(session_id: str, request: SessionEditRequest) -> SessionResponse:
    """
    Build a mask from the session's selection and run the inpainting edit.

    On success the output replaces the session's image so it can be edited
    again. A second submission while one is in flight is rejected with 409.
    """
    session = get_session_store().submit_edit(session_id, request.prompt or "")
    return _session_response(session)


def _thumbnail_response(record) -> ThumbnailOut:
    return ThumbnailOut(
        id=record.id,
        prompt=record.prompt,
        image_url=record.image_url,
        created_at=record.created_at.isoformat(),
    )


def _session_response(session: EditSession) -> SessionResponse:
    mask_region = None
    if session.selection_ready:
        try:
            mask_region = RectangleOut.from_rectangle(
                project_selection(session.selection, session.display_size, session.true_size)
            )
        except GeometryError:
            # Selection entirely off the image; the edit route reports it.
            mask_region = None

    return SessionResponse(
        id=session.id,
        status=session.status,
        image_url=session.source_image,
        true_size=SizePayload.from_dimensions(session.true_size),
        display_size=SizePayload.from_dimensions(session.display_size),
        selection=RectangleOut.from_rectangle(session.selection) if session.selection else None,
        mask_region=mask_region,
        selection_ready=session.selection_ready,
        last_error=session.last_error,
        history=list(session.history),
        created_at=session.created_at.isoformat(),
        updated_at=session.updated_at.isoformat(),
    )
