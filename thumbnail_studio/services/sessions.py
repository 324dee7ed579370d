from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from thumbnail_studio.models.geometry import ImageDimensions, Point
from thumbnail_studio.models.sessions import EditSession, SessionStatus
from thumbnail_studio.services.data_uri import is_data_uri, load_image
from thumbnail_studio.services.errors import (
    InvalidDimension,
    InvalidTransition,
    MissingField,
    SessionBusy,
    SessionNotFound,
)
from thumbnail_studio.services.generation import edit_image
from thumbnail_studio.services.masks import build_mask, mask_to_data_uri
from thumbnail_studio.services.sizing import snap_dimensions

logger = logging.getLogger(__name__)

UNRENDERED = ImageDimensions(width=0, height=0)


class SessionStore:
    """
    In-memory registry of edit sessions.

    A single lock guards every transition. Remote calls happen outside the
    lock; the SUBMITTING status is what keeps a second edit of the same
    session from starting while the first is still being polled.
    """

    def __init__(self, editor: Callable[..., str] = edit_image) -> None:
        self._sessions: Dict[str, EditSession] = {}
        self._lock = threading.RLock()
        self._editor = editor

    def create(
        self,
        source_image: str,
        true_size: Optional[ImageDimensions] = None,
        display_size: Optional[ImageDimensions] = None,
    ) -> EditSession:
        """
        Open a session on `source_image`.

        For data URIs the true size is read from the image itself (and must
        match `true_size` when both are given). Remote URLs need `true_size`.
        """
        if not source_image:
            raise MissingField("Missing required field (imageUrl)")

        if is_data_uri(source_image):
            width, height = load_image(source_image).size
            decoded = ImageDimensions(width=width, height=height)
            if true_size is not None and true_size != decoded:
                raise InvalidDimension(
                    "Declared image size does not match the image",
                    details=f"declared {true_size.width}x{true_size.height}, actual {width}x{height}",
                )
            true_size = decoded
        elif true_size is None:
            raise MissingField("Missing required field (trueSize) for a remote image")

        if true_size.width <= 0 or true_size.height <= 0:
            raise InvalidDimension("Image dimensions must be positive.")

        session = EditSession(
            id=str(uuid4()),
            source_image=source_image,
            true_size=true_size,
            display_size=display_size or UNRENDERED,
        )
        with self._lock:
            self._sessions[session.id] = session
        logger.info(f"Opened edit session {session.id} on {int(true_size.width)}x{int(true_size.height)} image")
        return session

    def get(self, session_id: str) -> EditSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound("Session not found.")
        return session

    def list(self) -> List[EditSession]:
        with self._lock:
            return list(self._sessions.values())

    def resize_display(self, session_id: str, display_size: ImageDimensions) -> EditSession:
        with self._lock:
            session = self.get(session_id)
            session.resize_display(display_size)
            return session

    def select(self, session_id: str, start: Point, end: Point) -> EditSession:
        """Record a complete drag gesture from `start` to `end`."""
        with self._lock:
            session = self.get(session_id)
            session.begin_selection(start)
            session.finish_selection(end)
            return session

    def cancel(self, session_id: str) -> EditSession:
        with self._lock:
            session = self.get(session_id)
            session.cancel()
            return session

    def delete(self, session_id: str) -> None:
        """Forget a session. Refused while its edit is still in flight."""
        with self._lock:
            session = self.get(session_id)
            if session.status is SessionStatus.SUBMITTING:
                raise InvalidTransition("Cannot delete a session while an edit is in flight.")
            del self._sessions[session_id]
        logger.info(f"Closed edit session {session_id}")

    def submit_edit(self, session_id: str, prompt: str) -> EditSession:
        """
        Project the session's selection into a mask and run the inpainting edit.

        Raises:
            SessionBusy: an edit for this session is already in flight.
            GeometryError: the selection cannot be turned into a mask; the
                session is left unchanged.
        """
        if not prompt or not prompt.strip():
            raise MissingField("Missing required field (prompt)")

        with self._lock:
            session = self.get(session_id)
            if session.status is SessionStatus.SUBMITTING:
                raise SessionBusy("An edit is already in progress for this session.")

            selection = session.selection
            if selection is None or session.is_dragging:
                raise MissingField("Draw a selection before submitting an edit.")
            mask = build_mask(selection, session.display_size, session.true_size)

            session.start_submission(prompt)
            image = session.source_image
            # The model renders its output at the lattice size, which becomes
            # the session's true size once the edit succeeds.
            output_width, output_height = snap_dimensions(session.true_size.width, session.true_size.height)

        logger.info(f"Session {session_id}: submitting edit")
        try:
            image_url = self._editor(
                prompt=prompt,
                image=image,
                mask=mask_to_data_uri(mask),
                width=output_width,
                height=output_height,
            )
        except Exception as exc:
            with self._lock:
                session.fail(str(exc))
            logger.error(f"Session {session_id}: edit failed: {exc}")
            raise

        with self._lock:
            session.complete(image_url, true_size=ImageDimensions(width=output_width, height=output_height))
        logger.info(f"Session {session_id}: edit succeeded -> {image_url}")
        return session


_default_store = SessionStore()


def get_session_store() -> SessionStore:
    """Return the process-wide session store."""
    return _default_store
