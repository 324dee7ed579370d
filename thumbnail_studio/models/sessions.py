from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from thumbnail_studio.models.geometry import CoordinateSpace, ImageDimensions, Point, Rectangle
from thumbnail_studio.models.thumbnails import utcnow
from thumbnail_studio.services.errors import InvalidTransition


class SessionStatus(str, Enum):
    """Lifecycle of an edit session."""

    IDLE = "idle"
    SELECTING = "selecting"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class EditSession:
    """
    State of one user's editor: the image being edited, the canvas it is
    rendered on and the current selection.

    The selection is always stored in display space. It is created on
    mouse-down (`begin_selection`), mutated on mouse-move (`update_selection`)
    and finalized on mouse-up (`finish_selection`). A successful edit replaces
    `source_image` with the model output, so the result can be edited again.
    """

    id: str
    source_image: str
    true_size: ImageDimensions
    display_size: ImageDimensions
    status: SessionStatus = SessionStatus.IDLE
    selection: Rectangle | None = None
    drag_origin: Point | None = None
    prompt: str = ""
    last_error: str | None = None
    # Every image the session has produced, oldest first.
    history: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_dragging(self) -> bool:
        return self.drag_origin is not None

    def _touch(self) -> None:
        self.updated_at = utcnow()

    def _require_not_submitting(self, action: str) -> None:
        if self.status is SessionStatus.SUBMITTING:
            raise InvalidTransition(f"Cannot {action} while an edit is in flight.")

    def resize_display(self, display_size: ImageDimensions) -> None:
        """Record a new rendered canvas size. Drops any selection drawn at the old size."""
        self._require_not_submitting("resize the canvas")
        if display_size != self.display_size:
            self.selection = None
            self.drag_origin = None
        self.display_size = display_size
        self._touch()

    def begin_selection(self, point: Point) -> None:
        self._require_not_submitting("start a selection")
        self.drag_origin = point
        self.selection = Rectangle.from_drag(point, point, CoordinateSpace.DISPLAY)
        self.status = SessionStatus.SELECTING
        self.last_error = None
        self._touch()

    def update_selection(self, point: Point) -> None:
        if self.drag_origin is None:
            raise InvalidTransition("No selection is being drawn.")
        self.selection = Rectangle.from_drag(self.drag_origin, point, CoordinateSpace.DISPLAY)
        self._touch()

    def finish_selection(self, point: Point | None = None) -> None:
        if point is not None:
            self.update_selection(point)
        elif self.drag_origin is None:
            raise InvalidTransition("No selection is being drawn.")
        self.drag_origin = None
        self._touch()

    def cancel(self) -> None:
        """Discard the selection and prompt, returning to idle."""
        self._require_not_submitting("cancel")
        self.selection = None
        self.drag_origin = None
        self.prompt = ""
        self.status = SessionStatus.IDLE
        self._touch()

    @property
    def selection_ready(self) -> bool:
        """A finished, non-empty selection on a rendered canvas, with nothing in flight."""
        return (
            self.status is not SessionStatus.SUBMITTING
            and not self.is_dragging
            and self.selection is not None
            and not self.selection.is_degenerate
            and self.display_size.is_resolved
        )

    def can_submit(self) -> bool:
        """Whether the submit affordance should be enabled."""
        return self.selection_ready and bool(self.prompt.strip())

    def start_submission(self, prompt: str) -> None:
        self._require_not_submitting("submit")
        self.prompt = prompt
        if not self.can_submit():
            raise InvalidTransition("Draw a selection and enter a prompt before submitting.")
        self.status = SessionStatus.SUBMITTING
        self._touch()

    def complete(self, image_url: str, true_size: ImageDimensions | None = None) -> None:
        """
        The edit succeeded: its output becomes the new source image.

        `true_size` is the pixel size the model rendered the output at; the
        next mask is built against it.
        """
        if self.status is not SessionStatus.SUBMITTING:
            raise InvalidTransition("No edit is in flight.")
        self.source_image = image_url
        if true_size is not None:
            self.true_size = true_size
        self.history.append(image_url)
        self.selection = None
        self.prompt = ""
        self.last_error = None
        self.status = SessionStatus.SUCCEEDED
        self._touch()

    def fail(self, message: str) -> None:
        """The edit failed; the selection and prompt are kept for resubmission."""
        if self.status is not SessionStatus.SUBMITTING:
            raise InvalidTransition("No edit is in flight.")
        self.last_error = message
        self.status = SessionStatus.FAILED
        self._touch()
