from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return an explicit, timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ThumbnailRecord:
    """A generated thumbnail: the prompt that produced it and where it lives."""

    id: str
    prompt: str
    image_url: str
    created_at: datetime = field(default_factory=utcnow)
