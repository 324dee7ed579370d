from __future__ import annotations

import threading
from typing import Dict, List
from uuid import uuid4

from thumbnail_studio.models.thumbnails import ThumbnailRecord


class ThumbnailStore:
    """
    In-memory log of generated thumbnails.

    A minimal abstraction that can later be replaced by a database without
    changing the API surface.
    """

    def __init__(self) -> None:
        self._records: Dict[str, ThumbnailRecord] = {}
        self._lock = threading.Lock()

    def create(self, prompt: str, image_url: str) -> ThumbnailRecord:
        record = ThumbnailRecord(id=str(uuid4()), prompt=prompt, image_url=image_url)
        with self._lock:
            self._records[record.id] = record
        return record

    def get(self, thumbnail_id: str) -> ThumbnailRecord | None:
        return self._records.get(thumbnail_id)

    def list(self) -> List[ThumbnailRecord]:
        """Return all records, oldest first."""
        with self._lock:
            return sorted(self._records.values(), key=lambda record: record.created_at)


_default_store = ThumbnailStore()


def get_thumbnail_store() -> ThumbnailStore:
    """Return the process-wide thumbnail store."""
    return _default_store
