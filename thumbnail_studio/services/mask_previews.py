from __future__ import annotations

import logging
from pathlib import Path

from thumbnail_studio.config import get_settings
from thumbnail_studio.services.data_uri import parse_data_uri
from thumbnail_studio.services.errors import PreviewStorageError

logger = logging.getLogger(__name__)

PREVIEWS_URL_PREFIX = "/previews"


class MaskPreviewStore:
    """
    Filesystem storage for diagnostic mask previews.

    Files are written to `<base_dir>/mask_preview_<timestamp>.png` and served
    under `/previews/`. Nothing in the edit flow reads them back.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def save(self, mask_data: str, timestamp: float | int) -> str:
        """Decode `mask_data` and write it to disk, returning its served path."""
        _, raw = parse_data_uri(mask_data)
        filename = f"mask_preview_{_format_timestamp(timestamp)}.png"
        try:
            (self._base_dir / filename).write_bytes(raw)
        except OSError as exc:
            raise PreviewStorageError("Failed to save mask", details=str(exc)) from exc

        logger.info(f"Saved mask preview {filename} ({len(raw)} bytes)")
        return f"{PREVIEWS_URL_PREFIX}/{filename}"


def _format_timestamp(timestamp: float | int) -> str:
    # Browser timestamps are integral milliseconds; keep them free of ".0".
    if float(timestamp).is_integer():
        return str(int(timestamp))
    return str(timestamp).replace(".", "_")


_default_store: MaskPreviewStore | None = None


def get_mask_preview_store() -> MaskPreviewStore:
    global _default_store
    if _default_store is None:
        _default_store = MaskPreviewStore(base_dir=get_settings().previews_dir)
    return _default_store
