from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_REPLICATE_BASE_URL = "https://api.replicate.com/v1"


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration read from the environment (and `.env`)."""

    replicate_api_token: str | None
    replicate_base_url: str = DEFAULT_REPLICATE_BASE_URL
    # Fixed-interval polling: one request per second, at most 60 polls.
    poll_interval: float = 1.0
    max_poll_attempts: int = 60
    storage_dir: Path = Path("storage")

    @property
    def previews_dir(self) -> Path:
        return self.storage_dir / "previews"


def load_settings() -> Settings:
    """Build settings from the current process environment."""
    return Settings(
        replicate_api_token=os.environ.get("REPLICATE_API_TOKEN") or None,
        replicate_base_url=os.getenv("REPLICATE_API_BASE_URL", DEFAULT_REPLICATE_BASE_URL).rstrip("/"),
        poll_interval=float(os.getenv("REPLICATE_POLL_INTERVAL", "1")),
        max_poll_attempts=int(os.getenv("REPLICATE_MAX_POLL_ATTEMPTS", "60")),
        storage_dir=Path(os.getenv("THUMBNAIL_STORAGE_DIR", "storage")),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
