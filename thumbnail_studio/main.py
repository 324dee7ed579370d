import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from thumbnail_studio.api.v1.routes import router as api_v1_router
from thumbnail_studio.config import reset_settings
from thumbnail_studio.services.errors import ThumbnailStudioError
from thumbnail_studio.services.mask_previews import PREVIEWS_URL_PREFIX, get_mask_preview_store

logger = logging.getLogger(__name__)


def load_environment(env_path: Path | None = None) -> None:
    """Load `.env` from the project root and report what was found."""
    env_path = env_path or Path(__file__).parent.parent / ".env"

    print("\n" + "=" * 60)
    print("🔧 LOADING ENVIRONMENT CONFIGURATION")
    print("=" * 60)
    print(f"Looking for .env file at: {env_path}")

    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=True)
        print("✓ .env file loaded successfully")
    else:
        print(f"⚠ .env file not found at: {env_path}")
        print("  Create it with: REPLICATE_API_TOKEN=your_token_here")

    token = os.environ.get("REPLICATE_API_TOKEN")
    if token:
        print(f"✓ REPLICATE_API_TOKEN loaded: {token[:15]}...")
    else:
        print("⚠ REPLICATE_API_TOKEN not set - generation and editing will fail")
    print("=" * 60 + "\n")

    # Settings are cached on first use; make sure they see the loaded values.
    reset_settings()


async def studio_error_handler(request: Request, exc: ThumbnailStudioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are reported like missing fields: 400 with {error, details}.
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request payload", "details": str(exc.errors())},
    )


def create_app() -> FastAPI:
    """
    Application factory for the Thumbnail Studio API.

    Keeping this as a separate function makes it easier to extend
    configuration and testing later.
    """
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    app = FastAPI(
        title="Thumbnail Studio API",
        version="0.1.0",
        description="Thumbnail generation and region inpainting backed by Replicate.",
    )

    app.add_exception_handler(ThumbnailStudioError, studio_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Infrastructure-level health check (non-versioned) primarily for ops.
    @app.get("/health", tags=["health"])
    async def root_health_check() -> dict:
        """Simple root health check endpoint."""
        return {"status": "ok"}

    # Public, versioned API routes.
    app.include_router(api_v1_router)

    # Diagnostic mask previews written by POST /api/v1/saveMask.
    app.mount(
        PREVIEWS_URL_PREFIX,
        StaticFiles(directory=get_mask_preview_store().base_dir),
        name="previews",
    )

    return app


load_environment()
app = create_app()
