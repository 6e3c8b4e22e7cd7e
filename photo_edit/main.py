"""Main FastAPI application entry point."""

import os
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import edits, health, settings
from .core import ImageEditor, RetryOrchestrator, TransportSelector
from .providers import CustomEndpointClient, GeminiClient
from .utils.config import load_config
from .utils.errors import (
    ConfigurationError,
    GenerationFailedPermanently,
    ImageProcessingError,
    OperationCancelled,
    PhotoEditError,
    ProviderError,
    InvalidResponseShape,
)
from .utils.logger import get_logger
from .utils.settings_store import JsonFileSettingsStore, SettingsStore

logger = get_logger(__name__)

# Order matters: first match wins, subclasses before their bases
_ERROR_STATUS = (
    (GenerationFailedPermanently, 502),
    (InvalidResponseShape, 502),
    (ProviderError, 502),
    (ImageProcessingError, 400),
    (OperationCancelled, 503),
    (ConfigurationError, 500),
)


def _status_for(error: PhotoEditError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


async def photo_edit_error_handler(request: Request, exc: PhotoEditError) -> JSONResponse:
    """Expose the stable error code so clients can tell failure kinds apart."""
    return JSONResponse(
        status_code=_status_for(exc),
        content={"error": exc.code, "message": str(exc)},
    )


def create_app(
    editor: Optional[ImageEditor] = None,
    settings_store: Optional[SettingsStore] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        editor: Pre-built editor; when None it is wired from configuration at startup
        settings_store: Store for the custom endpoint settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if editor is not None:
            app.state.editor = editor
            app.state.settings_store = settings_store or editor.settings_store
            yield
            return

        logger.info("Application starting up...")
        config = load_config()

        store = settings_store or JsonFileSettingsStore(config.settings_path)
        custom_client = CustomEndpointClient(timeout=config.http_timeout_seconds)
        await custom_client.initialize()
        gemini_client = GeminiClient(api_key=config.gemini_api_key)

        app.state.settings_store = store
        app.state.editor = ImageEditor(
            selector=TransportSelector(
                gemini_client=gemini_client,
                custom_client=custom_client,
            ),
            settings_store=store,
            retry=RetryOrchestrator(
                max_attempts=config.max_attempts,
                base_delay_seconds=config.retry_base_delay_seconds,
                attempt_timeout_seconds=config.attempt_timeout_seconds,
            ),
            edit_model=config.edit_model,
            text_model=config.text_model,
        )
        logger.info("Application startup complete")

        try:
            yield
        finally:
            logger.info("Application shutting down...")
            await custom_client.close()
            await gemini_client.close()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title="Photo Edit",
        description="Generative photo editing through Gemini or a compatible endpoint",
        version=__version__,
        lifespan=lifespan,
    )

    # Add CORS middleware (adjust origins for production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PhotoEditError, photo_edit_error_handler)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(edits.router, tags=["edits"])
    app.include_router(settings.router, prefix="/settings", tags=["settings"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "photo-edit",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "photo_edit.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
