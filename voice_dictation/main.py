"""FastAPI application for the voice dictation service."""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .constants import APP_ID, APP_PORT, APP_VERSION
from .livetypes import (
    CancelResponse,
    DictationError,
    Document,
    DocumentUpdateRequest,
    HealthResponse,
    StatusResponse,
    ToggleRequest,
    ToggleResponse,
)
from .service import Application

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Application instance
app_service = Application()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        "Starting voice dictation service",
        extra={
            "app_id": APP_ID,
            "version": APP_VERSION,
            "port": APP_PORT,
        },
    )

    # Check configuration
    if not app_service.is_recorder_available():
        logger.warning(
            f"Recorder '{app_service.recorder.executable}' not found. "
            "Install it or set DICTATION_RECORDER_COMMAND."
        )
    if not app_service.get_credential():
        logger.warning(
            "No transcription credential. Set DICTATION_API_KEY or add a netrc entry."
        )

    yield

    # Shutdown
    logger.info("Shutting down voice dictation service")
    await app_service.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Voice Dictation",
    description="Record speech, transcribe it remotely and insert the text into documents",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(DictationError)
async def dictation_exception_handler(request: Request, exc: DictationError):
    """Handle dictation exceptions."""
    return JSONResponse(
        status_code=exc.retcode,
        content={"error": str(exc)},
    )


@app.get("/heartbeat")
async def heartbeat():
    """Liveness endpoint."""
    return {"status": "ok"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        recorder_available=app_service.is_recorder_available(),
        uploader_available=app_service.is_uploader_available(),
        credential_configured=bool(app_service.get_credential()),
    )


@app.post("/api/v1/dictation/toggle")
async def toggle(request: ToggleRequest) -> ToggleResponse:
    """Start dictation into a document, or stop the current recording.

    Args:
        request: Toggle request naming the target document

    Returns:
        The session state after the toggle
    """
    logger.info(
        "Toggle request received",
        extra={"document_id": request.documentId},
    )

    try:
        state = await app_service.toggle(request.documentId)
    except DictationError:
        raise
    except Exception as e:
        logger.exception(
            "Error handling toggle request",
            exc_info=e,
            extra={"document_id": request.documentId},
        )
        raise HTTPException(status_code=500, detail=str(e))

    return ToggleResponse(state=state)


@app.post("/api/v1/dictation/cancel")
async def cancel() -> CancelResponse:
    """Cancel the current dictation, if any."""
    logger.info("Cancel request received")
    return CancelResponse(cancelled=app_service.cancel())


@app.get("/api/v1/dictation/status")
async def status() -> StatusResponse:
    """Get the current dictation state and recent messages."""
    return StatusResponse(**app_service.status())


@app.get("/api/v1/documents/{document_id}")
async def get_document(document_id: str) -> Document:
    """Get a document's content."""
    document = app_service.documents.get(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Unknown document: {document_id}")
    return document


@app.put("/api/v1/documents/{document_id}")
async def put_document(document_id: str, request: DocumentUpdateRequest) -> Document:
    """Replace a document's content and cursor."""
    return app_service.set_document(document_id, request.content, request.cursor)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=APP_PORT, log_level="info")
