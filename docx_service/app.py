"""
Conversion Service - FastAPI application for Word to PDF conversion.

Accepts a .doc/.docx upload, extracts its content as HTML, renders it
with Playwright/Chromium and returns the PDF.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings, validate_config_on_startup
from .exceptions import ConversionError, ValidationError
from .models import ErrorResponse, HealthResponse
from .pipeline import run_conversion
from .renderer import check_renderer
from .upload import MISSING_FILE_MESSAGE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="DOCX Conversion Service",
    version=__version__,
    description="Word (.doc/.docx) to PDF conversion using mammoth and Playwright/Chromium"
)

# Playwright readiness state, written once at startup
_playwright_ready = False
_playwright_error: Optional[str] = None


# ============================================================================
# Startup Event - Validate configuration and Playwright
# ============================================================================

@app.on_event("startup")
async def validate_on_startup():
    """
    Validate configuration and Playwright/Chromium on startup.

    The service reports unhealthy if Chromium cannot render a test PDF.
    """
    global _playwright_ready, _playwright_error

    settings = validate_config_on_startup()

    if not settings.validate_renderer_on_startup:
        logger.info("Skipping Playwright validation (VALIDATE_RENDERER_ON_STARTUP=false)")
        _playwright_ready = True
        return

    logger.info("Conversion service starting - validating Playwright installation...")
    _playwright_ready, _playwright_error = await check_renderer(
        settings.playwright_headless,
        timeout_ms=settings.playwright_timeout,
        overall_timeout=settings.render_timeout_seconds,
    )

    if _playwright_ready:
        logger.info("Playwright validation successful")
    else:
        logger.error(f"Playwright validation failed: {_playwright_error}")
        logger.error("PDF conversion will not work until this is resolved.")


# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    """Map pipeline errors to ``{"success": false, "message": ...}``."""
    if exc.status_code >= 500:
        logger.error(f"Conversion Route Error: {type(exc).__name__}: {exc.message}")
    else:
        logger.warning(f"Rejected upload: {exc.message}")

    body = ErrorResponse(message=exc.public_message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Answer malformed uploads (e.g. a text value in the ``file`` field) with
    the same 400 body as a missing file instead of FastAPI's 422.
    """
    logger.warning(f"Rejected upload: invalid request body {exc.errors()}")
    return await conversion_error_handler(request, ValidationError(MISSING_FILE_MESSAGE))


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if Playwright validation failed on startup.
    """
    settings = get_settings()

    if not _playwright_ready:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "playwright_ready": False,
                "playwright_error": _playwright_error,
                "temp_dir": str(settings.temp_upload_dir),
                "message": "Conversion service is unhealthy - Playwright/Chromium not available"
            }
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        playwright_ready=True,
        playwright_error=None,
        temp_dir=str(settings.temp_upload_dir),
    )


# ============================================================================
# Conversion Endpoint
# ============================================================================

@app.post(
    "/api/tools/convert-docx",
    responses={
        200: {"content": {"application/pdf": {}}},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def convert_docx(file: Optional[UploadFile] = File(None)):
    """
    Convert an uploaded Word document to PDF.

    Returns:
        The PDF as an attachment named after the upload

    Raises:
        ValidationError: 400 for a missing file, wrong extension or >10MB
        ConversionError: 500 for extraction or rendering failures
    """
    if file is None:
        raise ValidationError(MISSING_FILE_MESSAGE)

    return await run_conversion(file, get_settings())
